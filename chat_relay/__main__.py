from chat_relay.cli import main

main()
