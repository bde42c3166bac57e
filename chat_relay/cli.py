"""CLI entry point for chat-relay.

Streams one prompt through the dispatcher with a demo stock-price function.

Entry point:
    chat-relay ask "What is AAPL trading at?" [--model gpt-4o-mini] [--with-agent]
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ShowStockPrice(BaseModel):
    """Arguments for the demo show_stock_price function."""
    symbol: str = Field(description="Ticker symbol, e.g. AAPL")


# ─────────────────────────────────────────────────────────────────────
# ARGUMENT PARSING
# ─────────────────────────────────────────────────────────────────────


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chat-relay",
        description="Stream a chat completion through the callback dispatcher.",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    sub = parser.add_subparsers(dest="command")

    ask_p = sub.add_parser("ask", help="Send one prompt and stream the reply")
    ask_p.add_argument("prompt", help="User message")
    ask_p.add_argument("--model", default=None, help="Model ID (default: CHAT_RELAY_MODEL)")
    ask_p.add_argument("--system", default="You are a stock trading assistant.", help="System prompt")
    ask_p.add_argument(
        "--with-agent", action="store_true",
        help="Also run the LangChain agent stream (output is discarded)",
    )
    return parser


# ─────────────────────────────────────────────────────────────────────
# COMMANDS
# ─────────────────────────────────────────────────────────────────────


async def _cmd_ask(
    prompt: str,
    model: Optional[str],
    system: str,
    with_agent: bool,
    client=None,
) -> int:
    from chat_relay.adapters.openai_compat import OpenAICompatAdapter
    from chat_relay.agent import default_agent_factory, null_agent_factory
    from chat_relay.config import CompletionRequest, Message
    from chat_relay.dispatcher import run_openai_completion
    from chat_relay.functions import FunctionDeclaration
    from chat_relay.utils import format_number, get_stock_price

    if client is None:
        try:
            client = OpenAICompatAdapter()
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    request_kwargs = {}
    if model:
        request_kwargs["model"] = model
    request = CompletionRequest(
        messages=[
            Message(role="system", content=system),
            Message(role="user", content=prompt),
        ],
        functions=[
            FunctionDeclaration(
                name="show_stock_price",
                description="Show the current price of a stock to the user.",
                parameters=ShowStockPrice,
            ),
        ],
        **request_kwargs,
    )

    logger.debug(f"Asking {request.model} with {len(request.functions)} function(s)")

    failed = False
    printed = 0

    def on_text(text: str, is_final: bool) -> None:
        nonlocal printed
        sys.stdout.write(text[printed:])
        printed = len(text)
        if is_final:
            sys.stdout.write("\n")
        sys.stdout.flush()

    def on_stock(args: ShowStockPrice) -> None:
        price = format_number(get_stock_price(args.symbol))
        print(f"{args.symbol}: {price}")

    def on_error(message: str) -> None:
        nonlocal failed
        failed = True
        print(f"Error: {message}", file=sys.stderr)

    handle = run_openai_completion(
        client,
        request,
        agent_factory=default_agent_factory if with_agent else null_agent_factory,
    )
    handle.on_text_content(on_text)
    handle.on_function_call("show_stock_price", on_stock)
    handle.on_error(on_error)
    await handle.wait()

    return 1 if failed else 0


# ─────────────────────────────────────────────────────────────────────
# ENTRY POINT
# ─────────────────────────────────────────────────────────────────────


def main():
    parser = _build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(name)s %(message)s", stream=sys.stderr)

    from dotenv import load_dotenv
    load_dotenv()

    if args.command == "ask":
        code = asyncio.run(_cmd_ask(
            prompt=args.prompt,
            model=args.model,
            system=args.system,
            with_agent=args.with_agent,
        ))
    else:
        parser.print_help()
        code = 1

    sys.exit(code)


if __name__ == "__main__":
    main()
