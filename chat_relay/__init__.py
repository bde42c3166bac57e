"""
chat-relay: callback-driven streaming over an OpenAI-compatible chat endpoint.
"""

from chat_relay.config import CompletionRequest, Message
from chat_relay.dispatcher import CompletionHandle, run_openai_completion
from chat_relay.functions import FunctionDeclaration
from chat_relay.utils import (
    cn,
    consume_stream,
    format_number,
    get_stock_price,
    run_async_fn_without_blocking,
    sleep,
)

__all__ = [
    "CompletionHandle",
    "CompletionRequest",
    "FunctionDeclaration",
    "Message",
    "cn",
    "consume_stream",
    "format_number",
    "get_stock_price",
    "run_async_fn_without_blocking",
    "run_openai_completion",
    "sleep",
]
