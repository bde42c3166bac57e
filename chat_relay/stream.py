"""
Stream multiplexer: turns a CompletionClient event stream into callbacks.

Events are handled strictly in arrival order. on_final fires exactly once,
after the stream is exhausted, with every token concatenated. If a callback
raises, relaying stops and the exception propagates to the caller.
"""

import inspect
from dataclasses import dataclass
from typing import Any, AsyncIterable, Awaitable, Callable, Optional, Union

from chat_relay.adapters.schema import FunctionCallEvent, StreamEvent, TokenEvent

MaybeAwaitable = Union[None, Awaitable[None]]


async def call_maybe_async(fn: Callable[..., Any], *args: Any) -> Any:
    """Call fn and await the result if it returned an awaitable."""
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


@dataclass
class StreamCallbacks:
    on_token: Optional[Callable[[str], MaybeAwaitable]] = None
    on_function_call: Optional[Callable[[FunctionCallEvent], MaybeAwaitable]] = None
    on_final: Optional[Callable[[str], MaybeAwaitable]] = None


async def relay_stream(events: AsyncIterable[StreamEvent], callbacks: StreamCallbacks) -> str:
    """
    Drive `callbacks` from `events`.

    Returns:
        The full concatenated text of all TokenEvents
    """
    parts: list[str] = []
    async for event in events:
        if isinstance(event, TokenEvent):
            parts.append(event.text)
            if callbacks.on_token:
                await call_maybe_async(callbacks.on_token, event.text)
        elif isinstance(event, FunctionCallEvent):
            if callbacks.on_function_call:
                await call_maybe_async(callbacks.on_function_call, event)

    text = "".join(parts)
    if callbacks.on_final:
        await call_maybe_async(callbacks.on_final, text)
    return text
