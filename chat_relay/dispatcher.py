"""
Completion Stream Dispatcher.

run_openai_completion() returns a CompletionHandle immediately and streams
the completion in the background. The caller registers three kinds of
callbacks on the handle:

    handle = run_openai_completion(client, request)
    handle.on_text_content(lambda text, is_final: ...)
    handle.on_error(lambda message: ...)
    handle.on_function_call("show_stock_price", lambda args: ...)

Text vs. function call is decided by prefix only: once the accumulated text
starts with "{" no more non-final text callbacks fire. A function call
latches `has_function` for the rest of the session and suppresses the final
text callback.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from pydantic import BaseModel

from chat_relay.adapters.base import CompletionClient
from chat_relay.adapters.schema import CompletionTask, FunctionCallEvent
from chat_relay.agent import (
    AgentFactory,
    build_agent_inputs,
    default_agent_factory,
    start_agent_stream,
)
from chat_relay.config import CompletionRequest, get_timeout_seconds
from chat_relay.errors import user_message_for
from chat_relay.functions import (
    FunctionRegistry,
    build_function_registry,
    lookup_function,
    to_langchain_tools,
    to_openai_functions,
)
from chat_relay.stream import MaybeAwaitable, StreamCallbacks, call_maybe_async, relay_stream
from chat_relay.utils import run_async_fn_without_blocking

logger = logging.getLogger(__name__)

TextCallback = Callable[[str, bool], MaybeAwaitable]
ErrorCallback = Callable[[str], MaybeAwaitable]
FunctionHandler = Callable[[BaseModel], MaybeAwaitable]


def _ignore_text(text: str, is_final: bool) -> None:
    return None


def _ignore_error(message: str) -> None:
    return None


@dataclass
class CallbackRegistry:
    """The three callback slots of one dispatch; read at event time."""
    on_text: TextCallback = _ignore_text
    on_error: ErrorCallback = _ignore_error
    function_handlers: dict[str, FunctionHandler] = field(default_factory=dict)


@dataclass
class StreamSession:
    """Mutable state owned by a single dispatch."""
    functions: FunctionRegistry
    callbacks: CallbackRegistry
    text: str = ""
    has_function: bool = False

    async def handle_token(self, token: str) -> None:
        self.text += token
        if self.text.startswith("{"):
            return
        await call_maybe_async(self.callbacks.on_text, self.text, False)

    async def handle_function_call(self, event: FunctionCallEvent) -> None:
        self.has_function = True
        declaration = lookup_function(self.functions, event.name)

        handler = self.callbacks.function_handlers.get(event.name)
        if handler is None:
            logger.debug(f"No handler registered for '{event.name}'; call dropped")
            return
        args = declaration.parse_arguments(event.arguments)
        await call_maybe_async(handler, args)

    async def handle_final(self, text: str) -> None:
        if self.has_function:
            return
        await call_maybe_async(self.callbacks.on_text, self.text, True)

    def stream_callbacks(self) -> StreamCallbacks:
        return StreamCallbacks(
            on_token=self.handle_token,
            on_function_call=self.handle_function_call,
            on_final=self.handle_final,
        )


class CompletionHandle:
    """Registration surface returned by run_openai_completion()."""

    def __init__(self, callbacks: CallbackRegistry, functions: FunctionRegistry):
        self._callbacks = callbacks
        self._functions = functions
        self._task: Optional["asyncio.Future[None]"] = None

    def on_text_content(self, callback: TextCallback) -> None:
        """callback(text, is_final) receives the whole text accumulated so far."""
        self._callbacks.on_text = callback

    def on_error(self, callback: ErrorCallback) -> None:
        self._callbacks.on_error = callback

    def on_function_call(self, name: str, callback: FunctionHandler) -> None:
        """
        Register the handler for one declared function.

        Raises:
            ValueError: If no function named `name` was declared
        """
        if name not in self._functions:
            raise ValueError(
                f"Unknown function '{name}'. Declared: {sorted(self._functions)}"
            )
        self._callbacks.function_handlers[name] = callback

    async def wait(self) -> None:
        """Wait for the stream to finish. Errors were already reported via on_error."""
        if self._task is not None:
            await self._task


def build_completion_task(request: CompletionRequest, timeout_seconds: Optional[float] = None) -> CompletionTask:
    params: dict[str, Any] = dict(request.extra)
    if request.temperature is not None:
        params["temperature"] = request.temperature
    if request.max_tokens is not None:
        params["max_tokens"] = request.max_tokens
    return CompletionTask(
        model=request.model,
        messages=request.openai_messages(),
        functions=to_openai_functions(request.functions),
        params=params,
        timeout_seconds=timeout_seconds if timeout_seconds is not None else get_timeout_seconds(),
    )


async def _dispatch(
    client: CompletionClient,
    request: CompletionRequest,
    session: StreamSession,
    agent_factory: AgentFactory,
    timeout_seconds: Optional[float],
) -> None:
    try:
        agent = agent_factory(to_langchain_tools(request.functions))
        start_agent_stream(agent, build_agent_inputs(request.messages))

        task = build_completion_task(request, timeout_seconds)
        await relay_stream(client.stream_completion(task), session.stream_callbacks())
    except Exception as e:
        logger.exception(f"Completion stream for {request.model} failed: {e}")
        try:
            await call_maybe_async(session.callbacks.on_error, user_message_for(e))
        except Exception:
            logger.exception("Error callback raised")


def run_openai_completion(
    client: CompletionClient,
    request: CompletionRequest,
    agent_factory: AgentFactory = default_agent_factory,
    timeout_seconds: Optional[float] = None,
) -> CompletionHandle:
    """
    Start streaming `request` through `client` and return the callback handle.

    Must be called from inside a running event loop. Nothing happens on the
    network until the caller next yields to the loop, so callbacks
    registered right after this call see every event.

    Args:
        client: Shared completion client (never mutated here)
        request: Model, messages, and function declarations
        agent_factory: Builds the secondary agent runnable from tool wrappers
        timeout_seconds: Request timeout; defaults to CHAT_RELAY_TIMEOUT_SECONDS
    """
    functions = build_function_registry(request.functions)
    callbacks = CallbackRegistry()
    session = StreamSession(functions=functions, callbacks=callbacks)
    handle = CompletionHandle(callbacks, functions)
    handle._task = run_async_fn_without_blocking(
        _dispatch, client, request, session, agent_factory, timeout_seconds
    )
    return handle
