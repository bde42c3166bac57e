"""
CompletionClient Protocol - the contract for the hosted completion API.

This is the WHAT (interface), not the HOW (implementation).
See openai_compat.py for the concrete httpx implementation.
"""

from typing import AsyncIterator, Protocol

from chat_relay.adapters.schema import CompletionTask, StreamEvent


class CompletionClient(Protocol):
    """
    Contract for a streaming chat completion backend.

    The client is owned by the caller and may be shared by concurrent
    dispatches; the dispatcher never mutates it.
    """

    def stream_completion(self, task: CompletionTask) -> AsyncIterator[StreamEvent]:
        """
        Stream a completion as events.

        Yields:
            TokenEvent for every text chunk (function calls are rendered
            as text too, see openai_compat), then at most one
            FunctionCallEvent per call once its arguments are complete.

        Raises:
            QuotaExceeded: Account has no quota left
            GenericStreamFailure: Anything else (HTTP error, timeout, transport)
        """
        ...
