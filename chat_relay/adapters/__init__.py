"""
Adapters for hosted chat completion endpoints.

Protocol defines WHAT, implementations define HOW.
"""

from .base import CompletionClient
from .openai_compat import OpenAICompatAdapter
from .schema import CompletionTask, FunctionCallEvent, StreamEvent, TokenEvent

__all__ = [
    "CompletionClient",
    "CompletionTask",
    "FunctionCallEvent",
    "OpenAICompatAdapter",
    "StreamEvent",
    "TokenEvent",
]
