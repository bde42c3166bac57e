from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class CompletionTask(BaseModel):
    """
    Standardized request object handed to a CompletionClient.

    `params` carries whatever else the caller put on the request
    (temperature, max_tokens, ...) and is merged into the payload as-is.
    """
    model: str
    messages: List[Dict[str, Any]]
    functions: List[Dict[str, Any]] = Field(default_factory=list)
    params: Dict[str, Any] = Field(default_factory=dict)
    timeout_seconds: float = 60.0


class TokenEvent(BaseModel):
    """One incremental chunk of streamed text."""
    kind: Literal["token"] = "token"
    text: str


class FunctionCallEvent(BaseModel):
    """The model finished emitting a structured function call."""
    kind: Literal["function_call"] = "function_call"
    name: str
    arguments: str = ""  # raw JSON text, validated later against the declaration


StreamEvent = Union[TokenEvent, FunctionCallEvent]


class FunctionCallBuffer(BaseModel):
    """Accumulates a function call spread over several deltas."""
    name: str = ""
    arguments: str = ""
    opened: bool = False

    def to_event(self) -> Optional[FunctionCallEvent]:
        if not self.name:
            return None
        return FunctionCallEvent(name=self.name, arguments=self.arguments)
