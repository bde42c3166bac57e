"""
Configuration constants and Pydantic models for chat-relay.
"""

import os
from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from chat_relay.functions import FunctionDeclaration


# ─────────────────────────────────────────────────────────────────────
# DEFAULTS
# ─────────────────────────────────────────────────────────────────────

DEFAULT_BASE_URL: str = "https://api.openai.com/v1"
DEFAULT_MODEL: str = "gpt-3.5-turbo"
DEFAULT_TIMEOUT_SECONDS: float = 60.0

# Agent path always runs deterministic + streaming
AGENT_TEMPERATURE: float = 0.0
AGENT_SYSTEM_PROMPT: str = "You are a helpful assistant"


# ─────────────────────────────────────────────────────────────────────
# ENVIRONMENT LOADING
# ─────────────────────────────────────────────────────────────────────

def get_api_key() -> Optional[str]:
    """Get the completion API key from OPENAI_API_KEY."""
    return os.environ.get("OPENAI_API_KEY") or None


def get_base_url() -> str:
    """
    Get the completion endpoint base URL.

    Set OPENAI_BASE_URL to point at any OpenAI-compatible server.
    """
    url = os.environ.get("OPENAI_BASE_URL", "").strip()
    return url.rstrip("/") if url else DEFAULT_BASE_URL


def get_default_model() -> str:
    """Get the model used when a request doesn't name one."""
    model = os.environ.get("CHAT_RELAY_MODEL", "").strip()
    return model or DEFAULT_MODEL


def get_timeout_seconds() -> float:
    """
    Get the streaming request timeout in seconds.

    Set CHAT_RELAY_TIMEOUT_SECONDS in .env (default: 60).
    """
    try:
        return float(os.environ.get("CHAT_RELAY_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS))
    except ValueError:
        return DEFAULT_TIMEOUT_SECONDS


# ─────────────────────────────────────────────────────────────────────
# DATA MODELS
# ─────────────────────────────────────────────────────────────────────

class Message(BaseModel):
    """A single chat message.

    Content can be:
    - str: Plain text message
    - list: Multimodal content parts in OpenAI format
    """
    role: str  # "system", "user", "assistant" or "function"
    content: Union[str, list, None] = None
    name: Optional[str] = None

    def get_text(self) -> str:
        """Extract text content from message."""
        if self.content is None:
            return ""
        if isinstance(self.content, str):
            return self.content
        for part in self.content:
            if isinstance(part, dict) and part.get("type") == "text":
                return part.get("text", "")
        return ""

    def to_openai(self) -> dict:
        result = {"role": self.role, "content": self.content}
        if self.name:
            result["name"] = self.name
        return result


class CompletionRequest(BaseModel):
    """
    A chat completion request as the dispatcher receives it.

    model/temperature/max_tokens/extra are passed through to the endpoint
    untouched; functions are re-encoded as JSON schema on the way out.
    """
    model: str = Field(default_factory=get_default_model)
    messages: list[Message]
    functions: list[FunctionDeclaration] = Field(default_factory=list)
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    extra: dict[str, Any] = Field(default_factory=dict)

    def openai_messages(self) -> list[dict]:
        return [m.to_openai() for m in self.messages]
