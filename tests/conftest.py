"""Shared test fixtures for chat-relay tests."""

import asyncio
import json
from typing import Optional

import pytest
from pydantic import BaseModel, Field

from chat_relay.adapters.schema import FunctionCallEvent, TokenEvent


# ─────────────────────────────────────────────────────────────────────
# MOCK DATA
# ─────────────────────────────────────────────────────────────────────

MOCK_MODEL = "gpt-3.5-turbo"
MOCK_API_KEY = "sk-test-123"
MOCK_BASE_URL = "https://api.test.local/v1"
MOCK_COMPLETIONS_URL = f"{MOCK_BASE_URL}/chat/completions"


class StockArgs(BaseModel):
    symbol: str
    currency: str = Field(default="USD")


def sse(*chunks: dict) -> str:
    """Build an SSE body from chat.completion.chunk payloads."""
    lines = [f"data: {json.dumps(chunk)}\n\n" for chunk in chunks]
    lines.append("data: [DONE]\n\n")
    return "".join(lines)


def delta_chunk(delta: dict, finish_reason: Optional[str] = None) -> dict:
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion.chunk",
        "model": MOCK_MODEL,
        "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
    }


def render_function_call(name: str, arguments: str) -> list[TokenEvent]:
    """Token events as the adapter renders a function call."""
    return [
        TokenEvent(text='{"function_call": {"name": "%s", "arguments": "' % name),
        TokenEvent(text=json.dumps(arguments)[1:-1]),
        TokenEvent(text='"}}'),
    ]


# ─────────────────────────────────────────────────────────────────────
# FAKES
# ─────────────────────────────────────────────────────────────────────

class FakeClient:
    """
    CompletionClient that replays a script.

    Script items: StreamEvent -> yielded, Exception -> raised.
    """

    def __init__(self, script=None):
        self.script = list(script or [])
        self.tasks = []

    async def stream_completion(self, task):
        self.tasks.append(task)
        for item in self.script:
            if isinstance(item, BaseException):
                raise item
            yield item


class FakeAgent:
    """Agent runnable that records its input and yields a couple of chunks."""

    def __init__(self, fail: Optional[Exception] = None):
        self.fail = fail
        self.inputs = []
        self.drained = asyncio.Event()

    async def astream(self, inputs, **kwargs):
        self.inputs.append(inputs)
        try:
            if self.fail is not None:
                raise self.fail
            yield {"output": "ignored"}
            yield {"output": "ignored too"}
        finally:
            self.drained.set()


class Recorder:
    """Collects every callback invocation from a CompletionHandle."""

    def __init__(self):
        self.texts: list[tuple[str, bool]] = []
        self.errors: list[str] = []
        self.calls: list[tuple[str, BaseModel]] = []

    def attach(self, handle, *function_names: str):
        handle.on_text_content(lambda text, is_final: self.texts.append((text, is_final)))
        handle.on_error(self.errors.append)
        for name in function_names:
            handle.on_function_call(name, lambda args, name=name: self.calls.append((name, args)))
        return self


# ─────────────────────────────────────────────────────────────────────
# FIXTURES
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def stock_declaration():
    from chat_relay.functions import FunctionDeclaration
    return FunctionDeclaration(
        name="show_stock_price",
        description="Show the price of a stock.",
        parameters=StockArgs,
    )


@pytest.fixture
def sample_messages():
    from chat_relay.config import Message
    return [
        Message(role="system", content="You are a stock trading assistant."),
        Message(role="user", content="Hi"),
        Message(role="assistant", content="Hello! How can I help?"),
        Message(role="user", content="What is AAPL at?"),
    ]


@pytest.fixture
def make_request(sample_messages, stock_declaration):
    from chat_relay.config import CompletionRequest

    def _make(functions=None, **kwargs):
        return CompletionRequest(
            model=MOCK_MODEL,
            messages=sample_messages,
            functions=[stock_declaration] if functions is None else functions,
            **kwargs,
        )
    return _make


@pytest.fixture
def fake_agent():
    return FakeAgent()


@pytest.fixture
def agent_factory(fake_agent):
    """Factory returning fake_agent; records the tools it was given."""
    def _factory(tools):
        _factory.tools = tools
        return fake_agent
    _factory.tools = None
    return _factory


@pytest.fixture
def api_env(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", MOCK_API_KEY)
    monkeypatch.setenv("OPENAI_BASE_URL", MOCK_BASE_URL)
