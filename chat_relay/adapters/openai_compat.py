"""
OpenAICompatAdapter - streams /chat/completions from any OpenAI-compatible host.

Function calls are surfaced twice: as text tokens shaped like the JSON the
endpoint would have returned without streaming

    {"function_call": {"name": "get_price", "arguments": "{\"symbol\": \"AAPL\"}"}}

and, once the arguments are complete, as a FunctionCallEvent. Rendering the
call as text is what lets consumers spot a forming call by its leading "{".
"""

import json
import logging
import time
from typing import AsyncGenerator, Optional

import httpx

from chat_relay.adapters.schema import (
    CompletionTask,
    FunctionCallBuffer,
    StreamEvent,
    TokenEvent,
)
from chat_relay.config import get_api_key, get_base_url
from chat_relay.errors import INSUFFICIENT_QUOTA_CODE, GenericStreamFailure, QuotaExceeded

logger = logging.getLogger(__name__)

FUNCTION_CALL_OPEN = '{{"function_call": {{"name": {name}, "arguments": "'
FUNCTION_CALL_CLOSE = '"}}'


def _escape_fragment(fragment: str) -> str:
    """Escape an arguments fragment so it sits inside a JSON string literal."""
    return json.dumps(fragment)[1:-1]


def parse_api_error(status_code: int, body: bytes) -> Exception:
    """Turn an error response body into QuotaExceeded or GenericStreamFailure."""
    code = None
    try:
        error = json.loads(body).get("error", {})
        if isinstance(error, dict):
            msg = error.get("message") or body.decode(errors="replace")[:500]
            code = error.get("code") or error.get("type")
        else:
            msg = str(error)
    except Exception:
        msg = body.decode(errors="replace")[:500]

    if status_code == 429 and code == INSUFFICIENT_QUOTA_CODE:
        err: Exception = QuotaExceeded(msg)
    else:
        err = GenericStreamFailure(f"HTTP {status_code}: {msg}")
    err.code = code  # type: ignore[attr-defined]
    return err


class OpenAICompatAdapter:
    """
    OpenAI-compatible implementation of the CompletionClient protocol.

    Stateless between requests: one httpx.AsyncClient per stream, so a
    single adapter can serve any number of concurrent dispatches.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        self._api_key = api_key or get_api_key()
        if not self._api_key:
            raise ValueError(
                "API key required. "
                "Provide api_key parameter or set OPENAI_API_KEY environment variable."
            )
        self._base_url = (base_url or get_base_url()).rstrip("/")

    @property
    def base_url(self) -> str:
        return self._base_url

    def build_payload(self, task: CompletionTask) -> dict:
        payload = {
            **task.params,
            "model": task.model,
            "messages": task.messages,
            "stream": True,
        }
        if task.functions:
            payload["functions"] = task.functions
        return payload

    async def stream_completion(self, task: CompletionTask) -> AsyncGenerator[StreamEvent, None]:
        """Stream a completion, yielding TokenEvent / FunctionCallEvent."""
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        start_time = time.time()
        calls: dict[int, FunctionCallBuffer] = {}
        open_idx: Optional[int] = None

        def close_open_call():
            nonlocal open_idx
            events: list[StreamEvent] = []
            if open_idx is not None:
                events.append(TokenEvent(text=FUNCTION_CALL_CLOSE))
                event = calls[open_idx].to_event()
                if event is not None:
                    events.append(event)
                open_idx = None
            return events

        def feed_call(idx: int, name: str, args: str):
            nonlocal open_idx
            events: list[StreamEvent] = []
            if open_idx is not None and open_idx != idx:
                events.extend(close_open_call())
            buf = calls.setdefault(idx, FunctionCallBuffer())
            if name:
                buf.name = name
            if not buf.opened and buf.name:
                buf.opened = True
                open_idx = idx
                events.append(TokenEvent(text=FUNCTION_CALL_OPEN.format(name=json.dumps(buf.name))))
            if args:
                buf.arguments += args
                if buf.opened:
                    events.append(TokenEvent(text=_escape_fragment(args)))
            return events

        try:
            async with httpx.AsyncClient(timeout=task.timeout_seconds) as client:
                async with client.stream(
                    "POST",
                    f"{self._base_url}/chat/completions",
                    json=self.build_payload(task),
                    headers=headers,
                ) as response:
                    if response.status_code >= 400:
                        error_body = await response.aread()
                        raise parse_api_error(response.status_code, error_body)

                    async for line in response.aiter_lines():
                        if not line.startswith("data: "):
                            continue
                        data = line[6:]
                        if data == "[DONE]":
                            break
                        try:
                            chunk = json.loads(data)
                        except json.JSONDecodeError:
                            continue

                        choices = chunk.get("choices", [])
                        if not choices:
                            continue
                        delta = choices[0].get("delta") or {}

                        content = delta.get("content")
                        if content:
                            yield TokenEvent(text=content)

                        legacy = delta.get("function_call")
                        if legacy:
                            for event in feed_call(0, legacy.get("name", ""), legacy.get("arguments", "")):
                                yield event

                        for tc in delta.get("tool_calls") or []:
                            func = tc.get("function", {})
                            for event in feed_call(
                                tc.get("index", 0), func.get("name", ""), func.get("arguments", "")
                            ):
                                yield event

                        if choices[0].get("finish_reason"):
                            for event in close_open_call():
                                yield event

            for event in close_open_call():
                yield event

        except httpx.TimeoutException as e:
            raise GenericStreamFailure(f"Timeout for {task.model}: {e}") from e
        except httpx.HTTPError as e:
            raise GenericStreamFailure(f"HTTP error for {task.model}: {e}") from e

        logger.debug(f"{task.model} stream finished in {(time.time() - start_time) * 1000:.0f}ms")
