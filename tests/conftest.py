"""Pytest configuration and shared fixtures."""
import json
import os
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import pytest

from quotestream.llm import LLMMessage, LLMProvider, LLMResponse, StreamingResponse

WEBSITE_BLOCK = (
    '[QUOTE_RECOMMENDATION]{"service": "Konzeption & Wireframes", '
    '"description": "Seitenstruktur und Nutzerführung", '
    '"estimatedHours": 16, "complexity": "mittel"}[/QUOTE_RECOMMENDATION]'
)


class FakeLLMProvider(LLMProvider):
    """Replays canned deltas instead of calling a model."""

    def __init__(self, deltas: list[str] | None = None, fail_after: int | None = None):
        self.deltas = deltas or []
        self.fail_after = fail_after
        self.calls: list[list[LLMMessage]] = []
        self.closed = False

    async def chat_completion(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        self.calls.append(messages)
        return LLMResponse(content="".join(self.deltas), model=model or "fake")

    async def chat_completion_stream(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> StreamingResponse:
        self.calls.append(messages)

        async def _deltas() -> AsyncIterator[str]:
            for index, delta in enumerate(self.deltas):
                if self.fail_after is not None and index >= self.fail_after:
                    raise RuntimeError("upstream connection reset")
                yield delta

        return StreamingResponse(_deltas())

    async def close(self) -> None:
        self.closed = True


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def sse_body(*events: str | dict[str, Any], done: bool = True) -> bytes:
    """Build an SSE response body from event payloads."""
    parts = []
    for event in events:
        data = event if isinstance(event, str) else json.dumps(event, ensure_ascii=False)
        parts.append(f"data: {data}\n\n")
    if done:
        parts.append("data: [DONE]\n\n")
    return "".join(parts).encode()


def content(text: str) -> dict[str, Any]:
    return {"type": "content", "data": text}


@pytest.fixture
def fake_clock():
    """Return a controllable clock starting at t=1000."""
    return FakeClock()


@pytest.fixture
def fake_llm_factory() -> Callable[..., FakeLLMProvider]:
    """Return a factory for fake LLM providers."""
    return FakeLLMProvider


@pytest.fixture
def sse_transport() -> Callable[..., httpx.MockTransport]:
    """Return a factory for mock transports that answer with an SSE body."""
    def _factory(body: bytes, status_code: int = 200, protocol: str | None = None, requests: list | None = None):
        def handler(request: httpx.Request) -> httpx.Response:
            if requests is not None:
                requests.append(request)
            headers = {"Content-Type": "text/event-stream"}
            if protocol:
                headers["X-Quote-Protocol"] = protocol
            return httpx.Response(status_code, headers=headers, content=body)
        return httpx.MockTransport(handler)
    return _factory


@pytest.fixture(scope="session")
def api_keys():
    """Return API keys from environment."""
    return {
        "openai": os.getenv("OPENAI_API_KEY"),
    }
