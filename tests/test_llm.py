"""Unit tests for the LLM provider layer."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from quotestream.llm import (
    LLMMessage,
    LLMProvider,
    OpenAIProvider,
    StreamingResponse,
    TokenUsage,
    create_llm_provider,
)


def _chunk(text: str | None = None, usage: dict | None = None):
    choices = [] if text is None else [SimpleNamespace(delta=SimpleNamespace(content=text))]
    return SimpleNamespace(
        choices=choices,
        usage=SimpleNamespace(**usage) if usage else None,
    )


async def _chunks(*chunks):
    for chunk in chunks:
        yield chunk


class TestLLMProviderInterface:
    """Tests for the abstract LLMProvider interface."""

    def test_provider_is_abstract(self):
        with pytest.raises(TypeError):
            LLMProvider()  # type: ignore


class TestStreamingResponse:
    """Tests for StreamingResponse."""

    @pytest.mark.asyncio
    async def test_usage_is_kept_out_of_the_text(self):
        usage = TokenUsage(prompt_tokens=5, completion_tokens=2, total_tokens=7)
        stream = StreamingResponse(_chunks("a", usage, "b"))

        assert [delta async for delta in stream] == ["a", "b"]
        assert stream.usage == usage

    @pytest.mark.asyncio
    async def test_aclose_stops_upstream(self):
        finished = []

        async def deltas():
            try:
                yield "a"
                yield "b"
            finally:
                finished.append(True)

        stream = StreamingResponse(deltas())
        assert await stream.__anext__() == "a"

        await stream.aclose()

        assert finished == [True]
        assert stream.usage is None


class TestOpenAIProvider:
    """Tests for OpenAIProvider with a mocked client."""

    @pytest.mark.asyncio
    async def test_stream_yields_deltas_and_usage(self):
        provider = OpenAIProvider(api_key="fake-key")
        provider._client = MagicMock()
        provider._client.chat.completions.create = AsyncMock(return_value=_chunks(
            _chunk("Hallo"),
            _chunk(""),
            _chunk(" Welt"),
            _chunk(usage={"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15}),
        ))

        stream = await provider.chat_completion_stream(
            [LLMMessage(role="user", content="Hi")],
            temperature=0.7,
            max_tokens=1000,
        )
        deltas = [delta async for delta in stream]

        assert deltas == ["Hallo", " Welt"]
        assert stream.usage == TokenUsage(prompt_tokens=12, completion_tokens=3, total_tokens=15)
        kwargs = provider._client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["stream"] is True
        assert kwargs["max_tokens"] == 1000
        assert kwargs["messages"] == [{"role": "user", "content": "Hi"}]

    @pytest.mark.asyncio
    async def test_chat_completion(self):
        provider = OpenAIProvider(api_key="fake-key", model="gpt-4o")
        provider._client = MagicMock()
        provider._client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="Antwort"))],
            model="gpt-4o",
            usage=None,
        ))

        response = await provider.chat_completion([LLMMessage(role="user", content="Hi")])

        assert response.content == "Antwort"
        assert response.model == "gpt-4o"
        assert "max_tokens" not in provider._client.chat.completions.create.call_args.kwargs

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_stream_real_api(self, api_keys):
        """Integration test: stream a short reply from the real API."""
        if not api_keys["openai"]:
            pytest.skip("OPENAI_API_KEY not set")

        async with OpenAIProvider(api_key=api_keys["openai"]) as provider:
            stream = await provider.chat_completion_stream(
                [LLMMessage(role="user", content="Sag nur: Hallo")],
                max_tokens=10,
            )
            text = "".join([delta async for delta in stream])

        assert text


class TestLLMFactory:
    """Tests for create_llm_provider()."""

    def test_create_openai_provider(self):
        provider = create_llm_provider("openai", api_key="test-key", model="gpt-4o-mini")

        assert isinstance(provider, OpenAIProvider)
        assert provider.model == "gpt-4o-mini"

    def test_missing_api_key(self):
        with pytest.raises(TypeError):
            create_llm_provider("openai")

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unsupported provider"):
            create_llm_provider("mystery", api_key="x")
