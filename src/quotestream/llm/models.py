"""Messages and replies exchanged with the language model."""

from collections.abc import AsyncIterator

from pydantic import BaseModel, ConfigDict, Field


class LLMMessage(BaseModel):
    """A role/content message as exchanged with the model and the chat proxy."""

    model_config = ConfigDict(frozen=True)

    role: str = Field(description="'user', 'assistant' or 'system'")
    content: str


class TokenUsage(BaseModel):
    """Token counts reported by the model for one reply."""

    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)


class LLMResponse(BaseModel):
    """A complete, non-streamed reply."""

    model_config = ConfigDict(frozen=True)

    content: str
    model: str = Field(description="Model that generated the reply")
    usage: TokenUsage | None = None


class StreamingResponse:
    """Text deltas of one streamed reply.

    The underlying iterator may yield a TokenUsage as its last item; it is
    kept in `usage` instead of being passed on, so callers only see text.
    """

    def __init__(self, deltas: AsyncIterator[str | TokenUsage]):
        self._deltas = deltas
        self.usage: TokenUsage | None = None

    def __aiter__(self) -> "StreamingResponse":
        return self

    async def __anext__(self) -> str:
        while True:
            item = await self._deltas.__anext__()
            if isinstance(item, TokenUsage):
                self.usage = item
                continue
            return item

    async def aclose(self) -> None:
        """Stop the upstream stream early."""
        aclose = getattr(self._deltas, "aclose", None)
        if aclose is not None:
            await aclose()
