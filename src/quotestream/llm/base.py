from abc import ABC, abstractmethod
from typing import Any

from .models import LLMMessage, LLMResponse, StreamingResponse


class LLMProvider(ABC):
    """Abstract base class for the language model behind the chat proxy.

    This module hides the design decision of which model vendor answers the
    consultation chat. Implementations handle client setup, authentication
    and request/response conversion.

    Supports async context manager protocol for proper resource cleanup:
        async with provider:
            stream = await provider.chat_completion_stream(messages)
    """

    @abstractmethod
    async def chat_completion(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        """Generate a complete reply.

        Args:
            messages: Conversation including the system prompt
            model: Model to use (None uses provider's default)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            **kwargs: Provider-specific parameters

        Returns:
            LLMResponse containing the reply text
        """

    @abstractmethod
    async def chat_completion_stream(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> StreamingResponse:
        """Generate a reply as a stream of text deltas.

        Returns:
            StreamingResponse yielding text deltas; usage is set after iteration
        """

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections or resources."""

    async def __aenter__(self) -> "LLMProvider":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Close on exit, ignoring the harmless "Event loop is closed" race in httpx cleanup."""
        try:
            await self.close()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise
