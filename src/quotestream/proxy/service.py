"""Chat proxy between the browser-side session and the language model.

Hidden design decisions:
- The consultant system prompt and its markup instructions
- Which wire protocol the stream speaks (announced via a response header)
- Server-side quote extraction for the 'extracted' protocol
"""

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE
from ..llm import LLMMessage, LLMProvider
from ..prompts import get_system_prompt
from ..stream import QuoteMarkupExtractor, QuoteProtocol, extract, grammar_for
from .sse import DONE_EVENT, content_event, quote_event

logger = logging.getLogger(__name__)


class ChatRequest(BaseModel):
    """Body of a chat request: prior messages plus the new user message."""

    messages: list[LLMMessage] = Field(min_length=1)
    stream: bool = Field(default=True)

    @field_validator("messages")
    @classmethod
    def validate_roles(cls, v: list[LLMMessage]) -> list[LLMMessage]:
        """Clients may only send user and assistant turns."""
        for message in v:
            if message.role not in ("user", "assistant"):
                raise ValueError(f"unsupported role: {message.role}")
        return v


class ChatReply(BaseModel):
    """Non-streaming reply: clean text plus extracted recommendations."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    quote_recommendations: list[dict[str, Any]] = Field(
        default_factory=list,
        alias="quoteRecommendations"
    )


def _decode_recommendations(raw_payloads: list[str]) -> list[dict[str, Any]]:
    recommendations = []
    for raw in raw_payloads:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Failed to parse quote recommendation: %.80r", raw)
            continue
        if isinstance(data, dict):
            recommendations.append(data)
    return recommendations


class ChatProxy:
    """Wraps an LLM provider and speaks the chat SSE protocol.

    Example:
        proxy = ChatProxy(create_llm_provider("openai", api_key="sk-..."))
        async for event in proxy.stream(messages):
            send(event)
    """

    def __init__(
        self,
        llm: LLMProvider,
        protocol: QuoteProtocol | str = QuoteProtocol.INLINE,
        model: str | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS
    ):
        self._llm = llm
        self._protocol = QuoteProtocol(protocol)
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens

    @property
    def protocol(self) -> QuoteProtocol:
        return self._protocol

    def _prompt(self, messages: list[LLMMessage]) -> list[LLMMessage]:
        system = LLMMessage(role="system", content=get_system_prompt(self._protocol.value))
        return [system, *messages]

    async def stream(self, messages: list[LLMMessage]) -> AsyncIterator[bytes]:
        """Stream the reply as SSE events.

        Under the 'extracted' protocol markup is stripped here and each
        recommendation is sent as a quote_recommendation event before [DONE].
        If the model fails mid-stream the events stop without [DONE], which the
        client reports as a transport failure.
        """
        logger.info("Chat request received with %d messages", len(messages))
        extractor = None
        if self._protocol is QuoteProtocol.EXTRACTED:
            extractor = QuoteMarkupExtractor(grammar_for(QuoteProtocol.INLINE))
        payloads: list[str] = []

        try:
            response = await self._llm.chat_completion_stream(
                self._prompt(messages),
                model=self._model,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
            try:
                async for delta in response:
                    if extractor is None:
                        yield content_event(delta)
                        continue
                    update = extractor.feed(delta)
                    payloads.extend(p.raw for p in update.payloads)
                    if update.delta and not update.replaced:
                        yield content_event(update.delta)
            finally:
                await response.aclose()
            if response.usage:
                logger.info(
                    "Upstream usage: %d prompt, %d completion tokens",
                    response.usage.prompt_tokens, response.usage.completion_tokens
                )
        except Exception:
            logger.exception("Upstream model stream failed")
            return

        if extractor is not None:
            update = extractor.finish()
            payloads.extend(p.raw for p in update.payloads)
            if update.delta and not update.replaced:
                yield content_event(update.delta)
            for recommendation in _decode_recommendations(payloads):
                logger.info("Quote recommendation extracted: %s", recommendation.get("service"))
                yield quote_event(recommendation)

        yield DONE_EVENT

    async def complete(self, messages: list[LLMMessage]) -> ChatReply:
        """Single-JSON variant: whole reply with recommendations extracted."""
        response = await self._llm.chat_completion(
            self._prompt(messages),
            model=self._model,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        extraction = extract(response.content, final=True, grammar=grammar_for(
            QuoteProtocol.SECTION if self._protocol is QuoteProtocol.SECTION else QuoteProtocol.INLINE
        ))
        return ChatReply(
            message=extraction.display_text.strip(),
            quote_recommendations=_decode_recommendations([p.raw for p in extraction.payloads]),
        )

    async def aclose(self) -> None:
        await self._llm.close()
