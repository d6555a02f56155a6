"""Chat session orchestration.

Hidden design decisions:
- The order of checks before a request goes out (sanitize, typing, rate limit)
- How frames flow into the conversation, the extractor and the accumulator
- How failures and cancellation leave the conversation consistent
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

from ..client import ChatProxyClient
from ..config import GREETING, RATE_LIMIT_NOTICE, TECHNICAL_ERROR_NOTICE
from ..errors import StreamTransportError
from ..quotes import ParseFailure, QuoteAccumulator, QuoteItem, normalize
from ..stream import (
    ContentFrame,
    DoneFrame,
    ExtractionUpdate,
    QuoteFrame,
    QuoteMarkupExtractor,
    extract,
    grammar_for,
)
from .conversation import ChatMessage, Conversation
from .rate_limiter import RateLimiter
from .sanitizer import sanitize

logger = logging.getLogger(__name__)


class SendOutcome(str, Enum):
    """How a send attempt ended."""

    SENT = "sent"
    EMPTY = "empty"
    BUSY = "busy"
    RATE_LIMITED = "rate_limited"
    FAILED = "failed"


@dataclass
class SendResult:
    """Result of ChatSession.send."""

    outcome: SendOutcome
    message: ChatMessage | None = None
    items: list[QuoteItem] = field(default_factory=list)
    error: StreamTransportError | None = None


class SessionCallback:
    """Receives session updates as they happen.

    All hooks are no-ops; subclasses override what they render.
    """

    def on_message_started(self, message: ChatMessage) -> None:
        pass

    def on_text(self, message: ChatMessage, delta: str, replaced: bool) -> None:
        """Called with newly visible text; replaced means redraw the whole message."""

    def on_quote_item(self, item: QuoteItem) -> None:
        pass

    def on_message_finished(self, message: ChatMessage) -> None:
        pass

    def on_notice(self, message: ChatMessage) -> None:
        pass

    def on_unblocked(self) -> None:
        pass


class ChatSession:
    """One user's chat: conversation, rate limit and running quote.

    Example:
        async with ChatSession(client) as session:
            result = await session.send("Ich brauche eine neue Website")
            print(session.accumulator.total)
    """

    def __init__(
        self,
        client: ChatProxyClient,
        conversation: Conversation | None = None,
        accumulator: QuoteAccumulator | None = None,
        rate_limiter: RateLimiter | None = None,
        callback: SessionCallback | None = None,
        streaming: bool = True
    ):
        self._client = client
        self._callback = callback or SessionCallback()
        self.conversation = conversation or Conversation(greeting=GREETING)
        self.accumulator = accumulator if accumulator is not None else QuoteAccumulator()
        self.rate_limiter = rate_limiter or RateLimiter(on_unblock=self._callback.on_unblocked)
        self._streaming = streaming

    @property
    def is_typing(self) -> bool:
        return self.conversation.is_typing

    async def send(self, raw_text: str) -> SendResult:
        """Send one user message and consume the reply.

        Args:
            raw_text: Text as typed by the user

        Returns:
            SendResult whose outcome says whether a request was made

        Raises:
            asyncio.CancelledError: If cancelled; the partial reply is finalized first
        """
        text = sanitize(raw_text)
        if not text:
            return SendResult(SendOutcome.EMPTY)
        if self.conversation.is_typing:
            return SendResult(SendOutcome.BUSY)

        if not self.rate_limiter.try_admit():
            notice = self.conversation.append_notice(RATE_LIMIT_NOTICE)
            self._callback.on_notice(notice)
            return SendResult(SendOutcome.RATE_LIMITED, message=notice)

        self.conversation.append_user_message(text)
        history = self.conversation.history()
        message = self.conversation.begin_assistant_message()
        self._callback.on_message_started(message)
        items: list[QuoteItem] = []

        try:
            if self._streaming:
                await self._consume_stream(history, message, items)
            else:
                await self._consume_reply(history, message, items)
        except StreamTransportError as e:
            self._finalize(message)
            notice = self.conversation.append_notice(TECHNICAL_ERROR_NOTICE)
            self._callback.on_notice(notice)
            return SendResult(SendOutcome.FAILED, message=message, items=items, error=e)
        except asyncio.CancelledError:
            logger.info("Chat request cancelled")
            self._finalize(message)
            raise

        self._finalize(message)
        return SendResult(SendOutcome.SENT, message=message, items=items)

    async def _consume_stream(self, history, message: ChatMessage, items: list[QuoteItem]) -> None:
        async with self._client.stream_chat(history) as stream:
            extractor = QuoteMarkupExtractor(grammar_for(stream.protocol))
            try:
                async for frame in stream.frames():
                    if isinstance(frame, ContentFrame):
                        self._apply_update(message, extractor.feed(frame.text), items)
                    elif isinstance(frame, QuoteFrame):
                        self._accept(normalize(frame.payload), items)
                    elif isinstance(frame, DoneFrame):
                        break
            finally:
                self._apply_update(message, extractor.finish(), items)

    async def _consume_reply(self, history, message: ChatMessage, items: list[QuoteItem]) -> None:
        reply = await self._client.complete(history)
        extraction = extract(reply.message, final=True)
        self.conversation.replace_assistant_text(extraction.display_text)
        self._callback.on_text(message, extraction.display_text, True)
        for payload in extraction.payloads:
            self._accept(normalize(payload.raw), items)
        for recommendation in reply.quote_recommendations:
            self._accept(normalize(recommendation), items)

    def _apply_update(self, message: ChatMessage, update: ExtractionUpdate, items: list[QuoteItem]) -> None:
        if update.replaced:
            self.conversation.replace_assistant_text(update.display_text)
            self._callback.on_text(message, update.display_text, True)
        elif update.delta:
            self.conversation.append_to_assistant_message(update.delta)
            self._callback.on_text(message, update.delta, False)
        for payload in update.payloads:
            self._accept(normalize(payload.raw), items)

    def _accept(self, result: QuoteItem | ParseFailure, items: list[QuoteItem]) -> None:
        if isinstance(result, ParseFailure):
            return
        if self.accumulator.add(result):
            items.append(result)
            self._callback.on_quote_item(result)

    def _finalize(self, message: ChatMessage) -> None:
        if self.conversation.streaming_message is message:
            self.conversation.finalize_assistant_message()
            self._callback.on_message_finished(message)

    def reset(self) -> None:
        """Start over: greeting only, empty quote."""
        self.conversation.reset(greeting=GREETING)
        self.accumulator.clear()

    async def aclose(self) -> None:
        self.rate_limiter.close()
        await self._client.aclose()

    async def __aenter__(self) -> "ChatSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
