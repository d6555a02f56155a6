"""Conversation state machine.

Owns the ordered message log. User messages are final on creation; an
assistant message is created streaming, grows by concatenation while frames
arrive, and is finalized exactly once. At most one assistant message streams
at a time, which keeps requests and responses strictly ordered in the log.
"""

import itertools
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from ..errors import ConversationStateError
from ..llm.models import LLMMessage


class MessageOrigin(str, Enum):
    """Who authored a message."""

    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """A message in the chat log.

    Only the conversation mutates `text` and `streaming`, and only while the
    message is the open assistant placeholder.
    """

    id: int = Field(description="Ordinal within the conversation")
    text: str = Field(default="")
    origin: MessageOrigin
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    streaming: bool = Field(default=False)
    notice: bool = Field(
        default=False,
        description="Locally generated message that is never sent upstream"
    )

    @property
    def is_user(self) -> bool:
        return self.origin is MessageOrigin.USER


class Conversation:
    """Ordered chat log with a single streaming slot."""

    def __init__(self, greeting: str | None = None):
        self._ids = itertools.count(1)
        self._messages: list[ChatMessage] = []
        self._streaming: ChatMessage | None = None
        if greeting:
            self.append_notice(greeting)

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    @property
    def is_typing(self) -> bool:
        """True while an assistant message is streaming."""
        return self._streaming is not None

    @property
    def streaming_message(self) -> ChatMessage | None:
        return self._streaming

    def _append(self, text: str, origin: MessageOrigin, **kwargs: bool) -> ChatMessage:
        message = ChatMessage(id=next(self._ids), text=text, origin=origin, **kwargs)
        self._messages.append(message)
        return message

    def append_user_message(self, text: str) -> ChatMessage:
        """Add a final user message.

        Raises:
            ConversationStateError: If an assistant reply is still streaming
        """
        if self._streaming is not None:
            raise ConversationStateError("Assistant is still typing")
        return self._append(text, MessageOrigin.USER)

    def begin_assistant_message(self) -> ChatMessage:
        """Create the empty streaming placeholder for the next reply.

        Raises:
            ConversationStateError: If another reply is already streaming
        """
        if self._streaming is not None:
            raise ConversationStateError("An assistant message is already streaming")
        self._streaming = self._append("", MessageOrigin.ASSISTANT, streaming=True)
        return self._streaming

    def _open_message(self) -> ChatMessage:
        if self._streaming is None:
            raise ConversationStateError("No assistant message is streaming")
        return self._streaming

    def append_to_assistant_message(self, text: str) -> ChatMessage:
        """Concatenate text onto the streaming message."""
        message = self._open_message()
        message.text += text
        return message

    def replace_assistant_text(self, text: str) -> ChatMessage:
        """Overwrite the streaming message's text (used after a rescan rewrite)."""
        message = self._open_message()
        message.text = text
        return message

    def finalize_assistant_message(self) -> ChatMessage:
        """Flip the streaming message to final; no further mutation is allowed."""
        message = self._open_message()
        message.streaming = False
        self._streaming = None
        return message

    def append_notice(self, text: str) -> ChatMessage:
        """Add a local assistant-side notice (greeting, rate limit, error)."""
        return self._append(text, MessageOrigin.ASSISTANT, notice=True)

    def history(self) -> list[LLMMessage]:
        """Finalized, non-notice messages as upstream chat history."""
        return [
            LLMMessage(role=message.origin.value, content=message.text)
            for message in self._messages
            if not message.notice and not message.streaming and message.text
        ]

    def reset(self, greeting: str | None = None) -> None:
        """Clear the whole log (full conversation reset).

        Raises:
            ConversationStateError: If a reply is still streaming
        """
        if self._streaming is not None:
            raise ConversationStateError("Cannot reset while the assistant is typing")
        self._ids = itertools.count(1)
        self._messages.clear()
        if greeting:
            self.append_notice(greeting)
