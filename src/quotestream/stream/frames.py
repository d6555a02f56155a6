"""Typed frames decoded from the chat proxy's server-sent-event stream."""

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class QuoteProtocol(str, Enum):
    """Wire protocol announced by the chat proxy.

    EXTRACTED: the proxy strips markup itself and sends quote_recommendation frames.
    INLINE: markup blocks arrive interleaved with prose in content frames.
    SECTION: markup blocks are collected in one trailing section (deprecated).
    """

    EXTRACTED = "extracted"
    INLINE = "inline"
    SECTION = "section"

    @classmethod
    def from_header(cls, value: str | None) -> "QuoteProtocol":
        """Parse the capability header, defaulting to INLINE."""
        if not value:
            return cls.INLINE
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.INLINE


class ContentFrame(BaseModel):
    """An incremental text fragment of the assistant's reply."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["content"] = "content"
    text: str = Field(description="Text fragment, possibly empty or a partial word")


class QuoteFrame(BaseModel):
    """A quote recommendation already extracted by the proxy."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["quote"] = "quote"
    payload: dict[str, Any] = Field(description="Structured recommendation object")


class DoneFrame(BaseModel):
    """End of stream marker."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["done"] = "done"


StreamFrame = Annotated[
    ContentFrame | QuoteFrame | DoneFrame,
    Field(discriminator="kind")
]
