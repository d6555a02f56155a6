"""Data models for saved quotes.

These models describe a quote once it leaves the chat and is persisted,
independent of the storage backend used.
"""

import time
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

from ..config import QUOTE_NUMBER_PREFIX
from ..quotes import QuoteItem


class QuoteStatus(str, Enum):
    """Lifecycle of a saved quote."""

    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    QuoteStatus.DRAFT: "Entwurf",
    QuoteStatus.SENT: "Versendet",
    QuoteStatus.ACCEPTED: "Angenommen",
    QuoteStatus.REJECTED: "Abgelehnt",
}


def generate_quote_number(now_ms: int | None = None) -> str:
    """Quote number from the last six digits of the millisecond clock.

    >>> generate_quote_number(1718000123456)
    'DW-123456'
    """
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    return f"{QUOTE_NUMBER_PREFIX}{str(now_ms)[-6:]}"


class SavedQuote(BaseModel):
    """A persisted quote with its line items."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    quote_number: str = Field(default_factory=generate_quote_number)
    title: str = Field(min_length=1)
    status: QuoteStatus = Field(default=QuoteStatus.DRAFT)
    total_amount: int = Field(ge=0, description="Net total in whole euros")
    items: list[QuoteItem] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
