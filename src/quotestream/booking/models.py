"""Consultation booking models."""

from datetime import date, datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from ..config import BOOKING_TIME_SLOTS

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    BookingStatus.PENDING: "Ausstehend",
    BookingStatus.CONFIRMED: "Bestätigt",
    BookingStatus.CANCELLED: "Abgesagt",
}


class BookingRequest(BaseModel):
    """A consultation request for a saved quote."""

    name: str = Field(min_length=1)
    email: str = Field(pattern=_EMAIL_PATTERN)
    phone: str | None = Field(default=None)
    quote_id: str = Field(min_length=1, description="Id of the saved quote to discuss")
    preferred_date: date
    preferred_time: str = Field(description="One of the offered time slots")

    @field_validator("name", "email")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("preferred_time")
    @classmethod
    def validate_slot(cls, v: str) -> str:
        if v not in BOOKING_TIME_SLOTS:
            raise ValueError(f"preferred_time must be one of {', '.join(BOOKING_TIME_SLOTS)}")
        return v


class Booking(BookingRequest):
    """A stored booking."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    status: BookingStatus = Field(default=BookingStatus.PENDING)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
