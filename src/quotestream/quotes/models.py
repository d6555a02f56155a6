"""Data models for quote items.

A QuoteItem is the only shape in which a recommendation travels from the chat
into the quote panel, persistence and export. It is created by the normalizer,
never from unvalidated upstream data.
"""

from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config import PRICE_ON_REQUEST_LABEL


class ComplexityTier(str, Enum):
    """Effort complexity of a recommended service."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very-high"

    @property
    def label(self) -> str:
        """German tier name as used on the wire and in documents."""
        return _TIER_LABELS[self]


_TIER_LABELS = {
    ComplexityTier.LOW: "niedrig",
    ComplexityTier.MEDIUM: "mittel",
    ComplexityTier.HIGH: "hoch",
    ComplexityTier.VERY_HIGH: "sehr hoch",
}


class QuoteItem(BaseModel):
    """A validated, priced line item of a running quote."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    service: str = Field(min_length=1, description="Service name")
    description: str = Field(default="", description="Free-text description, may be empty")
    estimated_hours: float | None = Field(
        default=None,
        ge=0.0,
        description="Estimated effort in hours; None means price on request"
    )
    complexity_tier: ComplexityTier | None = Field(default=None)
    price: int = Field(ge=0, description="Derived net price in whole currency units")

    @field_validator("service")
    @classmethod
    def validate_service(cls, v: str) -> str:
        """Service names must contain more than whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("service must not be empty")
        return v

    @property
    def price_on_request(self) -> bool:
        """True when no effort estimate was given."""
        return self.estimated_hours is None

    @property
    def price_label(self) -> str:
        """Human-readable price, e.g. '2.496 €' or 'Preis auf Anfrage'."""
        from .pricing import format_eur

        if self.price_on_request:
            return PRICE_ON_REQUEST_LABEL
        return format_eur(self.price)


class ParseFailure(BaseModel):
    """A quote payload that could not be turned into a QuoteItem."""

    model_config = ConfigDict(frozen=True)

    reason: str
    payload: Any = None
