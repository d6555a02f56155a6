"""Normalization of raw quote payloads into QuoteItems.

normalize() is total: any input yields either a QuoteItem or a ParseFailure.
A bad recommendation is logged and dropped, never raised, so one broken
suggestion cannot take the conversation down with it.
"""

import json
import logging
import math
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from .models import ComplexityTier, ParseFailure, QuoteItem
from .pricing import compute_price

logger = logging.getLogger(__name__)

# Wire names (German, as prompted) and English aliases
_TIER_NAMES: dict[str, ComplexityTier] = {
    "niedrig": ComplexityTier.LOW,
    "gering": ComplexityTier.LOW,
    "low": ComplexityTier.LOW,
    "mittel": ComplexityTier.MEDIUM,
    "medium": ComplexityTier.MEDIUM,
    "hoch": ComplexityTier.HIGH,
    "high": ComplexityTier.HIGH,
    "sehr hoch": ComplexityTier.VERY_HIGH,
    "very high": ComplexityTier.VERY_HIGH,
    "very-high": ComplexityTier.VERY_HIGH,
}


def parse_tier(value: Any) -> ComplexityTier | None:
    """Map a wire tier name to a ComplexityTier; unknown values give None."""
    if not isinstance(value, str):
        return None
    key = " ".join(value.strip().lower().replace("_", " ").split())
    if key in _TIER_NAMES:
        return _TIER_NAMES[key]
    return _TIER_NAMES.get(key.replace(" ", "-"))


def parse_hours(value: Any) -> float | None:
    """Read a finite, non-negative effort estimate; anything else is absent."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip().replace(",", "."))
        except ValueError:
            return None
    if not isinstance(value, int | float):
        return None
    hours = float(value)
    if not math.isfinite(hours) or hours < 0:
        return None
    return hours


def _fail(reason: str, payload: Any) -> ParseFailure:
    logger.warning("Dropping quote recommendation: %s", reason)
    return ParseFailure(reason=reason, payload=payload)


def normalize(payload: str | Mapping[str, Any]) -> QuoteItem | ParseFailure:
    """Turn one raw recommendation into a priced QuoteItem.

    Args:
        payload: JSON text from a markup block, or an already-decoded object
            from a quote_recommendation frame

    Returns:
        QuoteItem on success, ParseFailure when the payload is not a JSON
        object or lacks a non-empty 'service'
    """
    data: Any = payload
    if isinstance(payload, str):
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            return _fail(f"invalid JSON ({e.msg})", payload)

    if not isinstance(data, Mapping):
        return _fail("payload is not an object", payload)

    service = data.get("service")
    if not isinstance(service, str) or not service.strip():
        return _fail("missing 'service'", payload)

    description = data.get("description")
    if not isinstance(description, str):
        description = ""

    hours_raw = data.get("estimatedHours")
    hours = parse_hours(hours_raw)
    if hours is None and hours_raw is not None:
        logger.info("Ignoring invalid estimatedHours %r for %r", hours_raw, service)

    tier_raw = data.get("complexity", data.get("complexityTier"))
    tier = parse_tier(tier_raw)
    if tier is None and tier_raw is not None:
        logger.info("Unknown complexity %r for %r, pricing as medium", tier_raw, service)

    try:
        return QuoteItem(
            service=service,
            description=description.strip(),
            estimated_hours=hours,
            complexity_tier=tier,
            price=compute_price(hours, tier),
        )
    except ValidationError as e:
        return _fail(f"invalid item ({e.error_count()} errors)", payload)
