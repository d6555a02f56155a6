"""Deterministic price derivation.

Prices are never taken from the model. They are derived from the effort
estimate and complexity tier with decimal arithmetic and half-up rounding,
so the same inputs always give the same whole-unit price.
"""

from decimal import ROUND_HALF_UP, Decimal

from ..config import BASE_HOURLY_RATE, CURRENCY_SYMBOL, VAT_RATE
from .models import ComplexityTier

COMPLEXITY_MULTIPLIERS: dict[ComplexityTier, Decimal] = {
    ComplexityTier.LOW: Decimal("1.0"),
    ComplexityTier.MEDIUM: Decimal("1.3"),
    ComplexityTier.HIGH: Decimal("1.6"),
    ComplexityTier.VERY_HIGH: Decimal("2.0"),
}

DEFAULT_TIER = ComplexityTier.MEDIUM


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def multiplier_for(tier: ComplexityTier | None) -> Decimal:
    """Multiplier for a tier; absent tiers price as medium."""
    return COMPLEXITY_MULTIPLIERS[tier or DEFAULT_TIER]


def compute_price(
    estimated_hours: float | None,
    tier: ComplexityTier | None,
    base_rate: Decimal = BASE_HOURLY_RATE
) -> int:
    """Price = round(hours x base rate x multiplier); 0 without an estimate.

    Examples:
        >>> compute_price(40, ComplexityTier.HIGH)
        7680
        >>> compute_price(None, ComplexityTier.HIGH)
        0
    """
    if estimated_hours is None:
        return 0
    hours = Decimal(str(estimated_hours))
    return _round_half_up(hours * base_rate * multiplier_for(tier))


def vat_amount(net: int) -> int:
    """VAT on a net amount, rounded half up."""
    return _round_half_up(Decimal(net) * VAT_RATE)


def gross_amount(net: int) -> int:
    return net + vat_amount(net)


def format_eur(amount: int) -> str:
    """Format whole euros with German thousands separators: 2496 -> '2.496 €'."""
    sign = "-" if amount < 0 else ""
    return f"{sign}{abs(amount):,}".replace(",", ".") + f" {CURRENCY_SYMBOL}"
