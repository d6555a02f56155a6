"""Quote items: validation, pricing and the running quote."""

from .accumulator import QuoteAccumulator
from .models import ComplexityTier, ParseFailure, QuoteItem
from .normalizer import normalize
from .pricing import compute_price, format_eur, gross_amount, vat_amount

__all__ = [
    "ComplexityTier",
    "ParseFailure",
    "QuoteAccumulator",
    "QuoteItem",
    "compute_price",
    "format_eur",
    "gross_amount",
    "normalize",
    "vat_amount",
]
