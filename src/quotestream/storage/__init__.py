"""Quote persistence.

Provides storage for quotes saved from the chat.
"""

from .base import QuoteStore
from .factory import create_quote_store
from .in_memory import InMemoryQuoteStore
from .models import QuoteStatus, SavedQuote, generate_quote_number

__all__ = [
    "InMemoryQuoteStore",
    "QuoteStatus",
    "QuoteStore",
    "SavedQuote",
    "create_quote_store",
    "generate_quote_number",
]
