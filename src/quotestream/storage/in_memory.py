"""In-process quote store.

Keeps saved quotes in a dict for the lifetime of the process. Used by tests
and by the CLI when no database is configured.
"""

from .base import QuoteStore
from .models import SavedQuote


class InMemoryQuoteStore(QuoteStore):
    """Dict-backed quote store."""

    def __init__(self) -> None:
        self._quotes: dict[str, SavedQuote] = {}

    async def connect(self) -> None:
        pass

    async def disconnect(self) -> None:
        pass

    async def save_quote(self, quote: SavedQuote) -> SavedQuote:
        self._quotes[quote.id] = quote.model_copy(deep=True)
        return quote

    async def get_quote(self, quote_id: str) -> SavedQuote | None:
        quote = self._quotes.get(quote_id)
        return quote.model_copy(deep=True) if quote else None

    async def list_quotes(self, limit: int | None = None) -> list[SavedQuote]:
        quotes = sorted(self._quotes.values(), key=lambda q: q.created_at, reverse=True)
        if limit is not None:
            quotes = quotes[:limit]
        return [q.model_copy(deep=True) for q in quotes]

    async def delete_quote(self, quote_id: str) -> bool:
        return self._quotes.pop(quote_id, None) is not None

    @property
    def backend_type(self) -> str:
        return "memory"
