"""Abstract base class for quote stores.

The abstraction hides:
- Storage format (rows, in-process dicts)
- Persistence mechanism (file, database, in-memory)
- Connection management
"""

from abc import ABC, abstractmethod

from .models import SavedQuote


class QuoteStore(ABC):
    """Abstract quote persistence backend."""

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the store."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the store gracefully."""

    @abstractmethod
    async def save_quote(self, quote: SavedQuote) -> SavedQuote:
        """Insert or replace a quote together with its items."""

    @abstractmethod
    async def get_quote(self, quote_id: str) -> SavedQuote | None:
        """Fetch a quote by id, or None if unknown."""

    @abstractmethod
    async def list_quotes(self, limit: int | None = None) -> list[SavedQuote]:
        """Saved quotes, newest first."""

    @abstractmethod
    async def delete_quote(self, quote_id: str) -> bool:
        """Delete a quote. Returns False if it did not exist."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""

    async def __aenter__(self) -> "QuoteStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()
