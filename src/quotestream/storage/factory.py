"""Factory for creating quote stores."""

from typing import Any

from .base import QuoteStore


def create_quote_store(
    backend: str = "memory",
    **kwargs: Any
) -> QuoteStore:
    """Create a quote store.

    Args:
        backend: Backend type ("memory" or "sqlite")
        **kwargs: Backend-specific configuration (e.g. path for sqlite)

    Returns:
        QuoteStore instance (not yet connected)

    Raises:
        ValueError: If backend type is not supported
    """
    if backend == "memory":
        from .in_memory import InMemoryQuoteStore
        return InMemoryQuoteStore(**kwargs)

    elif backend == "sqlite":
        from .sqlite import SQLiteQuoteStore
        return SQLiteQuoteStore(**kwargs)

    raise ValueError(
        f"Unsupported quote store backend: {backend}. "
        f"Supported backends: memory, sqlite"
    )
