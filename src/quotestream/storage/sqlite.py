"""SQLite quote store.

Persists saved quotes and their line items in a SQLite database file.
Uses aiosqlite for async access.
"""

import logging
from datetime import datetime
from pathlib import Path

import aiosqlite

from ..quotes import ComplexityTier, QuoteItem
from .base import QuoteStore
from .models import QuoteStatus, SavedQuote

logger = logging.getLogger(__name__)


class SQLiteQuoteStore(QuoteStore):
    """SQLite-backed quote store.

    Quotes live in `quotes`, their items in `quote_items` ordered by position.
    """

    def __init__(self, path: str | Path = "./quotes.db"):
        self._db_path = Path(path)
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open the database and create the schema."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self._db_path)
        await self._connection.execute("PRAGMA foreign_keys = ON")
        await self._create_schema()
        logger.debug("Quote store opened at %s", self._db_path)

    async def _create_schema(self) -> None:
        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS quotes (
                id TEXT PRIMARY KEY,
                quote_number TEXT NOT NULL,
                title TEXT NOT NULL,
                status TEXT NOT NULL,
                total_amount INTEGER NOT NULL,
                created_at TEXT NOT NULL
            )
        """)

        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS quote_items (
                quote_id TEXT NOT NULL,
                position INTEGER NOT NULL,
                item_id TEXT NOT NULL,
                service TEXT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                estimated_hours REAL,
                complexity_tier TEXT,
                price INTEGER NOT NULL,
                PRIMARY KEY (quote_id, position),
                FOREIGN KEY (quote_id) REFERENCES quotes(id) ON DELETE CASCADE
            )
        """)

        await self._connection.execute("""
            CREATE INDEX IF NOT EXISTS idx_quotes_created
            ON quotes(created_at)
        """)

        await self._connection.commit()

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    def _require_connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("Quote store is not connected")
        return self._connection

    async def save_quote(self, quote: SavedQuote) -> SavedQuote:
        """Insert or replace a quote and all of its items."""
        conn = self._require_connection()

        await conn.execute("""
            INSERT INTO quotes (id, quote_number, title, status, total_amount, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                quote_number = excluded.quote_number,
                title = excluded.title,
                status = excluded.status,
                total_amount = excluded.total_amount
        """, (
            quote.id,
            quote.quote_number,
            quote.title,
            quote.status.value,
            quote.total_amount,
            quote.created_at.isoformat()
        ))

        await conn.execute("DELETE FROM quote_items WHERE quote_id = ?", (quote.id,))

        await conn.executemany("""
            INSERT INTO quote_items
            (quote_id, position, item_id, service, description, estimated_hours, complexity_tier, price)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, [
            (
                quote.id,
                position,
                item.id,
                item.service,
                item.description,
                item.estimated_hours,
                item.complexity_tier.value if item.complexity_tier else None,
                item.price
            )
            for position, item in enumerate(quote.items)
        ])

        await conn.commit()
        logger.info("Saved quote %s with %d items", quote.quote_number, len(quote.items))
        return quote

    async def _load_items(self, quote_id: str) -> list[QuoteItem]:
        async with self._connection.execute(
            """
            SELECT item_id, service, description, estimated_hours, complexity_tier, price
            FROM quote_items
            WHERE quote_id = ?
            ORDER BY position ASC
            """,
            (quote_id,)
        ) as cursor:
            rows = await cursor.fetchall()

        return [
            QuoteItem(
                id=item_id,
                service=service,
                description=description,
                estimated_hours=hours,
                complexity_tier=ComplexityTier(tier) if tier else None,
                price=price
            )
            for item_id, service, description, hours, tier, price in rows
        ]

    async def _row_to_quote(self, row: tuple) -> SavedQuote:
        quote_id, number, title, status, total, created_at = row
        return SavedQuote(
            id=quote_id,
            quote_number=number,
            title=title,
            status=QuoteStatus(status),
            total_amount=total,
            items=await self._load_items(quote_id),
            created_at=datetime.fromisoformat(created_at)
        )

    async def get_quote(self, quote_id: str) -> SavedQuote | None:
        conn = self._require_connection()
        async with conn.execute(
            """
            SELECT id, quote_number, title, status, total_amount, created_at
            FROM quotes WHERE id = ?
            """,
            (quote_id,)
        ) as cursor:
            row = await cursor.fetchone()

        if row is None:
            return None
        return await self._row_to_quote(row)

    async def list_quotes(self, limit: int | None = None) -> list[SavedQuote]:
        conn = self._require_connection()
        async with conn.execute(
            """
            SELECT id, quote_number, title, status, total_amount, created_at
            FROM quotes
            ORDER BY created_at DESC
            LIMIT ?
            """,
            (-1 if limit is None else limit,)
        ) as cursor:
            rows = await cursor.fetchall()

        return [await self._row_to_quote(row) for row in rows]

    async def delete_quote(self, quote_id: str) -> bool:
        conn = self._require_connection()
        cursor = await conn.execute("DELETE FROM quotes WHERE id = ?", (quote_id,))
        await conn.commit()
        return cursor.rowcount > 0

    @property
    def backend_type(self) -> str:
        return "sqlite"

    @property
    def db_path(self) -> Path:
        return self._db_path
