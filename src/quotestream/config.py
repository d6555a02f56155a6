"""Configuration constants and runtime settings.

Centralizes magic numbers (input ceiling, rate-limit window, pricing constants,
markup delimiters, user-facing notices) and the environment-driven settings
used by the CLI and the chat session.
"""

import os
from decimal import Decimal
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

# Input sanitization
MAX_INPUT_LENGTH = 1000  # Characters, applied to sent text and the keystroke buffer
STRIPPED_CHARACTERS = "<>\"'&"

# Rate limiting (per chat session)
RATE_LIMIT_MAX_MESSAGES = 10
RATE_LIMIT_WINDOW_SECONDS = 60.0

# Pricing
BASE_HOURLY_RATE = Decimal("120")
VAT_RATE = Decimal("0.19")
CURRENCY_SYMBOL = "€"
PRICE_ON_REQUEST_LABEL = "Preis auf Anfrage"

# Server-sent events
SSE_DATA_PREFIX = "data:"
SSE_DONE_SENTINEL = "[DONE]"
PROTOCOL_HEADER = "X-Quote-Protocol"

# Quote markup delimiters
QUOTE_OPEN_TAG = "[QUOTE_RECOMMENDATION]"
QUOTE_CLOSE_TAG = "[/QUOTE_RECOMMENDATION]"
QUOTE_SECTION_OPEN_TAG = "[QUOTE_SECTION]"
QUOTE_SECTION_CLOSE_TAG = "[/QUOTE_SECTION]"

# Upstream model defaults (mirrors the hosted chat proxy)
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1000

# Quote numbers and bookings
QUOTE_NUMBER_PREFIX = "DW-"
DEFAULT_QUOTE_TITLE = "Angebot"
QUOTE_VALIDITY_DAYS = 30
BOOKING_TIME_SLOTS = ("09:00", "10:00", "11:00", "14:00", "15:00", "16:00")

# User-facing messages
GREETING = (
    "Hallo! Ich bin Ihr KI-Berater von Digitalwert. Gerne berate ich Sie zu "
    "Webauftritten, Rebrandings, UI Design und der technischen Realisierung von "
    "Shop-Websites. Wie kann ich Ihnen heute helfen?"
)
RATE_LIMIT_NOTICE = (
    "Sie senden zu viele Nachrichten. Bitte warten Sie einen Moment, "
    "bevor Sie eine weitere Nachricht senden."
)
TECHNICAL_ERROR_NOTICE = (
    "Entschuldigung, es gab einen technischen Fehler. Bitte versuchen Sie es erneut."
)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


class Settings(BaseModel):
    """Runtime settings for the chat client, proxy and collaborators."""

    proxy_url: str | None = Field(
        default=None,
        description="URL of a deployed chat proxy; None runs the proxy in-process"
    )
    openai_api_key: str | None = Field(default=None, description="Key for the in-process proxy")
    model: str = Field(default=DEFAULT_MODEL)
    protocol: str = Field(default="inline", description="extracted, inline or section")
    streaming: bool = Field(default=True)
    read_timeout: float | None = Field(
        default=60.0,
        description="Idle seconds between stream chunks before the request fails"
    )
    store: str = Field(default="memory", description="Quote store backend: memory or sqlite")
    db_path: Path = Field(default=Path("./quotes.db"))
    log_level: str = Field(default="WARNING")

    @field_validator("protocol")
    @classmethod
    def validate_protocol(cls, v: str) -> str:
        """Only the three known wire protocols are accepted."""
        v = v.strip().lower()
        if v not in ("extracted", "inline", "section"):
            raise ValueError("protocol must be 'extracted', 'inline' or 'section'")
        return v

    @field_validator("read_timeout")
    @classmethod
    def validate_read_timeout(cls, v: float | None) -> float | None:
        """Zero or negative disables the idle timeout."""
        if v is not None and v <= 0:
            return None
        return v

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from QUOTESTREAM_* environment variables.

        Environment variables:
            QUOTESTREAM_PROXY_URL: Deployed proxy endpoint (default: in-process)
            OPENAI_API_KEY: OpenAI key for the in-process proxy
            QUOTESTREAM_MODEL: Upstream model (default: gpt-4o-mini)
            QUOTESTREAM_PROTOCOL: extracted, inline or section (default: inline)
            QUOTESTREAM_STREAMING: Use the SSE endpoint (default: true)
            QUOTESTREAM_READ_TIMEOUT: Idle read timeout in seconds (default: 60)
            QUOTESTREAM_STORE: memory or sqlite (default: memory)
            QUOTESTREAM_DB_PATH: SQLite file (default: ./quotes.db)
            QUOTESTREAM_LOG_LEVEL: Logging level (default: WARNING)
        """
        return cls(
            proxy_url=os.getenv("QUOTESTREAM_PROXY_URL") or None,
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            model=os.getenv("QUOTESTREAM_MODEL", DEFAULT_MODEL),
            protocol=os.getenv("QUOTESTREAM_PROTOCOL", "inline"),
            streaming=_env_bool("QUOTESTREAM_STREAMING", True),
            read_timeout=float(os.getenv("QUOTESTREAM_READ_TIMEOUT", "60")),
            store=os.getenv("QUOTESTREAM_STORE", "memory"),
            db_path=Path(os.getenv("QUOTESTREAM_DB_PATH", "./quotes.db")),
            log_level=os.getenv("QUOTESTREAM_LOG_LEVEL", "WARNING"),
        )
