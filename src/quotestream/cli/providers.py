"""Provider factory functions for CLI.

Centralizes creation of the chat client, quote store and logging from
Settings. Hides configuration details from command implementations.
"""

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from ..client import ChatProxyClient
from ..config import Settings
from ..llm import create_llm_provider
from ..proxy import ChatProxy
from ..storage import QuoteStore, create_quote_store

# Default console for output
_console = Console()


def configure_logging(level: str, console: Console | None = None) -> None:
    """Route quotestream logs through rich at the given level."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console or _console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def get_client(settings: Settings, console: Console | None = None) -> ChatProxyClient:
    """Create the chat client.

    A configured proxy URL is used directly. Otherwise the proxy runs in this
    process and calls OpenAI with OPENAI_API_KEY.

    Raises:
        typer.Exit: If neither a proxy URL nor an OpenAI key is configured
    """
    con = console or _console
    if settings.proxy_url:
        return ChatProxyClient(settings.proxy_url, read_timeout=settings.read_timeout)

    if not settings.openai_api_key:
        con.print("[red]Error: set QUOTESTREAM_PROXY_URL or OPENAI_API_KEY[/red]")
        raise typer.Exit(code=1)

    llm = create_llm_provider("openai", api_key=settings.openai_api_key, model=settings.model)
    proxy = ChatProxy(llm, protocol=settings.protocol, model=settings.model)
    return ChatProxyClient.in_process(proxy, read_timeout=settings.read_timeout)


def get_store(settings: Settings) -> QuoteStore:
    """Create the quote store (not yet connected)."""
    if settings.store == "sqlite":
        return create_quote_store("sqlite", path=settings.db_path)
    return create_quote_store(settings.store)
