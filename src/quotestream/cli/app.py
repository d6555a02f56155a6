"""Main CLI application using Typer."""
import asyncio
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..booking import InMemoryBookingService
from ..bridge import QuoteBridge
from ..chat import ChatMessage, ChatSession, RateLimiter, SendOutcome, SessionCallback
from ..config import Settings
from ..errors import QuoteBridgeError
from ..export import quote_pdf_filename
from ..quotes import ComplexityTier, QuoteAccumulator, QuoteItem, compute_price, format_eur, normalize
from ..storage import SavedQuote
from ..stream import ContentFrame, QuoteFrame, QuoteMarkupExtractor, QuoteProtocol, SSEFrameDecoder, grammar_for
from .providers import configure_logging, get_client, get_store

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="quotestream",
    help="Chat with the project consultant and build a priced quote",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()


@app.callback()
def main_callback(
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Logging level (default: QUOTESTREAM_LOG_LEVEL or WARNING)"
    )
):
    """Quotestream command line."""
    configure_logging(log_level or Settings.from_env().log_level, console)


def _tier_label(item: QuoteItem) -> str:
    return item.complexity_tier.label if item.complexity_tier else "-"


class ConsoleCallback(SessionCallback):
    """Prints the assistant reply as it streams and announces new quote items."""

    def on_message_started(self, message: ChatMessage) -> None:
        console.print("[bold cyan]Berater:[/bold cyan] ", end="")

    def on_text(self, message: ChatMessage, delta: str, replaced: bool) -> None:
        if replaced:
            console.print()
            console.print("[bold cyan]Berater:[/bold cyan] ", end="")
            console.print(message.text, end="", markup=False, highlight=False)
            return
        console.print(delta, end="", markup=False, highlight=False)

    def on_message_finished(self, message: ChatMessage) -> None:
        console.print("\n")

    def on_quote_item(self, item: QuoteItem) -> None:
        console.print(
            f"\n[green]+ {escape(item.service)}[/green] [dim]({_tier_label(item)}, "
            f"{item.price_label})[/dim]",
            highlight=False,
        )

    def on_notice(self, message: ChatMessage) -> None:
        console.print(f"[yellow]{escape(message.text)}[/yellow]\n", highlight=False)


def _announce_unblock(limiter: RateLimiter, waiting: bool) -> bool:
    """Tell the user before the next prompt that a rate-limit block has ended.

    Returns whether the prompt is still waiting for the block to end.
    """
    if waiting and not limiter.is_blocked:
        console.print("[dim]Sie können wieder Nachrichten senden.[/dim]")
        return False
    return waiting


def _quote_table(items: tuple[QuoteItem, ...] | list[QuoteItem], title: str) -> Table:
    table = Table(title=title)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Leistung", style="cyan")
    table.add_column("Beschreibung")
    table.add_column("Aufwand", justify="right")
    table.add_column("Komplexität")
    table.add_column("Preis", justify="right", style="green")
    for position, item in enumerate(items, start=1):
        hours = "-" if item.estimated_hours is None else f"{item.estimated_hours:g} h"
        table.add_row(
            str(position),
            escape(item.service),
            escape(item.description),
            hours,
            _tier_label(item),
            item.price_label,
        )
    return table


def _print_quote(accumulator: QuoteAccumulator) -> None:
    if not len(accumulator):
        console.print("[dim]Noch keine Leistungen im Angebot.[/dim]\n")
        return
    console.print(_quote_table(accumulator.items, "Ihr Angebot"))
    console.print(f"Nettobetrag:   {format_eur(accumulator.total)}")
    console.print(f"MwSt. (19%):   {format_eur(accumulator.vat)}")
    console.print(f"[bold]Gesamtbetrag:  {format_eur(accumulator.gross)}[/bold]\n")


@app.command()
def chat(
    url: str | None = typer.Option(
        None,
        "--url",
        "-u",
        help="Chat proxy URL (default: QUOTESTREAM_PROXY_URL or an in-process proxy)"
    ),
    protocol: QuoteProtocol | None = typer.Option(
        None,
        "--protocol",
        "-p",
        help="Quote markup protocol for the in-process proxy"
    ),
    no_stream: bool = typer.Option(
        False,
        "--no-stream",
        help="Request whole replies instead of a token stream"
    )
):
    """Start an interactive consultation.

    Slash commands:
    /quote shows the running quote, /remove N drops item N,
    /save [title] stores the quote, /pdf [path] exports the last saved quote,
    /quit leaves.
    """
    settings = Settings.from_env()
    updates = {}
    if url:
        updates["proxy_url"] = url
    if protocol:
        updates["protocol"] = protocol.value
    if no_stream:
        updates["streaming"] = False
    settings = settings.model_copy(update=updates)

    async def _handle_command(
        command: str,
        argument: str,
        session: ChatSession,
        bridge: QuoteBridge,
        saved: list[SavedQuote]
    ) -> bool:
        """Run a slash command. Returns False when the user wants to leave."""
        if command in ("/quit", "/exit"):
            return False

        if command == "/quote":
            _print_quote(session.accumulator)

        elif command == "/remove":
            items = session.accumulator.items
            if not argument.isdigit() or not 1 <= int(argument) <= len(items):
                console.print(f"[red]Usage: /remove N (1-{len(items)})[/red]\n")
                return True
            removed = session.accumulator.remove(items[int(argument) - 1].id)
            console.print(f"[dim]Entfernt: {escape(removed.service)}[/dim]\n")

        elif command == "/save":
            try:
                quote = await bridge.save(argument) if argument else await bridge.save()
            except QuoteBridgeError as e:
                console.print(f"[red]Error: {e}[/red]\n")
                return True
            saved.append(quote)
            console.print(
                f"[green]Angebot {quote.quote_number} gespeichert "
                f"({format_eur(quote.total_amount)} netto)[/green]\n"
            )

        elif command == "/pdf":
            if not saved:
                console.print("[red]Save the quote first with /save[/red]\n")
                return True
            quote = saved[-1]
            path = Path(argument) if argument else Path(quote_pdf_filename(quote))
            try:
                path.write_bytes(bridge.export_pdf(quote))
            except OSError as e:
                console.print(f"[red]Error: {escape(str(e))}[/red]\n")
                return True
            console.print(f"[green]PDF written to {path}[/green]\n")

        else:
            console.print(f"[red]Unknown command: {command}[/red]\n")

        return True

    async def _chat():
        client = get_client(settings, console)
        store = get_store(settings)
        await store.connect()
        session = ChatSession(client, callback=ConsoleCallback(), streaming=settings.streaming)
        bridge = QuoteBridge(session.accumulator, store, InMemoryBookingService(store))
        saved: list[SavedQuote] = []

        try:
            console.print(Panel(session.conversation.messages[0].text, title="Digitalwert", border_style="magenta"))
            console.print("/quote, /remove N, /save [Titel], /pdf [Pfad], /quit\n", style="dim", markup=False)

            rate_limited = False
            while True:
                rate_limited = _announce_unblock(session.rate_limiter, rate_limited)
                try:
                    user_input = console.input("[bold yellow]Sie:[/bold yellow] ")
                except (KeyboardInterrupt, EOFError):
                    console.print("\n[dim]Auf Wiedersehen![/dim]")
                    break

                stripped = user_input.strip()
                if stripped.startswith("/"):
                    command, _, argument = stripped.partition(" ")
                    if not await _handle_command(command.lower(), argument.strip(), session, bridge, saved):
                        console.print("[dim]Auf Wiedersehen![/dim]")
                        break
                    continue

                result = await session.send(user_input)
                if result.outcome is SendOutcome.RATE_LIMITED:
                    rate_limited = True
                if result.outcome is SendOutcome.SENT and result.items:
                    console.print(f"[dim]Zwischensumme: {format_eur(session.accumulator.total)} netto[/dim]\n")
        finally:
            await session.aclose()
            await store.disconnect()

    asyncio.run(_chat())


@app.command()
def price(
    hours: float = typer.Argument(..., min=0, help="Estimated hours"),
    complexity: ComplexityTier = typer.Option(
        ComplexityTier.MEDIUM,
        "--complexity",
        "-c",
        help="Complexity tier"
    )
):
    """Price a service from hours and complexity."""
    amount = compute_price(hours, complexity)
    console.print(
        f"{hours:g} h x {complexity.label}: [bold green]{format_eur(amount)}[/bold green] netto",
        highlight=False,
    )


@app.command()
def replay(
    transcript: Path = typer.Argument(
        ...,
        exists=True,
        file_okay=True,
        dir_okay=False,
        help="Captured SSE response body"
    ),
    protocol: QuoteProtocol = typer.Option(
        QuoteProtocol.INLINE,
        "--protocol",
        "-p",
        help="Quote markup protocol the transcript was recorded with"
    ),
    chunk_size: int = typer.Option(
        64,
        "--chunk-size",
        min=1,
        help="Bytes per simulated network chunk"
    )
):
    """Decode a captured SSE transcript offline and show the resulting quote."""
    data = transcript.read_bytes()
    decoder = SSEFrameDecoder()
    extractor = QuoteMarkupExtractor(grammar_for(protocol))
    accumulator = QuoteAccumulator()
    failures = 0

    def _take(result) -> None:
        nonlocal failures
        if isinstance(result, QuoteItem):
            accumulator.add(result)
        else:
            failures += 1

    for start in range(0, len(data), chunk_size):
        for frame in decoder.feed(data[start:start + chunk_size]):
            if isinstance(frame, ContentFrame):
                for payload in extractor.feed(frame.text).payloads:
                    _take(normalize(payload.raw))
            elif isinstance(frame, QuoteFrame):
                _take(normalize(frame.payload))
    for payload in extractor.finish().payloads:
        _take(normalize(payload.raw))

    console.print(Panel(escape(extractor.display_text.strip()) or "[dim](empty)[/dim]", title="Reply"))
    if not decoder.finished:
        console.print("[yellow]Warning: transcript ends without \\[DONE][/yellow]")
    if failures:
        console.print(f"[yellow]{failures} quote payload(s) rejected[/yellow]")
    _print_quote(accumulator)


@app.command()
def quotes(
    limit: int = typer.Option(
        20,
        "--limit",
        "-n",
        help="Maximum number of quotes to show"
    )
):
    """List saved quotes."""
    settings = Settings.from_env()

    async def _quotes():
        store = get_store(settings)
        try:
            await store.connect()
            saved = await store.list_quotes(limit=limit)
        finally:
            await store.disconnect()

        if not saved:
            console.print("[dim]No saved quotes.[/dim]")
            if store.backend_type == "memory":
                console.print("[dim]Set QUOTESTREAM_STORE=sqlite to keep quotes between runs.[/dim]")
            return

        table = Table(title="Gespeicherte Angebote")
        table.add_column("Nummer", style="cyan")
        table.add_column("Titel")
        table.add_column("Status")
        table.add_column("Positionen", justify="right")
        table.add_column("Netto", justify="right", style="green")
        table.add_column("Erstellt am")
        for quote in saved:
            table.add_row(
                quote.quote_number,
                escape(quote.title),
                quote.status.label,
                str(len(quote.items)),
                format_eur(quote.total_amount),
                quote.created_at.strftime("%d.%m.%Y"),
            )
        console.print(table)

    asyncio.run(_quotes())


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
