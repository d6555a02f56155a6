"""Hand-off from the running quote to persistence, export and booking.

The chat side only knows the accumulator; this module turns its snapshot into
a SavedQuote and passes it to the configured collaborators.
"""

import logging

from .booking import Booking, BookingRequest, BookingService
from .config import DEFAULT_QUOTE_TITLE
from .errors import QuoteBridgeError
from .export import render_quote_pdf
from .quotes import QuoteAccumulator
from .storage import QuoteStore, SavedQuote

logger = logging.getLogger(__name__)


class QuoteBridge:
    """Saves, exports and books quotes built in a chat session.

    Example:
        bridge = QuoteBridge(session.accumulator, store)
        saved = await bridge.save("Neue Website")
        pdf = bridge.export_pdf(saved)
    """

    def __init__(
        self,
        accumulator: QuoteAccumulator,
        store: QuoteStore,
        bookings: BookingService | None = None
    ):
        self._accumulator = accumulator
        self._store = store
        self._bookings = bookings

    async def save(self, title: str = DEFAULT_QUOTE_TITLE) -> SavedQuote:
        """Persist the current items as a draft quote and start a fresh one.

        The accumulator is only cleared after the store accepted the quote;
        store errors propagate unchanged and leave the items in place.

        Raises:
            QuoteBridgeError: If there are no items to save
        """
        items = list(self._accumulator.items)
        if not items:
            raise QuoteBridgeError("Quote has no items")

        quote = SavedQuote(
            title=title.strip() or DEFAULT_QUOTE_TITLE,
            total_amount=sum(item.price for item in items),
            items=items,
        )
        saved = await self._store.save_quote(quote)
        for item in items:
            self._accumulator.remove(item.id)
        logger.info("Quote %s saved (%d items)", saved.quote_number, len(items))
        return saved

    def export_pdf(self, quote: SavedQuote) -> bytes:
        return render_quote_pdf(quote)

    async def book(self, request: BookingRequest) -> Booking:
        """Book a consultation for a saved quote.

        Raises:
            QuoteBridgeError: If no booking service is configured
            BookingError: If the booking is rejected
        """
        if self._bookings is None:
            raise QuoteBridgeError("No booking service configured")
        return await self._bookings.book(request)
