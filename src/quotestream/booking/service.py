"""Consultation booking service.

Hides how bookings are stored and which dates can be booked. A booking is
only accepted for a quote that has been saved.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import date

from ..errors import BookingError
from ..storage import QuoteStore
from .models import Booking, BookingRequest, BookingStatus

logger = logging.getLogger(__name__)


def is_bookable_date(day: date, today: date) -> bool:
    """Weekdays from today on."""
    return day >= today and day.weekday() < 5


class BookingService(ABC):
    """Abstract booking backend."""

    @abstractmethod
    async def book(self, request: BookingRequest) -> Booking:
        """Create a pending booking.

        Raises:
            BookingError: If the date is not bookable or the quote is unknown
        """

    @abstractmethod
    async def list_bookings(self) -> list[Booking]:
        """All bookings, oldest first."""

    @abstractmethod
    async def cancel(self, booking_id: str) -> Booking:
        """Cancel a booking.

        Raises:
            BookingError: If the booking does not exist
        """


class InMemoryBookingService(BookingService):
    """Keeps bookings in process memory and checks quotes against a store."""

    def __init__(self, store: QuoteStore, today: Callable[[], date] = date.today):
        self._store = store
        self._today = today
        self._bookings: dict[str, Booking] = {}

    async def book(self, request: BookingRequest) -> Booking:
        if not is_bookable_date(request.preferred_date, self._today()):
            raise BookingError(f"{request.preferred_date.isoformat()} is not a bookable weekday")

        if await self._store.get_quote(request.quote_id) is None:
            raise BookingError(f"Unknown quote: {request.quote_id}")

        booking = Booking(**request.model_dump())
        self._bookings[booking.id] = booking
        logger.info(
            "Booking %s created for %s at %s",
            booking.id, booking.preferred_date.isoformat(), booking.preferred_time
        )
        return booking

    async def list_bookings(self) -> list[Booking]:
        return sorted(self._bookings.values(), key=lambda b: b.created_at)

    async def cancel(self, booking_id: str) -> Booking:
        booking = self._bookings.get(booking_id)
        if booking is None:
            raise BookingError(f"Unknown booking: {booking_id}")
        cancelled = booking.model_copy(update={"status": BookingStatus.CANCELLED})
        self._bookings[booking_id] = cancelled
        return cancelled
