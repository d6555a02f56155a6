"""Consultation bookings for saved quotes."""

from .models import Booking, BookingRequest, BookingStatus
from .service import BookingService, InMemoryBookingService, is_bookable_date

__all__ = [
    "Booking",
    "BookingRequest",
    "BookingService",
    "BookingStatus",
    "InMemoryBookingService",
    "is_bookable_date",
]
