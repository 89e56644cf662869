"""Booking protocols — what the booking workflow hands to the ledger."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class CompletedBooking:
    """A booking as reported by the booking/order workflow."""

    booking_ref: str
    guest_code: str
    property_code: str
    status: str  # only "completed" bookings earn points
    amount: Decimal
    category: str = "general"  # laundry, transportation, tourism, ...
    nights: int = 0
    guest_email: str = ""
    guest_name: str = ""


@runtime_checkable
class BookingSource(Protocol):
    """
    Protocol for fetching bookings from the booking workflow.

    Used by ledgerman.adapters.bookings to award points by reference.
    """

    def get_booking(self, booking_ref: str) -> CompletedBooking | None:
        """Return the booking, or None if unknown."""
        ...
