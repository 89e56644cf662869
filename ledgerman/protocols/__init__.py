"""Ledgerman protocols."""

from ledgerman.protocols.ledger import (
    LoyaltyBackend,
    MembershipBalance,
    LedgerResult,
    TierDiscount,
)
from ledgerman.protocols.bookings import (
    BookingSource,
    CompletedBooking,
)

__all__ = [
    # Ledger
    "LoyaltyBackend",
    "MembershipBalance",
    "LedgerResult",
    "TierDiscount",
    # Bookings
    "BookingSource",
    "CompletedBooking",
]
