"""Awards points for bookings completed in the booking workflow."""

from __future__ import annotations

import logging

from ledgerman.protocols.bookings import BookingSource, CompletedBooking
from ledgerman.protocols.ledger import LedgerResult
from ledgerman.service import LoyaltyService
from ledgerman.store import MembershipKey

logger = logging.getLogger(__name__)

COMPLETED = "completed"


def award_for_booking(booking: CompletedBooking) -> list[LedgerResult]:
    """
    Award spend points (and night points, for stays) for a booking.

    Bookings that are not completed earn nothing.

    Returns:
        One LedgerResult per award made (empty when nothing was awarded)
    """
    if booking.status != COMPLETED:
        logger.info("Booking %s is %s; no points awarded", booking.booking_ref, booking.status)
        return []

    key = MembershipKey(
        guest_code=booking.guest_code,
        property_code=booking.property_code,
        guest_email=booking.guest_email,
        display_name=booking.guest_name,
    )

    results = []
    spend = LoyaltyService.award_for_spend(
        key,
        booking.amount,
        category=booking.category,
        source_ref=booking.booking_ref,
    )
    if spend is not None:
        results.append(spend)

    if booking.nights > 0:
        stay = LoyaltyService.award_for_nights(key, booking.nights, source_ref=booking.booking_ref)
        if stay is not None:
            results.append(stay)

    return results


class BookingAwarder:
    """
    Awards points by booking reference, fetching bookings from a BookingSource.

    Usage:
        awarder = BookingAwarder(my_booking_source)
        awarder.award("BK-1001")
    """

    def __init__(self, source: BookingSource):
        self.source = source

    def award(self, booking_ref: str) -> list[LedgerResult]:
        booking = self.source.get_booking(booking_ref)
        if booking is None:
            logger.warning("Booking %s not found; no points awarded", booking_ref)
            return []
        return award_for_booking(booking)
