"""
Expiration sweep for earn lots past their expiration date.

Balances follow the aggregate model: redemption spends from
available_points without consuming specific lots, so a lot may already be
(partly) spent when it expires. Expiration still removes the lot's face
value and floors available_points and total_points at 0.
"""

import logging
from datetime import datetime

from django.utils import timezone

from ledgerman.models import EntryType, LoyaltyMembership, PointsEntry

logger = logging.getLogger(__name__)


def due_lots(membership: LoyaltyMembership, now: datetime) -> list[PointsEntry]:
    """Unexpired earn lots of the membership with expires_at <= now, oldest first."""
    return list(
        PointsEntry.objects.filter(
            membership=membership,
            entry_type=EntryType.EARNED,
            is_expired=False,
            expires_at__lte=now,
        ).order_by("expires_at", "id")
    )


def expire_lots(membership: LoyaltyMembership, now: datetime | None = None) -> int:
    """
    Retire every due lot of a locked membership.

    Two phases: collect the due lots first, then mark them expired,
    reduce the balances once and write one EXPIRED entry per lot.
    tier_points is never touched.

    Returns:
        Sum of the retired lots' points (0 when nothing was due)
    """
    now = now or timezone.now()
    lots = due_lots(membership, now)
    if not lots:
        return 0

    expired_total = sum(lot.points for lot in lots)

    PointsEntry.objects.filter(pk__in=[lot.pk for lot in lots]).update(is_expired=True)

    membership.available_points = max(0, membership.available_points - expired_total)
    membership.total_points = max(0, membership.total_points - expired_total)

    PointsEntry.objects.bulk_create(
        [
            PointsEntry(
                membership=membership,
                entry_type=EntryType.EXPIRED,
                points=-lot.points,
                available_after=membership.available_points,
                description=f"Points expired from {lot.description}"[:255],
                source_ref=lot.source_ref,
                lot=lot,
                created_at=now,
            )
            for lot in lots
        ]
    )

    logger.info(
        "Expired %s points from %s lot(s) of membership %s",
        expired_total,
        len(lots),
        membership.pk,
    )
    return expired_total


def due_memberships(now: datetime | None = None) -> list[int]:
    """IDs of active memberships holding at least one due lot."""
    now = now or timezone.now()
    return list(
        PointsEntry.objects.filter(
            entry_type=EntryType.EARNED,
            is_expired=False,
            expires_at__lte=now,
            membership__is_active=True,
        )
        .order_by("membership_id")
        .values_list("membership_id", flat=True)
        .distinct()
    )
