"""
Ledger core — point mutations over one membership aggregate.

A Ledger wraps a membership that the caller has already loaded and
locked (see ledgerman.store.MembershipStore.mutate). Methods change the
in-memory balances and append history rows; persisting the balances is
the store's job, and it only does so when ``dirty`` is set.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from django.utils import timezone

from ledgerman import tiers
from ledgerman.conf import ledgerman_settings
from ledgerman.exceptions import LedgermanError
from ledgerman.expiration import expire_lots
from ledgerman.models import (
    AdjustmentKind,
    AdjustmentScope,
    EntryType,
    LoyaltyMembership,
    PointsEntry,
    Redemption,
    RedemptionStatus,
    TierChange,
)
from ledgerman.utils import add_months

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TierRecompute:
    """Outcome of a tier recomputation."""

    tier: str
    previous_tier: str
    upgraded: bool
    changed: bool


class Ledger:
    """Earn, redeem, adjust and tier operations on a single membership."""

    def __init__(self, membership: LoyaltyMembership, now: datetime | None = None):
        self.membership = membership
        self.now = now or timezone.now()
        self.dirty = False
        self.tier_change: TierRecompute | None = None

    # ======================================================================
    # Points
    # ======================================================================

    def earn(
        self,
        points: int,
        description: str,
        source_ref: str = "",
        expiration_months: int | None = None,
        earned_at_property: str = "",
    ) -> PointsEntry:
        """
        Credit a new lot of points.

        The lot expires ``expiration_months`` calendar months from now
        (LEDGERMAN DEFAULT_EXPIRATION_MONTHS when not given). A window of 0
        gives a lot that is due at once.

        Raises:
            LedgermanError: INVALID_AMOUNT if points <= 0 or the window is negative
        """
        if points <= 0:
            raise LedgermanError("INVALID_AMOUNT", points=points)
        if expiration_months is None:
            expiration_months = ledgerman_settings.DEFAULT_EXPIRATION_MONTHS
        if expiration_months < 0:
            raise LedgermanError("INVALID_AMOUNT", expiration_months=expiration_months)

        m = self.membership
        m.tier_points += points
        m.available_points += points
        m.total_points += points
        m.lifetime_points_earned += points
        m.last_activity_at = self.now
        self.dirty = True

        return PointsEntry.objects.create(
            membership=m,
            entry_type=EntryType.EARNED,
            points=points,
            available_after=m.available_points,
            description=description,
            source_ref=source_ref,
            earned_at_property=earned_at_property,
            expires_at=add_months(self.now, expiration_months),
            created_at=self.now,
        )

    def redeem(
        self,
        points: int,
        value: Decimal | int,
        reward_name: str,
        reward_ref: str = "",
        source_ref: str = "",
    ) -> Redemption:
        """
        Spend available points on a reward.

        Only available_points moves; tier_points and total_points are
        left alone.

        Raises:
            LedgermanError: INVALID_AMOUNT if points <= 0,
                INSUFFICIENT_POINTS if points exceed the available balance
        """
        if points <= 0:
            raise LedgermanError("INVALID_AMOUNT", points=points)

        m = self.membership
        if points > m.available_points:
            raise LedgermanError(
                "INSUFFICIENT_POINTS",
                available=m.available_points,
                requested=points,
            )

        m.available_points -= points
        m.lifetime_points_redeemed += points
        m.last_activity_at = self.now
        self.dirty = True

        entry = PointsEntry.objects.create(
            membership=m,
            entry_type=EntryType.REDEEMED,
            points=-points,
            available_after=m.available_points,
            description=f"Redeemed for: {reward_name}",
            source_ref=source_ref,
            created_at=self.now,
        )
        return Redemption.objects.create(
            membership=m,
            entry=entry,
            points=points,
            value=Decimal(str(value)),
            reward_ref=reward_ref,
            reward_name=reward_name,
            source_ref=source_ref,
            status=RedemptionStatus.APPLIED,
            redeemed_at=self.now,
        )

    def adjust_full(self, delta: int, reason: str, note: str = "") -> PointsEntry:
        """
        Administrative correction of tier, available and total points.

        Each balance is floored at 0. A positive delta also counts as
        lifetime earning.

        Raises:
            LedgermanError: INVALID_AMOUNT if delta == 0, INVALID_REASON
        """
        self._check_adjustment(delta, reason)

        m = self.membership
        m.tier_points = max(0, m.tier_points + delta)
        m.available_points = max(0, m.available_points + delta)
        m.total_points = max(0, m.total_points + delta)
        if delta > 0:
            m.lifetime_points_earned += delta
        m.last_activity_at = self.now
        self.dirty = True

        return self._adjustment_entry(delta, reason, note, AdjustmentScope.FULL)

    def adjust_redeemable_only(self, delta: int, reason: str, note: str = "") -> PointsEntry:
        """
        Administrative correction of available points only (floor 0).

        Raises:
            LedgermanError: INVALID_AMOUNT if delta == 0, INVALID_REASON
        """
        self._check_adjustment(delta, reason)

        m = self.membership
        m.available_points = max(0, m.available_points + delta)
        m.last_activity_at = self.now
        self.dirty = True

        return self._adjustment_entry(delta, reason, note, AdjustmentScope.REDEEMABLE_ONLY)

    def expire(self, now: datetime | None = None) -> int:
        """Retire due lots. See ledgerman.expiration.expire_lots()."""
        expired = expire_lots(self.membership, now or self.now)
        if expired:
            self.dirty = True
        return expired

    # ======================================================================
    # Tier
    # ======================================================================

    def recompute_tier(
        self,
        tier_table=None,
        allow_demotion: bool | None = None,
        reason: str = "Points threshold reached",
    ) -> TierRecompute:
        """
        Align the tier with tier_points and refresh tier progress.

        A lower computed tier is only applied when ``allow_demotion``
        (LEDGERMAN ALLOW_DEMOTION when not given) is true.

        Raises:
            LedgermanError: INVALID_TIER_CONFIG
        """
        if tier_table is None:
            tier_table = default_tier_table()
        if allow_demotion is None:
            allow_demotion = ledgerman_settings.ALLOW_DEMOTION

        m = self.membership
        previous = m.tier
        computed = tiers.evaluate(m.tier_points, tier_table).tier

        target = computed
        if tiers.tier_rank(computed) < tiers.tier_rank(previous):
            if allow_demotion:
                reason = "Points below tier threshold"
            else:
                target = previous

        if target != previous:
            self._apply_tier(target, reason)

        self._refresh_progress(tier_table)

        result = TierRecompute(
            tier=m.tier,
            previous_tier=previous,
            upgraded=tiers.tier_rank(m.tier) > tiers.tier_rank(previous),
            changed=m.tier != previous,
        )
        if result.changed:
            self.tier_change = result
        return result

    def set_tier(self, tier: str, reason: str = "Manual admin change", tier_table=None) -> TierRecompute:
        """
        Force a tier regardless of tier_points.

        Raises:
            LedgermanError: INVALID_TIER
        """
        tiers.tier_rank(tier)
        if tier_table is None:
            tier_table = default_tier_table()

        m = self.membership
        previous = m.tier
        if tier != previous:
            self._apply_tier(tier, reason)
        self._refresh_progress(tier_table)

        result = TierRecompute(
            tier=m.tier,
            previous_tier=previous,
            upgraded=tiers.tier_rank(m.tier) > tiers.tier_rank(previous),
            changed=m.tier != previous,
        )
        if result.changed:
            self.tier_change = result
        return result

    # ======================================================================
    # Internals
    # ======================================================================

    def _apply_tier(self, tier: str, reason: str) -> None:
        m = self.membership
        logger.info(
            "Membership %s tier %s -> %s (%s)", m.pk, m.tier, tier, reason
        )
        TierChange.objects.create(
            membership=m,
            tier=tier,
            previous_tier=m.tier,
            reason=reason,
            changed_at=self.now,
        )
        m.tier = tier
        self.dirty = True

    def _refresh_progress(self, tier_table) -> None:
        m = self.membership
        status = tiers.progress_for(m.tier_points, tier_table, m.tier)
        progress = (status.points_to_next_tier, status.next_tier, status.progress_percentage)
        if progress != (m.points_to_next_tier, m.next_tier, m.progress_percentage):
            m.points_to_next_tier, m.next_tier, m.progress_percentage = progress
            self.dirty = True

    def _check_adjustment(self, delta: int, reason: str) -> None:
        if not delta:
            raise LedgermanError(
                "INVALID_AMOUNT", message="Adjustment must be non-zero", points=delta
            )
        if not (reason or "").strip():
            raise LedgermanError("INVALID_REASON")

    def _adjustment_entry(self, delta: int, reason: str, note: str, scope: str) -> PointsEntry:
        m = self.membership
        kind = AdjustmentKind.INCREASE if delta > 0 else AdjustmentKind.DECREASE
        description = reason
        if scope == AdjustmentScope.REDEEMABLE_ONLY:
            description = f"{reason} (redeemable points only)"
        return PointsEntry.objects.create(
            membership=m,
            entry_type=EntryType.ADJUSTED,
            points=delta,
            available_after=m.available_points,
            description=description,
            adjustment_kind=kind,
            adjustment_scope=scope,
            admin_note=note,
            created_at=self.now,
        )


def default_tier_table():
    """LEDGERMAN TIER_TABLE setting, or the built-in table."""
    return ledgerman_settings.TIER_TABLE or tiers.DEFAULT_TIER_TABLE
