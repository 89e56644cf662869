"""
Ledgerman public API.

CORE (ledger):
    LoyaltyService.earn_points(key, ...)              - Credit a lot of points
    LoyaltyService.redeem_points(key, ...)            - Spend available points
    LoyaltyService.adjust_points(key, ...)            - Admin: tier + redeemable
    LoyaltyService.adjust_redeemable_points(key, ...) - Admin: redeemable only
    LoyaltyService.recompute_tier(key)                - Align tier with tier points
    LoyaltyService.expire_points(key) / expire_all()  - Expiration sweep

GROUPS:
    LoyaltyService.link_account(key, ...)      - Pool an account into a group membership
    LoyaltyService.is_linked(key, ...)         - Linked-set membership
    LoyaltyService.linked_properties(key)      - Properties of the linked set

CONVENIENCE:
    LoyaltyService.award_for_spend(key, ...)   - Points for a completed purchase
    LoyaltyService.award_for_nights(key, ...)  - Points for nights stayed
    LoyaltyService.change_tier(key, tier)      - Manual tier override
    LoyaltyService.tier_discount(key, amount)  - Tier discount on an amount
    LoyaltyService.get_balance(key) / history(key)
"""

import logging
from datetime import datetime
from decimal import Decimal

from django.utils import timezone

from ledgerman.exceptions import LedgermanError
from ledgerman.expiration import due_memberships
from ledgerman.ledger import Ledger, TierRecompute
from ledgerman.linking import IdentityLinker
from ledgerman.models import LoyaltyMembership, PointsEntry
from ledgerman.protocols.ledger import LedgerResult, MembershipBalance, TierDiscount
from ledgerman.services import program as program_service
from ledgerman.signals import (
    account_linked,
    points_adjusted,
    points_earned,
    points_expired,
    points_redeemed,
    tier_changed,
)
from ledgerman.store import MembershipKey, MembershipStore, Mutation

logger = logging.getLogger(__name__)


class LoyaltyService:
    """
    Service for loyalty ledger operations.

    Uses @classmethod for extensibility (consistent with MembershipStore).
    Every mutation goes through MembershipStore.mutate(); signals are sent
    once it has committed.
    """

    # ======================================================================
    # CORE API
    # ======================================================================

    @classmethod
    def get_balance(cls, key: MembershipKey) -> MembershipBalance | None:
        """Current balances, or None if the guest has no membership."""
        membership = MembershipStore.resolve(key)
        return cls._balance(membership) if membership else None

    @classmethod
    def enroll(cls, key: MembershipKey) -> MembershipBalance:
        """
        Enroll a guest at a property.

        Idempotent: returns the existing membership's balance if already enrolled.
        """
        membership, _ = MembershipStore.enroll(
            key, tier_table=program_service.tier_table(key.property_code)
        )
        return cls._balance(membership)

    @classmethod
    def earn_points(
        cls,
        key: MembershipKey,
        points: int,
        description: str,
        source_ref: str = "",
        expiration_months: int | None = None,
    ) -> LedgerResult:
        """
        Award points to a guest. Creates the membership on first earn.

        Args:
            key: Acting guest account
            points: Points to award (must be positive)
            description: Reason for the award
            source_ref: External reference (booking:123)
            expiration_months: Lot lifetime (property program's when omitted)

        Returns:
            LedgerResult with updated balances and the tier upgrade flag

        Raises:
            LedgermanError: INVALID_AMOUNT, MEMBERSHIP_INACTIVE,
                CONCURRENCY_CONFLICT
        """
        if expiration_months is None:
            expiration_months = program_service.expiration_months(key.property_code)
        tier_table = program_service.tier_table(key.property_code)

        def apply(ledger: Ledger) -> PointsEntry:
            entry = ledger.earn(
                points,
                description,
                source_ref=source_ref,
                expiration_months=expiration_months,
                earned_at_property=key.property_code,
            )
            ledger.recompute_tier(tier_table)
            return entry

        mutation = MembershipStore.mutate(key, apply, create=True, tier_table=tier_table)
        cls._notify(mutation)
        points_earned.send(
            sender=LoyaltyMembership,
            membership=mutation.membership,
            points=points,
            entry=mutation.result,
        )
        return cls._result(mutation, points)

    @classmethod
    def redeem_points(
        cls,
        key: MembershipKey,
        points: int,
        value: Decimal | int,
        reward_name: str,
        reward_ref: str = "",
        source_ref: str = "",
    ) -> LedgerResult:
        """
        Redeem points for a reward.

        Raises:
            LedgermanError: INVALID_AMOUNT, INSUFFICIENT_POINTS,
                MEMBERSHIP_NOT_FOUND, MEMBERSHIP_INACTIVE, CONCURRENCY_CONFLICT
        """
        mutation = MembershipStore.mutate(
            key,
            lambda ledger: ledger.redeem(
                points,
                value,
                reward_name,
                reward_ref=reward_ref,
                source_ref=source_ref,
            ),
        )
        cls._notify(mutation)
        points_redeemed.send(
            sender=LoyaltyMembership,
            membership=mutation.membership,
            redemption=mutation.result,
        )
        return cls._result(mutation, points)

    @classmethod
    def adjust_points(
        cls,
        key: MembershipKey,
        delta: int,
        reason: str,
        note: str = "",
        allow_demotion: bool | None = None,
    ) -> LedgerResult:
        """
        Admin adjustment of tier points and redeemable points.

        The tier is recomputed afterwards; it only moves down when
        demotion is allowed (LEDGERMAN ALLOW_DEMOTION by default).

        Raises:
            LedgermanError: INVALID_AMOUNT, INVALID_REASON,
                MEMBERSHIP_NOT_FOUND, MEMBERSHIP_INACTIVE, CONCURRENCY_CONFLICT
        """
        tier_table = program_service.tier_table(key.property_code)

        def apply(ledger: Ledger) -> PointsEntry:
            entry = ledger.adjust_full(delta, reason, note=note)
            ledger.recompute_tier(tier_table, allow_demotion=allow_demotion, reason="Admin adjustment")
            return entry

        mutation = MembershipStore.mutate(key, apply)
        cls._notify(mutation)
        points_adjusted.send(
            sender=LoyaltyMembership,
            membership=mutation.membership,
            entry=mutation.result,
        )
        return cls._result(mutation, delta)

    @classmethod
    def adjust_redeemable_points(
        cls,
        key: MembershipKey,
        delta: int,
        reason: str,
        note: str = "",
    ) -> LedgerResult:
        """
        Admin adjustment of redeemable points only (e.g. goodwill credit).

        Raises:
            LedgermanError: INVALID_AMOUNT, INVALID_REASON,
                MEMBERSHIP_NOT_FOUND, MEMBERSHIP_INACTIVE, CONCURRENCY_CONFLICT
        """
        mutation = MembershipStore.mutate(
            key,
            lambda ledger: ledger.adjust_redeemable_only(delta, reason, note=note),
        )
        cls._notify(mutation)
        points_adjusted.send(
            sender=LoyaltyMembership,
            membership=mutation.membership,
            entry=mutation.result,
        )
        return cls._result(mutation, delta)

    @classmethod
    def recompute_tier(
        cls,
        key: MembershipKey,
        tier_table=None,
        allow_demotion: bool | None = None,
    ) -> TierRecompute:
        """
        Align the tier with tier points.

        Args:
            key: Acting guest account
            tier_table: Tier table (the property program's when omitted)
            allow_demotion: Override LEDGERMAN ALLOW_DEMOTION

        Raises:
            LedgermanError: INVALID_TIER_CONFIG, MEMBERSHIP_NOT_FOUND
        """
        if tier_table is None:
            tier_table = program_service.tier_table(key.property_code)
        mutation = MembershipStore.mutate(
            key,
            lambda ledger: ledger.recompute_tier(tier_table, allow_demotion=allow_demotion),
        )
        cls._notify(mutation)
        return mutation.result

    @classmethod
    def change_tier(
        cls,
        key: MembershipKey,
        tier: str,
        reason: str = "Manual admin change",
    ) -> TierRecompute:
        """
        Admin override of the tier, regardless of tier points.

        Raises:
            LedgermanError: INVALID_TIER, MEMBERSHIP_NOT_FOUND
        """
        tier_table = program_service.tier_table(key.property_code)
        mutation = MembershipStore.mutate(
            key,
            lambda ledger: ledger.set_tier(tier, reason=reason, tier_table=tier_table),
        )
        cls._notify(mutation)
        return mutation.result

    @classmethod
    def expire_points(cls, key: "MembershipKey | int", now: datetime | None = None) -> int:
        """
        Retire the membership's due lots.

        Returns:
            Points expired (0 when nothing was due)
        """
        now = now or timezone.now()
        mutation = MembershipStore.mutate(key, lambda ledger: ledger.expire(now), now=now)
        if mutation.result:
            points_expired.send(
                sender=LoyaltyMembership,
                membership=mutation.membership,
                points=mutation.result,
            )
        return mutation.result

    @classmethod
    def expire_all(cls, now: datetime | None = None) -> int:
        """
        Expiration sweep over every active membership with due lots.

        Each membership is expired in its own transaction. A membership
        that stays contended, or was deactivated after the due scan, is
        skipped; the next sweep picks up whatever is still due.

        Returns:
            Total points expired
        """
        now = now or timezone.now()
        total = 0
        for membership_id in due_memberships(now):
            try:
                total += cls.expire_points(membership_id, now=now)
            except LedgermanError as e:
                if e.code not in ("CONCURRENCY_CONFLICT", "MEMBERSHIP_INACTIVE"):
                    raise
                logger.warning("Skipping membership %s in expiration sweep: %s", membership_id, e)
        return total

    # ======================================================================
    # GROUP API
    # ======================================================================

    @classmethod
    def link_account(
        cls,
        key: MembershipKey,
        property_code: str | None = None,
        guest_account_id: str | None = None,
        display_name: str = "",
        email: str = "",
    ) -> bool:
        """
        Pool a guest account into the group membership the key routes to.

        Without property_code/guest_account_id the acting account itself is
        linked. Creates the canonical group membership if needed.

        Returns:
            True if a new link was created

        Raises:
            LedgermanError: NOT_GROUP_MEMBERSHIP if the property is not in an
                active group (or no guest email was given to create one)
        """

        def apply(ledger: Ledger):
            if not ledger.membership.is_group_scoped:
                raise LedgermanError(
                    "NOT_GROUP_MEMBERSHIP",
                    guest_code=key.guest_code,
                    property_code=key.property_code,
                )
            if property_code is None or guest_account_id is None:
                return None
            account, created = IdentityLinker(ledger.membership).link_account(
                property_code,
                guest_account_id,
                display_name=display_name,
                email=email,
            )
            return account if created else None

        mutation = MembershipStore.mutate(
            key,
            apply,
            create=True,
            tier_table=program_service.tier_table(key.property_code),
        )
        created = [a for a in (mutation.linked_account, mutation.result) if a is not None]
        for account in created:
            account_linked.send(
                sender=LoyaltyMembership,
                membership=mutation.membership,
                linked_account=account,
            )
        return bool(created)

    @classmethod
    def is_linked(cls, key: MembershipKey, property_code: str, guest_account_id: str) -> bool:
        membership = MembershipStore.resolve(key)
        if membership is None or not membership.is_group_scoped:
            return False
        return IdentityLinker(membership).is_linked(property_code, guest_account_id)

    @classmethod
    def linked_properties(cls, key: MembershipKey) -> set[str]:
        membership = MembershipStore.resolve(key)
        if membership is None or not membership.is_group_scoped:
            return set()
        return IdentityLinker(membership).linked_properties()

    # ======================================================================
    # CONVENIENCE API
    # ======================================================================

    @classmethod
    def award_for_spend(
        cls,
        key: MembershipKey,
        amount: Decimal | int,
        category: str = "general",
        source_ref: str = "",
    ) -> LedgerResult | None:
        """
        Award points for a completed purchase and record the spending.

        Returns:
            LedgerResult, or None when the property has no active program or
            the amount is worth no points
        """
        program = program_service.get(key.property_code)
        if program is None:
            logger.warning("No active loyalty program at %s; no points awarded", key.property_code)
            return None

        amount = Decimal(str(amount))
        points = program_service.points_for_spend(program, amount, category)
        if points <= 0:
            return None

        tier_table = program_service.tier_table(key.property_code)
        description = f"Earned from {category} booking #{source_ref}" if source_ref else f"Earned from {category}"

        def apply(ledger: Ledger) -> PointsEntry:
            entry = ledger.earn(
                points,
                description,
                source_ref=source_ref,
                expiration_months=program.expiration_months,
                earned_at_property=key.property_code,
            )
            ledger.membership.lifetime_spending += amount
            ledger.recompute_tier(tier_table)
            return entry

        mutation = MembershipStore.mutate(key, apply, create=True, tier_table=tier_table)
        cls._notify(mutation)
        points_earned.send(
            sender=LoyaltyMembership,
            membership=mutation.membership,
            points=points,
            entry=mutation.result,
        )
        return cls._result(mutation, points)

    @classmethod
    def award_for_nights(
        cls,
        key: MembershipKey,
        nights: int,
        source_ref: str = "",
    ) -> LedgerResult | None:
        """
        Award points for nights stayed and count the nights.

        Returns:
            LedgerResult, or None when the property has no active program or
            the stay is worth no points
        """
        program = program_service.get(key.property_code)
        if program is None:
            logger.warning("No active loyalty program at %s; no points awarded", key.property_code)
            return None

        points = program_service.points_for_nights(program, nights)
        if points <= 0:
            return None

        tier_table = program_service.tier_table(key.property_code)

        def apply(ledger: Ledger) -> PointsEntry:
            entry = ledger.earn(
                points,
                f"Earned {points} points for {nights} night(s) stayed",
                source_ref=source_ref,
                expiration_months=program.expiration_months,
                earned_at_property=key.property_code,
            )
            ledger.membership.total_nights_stayed += nights
            ledger.recompute_tier(tier_table)
            return entry

        mutation = MembershipStore.mutate(key, apply, create=True, tier_table=tier_table)
        cls._notify(mutation)
        points_earned.send(
            sender=LoyaltyMembership,
            membership=mutation.membership,
            points=points,
            entry=mutation.result,
        )
        return cls._result(mutation, points)

    @classmethod
    def tier_discount(cls, key: MembershipKey, amount: Decimal | int) -> TierDiscount:
        """Discount the guest's tier grants on an amount at the acting property."""
        amount = Decimal(str(amount))
        membership = MembershipStore.resolve(key)
        if membership is None or not membership.is_active:
            return TierDiscount(tier=None, percentage=0, discount=Decimal("0.00"), final_amount=amount)

        percentage = program_service.discount_percentage(key.property_code, membership.tier)
        discount = (amount * percentage / 100).quantize(Decimal("0.01"))
        return TierDiscount(
            tier=membership.tier,
            percentage=percentage,
            discount=discount,
            final_amount=amount - discount,
        )

    @classmethod
    def history(cls, key: MembershipKey, limit: int = 50) -> list[PointsEntry]:
        """Points history, most recent first."""
        membership = MembershipStore.resolve(key)
        if membership is None:
            return []
        return list(PointsEntry.objects.filter(membership=membership)[:limit])

    @classmethod
    def deactivate(cls, key: MembershipKey) -> MembershipBalance:
        """Retire the membership (never deleted)."""
        return cls._balance(MembershipStore.deactivate(key))

    # ======================================================================
    # Internals
    # ======================================================================

    @classmethod
    def _notify(cls, mutation: Mutation) -> None:
        """Signals shared by every mutation: new links and tier changes."""
        if mutation.linked_account is not None:
            account_linked.send(
                sender=LoyaltyMembership,
                membership=mutation.membership,
                linked_account=mutation.linked_account,
            )
        change = mutation.ledger.tier_change
        if change is not None:
            tier_changed.send(
                sender=LoyaltyMembership,
                membership=mutation.membership,
                previous_tier=change.previous_tier,
                tier=change.tier,
                upgraded=change.upgraded,
            )

    @classmethod
    def _result(cls, mutation: Mutation, points: int) -> LedgerResult:
        change = mutation.ledger.tier_change
        return LedgerResult(
            balance=cls._balance(mutation.membership),
            points=points,
            tier_upgraded=bool(change and change.upgraded),
        )

    @staticmethod
    def _balance(membership: LoyaltyMembership) -> MembershipBalance:
        return MembershipBalance(
            membership_id=membership.pk,
            guest_code=membership.guest_code,
            property_code=membership.property_code,
            group_code=membership.group.code if membership.group_id else None,
            tier=membership.tier,
            tier_points=membership.tier_points,
            available_points=membership.available_points,
            total_points=membership.total_points,
            lifetime_points_earned=membership.lifetime_points_earned,
            lifetime_points_redeemed=membership.lifetime_points_redeemed,
            lifetime_spending=membership.lifetime_spending,
            total_nights_stayed=membership.total_nights_stayed,
            points_to_next_tier=membership.points_to_next_tier,
            next_tier=membership.next_tier,
            progress_percentage=membership.progress_percentage,
            last_activity_at=membership.last_activity_at,
            is_active=membership.is_active,
        )
