"""
Membership lookup, creation and the concurrency guard.

Key resolution (the only place where per-property and per-group
memberships are told apart):

    1. Property in an active PropertyGroup and guest email given:
       the canonical (group, guest_email) membership.
    2. Property in an active PropertyGroup: a group membership that
       already links (property_code, guest_code).
    3. Otherwise the (guest_code, property_code) membership.

Every mutation runs inside transaction.atomic() on a row locked with
select_for_update(), and is saved with a compare-and-swap on
LoyaltyMembership.version. A stale version (or a membership created by a
concurrent request) restarts the whole operation from a fresh load, up to
LEDGERMAN MAX_CONCURRENCY_RETRIES attempts.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from ledgerman import tiers
from ledgerman.conf import ledgerman_settings
from ledgerman.exceptions import LedgermanError
from ledgerman.ledger import Ledger, default_tier_table
from ledgerman.linking import IdentityLinker
from ledgerman.models import LinkedAccount, LoyaltyMembership, PropertyGroup
from ledgerman.utils import normalize_email

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MembershipKey:
    """Acting guest account at a property."""

    guest_code: str
    property_code: str
    guest_email: str = ""
    display_name: str = ""

    @property
    def email(self) -> str:
        return normalize_email(self.guest_email)


@dataclass
class Mutation:
    """Result of MembershipStore.mutate()."""

    membership: LoyaltyMembership
    ledger: Ledger
    result: Any
    created: bool = False
    linked_account: LinkedAccount | None = None


class _StaleMembership(Exception):
    """Version check failed on save."""


class MembershipStore:
    """
    Persistence boundary around the membership aggregate.

    Uses @classmethod for extensibility (consistent with LoyaltyService).
    """

    # ======================================================================
    # Lookup
    # ======================================================================

    @classmethod
    def resolve(cls, key: MembershipKey) -> LoyaltyMembership | None:
        """Membership the key routes to, or None."""
        membership_id = cls._resolve_id(key)
        if membership_id is None:
            return None
        return LoyaltyMembership.objects.select_related("group").get(pk=membership_id)

    @classmethod
    def get(cls, key: MembershipKey) -> LoyaltyMembership:
        """
        Resolve or raise.

        Raises:
            LedgermanError: MEMBERSHIP_NOT_FOUND
        """
        membership = cls.resolve(key)
        if membership is None:
            raise LedgermanError(
                "MEMBERSHIP_NOT_FOUND",
                guest_code=key.guest_code,
                property_code=key.property_code,
            )
        return membership

    @classmethod
    def _resolve_id(cls, key: MembershipKey) -> int | None:
        group = PropertyGroup.for_property(key.property_code)
        if group is not None:
            if key.email:
                membership_id = (
                    LoyaltyMembership.objects.filter(group=group, guest_email=key.email)
                    .values_list("pk", flat=True)
                    .first()
                )
                if membership_id is not None:
                    return membership_id

            membership_id = (
                LinkedAccount.objects.filter(
                    membership__group=group,
                    property_code=key.property_code,
                    guest_account_id=key.guest_code,
                )
                .order_by("linked_at", "id")
                .values_list("membership_id", flat=True)
                .first()
            )
            if membership_id is not None:
                return membership_id

        return (
            LoyaltyMembership.objects.filter(
                guest_code=key.guest_code,
                property_code=key.property_code,
            )
            .values_list("pk", flat=True)
            .first()
        )

    # ======================================================================
    # Creation
    # ======================================================================

    @classmethod
    def create(cls, key: MembershipKey, tier_table=None) -> LoyaltyMembership:
        """
        Create the membership the key would route to.

        At a grouped property with a guest email this is the canonical
        group membership, with the acting account linked.

        Raises:
            LedgermanError: DUPLICATE_MEMBERSHIP if the key already resolves
                to a membership or the insert hits a uniqueness constraint
        """
        with transaction.atomic():
            existing = cls._resolve_id(key)
            if existing is not None:
                raise LedgermanError(
                    "DUPLICATE_MEMBERSHIP",
                    guest_code=key.guest_code,
                    property_code=key.property_code,
                    membership_id=existing,
                )
            membership = cls._insert(key, tier_table)
            if membership.is_group_scoped:
                cls._link_acting_account(membership, key)
        return membership

    @classmethod
    def enroll(cls, key: MembershipKey, tier_table=None) -> tuple[LoyaltyMembership, bool]:
        """
        Idempotent get-or-create.

        Returns:
            Tuple of (LoyaltyMembership, created: bool)
        """
        membership = cls.resolve(key)
        if membership is not None:
            return membership, False
        try:
            return cls.create(key, tier_table=tier_table), True
        except LedgermanError as e:
            if e.code != "DUPLICATE_MEMBERSHIP":
                raise
            # Created by a concurrent request
            return cls.get(key), False

    @classmethod
    def _insert(cls, key: MembershipKey, tier_table=None) -> LoyaltyMembership:
        group = PropertyGroup.for_property(key.property_code) if key.email else None
        status = tiers.evaluate(0, tier_table or default_tier_table())
        try:
            with transaction.atomic():
                membership = LoyaltyMembership.objects.create(
                    guest_code=key.guest_code,
                    property_code=key.property_code,
                    group=group,
                    guest_email=key.email,
                    tier=status.tier,
                    points_to_next_tier=status.points_to_next_tier,
                    next_tier=status.next_tier,
                    progress_percentage=status.progress_percentage,
                )
        except IntegrityError:
            raise LedgermanError(
                "DUPLICATE_MEMBERSHIP",
                guest_code=key.guest_code,
                property_code=key.property_code,
            )
        logger.info(
            "Created membership %s for %s@%s%s",
            membership.pk,
            key.guest_code,
            key.property_code,
            f" (group {group.code})" if group else "",
        )
        return membership

    # ======================================================================
    # Mutation
    # ======================================================================

    @classmethod
    def mutate(
        cls,
        key: "MembershipKey | int",
        fn: Callable[[Ledger], Any],
        create: bool = False,
        now: datetime | None = None,
        tier_table=None,
        allow_inactive: bool = False,
    ) -> Mutation:
        """
        Run ``fn(ledger)`` against the membership under the concurrency guard.

        Args:
            key: Acting guest account, or a membership id (batch jobs)
            fn: Mutation; receives a Ledger over the locked membership
            create: Create the membership if the key resolves to nothing
            now: Clock override for the Ledger
            tier_table: Tier table for a newly created membership's progress
            allow_inactive: Permit mutating a retired membership

        Returns:
            Mutation with the saved membership and fn's return value

        Raises:
            LedgermanError: MEMBERSHIP_NOT_FOUND, MEMBERSHIP_INACTIVE,
                CONCURRENCY_CONFLICT, or whatever ``fn`` raises
        """
        attempts = max(1, ledgerman_settings.MAX_CONCURRENCY_RETRIES)
        for attempt in range(1, attempts + 1):
            try:
                with transaction.atomic():
                    membership, created, promoted = cls._load_for_update(key, create, tier_table)
                    if not membership.is_active and not allow_inactive:
                        raise LedgermanError(
                            "MEMBERSHIP_INACTIVE",
                            membership_id=membership.pk,
                        )

                    linked_account = None
                    if membership.is_group_scoped and isinstance(key, MembershipKey):
                        linked_account = cls._link_acting_account(membership, key)

                    ledger = Ledger(membership, now=now)
                    ledger.dirty = promoted
                    result = fn(ledger)
                    if ledger.dirty:
                        cls._save(membership)
                return Mutation(
                    membership=membership,
                    ledger=ledger,
                    result=result,
                    created=created,
                    linked_account=linked_account,
                )
            except _StaleMembership:
                logger.warning(
                    "Concurrent update on membership %s (attempt %s/%s)",
                    _describe(key),
                    attempt,
                    attempts,
                )
            except LedgermanError as e:
                if not (create and e.code == "DUPLICATE_MEMBERSHIP"):
                    raise
                logger.warning(
                    "Membership %s created concurrently (attempt %s/%s)",
                    _describe(key),
                    attempt,
                    attempts,
                )

        raise LedgermanError(
            "CONCURRENCY_CONFLICT",
            membership=_describe(key),
            attempts=attempts,
        )

    @classmethod
    def deactivate(cls, key: "MembershipKey | int") -> LoyaltyMembership:
        """Retire a membership. History is kept."""

        def retire(ledger: Ledger) -> None:
            if ledger.membership.is_active:
                ledger.membership.is_active = False
                ledger.dirty = True

        return cls.mutate(key, retire, allow_inactive=True).membership

    @classmethod
    def _load_for_update(
        cls,
        key: "MembershipKey | int",
        create: bool,
        tier_table=None,
    ) -> tuple[LoyaltyMembership, bool, bool]:
        """
        Lock the membership the key routes to. MUST run inside transaction.atomic().

        Returns:
            Tuple of (membership, created, promoted). ``promoted`` means a
            per-property membership at a grouped property just became the
            canonical group membership and must be saved.
        """
        if not isinstance(key, MembershipKey):
            try:
                return LoyaltyMembership.objects.select_for_update().get(pk=key), False, False
            except LoyaltyMembership.DoesNotExist:
                raise LedgermanError("MEMBERSHIP_NOT_FOUND", membership_id=key)

        membership_id = cls._resolve_id(key)
        if membership_id is None:
            if not create:
                raise LedgermanError(
                    "MEMBERSHIP_NOT_FOUND",
                    guest_code=key.guest_code,
                    property_code=key.property_code,
                )
            return cls._insert(key, tier_table), True, False

        membership = LoyaltyMembership.objects.select_for_update().get(pk=membership_id)

        promoted = False
        if (
            membership.group_id is None
            and key.email
            and membership.guest_code == key.guest_code
            and membership.property_code == key.property_code
        ):
            group = PropertyGroup.for_property(key.property_code)
            if group is not None:
                membership.group = group
                membership.guest_email = key.email
                promoted = True
                logger.info("Promoted membership %s to group %s", membership.pk, group.code)

        return membership, False, promoted

    @classmethod
    def _link_acting_account(
        cls, membership: LoyaltyMembership, key: MembershipKey
    ) -> LinkedAccount | None:
        """
        Link (property_code, guest_code) to a group membership; the new link or None.

        An account held by another pool of the group, or acting from a
        property outside the membership's (active) group, is left unlinked.
        """
        try:
            account, created = IdentityLinker(membership).link_account(
                key.property_code,
                key.guest_code,
                display_name=key.display_name,
                email=key.email,
            )
        except LedgermanError as e:
            if e.code not in ("ACCOUNT_ALREADY_LINKED", "PROPERTY_NOT_IN_GROUP"):
                raise
            logger.warning(
                "Not linking %s@%s to membership %s: %s",
                key.guest_code,
                key.property_code,
                membership.pk,
                e,
            )
            return None
        return account if created else None

    @classmethod
    def _save(cls, membership: LoyaltyMembership) -> None:
        """Persist MUTABLE_FIELDS if nobody saved the row since it was loaded."""
        fields = {name: getattr(membership, name) for name in LoyaltyMembership.MUTABLE_FIELDS}
        now = timezone.now()
        try:
            with transaction.atomic():
                updated = LoyaltyMembership.objects.filter(
                    pk=membership.pk,
                    version=membership.version,
                ).update(version=F("version") + 1, updated_at=now, **fields)
        except IntegrityError:
            # Promotion raced with another canonical membership
            raise _StaleMembership()
        if updated != 1:
            raise _StaleMembership()
        membership.version += 1
        membership.updated_at = now


def _describe(key: "MembershipKey | int") -> str:
    if isinstance(key, MembershipKey):
        return f"{key.guest_code}@{key.property_code}"
    return f"#{key}"
