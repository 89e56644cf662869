"""Identity linker for guest accounts sharing a group-scoped membership."""

import logging

from django.db import IntegrityError, transaction

from ledgerman.exceptions import LedgermanError
from ledgerman.models import LinkedAccount, LoyaltyMembership, PropertyGroup
from ledgerman.utils import normalize_email

logger = logging.getLogger(__name__)


class IdentityLinker:
    """
    Keyed set of (property_code, guest_account_id) pairs on one membership.

    A pair belongs to at most one membership per group, and only
    properties of the membership's own group can be linked.
    """

    def __init__(self, membership: LoyaltyMembership):
        self.membership = membership

    def link_account(
        self,
        property_code: str,
        guest_account_id: str,
        display_name: str = "",
        email: str = "",
    ) -> tuple[LinkedAccount, bool]:
        """
        Link an account to the membership. No-op if the pair is already linked.

        Returns:
            Tuple of (LinkedAccount, created: bool)

        Raises:
            LedgermanError: NOT_GROUP_MEMBERSHIP if the membership has no group,
                PROPERTY_NOT_IN_GROUP if the property is outside that group,
                ACCOUNT_ALREADY_LINKED if another membership of the group
                holds the pair
        """
        if not self.membership.is_group_scoped:
            raise LedgermanError(
                "NOT_GROUP_MEMBERSHIP",
                membership_id=self.membership.pk,
                property_code=property_code,
            )

        group = PropertyGroup.for_property(property_code)
        if group is None or group.pk != self.membership.group_id:
            raise LedgermanError(
                "PROPERTY_NOT_IN_GROUP",
                membership_id=self.membership.pk,
                property_code=property_code,
            )

        existing = self._lookup(property_code, guest_account_id)
        if existing:
            return self._owned(existing), False

        try:
            with transaction.atomic():
                account = LinkedAccount.objects.create(
                    membership=self.membership,
                    group_id=self.membership.group_id,
                    property_code=property_code,
                    guest_account_id=guest_account_id,
                    display_name=display_name,
                    email=normalize_email(email),
                )
        except IntegrityError:
            # Linked concurrently by another request
            existing = self._lookup(property_code, guest_account_id)
            if existing is None:
                raise
            return self._owned(existing), False

        logger.info(
            "Linked %s@%s to membership %s",
            guest_account_id,
            property_code,
            self.membership.pk,
        )
        return account, True

    def is_linked(self, property_code: str, guest_account_id: str) -> bool:
        return LinkedAccount.objects.filter(
            membership=self.membership,
            property_code=property_code,
            guest_account_id=guest_account_id,
        ).exists()

    def linked_properties(self) -> set[str]:
        return set(
            LinkedAccount.objects.filter(membership=self.membership).values_list(
                "property_code", flat=True
            )
        )

    def _lookup(self, property_code: str, guest_account_id: str) -> LinkedAccount | None:
        """The group's link for the pair, whichever membership holds it."""
        return LinkedAccount.objects.filter(
            group_id=self.membership.group_id,
            property_code=property_code,
            guest_account_id=guest_account_id,
        ).first()

    def _owned(self, account: LinkedAccount) -> LinkedAccount:
        if account.membership_id != self.membership.pk:
            raise LedgermanError(
                "ACCOUNT_ALREADY_LINKED",
                membership_id=self.membership.pk,
                linked_membership_id=account.membership_id,
                property_code=account.property_code,
                guest_account_id=account.guest_account_id,
            )
        return account
