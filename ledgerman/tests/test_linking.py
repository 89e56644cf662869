"""Tests for the identity linker."""

import pytest

from ledgerman.exceptions import LedgermanError
from ledgerman.linking import IdentityLinker
from ledgerman.models import LinkedAccount, LoyaltyMembership


pytestmark = pytest.mark.django_db


@pytest.fixture
def group_membership(property_group):
    return LoyaltyMembership.objects.create(
        guest_code="G-001",
        property_code="HOTEL-RIO",
        group=property_group,
        guest_email="ana@example.com",
    )


class TestLinkAccount:

    def test_link(self, group_membership):
        account, created = IdentityLinker(group_membership).link_account(
            "HOTEL-SP", "SP-777", display_name="Ana Souza", email=" ANA@Example.com "
        )

        assert created is True
        assert account.membership == group_membership
        assert account.group == group_membership.group
        assert account.email == "ana@example.com"
        assert account.display_name == "Ana Souza"

    def test_link_twice_keeps_one_entry(self, group_membership):
        linker = IdentityLinker(group_membership)

        first, created_first = linker.link_account("HOTEL-SP", "SP-777")
        second, created_second = linker.link_account("HOTEL-SP", "SP-777", display_name="Other")

        assert created_first is True
        assert created_second is False
        assert first.pk == second.pk
        assert LinkedAccount.objects.filter(membership=group_membership).count() == 1

    def test_same_account_id_at_other_property(self, group_membership):
        linker = IdentityLinker(group_membership)

        linker.link_account("HOTEL-SP", "777")
        linker.link_account("HOTEL-RIO", "777")

        assert LinkedAccount.objects.filter(membership=group_membership).count() == 2

    def test_requires_group_membership(self, membership):
        with pytest.raises(LedgermanError) as exc:
            IdentityLinker(membership).link_account("HOTEL-SP", "SP-777")

        assert exc.value.code == "NOT_GROUP_MEMBERSHIP"
        assert not LinkedAccount.objects.exists()

    def test_property_outside_group(self, group_membership):
        with pytest.raises(LedgermanError) as exc:
            IdentityLinker(group_membership).link_account("HOTEL-ELSEWHERE", "X-1")

        assert exc.value.code == "PROPERTY_NOT_IN_GROUP"
        assert not LinkedAccount.objects.exists()

    def test_property_of_inactive_group(self, group_membership, property_group):
        property_group.is_active = False
        property_group.save()

        with pytest.raises(LedgermanError) as exc:
            IdentityLinker(group_membership).link_account("HOTEL-SP", "SP-777")

        assert exc.value.code == "PROPERTY_NOT_IN_GROUP"

    def test_account_held_by_other_membership_of_group(self, group_membership, property_group):
        other = LoyaltyMembership.objects.create(
            guest_code="G-002",
            property_code="HOTEL-RIO",
            group=property_group,
            guest_email="bob@example.com",
        )
        IdentityLinker(group_membership).link_account("HOTEL-SP", "SP-1")

        with pytest.raises(LedgermanError) as exc:
            IdentityLinker(other).link_account("HOTEL-SP", "SP-1")

        assert exc.value.code == "ACCOUNT_ALREADY_LINKED"
        assert exc.value.data["linked_membership_id"] == group_membership.pk
        account = LinkedAccount.objects.get(property_code="HOTEL-SP", guest_account_id="SP-1")
        assert account.membership == group_membership
        assert IdentityLinker(other).is_linked("HOTEL-SP", "SP-1") is False


class TestLinkedSet:

    def test_is_linked(self, group_membership):
        linker = IdentityLinker(group_membership)
        linker.link_account("HOTEL-SP", "SP-777")

        assert linker.is_linked("HOTEL-SP", "SP-777") is True
        assert linker.is_linked("HOTEL-SP", "SP-778") is False
        assert linker.is_linked("HOTEL-RIO", "SP-777") is False

    def test_linked_properties(self, group_membership):
        linker = IdentityLinker(group_membership)
        linker.link_account("HOTEL-SP", "SP-777")
        linker.link_account("HOTEL-SP", "SP-778")
        linker.link_account("HOTEL-RIO", "G-001")

        assert linker.linked_properties() == {"HOTEL-SP", "HOTEL-RIO"}

    def test_empty_linked_set(self, group_membership):
        assert IdentityLinker(group_membership).linked_properties() == set()
