"""Tests for membership resolution and the concurrency guard."""

import pytest
from django.db.models import F

from ledgerman.exceptions import LedgermanError
from ledgerman.linking import IdentityLinker
from ledgerman.models import EntryType, LinkedAccount, LoyaltyMembership, PointsEntry
from ledgerman.store import MembershipKey, MembershipStore


pytestmark = pytest.mark.django_db


def earn(points):
    def apply(ledger):
        return ledger.earn(points, "Stay")

    return apply


class TestResolve:

    def test_unknown_key(self, key):
        assert MembershipStore.resolve(key) is None

    def test_get_unknown_key(self, key):
        with pytest.raises(LedgermanError) as exc:
            MembershipStore.get(key)
        assert exc.value.code == "MEMBERSHIP_NOT_FOUND"

    def test_per_property(self, membership, key):
        assert MembershipStore.resolve(key) == membership

    def test_other_property_is_separate(self, membership):
        assert MembershipStore.resolve(MembershipKey("G-001", "HOTEL-SP")) is None

    def test_group_by_email(self, property_group, rio_key, sp_key):
        canonical = MembershipStore.create(rio_key)

        assert MembershipStore.resolve(sp_key) == canonical

    def test_group_by_linked_account(self, property_group, rio_key, sp_key):
        canonical = MembershipStore.create(rio_key)
        MembershipStore.mutate(sp_key, earn(10))

        assert MembershipStore.resolve(MembershipKey("SP-777", "HOTEL-SP")) == canonical

    def test_inactive_group_falls_back(self, property_group, rio_key):
        MembershipStore.create(rio_key)
        property_group.is_active = False
        property_group.save()

        other = MembershipKey("G-001", "HOTEL-SP", guest_email="ana@example.com")
        assert MembershipStore.resolve(other) is None


class TestCreate:

    def test_per_property(self, key):
        membership = MembershipStore.create(key)

        assert membership.group is None
        assert membership.tier == "bronze"
        assert membership.next_tier == "silver"
        assert membership.points_to_next_tier == 1000
        assert membership.available_points == 0

    def test_grouped_property_without_email(self, property_group, key):
        membership = MembershipStore.create(key)

        assert membership.group is None
        assert not LinkedAccount.objects.exists()

    def test_canonical_group_membership(self, property_group, rio_key):
        membership = MembershipStore.create(rio_key)

        assert membership.group == property_group
        assert membership.guest_email == "ana@example.com"
        account = LinkedAccount.objects.get(membership=membership)
        assert (account.property_code, account.guest_account_id) == ("HOTEL-RIO", "G-001")
        assert account.display_name == "Ana Souza"

    def test_duplicate(self, membership, key):
        with pytest.raises(LedgermanError) as exc:
            MembershipStore.create(key)

        assert exc.value.code == "DUPLICATE_MEMBERSHIP"
        assert exc.value.data["membership_id"] == membership.pk

    def test_duplicate_through_group(self, property_group, rio_key, sp_key):
        MembershipStore.create(rio_key)

        with pytest.raises(LedgermanError) as exc:
            MembershipStore.create(sp_key)
        assert exc.value.code == "DUPLICATE_MEMBERSHIP"

    def test_enroll_is_idempotent(self, key):
        first, created_first = MembershipStore.enroll(key)
        second, created_second = MembershipStore.enroll(key)

        assert created_first is True
        assert created_second is False
        assert first.pk == second.pk
        assert LoyaltyMembership.objects.count() == 1


class TestMutate:

    def test_missing_membership(self, key):
        with pytest.raises(LedgermanError) as exc:
            MembershipStore.mutate(key, earn(10))
        assert exc.value.code == "MEMBERSHIP_NOT_FOUND"

    def test_create_on_first_write(self, key):
        mutation = MembershipStore.mutate(key, earn(10), create=True)

        assert mutation.created is True
        assert mutation.membership.available_points == 10
        assert LoyaltyMembership.objects.get().available_points == 10

    def test_saves_and_bumps_version(self, membership, key):
        mutation = MembershipStore.mutate(key, earn(25))

        membership.refresh_from_db()
        assert mutation.created is False
        assert membership.available_points == 25
        assert membership.tier_points == 25
        assert membership.version == 1
        assert mutation.membership.version == 1

    def test_clean_ledger_not_saved(self, membership, key):
        mutation = MembershipStore.mutate(key, lambda ledger: "untouched")

        membership.refresh_from_db()
        assert mutation.result == "untouched"
        assert membership.version == 0

    def test_by_membership_id(self, membership):
        MembershipStore.mutate(membership.pk, earn(5))

        membership.refresh_from_db()
        assert membership.available_points == 5

    def test_unknown_membership_id(self, db):
        with pytest.raises(LedgermanError) as exc:
            MembershipStore.mutate(999, earn(5))
        assert exc.value.code == "MEMBERSHIP_NOT_FOUND"

    def test_error_rolls_back(self, membership, key):
        def earn_then_fail(ledger):
            ledger.earn(50, "Stay")
            ledger.redeem(500, 1, "Suite")

        with pytest.raises(LedgermanError) as exc:
            MembershipStore.mutate(key, earn_then_fail)

        membership.refresh_from_db()
        assert exc.value.code == "INSUFFICIENT_POINTS"
        assert membership.available_points == 0
        assert not PointsEntry.objects.exists()

    def test_inactive_membership(self, membership, key):
        MembershipStore.deactivate(key)

        with pytest.raises(LedgermanError) as exc:
            MembershipStore.mutate(key, earn(5))

        assert exc.value.code == "MEMBERSHIP_INACTIVE"

    def test_deactivate_keeps_history(self, membership, key):
        MembershipStore.mutate(key, earn(5))

        retired = MembershipStore.deactivate(key)

        assert retired.is_active is False
        assert LoyaltyMembership.objects.filter(pk=membership.pk, is_active=False).exists()
        assert PointsEntry.objects.filter(membership=membership).count() == 1


class TestGroupMutations:

    def test_links_acting_account(self, property_group, rio_key, sp_key):
        canonical = MembershipStore.create(rio_key)

        first = MembershipStore.mutate(sp_key, earn(10))
        second = MembershipStore.mutate(sp_key, earn(10))

        assert first.membership.pk == canonical.pk
        assert first.linked_account is not None
        assert first.linked_account.guest_account_id == "SP-777"
        assert second.linked_account is None
        assert LinkedAccount.objects.filter(membership=canonical).count() == 2
        canonical.refresh_from_db()
        assert canonical.available_points == 20

    def test_earnings_pool_across_properties(self, property_group, rio_key, sp_key):
        MembershipStore.mutate(rio_key, earn(100), create=True)
        MembershipStore.mutate(sp_key, earn(50), create=True)

        assert LoyaltyMembership.objects.count() == 1
        assert LoyaltyMembership.objects.get().available_points == 150

    def test_legacy_membership_promoted(self, membership, property_group, rio_key):
        mutation = MembershipStore.mutate(rio_key, earn(10))

        membership.refresh_from_db()
        assert mutation.membership.pk == membership.pk
        assert membership.group == property_group
        assert membership.guest_email == "ana@example.com"
        assert LinkedAccount.objects.filter(
            membership=membership, property_code="HOTEL-RIO", guest_account_id="G-001"
        ).exists()

    def test_legacy_membership_promoted_without_changes(self, membership, property_group, rio_key):
        MembershipStore.mutate(rio_key, lambda ledger: None)

        membership.refresh_from_db()
        assert membership.group == property_group
        assert membership.version == 1

    def test_account_held_by_other_pool_stays_unlinked(self, property_group, rio_key):
        ana = MembershipStore.create(rio_key)
        bob = MembershipStore.create(MembershipKey("G-002", "HOTEL-RIO", guest_email="bob@example.com"))
        MembershipStore.mutate(
            ana.pk, lambda ledger: IdentityLinker(ledger.membership).link_account("HOTEL-SP", "SP-1")
        )

        mutation = MembershipStore.mutate(MembershipKey("SP-1", "HOTEL-SP", guest_email="bob@example.com"), earn(10))

        assert mutation.membership.pk == bob.pk
        assert mutation.linked_account is None
        assert LinkedAccount.objects.get(property_code="HOTEL-SP", guest_account_id="SP-1").membership_id == ana.pk
        bob.refresh_from_db()
        assert bob.available_points == 10

    def test_inactive_group_membership_still_writable(self, property_group, rio_key):
        canonical = MembershipStore.create(rio_key)
        property_group.is_active = False
        property_group.save()

        mutation = MembershipStore.mutate(MembershipKey("G-001", "HOTEL-RIO"), earn(10))

        assert mutation.membership.pk == canonical.pk
        assert mutation.linked_account is None


class TestConcurrencyGuard:

    def test_retry_after_concurrent_update(self, membership, key):
        calls = []

        def contended_once(ledger):
            calls.append(ledger.membership.version)
            ledger.earn(10, "Stay")
            if len(calls) == 1:
                # Another writer saves the row before this attempt does
                LoyaltyMembership.objects.filter(pk=ledger.membership.pk).update(version=F("version") + 1)

        MembershipStore.mutate(key, contended_once)

        membership.refresh_from_db()
        assert len(calls) == 2
        assert membership.available_points == 10
        assert membership.version == 1
        assert PointsEntry.objects.filter(entry_type=EntryType.EARNED).count() == 1

    def test_conflict_after_exhausting_retries(self, membership, key, settings):
        settings.LEDGERMAN = {"MAX_CONCURRENCY_RETRIES": 4}
        calls = []

        def always_contended(ledger):
            calls.append(1)
            ledger.earn(10, "Stay")
            LoyaltyMembership.objects.filter(pk=ledger.membership.pk).update(version=F("version") + 1)

        with pytest.raises(LedgermanError) as exc:
            MembershipStore.mutate(key, always_contended)

        membership.refresh_from_db()
        assert exc.value.code == "CONCURRENCY_CONFLICT"
        assert exc.value.data["attempts"] == 4
        assert len(calls) == 4
        assert membership.available_points == 0
        assert membership.version == 0
        assert not PointsEntry.objects.exists()
