"""Pytest fixtures for Ledgerman tests."""

from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from ledgerman.models import LoyaltyMembership, LoyaltyProgram, PropertyGroup
from ledgerman.store import MembershipKey


NOW = datetime(2025, 1, 15, 10, 0, tzinfo=ZoneInfo("UTC"))


@pytest.fixture
def now():
    """Fixed clock for ledger operations."""
    return NOW


@pytest.fixture
def program(db):
    """Loyalty program of HOTEL-RIO with the default tier table."""
    return LoyaltyProgram.objects.create(
        property_code="HOTEL-RIO",
        name="Rio Rewards",
        points_per_currency=Decimal("1"),
        points_per_night=50,
        expiration_months=12,
    )


@pytest.fixture
def property_group(db):
    """Ownership group pooling HOTEL-RIO and HOTEL-SP."""
    group = PropertyGroup.objects.create(code="costa", name="Costa Hotels")
    group.add_property("HOTEL-RIO")
    group.add_property("HOTEL-SP")
    return group


@pytest.fixture
def key():
    """Guest account at HOTEL-RIO, without email."""
    return MembershipKey(guest_code="G-001", property_code="HOTEL-RIO")


@pytest.fixture
def rio_key():
    """Guest account at HOTEL-RIO carrying the guest email."""
    return MembershipKey(
        guest_code="G-001",
        property_code="HOTEL-RIO",
        guest_email="Ana@Example.com",
        display_name="Ana Souza",
    )


@pytest.fixture
def sp_key():
    """Same guest, different account at HOTEL-SP."""
    return MembershipKey(
        guest_code="SP-777",
        property_code="HOTEL-SP",
        guest_email="ana@example.com",
        display_name="Ana Souza",
    )


@pytest.fixture
def membership(db):
    """Fresh per-property membership at HOTEL-RIO."""
    return LoyaltyMembership.objects.create(guest_code="G-001", property_code="HOTEL-RIO")
