"""Tests for management commands."""

from io import StringIO

import pytest
from django.core.management import CommandError, call_command

from ledgerman.service import LoyaltyService


pytestmark = pytest.mark.django_db


class TestExpirePointsCommand:

    def test_nothing_due(self, program, key):
        LoyaltyService.earn_points(key, 100, "Stay")
        out = StringIO()

        call_command("ledgerman_expire_points", stdout=out)

        assert "Expired 0 points." in out.getvalue()
        assert LoyaltyService.get_balance(key).available_points == 100

    def test_sweep_as_of_date(self, program, key):
        LoyaltyService.earn_points(key, 100, "Stay")
        out = StringIO()

        call_command("ledgerman_expire_points", "--now", "2099-01-01T00:00:00", stdout=out)

        assert "Expired 100 points." in out.getvalue()
        balance = LoyaltyService.get_balance(key)
        assert balance.available_points == 0
        assert balance.tier_points == 100

    def test_invalid_date(self, db):
        with pytest.raises(CommandError):
            call_command("ledgerman_expire_points", "--now", "next tuesday")
