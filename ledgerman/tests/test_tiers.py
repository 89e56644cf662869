"""Tests for the tier policy."""

import pytest

from ledgerman.exceptions import LedgermanError
from ledgerman.tiers import (
    DEFAULT_TIER_TABLE,
    TierThreshold,
    evaluate,
    parse_table,
    progress_for,
    threshold_for,
    tier_rank,
)


class TestEvaluate:
    """Tier and progress from tier points."""

    def test_zero_points_is_bronze(self):
        status = evaluate(0, DEFAULT_TIER_TABLE)

        assert status.tier == "bronze"
        assert status.next_tier == "silver"
        assert status.points_to_next_tier == 1000
        assert status.progress_percentage == 0.0

    def test_mid_band(self):
        status = evaluate(1500, DEFAULT_TIER_TABLE)

        assert status.tier == "silver"
        assert status.next_tier == "gold"
        assert status.points_to_next_tier == 1500
        assert status.progress_percentage == 25.0

    def test_threshold_is_inclusive(self):
        assert evaluate(3000, DEFAULT_TIER_TABLE).tier == "gold"
        assert evaluate(2999, DEFAULT_TIER_TABLE).tier == "silver"

    def test_progress_rounded(self):
        assert evaluate(1, DEFAULT_TIER_TABLE).progress_percentage == 0.1
        assert evaluate(999, DEFAULT_TIER_TABLE).progress_percentage == 99.9

    def test_top_tier(self):
        status = evaluate(10_000, DEFAULT_TIER_TABLE)

        assert status.tier == "platinum"
        assert status.next_tier is None
        assert status.points_to_next_tier == 0
        assert status.progress_percentage == 100.0

    def test_progress_monotonic_within_band(self):
        previous = -1.0
        for points in range(1000, 3000, 37):
            status = evaluate(points, DEFAULT_TIER_TABLE)
            assert status.tier == "silver"
            assert 0 <= status.progress_percentage <= 100
            assert status.progress_percentage >= previous
            previous = status.progress_percentage

    def test_accepts_dict_rows(self):
        table = [
            {"tier": "bronze", "min_points": 0},
            {"tier": "gold", "min_points": 500, "discount_percentage": 12},
        ]

        status = evaluate(499, table)

        assert status.tier == "bronze"
        assert status.next_tier == "gold"
        assert status.points_to_next_tier == 1


class TestProgressFor:
    """Progress of a member held above the computed tier."""

    def test_held_tier_band_used(self):
        status = progress_for(500, DEFAULT_TIER_TABLE, "gold")

        assert status.tier == "gold"
        assert status.next_tier == "platinum"
        assert status.points_to_next_tier == 5500
        assert status.progress_percentage == 0.0

    def test_lower_held_tier_ignored(self):
        status = progress_for(3500, DEFAULT_TIER_TABLE, "bronze")

        assert status.tier == "gold"

    def test_held_tier_missing_from_table(self):
        table = [{"tier": "bronze", "min_points": 0}, {"tier": "gold", "min_points": 500}]

        status = progress_for(100, table, "silver")

        assert status.tier == "bronze"
        assert status.next_tier == "gold"


class TestTableValidation:
    """INVALID_TIER_CONFIG for malformed tables."""

    @pytest.mark.parametrize(
        "rows",
        [
            [],
            [{"tier": "bronze", "min_points": 10}],
            [{"tier": "bronze", "min_points": 0}, {"tier": "silver", "min_points": 0}],
            [{"tier": "bronze", "min_points": 0}, {"tier": "silver", "min_points": 500.5}],
            [{"tier": "bronze", "min_points": 0}, {"tier": "diamond", "min_points": 500}],
            [{"tier": "bronze", "min_points": 0}, {"tier": "gold", "min_points": 500}, {"tier": "silver", "min_points": 900}],
            [{"tier": "bronze"}],
            ["bronze"],
        ],
    )
    def test_invalid_tables(self, rows):
        with pytest.raises(LedgermanError) as exc:
            parse_table(rows)
        assert exc.value.code == "INVALID_TIER_CONFIG"

    def test_evaluate_rejects_invalid_table(self):
        with pytest.raises(LedgermanError) as exc:
            evaluate(100, [{"tier": "silver", "min_points": 100}])
        assert exc.value.code == "INVALID_TIER_CONFIG"

    def test_parse_keeps_thresholds(self):
        table = parse_table([TierThreshold("bronze", 0), {"tier": "silver", "min_points": 200, "benefits": ["Wifi"]}])

        assert table[1] == TierThreshold("silver", 200, 0, ("Wifi",))


class TestTierHelpers:

    def test_tier_rank(self):
        assert tier_rank("bronze") < tier_rank("silver") < tier_rank("gold") < tier_rank("platinum")

    def test_unknown_tier_rank(self):
        with pytest.raises(LedgermanError) as exc:
            tier_rank("diamond")
        assert exc.value.code == "INVALID_TIER"

    def test_threshold_for(self):
        assert threshold_for("gold", DEFAULT_TIER_TABLE).discount_percentage == 15
        assert threshold_for("silver", [{"tier": "bronze", "min_points": 0}]) is None
