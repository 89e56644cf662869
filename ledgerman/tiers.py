"""
Tier policy: maps tier points to a tier and the progress within it.

Pure functions over an ascending tier table. No database access.

Usage:
    from ledgerman.tiers import DEFAULT_TIER_TABLE, evaluate

    status = evaluate(1500, DEFAULT_TIER_TABLE)
    status.tier                 # "silver"
    status.next_tier            # "gold"
    status.points_to_next_tier  # 1500
    status.progress_percentage  # 25.0
"""

from dataclasses import dataclass, field
from typing import Iterable

from ledgerman.exceptions import LedgermanError
from ledgerman.models.membership import LoyaltyTier

TIER_ORDER = [choice.value for choice in LoyaltyTier]


@dataclass(frozen=True)
class TierThreshold:
    """One row of a tier table."""

    tier: str
    min_points: int
    discount_percentage: int = 0
    benefits: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class TierStatus:
    """Tier and progress for a tier-points value."""

    tier: str
    points_to_next_tier: int
    next_tier: str | None
    progress_percentage: float


DEFAULT_TIER_TABLE = (
    TierThreshold(LoyaltyTier.BRONZE.value, 0, 5, ("Priority email support", "Birthday bonus points")),
    TierThreshold(LoyaltyTier.SILVER.value, 1000, 10, ("Free room upgrade (subject to availability)",)),
    TierThreshold(LoyaltyTier.GOLD.value, 3000, 15, ("Late checkout", "Complimentary breakfast")),
    TierThreshold(LoyaltyTier.PLATINUM.value, 6000, 20, ("Personal concierge", "Airport transfer discount")),
)


def tier_rank(tier: str) -> int:
    """Position of a tier in the ordered enum (bronze = 0)."""
    try:
        return TIER_ORDER.index(tier)
    except ValueError:
        raise LedgermanError("INVALID_TIER", tier=tier)


def parse_table(rows: Iterable) -> tuple[TierThreshold, ...]:
    """
    Build a validated tier table.

    Accepts TierThreshold instances or dicts with "tier" and "min_points"
    (optionally "discount_percentage" and "benefits").

    Raises:
        LedgermanError: INVALID_TIER_CONFIG if a row is malformed or the
            table fails validate_table()
    """
    table = []
    for row in rows:
        if isinstance(row, TierThreshold):
            table.append(row)
            continue
        try:
            table.append(
                TierThreshold(
                    tier=row["tier"],
                    min_points=row["min_points"],
                    discount_percentage=row.get("discount_percentage", 0),
                    benefits=tuple(row.get("benefits", ())),
                )
            )
        except (KeyError, TypeError, AttributeError):
            raise LedgermanError("INVALID_TIER_CONFIG", row=row)

    validate_table(table)
    return tuple(table)


def validate_table(table) -> None:
    """
    Check a tier table is usable.

    Rules: non-empty, first threshold is 0, integer thresholds strictly
    ascending, known tier names, tiers unique and in enum order.

    Raises:
        LedgermanError: INVALID_TIER_CONFIG
    """
    if not table:
        raise LedgermanError("INVALID_TIER_CONFIG", message="Tier table is empty")

    previous = None
    for row in table:
        if row.tier not in TIER_ORDER:
            raise LedgermanError("INVALID_TIER_CONFIG", message=f"Unknown tier '{row.tier}'")
        if not isinstance(row.min_points, int) or isinstance(row.min_points, bool):
            raise LedgermanError(
                "INVALID_TIER_CONFIG", message=f"Threshold of '{row.tier}' must be an integer"
            )
        if previous is None:
            if row.min_points != 0:
                raise LedgermanError(
                    "INVALID_TIER_CONFIG", message="Lowest tier must start at 0 points"
                )
        else:
            if row.min_points <= previous.min_points:
                raise LedgermanError(
                    "INVALID_TIER_CONFIG", message="Tier thresholds must be strictly ascending"
                )
            if tier_rank(row.tier) <= tier_rank(previous.tier):
                raise LedgermanError(
                    "INVALID_TIER_CONFIG", message="Tiers must be unique and in ascending order"
                )
        previous = row


def evaluate(tier_points: int, table) -> TierStatus:
    """Highest tier whose threshold is met, with progress towards the next one."""
    table = parse_table(table)
    index = _band_index(tier_points, table)
    return _status(tier_points, table, index)


def progress_for(tier_points: int, table, held_tier: str) -> TierStatus:
    """
    Status in the band of the held tier or the computed one, whichever ranks higher.

    A member kept above their computed tier (demotion disabled, manual
    tier change) sees progress towards the tier above the one they hold.
    Tiers absent from the table are ignored.
    """
    table = parse_table(table)
    index = _band_index(tier_points, table)
    for i, row in enumerate(table):
        if row.tier == held_tier and i > index:
            index = i
    return _status(tier_points, table, index)


def threshold_for(tier: str, table) -> TierThreshold | None:
    """Table row of a tier, if configured."""
    for row in parse_table(table):
        if row.tier == tier:
            return row
    return None


def _band_index(tier_points: int, table) -> int:
    index = 0
    for i, row in enumerate(table):
        if tier_points >= row.min_points:
            index = i
    return index


def _status(tier_points: int, table, index: int) -> TierStatus:
    current = table[index]
    if index == len(table) - 1:
        return TierStatus(
            tier=current.tier,
            points_to_next_tier=0,
            next_tier=None,
            progress_percentage=100.0,
        )

    upcoming = table[index + 1]
    span = upcoming.min_points - current.min_points
    percentage = (tier_points - current.min_points) / span * 100
    return TierStatus(
        tier=current.tier,
        points_to_next_tier=upcoming.min_points - tier_points,
        next_tier=upcoming.tier,
        progress_percentage=round(min(100.0, max(0.0, percentage)), 2),
    )
