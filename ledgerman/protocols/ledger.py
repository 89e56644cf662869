"""Loyalty ledger protocols."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class MembershipBalance:
    """Balances and tier of a membership after an operation."""

    membership_id: int
    guest_code: str
    property_code: str
    group_code: str | None
    tier: str
    tier_points: int
    available_points: int
    total_points: int
    lifetime_points_earned: int
    lifetime_points_redeemed: int
    lifetime_spending: Decimal
    total_nights_stayed: int
    points_to_next_tier: int
    next_tier: str | None
    progress_percentage: float
    last_activity_at: datetime | None
    is_active: bool


@dataclass(frozen=True)
class LedgerResult:
    """Outcome of a points mutation."""

    balance: MembershipBalance
    points: int = 0
    tier_upgraded: bool = False


@dataclass(frozen=True)
class TierDiscount:
    """Tier discount applied to an amount."""

    tier: str | None
    percentage: int
    discount: Decimal
    final_amount: Decimal


@runtime_checkable
class LoyaltyBackend(Protocol):
    """
    Protocol for the loyalty ledger, as seen by booking, rewards and admin flows.

    Implemented by ledgerman.service.LoyaltyService.
    """

    def earn_points(
        self,
        key,
        points: int,
        description: str,
        source_ref: str = "",
        expiration_months: int | None = None,
    ) -> LedgerResult:
        ...

    def redeem_points(
        self,
        key,
        points: int,
        value,
        reward_name: str,
        reward_ref: str = "",
        source_ref: str = "",
    ) -> LedgerResult:
        ...

    def adjust_points(self, key, delta: int, reason: str, note: str = "") -> LedgerResult:
        ...

    def adjust_redeemable_points(self, key, delta: int, reason: str, note: str = "") -> LedgerResult:
        ...

    def expire_points(self, key, now: datetime | None = None) -> int:
        ...

    def get_balance(self, key) -> MembershipBalance | None:
        ...
