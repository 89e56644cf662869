"""
Django Ledgerman - Guest Loyalty Ledger.

Usage:
    from ledgerman import LoyaltyService, MembershipKey, LedgermanError

    key = MembershipKey("G-001", "HOTEL-RIO", guest_email="ana@example.com")
    LoyaltyService.award_for_spend(key, Decimal("250.00"), category="tourism")
    LoyaltyService.redeem_points(key, 500, Decimal("25.00"), "Free breakfast")
    balance = LoyaltyService.get_balance(key)
"""


def __getattr__(name):
    if name == "LoyaltyService":
        from ledgerman.service import LoyaltyService

        return LoyaltyService
    if name == "MembershipKey":
        from ledgerman.store import MembershipKey

        return MembershipKey
    if name == "LedgermanError":
        from ledgerman.exceptions import LedgermanError

        return LedgermanError
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["LoyaltyService", "MembershipKey", "LedgermanError"]
__version__ = "0.1.0"
