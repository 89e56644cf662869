"""Ledgerman exceptions."""


class LedgermanError(Exception):
    """
    Structured exception for loyalty ledger operations.

    Carries a stable ``code`` for callers to branch on, a human message
    (defaulted per code) and arbitrary context ``data``.

    Usage:
        try:
            LoyaltyService.redeem_points(key, 500, value=5, reward_name="Spa")
        except LedgermanError as e:
            if e.code == "INSUFFICIENT_POINTS":
                show_balance(e.data["available"])
    """

    _default_messages = {
        "INVALID_AMOUNT": "Points amount must be positive",
        "INSUFFICIENT_POINTS": "Insufficient points for redemption",
        "DUPLICATE_MEMBERSHIP": "Membership already exists",
        "CONCURRENCY_CONFLICT": "Membership was modified concurrently, retry later",
        "INVALID_TIER_CONFIG": "Invalid tier configuration",
        "INVALID_TIER": "Unknown loyalty tier",
        "INVALID_REASON": "A reason is required",
        "MEMBERSHIP_NOT_FOUND": "Loyalty membership not found",
        "MEMBERSHIP_INACTIVE": "Loyalty membership is inactive",
        "NOT_GROUP_MEMBERSHIP": "Account linking requires a group membership",
        "PROPERTY_NOT_IN_GROUP": "Property does not belong to the membership group",
        "ACCOUNT_ALREADY_LINKED": "Account is already linked to another membership of the group",
    }

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(f"[{code}] {self.message}")

    def as_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "data": self.data}
