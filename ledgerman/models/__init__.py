"""Ledgerman models."""

from ledgerman.models.group import PropertyGroup, GroupedProperty
from ledgerman.models.membership import LoyaltyMembership, LoyaltyTier
from ledgerman.models.entry import PointsEntry, EntryType, AdjustmentKind, AdjustmentScope
from ledgerman.models.redemption import Redemption, RedemptionStatus
from ledgerman.models.tier_change import TierChange
from ledgerman.models.linked_account import LinkedAccount
from ledgerman.models.program import LoyaltyProgram

__all__ = [
    # Groups
    "PropertyGroup",
    "GroupedProperty",
    # Membership aggregate
    "LoyaltyMembership",
    "LoyaltyTier",
    "PointsEntry",
    "EntryType",
    "AdjustmentKind",
    "AdjustmentScope",
    "Redemption",
    "RedemptionStatus",
    "TierChange",
    "LinkedAccount",
    # Program rules
    "LoyaltyProgram",
]
