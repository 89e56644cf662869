"""Program service — per-property loyalty rules used by the ledger."""

import logging
import math
from decimal import Decimal

from ledgerman import tiers
from ledgerman.conf import ledgerman_settings
from ledgerman.ledger import default_tier_table
from ledgerman.models import LoyaltyProgram

logger = logging.getLogger(__name__)


def get(property_code: str) -> LoyaltyProgram | None:
    """Active program of a property."""
    try:
        return LoyaltyProgram.objects.get(property_code=property_code, is_active=True)
    except LoyaltyProgram.DoesNotExist:
        return None


def tier_table(property_code: str):
    """
    Validated tier table of a property.

    Falls back to the LEDGERMAN TIER_TABLE setting / built-in table when the
    property has no active program or the program leaves it empty.

    Raises:
        LedgermanError: INVALID_TIER_CONFIG if the configured table is malformed
    """
    program = get(property_code)
    if program and program.tier_configuration:
        return tiers.parse_table(program.tier_configuration)
    return tiers.parse_table(default_tier_table())


def expiration_months(property_code: str) -> int:
    """Lifetime of points earned at a property."""
    program = get(property_code)
    if program:
        return program.expiration_months
    return ledgerman_settings.DEFAULT_EXPIRATION_MONTHS


def points_for_spend(program: LoyaltyProgram, amount: Decimal, category: str = "general") -> int:
    """
    Points for a completed purchase.

    floor(amount x points_per_currency) is multiplied by the category
    multiplier and floored again.
    """
    amount = Decimal(str(amount))
    if amount <= 0:
        return 0
    base = math.floor(amount * program.points_per_currency)
    return math.floor(base * program.multiplier_for(category))


def points_for_nights(program: LoyaltyProgram, nights: int) -> int:
    """Points for nights stayed."""
    if nights <= 0:
        return 0
    return nights * program.points_per_night


def discount_percentage(property_code: str, tier: str) -> int:
    """Discount percentage granted to a tier at a property (0 if not configured)."""
    row = tiers.threshold_for(tier, tier_table(property_code))
    return row.discount_percentage if row else 0
