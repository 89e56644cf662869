"""
Ledgerman configuration.

Usage in settings.py:
    LEDGERMAN = {
        "DEFAULT_EXPIRATION_MONTHS": 12,
        "ALLOW_DEMOTION": False,
        "MAX_CONCURRENCY_RETRIES": 3,
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class LedgermanSettings:
    """Ledgerman configuration settings."""

    # Lifetime of an earn lot when the property has no program
    DEFAULT_EXPIRATION_MONTHS: int = 12

    # Whether recompute_tier may move a member to a lower tier
    ALLOW_DEMOTION: bool = False

    # Optimistic locking attempts before CONCURRENCY_CONFLICT
    MAX_CONCURRENCY_RETRIES: int = 3

    # Fallback tier table (list of {"tier", "min_points", ...}); None = built-in
    TIER_TABLE: list | None = None


def get_ledgerman_settings() -> LedgermanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "LEDGERMAN", {})
    return LedgermanSettings(**user_settings)


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_ledgerman_settings(), name)


ledgerman_settings = _LazySettings()
