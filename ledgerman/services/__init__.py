"""Ledgerman services.

- ledgerman.services.program: per-property program rules (tier table,
  expiration window, earning rates, tier discounts)
"""

from ledgerman.services import program

__all__ = ["program"]
