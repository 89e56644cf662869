"""Small helpers shared by the ledger modules."""

import calendar
from datetime import datetime


def add_months(value: datetime, months: int) -> datetime:
    """Shift a datetime by calendar months, clamping the day to the month end."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def normalize_email(email: str | None) -> str:
    """Lowercase and strip an email; empty string when missing."""
    return (email or "").strip().lower()
