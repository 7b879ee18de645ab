"""Cadence model — billing interval lengths and monthly-equivalent costs."""

from __future__ import annotations

_INTERVAL_DAYS = {
    "weekly": 7,
    "monthly": 30,
    "yearly": 365,
}

DEFAULT_INTERVAL_DAYS = 30


def interval_days(cadence: str, custom_days: int | None = None) -> int:
    """Days between two renewals for a cadence.

    Custom cadences use ``custom_days``; a missing or non-positive value falls
    back to the monthly interval. Unknown cadences are treated as monthly.
    """
    if cadence == "custom":
        if custom_days and custom_days > 0:
            return int(custom_days)
        return DEFAULT_INTERVAL_DAYS
    return _INTERVAL_DAYS.get(cadence, DEFAULT_INTERVAL_DAYS)


def monthly_equivalent(amount: float, cadence: str, custom_days: int | None = None) -> float:
    """Normalize one payment of ``amount`` to a per-month cost."""
    if cadence == "weekly":
        return amount * 52 / 12
    if cadence == "yearly":
        return amount / 12
    if cadence == "custom":
        if custom_days and custom_days > 0:
            return amount * 365 / (custom_days * 12)
        return amount
    return amount  # monthly
