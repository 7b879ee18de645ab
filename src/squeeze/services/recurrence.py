"""Renewal occurrence math.

A subscription's renewals form an arithmetic sequence of dates: the stored
anchor plus any whole number (positive or negative) of intervals. Everything
here jumps straight to the relevant member of that sequence with integer
division, so windows decades away from the anchor cost the same as nearby ones.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

from dateutil.relativedelta import relativedelta


def parse_day(value: str | date | datetime) -> date:
    """Truncate an ISO date/datetime string (or object) to a calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


def parse_moment(value: str | datetime) -> datetime:
    """Parse an ISO timestamp into a naive local datetime. A trailing ``Z`` is accepted."""
    if isinstance(value, datetime):
        moment = value
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        moment = datetime.fromisoformat(text)
    if moment.tzinfo is not None:
        moment = moment.astimezone().replace(tzinfo=None)
    return moment


def first_on_or_after(anchor: date, interval_days: int, start: date) -> date:
    """The earliest member of the renewal sequence that is not before ``start``."""
    delta = (start - anchor).days
    steps = -(-delta // interval_days)  # ceil division, valid for negative deltas too
    return anchor + timedelta(days=steps * interval_days)


def occurrences_in_window(
    anchor: date,
    interval_days: int,
    window_start: date,
    window_end: date,
) -> int:
    """Count renewals falling in the half-open window ``[window_start, window_end)``."""
    if interval_days <= 0 or window_end <= window_start:
        return 0
    first = first_on_or_after(anchor, interval_days, window_start)
    if first >= window_end:
        return 0
    return ((window_end - first).days - 1) // interval_days + 1


def occurrence_dates(
    anchor: date,
    interval_days: int,
    window_start: date,
    window_end: date,
) -> list[date]:
    """The actual renewal dates inside ``[window_start, window_end)``."""
    count = occurrences_in_window(anchor, interval_days, window_start, window_end)
    if count == 0:
        return []
    first = first_on_or_after(anchor, interval_days, window_start)
    return [first + timedelta(days=i * interval_days) for i in range(count)]


def advance_date(anchor: date, interval_days: int, today: date) -> date:
    """Roll a past anchor forward by whole intervals until it is today or later."""
    if interval_days <= 0 or anchor >= today:
        return anchor
    return first_on_or_after(anchor, interval_days, today)


# ── Calendar months ───────────────────────────────────────────────


def month_start(day: date) -> date:
    return day.replace(day=1)


def shift_month(day: date, months: int) -> date:
    """First day of the month ``months`` away from ``day``'s month."""
    return month_start(day) + relativedelta(months=months)


def month_window(day: date) -> tuple[date, date]:
    """``[first of month, first of next month)`` for the month containing ``day``."""
    start = month_start(day)
    return start, start + relativedelta(months=1)


def month_key(day: date) -> str:
    return day.strftime("%Y-%m")


def years_before(moment: datetime, years: int = 1) -> datetime:
    return moment - relativedelta(years=years)
