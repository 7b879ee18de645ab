"""Tests for the cadence model, occurrence counting and the renewal advancer."""

from datetime import date, datetime, timedelta

import pytest

from squeeze.models.subscription import Subscription
from squeeze.services.cadence import interval_days, monthly_equivalent
from squeeze.services.recurrence import (
    advance_date,
    first_on_or_after,
    month_window,
    occurrence_dates,
    occurrences_in_window,
    parse_moment,
    shift_month,
)
from squeeze.services.renewal import advance


def _sub(**kwargs):
    defaults = {"name": "Test", "amount_cents": 1000, "next_renewal_date": "2024-01-15"}
    defaults.update(kwargs)
    return Subscription(**defaults)


class TestCadence:
    @pytest.mark.parametrize(
        "cadence,custom,expected",
        [("weekly", None, 7), ("monthly", None, 30), ("yearly", None, 365), ("custom", 14, 14)],
    )
    def test_interval_days(self, cadence, custom, expected):
        assert interval_days(cadence, custom) == expected

    @pytest.mark.parametrize("custom", [None, 0, -5])
    def test_invalid_custom_falls_back_to_monthly(self, custom):
        assert interval_days("custom", custom) == 30

    def test_monthly_equivalent_annualizes_consistently(self):
        assert monthly_equivalent(1200, "weekly") * 12 == pytest.approx(1200 * 52)
        assert monthly_equivalent(1200, "yearly") * 12 == pytest.approx(1200)
        assert monthly_equivalent(1200, "monthly") * 12 == pytest.approx(1200 * 12)
        assert monthly_equivalent(1200, "custom", 73) * 12 == pytest.approx(1200 * 365 / 73)

    def test_monthly_equivalent_invalid_custom_is_unchanged(self):
        assert monthly_equivalent(999, "custom", 0) == 999
        assert monthly_equivalent(999, "custom") == 999


class TestOccurrences:
    def test_anchor_inside_month(self):
        assert occurrences_in_window(date(2024, 1, 15), 30, date(2024, 1, 1), date(2024, 2, 1)) == 1

    def test_window_is_half_open(self):
        anchor = date(2024, 3, 1)
        assert occurrences_in_window(anchor, 30, date(2024, 3, 1), date(2024, 3, 2)) == 1
        assert occurrences_in_window(anchor, 30, date(2024, 1, 31), date(2024, 3, 1)) == 1  # Jan 31
        assert occurrences_in_window(anchor, 30, date(2024, 2, 1), date(2024, 3, 1)) == 0

    def test_yearly_anchor_next_year_projects_back(self):
        # The sequence extends backwards, so a year before the anchor still bills
        anchor = date(2025, 6, 10)
        assert occurrences_in_window(anchor, 365, date(2024, 6, 1), date(2024, 7, 1)) == 1
        assert occurrences_in_window(anchor, 365, date(2024, 3, 1), date(2024, 4, 1)) == 0

    def test_yearly_renewal_outside_this_month(self):
        today = date.today()
        start, end = month_window(today)
        anchor = start + timedelta(days=400)  # lands in a different month of the cycle
        assert occurrences_in_window(anchor, 365, start, end) == 0
        assert occurrence_dates(anchor, 365, start, end) == []

    def test_weekly_counts_multiple(self):
        # Every Monday in January 2024: 1, 8, 15, 22, 29
        assert occurrences_in_window(date(2024, 1, 1), 7, date(2024, 1, 1), date(2024, 2, 1)) == 5

    def test_far_windows(self):
        anchor = date(2024, 1, 1)
        assert occurrences_in_window(anchor, 7, date(1924, 1, 1), date(1924, 1, 8)) == 1
        assert occurrences_in_window(anchor, 7, date(2124, 1, 1), date(2124, 1, 8)) == 1

    @pytest.mark.parametrize("interval", [0, -7])
    def test_non_positive_interval(self, interval):
        assert occurrences_in_window(date(2024, 1, 1), interval, date(2024, 1, 1), date(2024, 2, 1)) == 0

    def test_empty_window(self):
        assert occurrences_in_window(date(2024, 1, 1), 7, date(2024, 2, 1), date(2024, 1, 1)) == 0

    @pytest.mark.parametrize("interval", [7, 14, 30, 45, 365])
    def test_window_additive(self, interval):
        anchor = date(2024, 5, 17)
        a, b, c = date(2023, 11, 3), date(2024, 2, 29), date(2025, 1, 12)
        total = occurrences_in_window(anchor, interval, a, c)
        assert total == (
            occurrences_in_window(anchor, interval, a, b) + occurrences_in_window(anchor, interval, b, c)
        )

    def test_occurrence_dates(self):
        dates = occurrence_dates(date(2024, 1, 1), 14, date(2024, 1, 10), date(2024, 2, 10))
        assert dates == [date(2024, 1, 15), date(2024, 1, 29)]

    def test_first_on_or_after_backwards(self):
        assert first_on_or_after(date(2024, 3, 31), 30, date(2024, 1, 2)) == date(2024, 1, 31)


class TestMonths:
    def test_shift_month_crosses_year(self):
        assert shift_month(date(2024, 11, 20), 3) == date(2025, 2, 1)
        assert shift_month(date(2024, 1, 31), -1) == date(2023, 12, 1)

    def test_month_window(self):
        assert month_window(date(2024, 2, 14)) == (date(2024, 2, 1), date(2024, 3, 1))

    def test_parse_moment_accepts_z(self):
        assert parse_moment("2024-01-01T10:00:00") == datetime(2024, 1, 1, 10, 0, 0)
        assert parse_moment("2024-01-01T10:00:00Z").tzinfo is None


class TestAdvance:
    def test_advance_date_catches_up_in_one_step(self):
        today = date(2024, 6, 1)
        anchor = today - timedelta(days=95)
        assert advance_date(anchor, 30, today) == anchor + timedelta(days=120)

    def test_advance_date_lands_on_today(self):
        today = date(2024, 6, 1)
        assert advance_date(today - timedelta(days=60), 30, today) == today

    def test_future_anchor_untouched(self):
        today = date(2024, 6, 1)
        assert advance_date(date(2024, 6, 20), 30, today) == date(2024, 6, 20)

    def test_advance_is_idempotent(self):
        today = date(2024, 6, 1)
        sub = _sub(next_renewal_date=(today - timedelta(days=95)).isoformat())
        once = advance(sub, today)
        assert once is not None
        assert once.next_renewal_date == (today + timedelta(days=25)).isoformat()
        assert advance(once, today) is None

    @pytest.mark.parametrize("status", ["paused", "cancelled"])
    def test_dormant_subscriptions_never_advance(self, status):
        sub = _sub(status=status, next_renewal_date="2020-01-01")
        assert advance(sub, date(2024, 6, 1)) is None

    def test_trial_advances(self):
        sub = _sub(status="trial", cadence="weekly", next_renewal_date="2024-05-30")
        new = advance(sub, date(2024, 6, 1))
        assert new.next_renewal_date == "2024-06-06"
        assert sub.next_renewal_date == "2024-05-30"
