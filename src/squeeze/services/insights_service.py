"""Spending insights — totals, month-by-month projections, trends and savings.

The module-level functions are pure: they take a snapshot of subscriptions
(and usage checks), a reference moment and the app settings, and never touch
the database. ``InsightsService`` loads the snapshot and calls them.

Totals are integer cents per currency; different currencies are never mixed.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from typing import Any, Iterable

from pydantic import BaseModel, Field

from squeeze.core.database import DatabaseConnection
from squeeze.models.settings import AppSettings, SettingsRepository
from squeeze.models.subscription import BILLING_STATUSES, STATUSES, Subscription, SubscriptionRepository
from squeeze.models.usage import UsageCheck, UsageCheckRepository
from squeeze.services.cadence import interval_days
from squeeze.services.recurrence import (
    month_key,
    month_start,
    occurrences_in_window,
    parse_day,
    parse_moment,
    shift_month,
    years_before,
)


class MonthItem(BaseModel):
    subscription_id: str
    name: str
    amount_cents: int
    currency: str
    renewals: int


class MonthBucket(BaseModel):
    """Billing that actually lands in one calendar month."""

    month: str  # YYYY-MM
    label: str
    projected: bool
    totals_cents: dict[str, int] = Field(default_factory=dict)
    items: list[MonthItem] = Field(default_factory=list)

    def total_for(self, currency: str) -> int:
        return self.totals_cents.get(currency, 0)


class TrendReport(BaseModel):
    currency: str
    months: list[MonthBucket]
    average_cents: int = 0
    change_percent: int = 0


class YearlyProjection(BaseModel):
    currency: str
    yearly_total_cents: int = 0
    scheduled_total_cents: int = 0
    months: list[MonthBucket]


class YearOverYear(BaseModel):
    currency: str
    current_monthly_cents: int = 0
    last_year_monthly_cents: int = 0
    monthly_change_cents: int = 0
    current_annual_cents: int = 0
    last_year_annual_cents: int = 0
    annual_change_cents: int = 0
    change_percent: int = 0
    new_this_year: list[Subscription] = Field(default_factory=list)
    removed_this_year: list[Subscription] = Field(default_factory=list)


class SavingsCandidate(BaseModel):
    subscription: Subscription
    monthly_cents: int
    last_checked_month: str


class SavingsReport(BaseModel):
    candidates: list[SavingsCandidate] = Field(default_factory=list)
    monthly_savings_cents: dict[str, int] = Field(default_factory=dict)
    yearly_savings_cents: dict[str, int] = Field(default_factory=dict)


# ── Pure aggregation ──────────────────────────────────────────────


def counted(sub: Subscription, settings: AppSettings) -> bool:
    """Whether a subscription contributes to spending totals."""
    return sub.status == "active" or (sub.status == "trial" and settings.include_trials_in_total)


def _round_buckets(totals: dict[str, float]) -> dict[str, int]:
    return {currency: round(value) for currency, value in totals.items()}


def monthly_totals(subs: Iterable[Subscription], settings: AppSettings) -> dict[str, int]:
    """Monthly-equivalent spend per currency."""
    totals: dict[str, float] = defaultdict(float)
    for sub in subs:
        if counted(sub, settings):
            totals[sub.currency] += sub.monthly_equivalent_cents
    return _round_buckets(totals)


def month_breakdown(
    subs: Iterable[Subscription],
    now: date,
    settings: AppSettings,
    start_offset: int = 0,
    months: int = 12,
) -> list[MonthBucket]:
    """Per-month billing for ``months`` consecutive months starting ``start_offset`` from now.

    Each bucket sums ``amount × renewals`` for the renewals that fall inside it,
    so a yearly plan shows its full price once and nothing in other months.
    """
    qualifying = [s for s in subs if counted(s, settings)]
    current = month_start(parse_day(now))
    buckets: list[MonthBucket] = []

    for offset in range(start_offset, start_offset + months):
        start = shift_month(current, offset)
        end = shift_month(current, offset + 1)
        items: list[MonthItem] = []
        totals: dict[str, int] = defaultdict(int)
        for sub in qualifying:
            renewals = occurrences_in_window(
                parse_day(sub.next_renewal_date),
                interval_days(sub.cadence, sub.custom_days),
                start,
                end,
            )
            if renewals:
                amount = sub.amount_cents * renewals
                items.append(MonthItem(
                    subscription_id=sub.id,
                    name=sub.name,
                    amount_cents=amount,
                    currency=sub.currency,
                    renewals=renewals,
                ))
                totals[sub.currency] += amount
        buckets.append(MonthBucket(
            month=month_key(start),
            label=start.strftime("%b %Y"),
            projected=start > current,
            totals_cents=dict(totals),
            items=items,
        ))
    return buckets


def percent_change(previous: float, latest: float) -> int:
    """Rounded percentage change; 0 when there is no base to compare with."""
    if not previous:
        return 0
    return round((latest - previous) / previous * 100)


def spending_trends(
    subs: Iterable[Subscription],
    now: date,
    settings: AppSettings,
    currency: str | None = None,
) -> TrendReport:
    """Three months back, this month and two ahead, with average and month-over-month change."""
    currency = currency or settings.default_currency
    buckets = month_breakdown(subs, now, settings, start_offset=-3, months=6)
    past = [b.total_for(currency) for b in buckets if not b.projected]

    average = round(sum(past) / len(past)) if past else 0
    change = percent_change(past[-2], past[-1]) if len(past) >= 2 else 0
    return TrendReport(currency=currency, months=buckets, average_cents=average, change_percent=change)


def yearly_projection(
    subs: Iterable[Subscription],
    now: date,
    settings: AppSettings,
    currency: str | None = None,
) -> YearlyProjection:
    """Twelve months forward from the current month."""
    subs = list(subs)
    currency = currency or settings.default_currency
    buckets = month_breakdown(subs, now, settings, start_offset=0, months=12)
    yearly = sum(
        s.monthly_equivalent_cents * 12
        for s in subs
        if counted(s, settings) and s.currency == currency
    )
    return YearlyProjection(
        currency=currency,
        yearly_total_cents=round(yearly),
        scheduled_total_cents=sum(b.total_for(currency) for b in buckets),
        months=buckets,
    )


def year_over_year(
    subs: Iterable[Subscription],
    now: datetime,
    settings: AppSettings,
    currency: str | None = None,
) -> YearOverYear:
    """Compare today's monthly spend with an estimate of a year ago.

    Anything created at least a year ago is assumed to have been billing back
    then, whatever its status is now.
    """
    subs = list(subs)
    currency = currency or settings.default_currency
    one_year_ago = years_before(now, 1)

    existed = [s for s in subs if parse_moment(s.created_at) <= one_year_ago and s.status in STATUSES]
    new = [s for s in subs if parse_moment(s.created_at) > one_year_ago and s.status in BILLING_STATUSES]
    removed = [s for s in existed if s.status in ("cancelled", "paused")]

    current = sum(s.monthly_equivalent_cents for s in subs if counted(s, settings) and s.currency == currency)
    last_year = sum(s.monthly_equivalent_cents for s in existed if s.currency == currency)
    change = current - last_year

    return YearOverYear(
        currency=currency,
        current_monthly_cents=round(current),
        last_year_monthly_cents=round(last_year),
        monthly_change_cents=round(change),
        current_annual_cents=round(current * 12),
        last_year_annual_cents=round(last_year * 12),
        annual_change_cents=round(change * 12),
        change_percent=percent_change(last_year, current),
        new_this_year=new,
        removed_this_year=removed,
    )


def latest_checks(checks: Iterable[UsageCheck]) -> dict[str, UsageCheck]:
    """Most recent usage check per subscription (latest month, then latest timestamp)."""
    latest: dict[str, UsageCheck] = {}
    for check in checks:
        seen = latest.get(check.subscription_id)
        if seen is None or (check.month, check.timestamp) >= (seen.month, seen.timestamp):
            latest[check.subscription_id] = check
    return latest


def savings_candidates(subs: Iterable[Subscription], checks: Iterable[UsageCheck]) -> SavingsReport:
    """Billing subscriptions whose latest usage check says they went unused."""
    latest = latest_checks(checks)
    report = SavingsReport()
    monthly: dict[str, float] = defaultdict(float)

    for sub in subs:
        check = latest.get(sub.id)
        if sub.status not in BILLING_STATUSES or check is None or check.used != "no":
            continue
        report.candidates.append(SavingsCandidate(
            subscription=sub,
            monthly_cents=sub.monthly_cost_cents,
            last_checked_month=check.month,
        ))
        monthly[sub.currency] += sub.monthly_equivalent_cents

    report.monthly_savings_cents = _round_buckets(monthly)
    report.yearly_savings_cents = {c: round(v * 12) for c, v in monthly.items()}
    return report


def top_by_cost(subs: Iterable[Subscription], n: int = 5) -> list[Subscription]:
    """Most expensive billing subscriptions by monthly equivalent; ties keep insertion order."""
    billing = [s for s in subs if s.status in BILLING_STATUSES]
    return sorted(billing, key=lambda s: s.monthly_equivalent_cents, reverse=True)[:n]


def pending_usage_checks(
    subs: Iterable[Subscription],
    checks: Iterable[UsageCheck],
    month: str,
) -> list[Subscription]:
    """Billing subscriptions nobody has answered the usage question for this month."""
    answered = {c.subscription_id for c in checks if c.month == month}
    return [s for s in subs if s.status in BILLING_STATUSES and s.id not in answered]


# ── Service ───────────────────────────────────────────────────────


class InsightsService:
    """Loads a snapshot from the store and runs the insight calculations on it."""

    def __init__(self, db: DatabaseConnection) -> None:
        self.db = db
        self.subscriptions = SubscriptionRepository(db)
        self.usage_checks = UsageCheckRepository(db)
        self.settings = SettingsRepository(db)

    def _subs(self) -> list[Subscription]:
        return self.subscriptions.list_all()  # type: ignore[return-value]

    def get_monthly_totals(self) -> dict[str, int]:
        return monthly_totals(self._subs(), self.settings.get())

    def get_trends(self, now: date | None = None, currency: str | None = None) -> TrendReport:
        return spending_trends(self._subs(), now or date.today(), self.settings.get(), currency)

    def get_projection(self, now: date | None = None, currency: str | None = None) -> YearlyProjection:
        return yearly_projection(self._subs(), now or date.today(), self.settings.get(), currency)

    def get_year_over_year(self, now: datetime | None = None, currency: str | None = None) -> YearOverYear:
        return year_over_year(self._subs(), now or datetime.now(), self.settings.get(), currency)

    def get_savings(self) -> SavingsReport:
        return savings_candidates(self._subs(), self.usage_checks.list_all())  # type: ignore[arg-type]

    def get_top(self, n: int = 5) -> list[Subscription]:
        return top_by_cost(self._subs(), n)

    def get_pending_checks(self, month: str | None = None) -> list[Subscription]:
        month = month or month_key(date.today())
        return pending_usage_checks(self._subs(), self.usage_checks.list_all(), month)  # type: ignore[arg-type]

    def get_summary(self, today: date | None = None) -> dict[str, Any]:
        """Headline numbers for the dashboard."""
        from squeeze.services.alert_service import budget_status, upcoming_renewals

        today = today or date.today()
        settings = self.settings.get()
        subs = self._subs()
        totals = monthly_totals(subs, settings)

        by_status: dict[str, int] = {status: 0 for status in STATUSES}
        for s in subs:
            by_status[s.status] = by_status.get(s.status, 0) + 1

        by_category: dict[str, int] = defaultdict(int)
        for s in subs:
            if counted(s, settings) and s.currency == settings.default_currency:
                by_category[s.category] += s.monthly_cost_cents

        budget = budget_status(totals.get(settings.default_currency, 0), settings)
        return {
            "currency": settings.default_currency,
            "total": len(subs),
            "by_status": by_status,
            "monthly_totals_cents": totals,
            "yearly_totals_cents": {c: v * 12 for c, v in totals.items()},
            "by_category": dict(by_category),
            "upcoming_count": len(upcoming_renewals(subs, today)),
            "budget": budget.model_dump() if budget else None,
        }
