"""Alert service — budget warnings, expiring trials, upcoming renewals, reminders."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable

from pydantic import BaseModel

from squeeze.core.database import DatabaseConnection
from squeeze.core.log import get_logger
from squeeze.models.event import EventLog, EventRepository, PriceChangePayload, ReminderSentPayload
from squeeze.models.settings import AppSettings, SettingsRepository
from squeeze.models.subscription import DORMANT_STATUSES, Subscription, SubscriptionRepository
from squeeze.services.insights_service import monthly_totals
from squeeze.services.recurrence import parse_day, parse_moment

logger = get_logger(__name__)

UPCOMING_DAYS = 7
PRICE_CHANGE_DAYS = 30


class BudgetStatus(BaseModel):
    limit_cents: int
    spent_cents: int
    percent: int
    level: str  # ok, approaching, exceeded

    @property
    def remaining_cents(self) -> int:
        return self.limit_cents - self.spent_cents


class PriceChange(BaseModel):
    subscription_id: str
    name: str
    currency: str
    from_cents: int
    to_cents: int
    is_increase: bool
    timestamp: str


class Reminder(BaseModel):
    subscription_id: str
    name: str
    amount_cents: int
    currency: str
    renewal_date: str
    days_before: int


def budget_status(monthly_total_cents: int, settings: AppSettings) -> BudgetStatus | None:
    """Compare a monthly total against the configured limit, if there is one."""
    limit = settings.monthly_budget_limit_cents
    if not limit or limit <= 0:
        return None
    ratio = monthly_total_cents / limit * 100
    percent = round(ratio)
    if ratio >= 100:
        level = "exceeded"
    elif ratio >= settings.budget_alert_threshold:
        level = "approaching"
    else:
        level = "ok"
    return BudgetStatus(limit_cents=limit, spent_cents=monthly_total_cents, percent=percent, level=level)


def _renewing_within(subs: Iterable[Subscription], today: date, within_days: int) -> list[Subscription]:
    hits = [s for s in subs if 0 <= s.days_until_renewal(today) <= within_days]
    return sorted(hits, key=lambda s: s.next_renewal_date)


def expiring_trials(subs: Iterable[Subscription], today: date, within_days: int) -> list[Subscription]:
    """Trials that convert to paid within ``within_days`` days, soonest first."""
    return _renewing_within((s for s in subs if s.status == "trial"), today, within_days)


def upcoming_renewals(
    subs: Iterable[Subscription],
    today: date,
    within_days: int = UPCOMING_DAYS,
) -> list[Subscription]:
    """Live subscriptions renewing within ``within_days`` days, soonest first."""
    return _renewing_within((s for s in subs if s.status not in DORMANT_STATUSES), today, within_days)


def recent_price_changes(
    events: Iterable[EventLog],
    subs: Iterable[Subscription],
    now: datetime,
    days: int = PRICE_CHANGE_DAYS,
) -> list[PriceChange]:
    """Latest price change per subscription inside the window, newest first.

    Events for subscriptions that no longer exist are ignored.
    """
    by_id = {s.id: s for s in subs}
    cutoff = now - timedelta(days=days)
    latest: dict[str, EventLog] = {}
    for event in events:
        if event.event_type != "price_change" or event.subscription_id not in by_id:
            continue
        if parse_moment(event.timestamp) < cutoff:
            continue
        seen = latest.get(event.subscription_id)
        if seen is None or event.timestamp >= seen.timestamp:
            latest[event.subscription_id] = event

    changes = []
    for sub_id, event in latest.items():
        payload = event.payload
        if not isinstance(payload, PriceChangePayload):
            continue
        sub = by_id[sub_id]
        changes.append(PriceChange(
            subscription_id=sub_id,
            name=sub.name,
            currency=sub.currency,
            from_cents=payload.from_cents,
            to_cents=payload.to_cents,
            is_increase=payload.is_increase,
            timestamp=event.timestamp,
        ))
    return sorted(changes, key=lambda c: c.timestamp, reverse=True)


def due_reminders(
    subs: Iterable[Subscription],
    events: Iterable[EventLog],
    today: date,
) -> list[Reminder]:
    """Reminders that should go out today and have not been sent for this renewal yet."""
    sent = set()
    for event in events:
        if event.event_type == "reminder_sent":
            payload = event.payload
            if isinstance(payload, ReminderSentPayload):
                sent.add((event.subscription_id, payload.renewal_date))

    today = parse_day(today)
    reminders = []
    for sub in subs:
        if not sub.reminder_enabled or sub.status in DORMANT_STATUSES:
            continue
        if sub.days_until_renewal(today) != sub.reminder_days_before:
            continue
        if (sub.id, sub.next_renewal_date) in sent:
            continue
        reminders.append(Reminder(
            subscription_id=sub.id,
            name=sub.name,
            amount_cents=sub.amount_cents,
            currency=sub.currency,
            renewal_date=sub.next_renewal_date,
            days_before=sub.reminder_days_before,
        ))
    return reminders


class AlertService:
    """Reads the store and reports anything that needs the user's attention."""

    def __init__(self, db: DatabaseConnection) -> None:
        self.db = db
        self.subscriptions = SubscriptionRepository(db)
        self.events = EventRepository(db)
        self.settings = SettingsRepository(db)

    def get_budget_status(self) -> BudgetStatus | None:
        settings = self.settings.get()
        totals = monthly_totals(self.subscriptions.list_all(), settings)  # type: ignore[arg-type]
        return budget_status(totals.get(settings.default_currency, 0), settings)

    def get_expiring_trials(self, today: date | None = None) -> list[Subscription]:
        settings = self.settings.get()
        return expiring_trials(
            self.subscriptions.find_by_status("trial"),
            today or date.today(),
            settings.trial_expiration_days,
        )

    def get_upcoming(self, today: date | None = None, within_days: int = UPCOMING_DAYS) -> list[Subscription]:
        return upcoming_renewals(self.subscriptions.list_all(), today or date.today(), within_days)  # type: ignore[arg-type]

    def get_price_changes(self, now: datetime | None = None, days: int = PRICE_CHANGE_DAYS) -> list[PriceChange]:
        return recent_price_changes(
            self.events.find_by_type("price_change"),
            self.subscriptions.list_all(),  # type: ignore[arg-type]
            now or datetime.now(),
            days,
        )

    def get_due_reminders(self, today: date | None = None) -> list[Reminder]:
        return due_reminders(
            self.subscriptions.list_all(),  # type: ignore[arg-type]
            self.events.find_by_type("reminder_sent"),
            today or date.today(),
        )

    def send_due_reminders(self, today: date | None = None) -> list[Reminder]:
        """Record a ``reminder_sent`` event for every due reminder and return them."""
        reminders = self.get_due_reminders(today)
        with self.db.transaction():
            for r in reminders:
                self.events.append(
                    r.subscription_id,
                    ReminderSentPayload(renewal_date=r.renewal_date, days_before=r.days_before),
                )
        for r in reminders:
            logger.info("Reminder sent for %s (renews %s)", r.name, r.renewal_date)
        return reminders

    def get_all(self, today: date | None = None) -> dict:
        """Every alert at once, for the dashboard and ``alerts`` command."""
        today = today or date.today()
        return {
            "budget": self.get_budget_status(),
            "expiring_trials": self.get_expiring_trials(today),
            "upcoming": self.get_upcoming(today),
            "price_changes": self.get_price_changes(),
            "reminders": self.get_due_reminders(today),
        }
