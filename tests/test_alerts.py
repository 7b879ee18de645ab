"""Tests for budget, trial, renewal and reminder alerts."""

import tempfile
from datetime import date, datetime, timedelta
from pathlib import Path

import pytest

from squeeze.core.database import DatabaseConnection
from squeeze.core.migrations import initialize_database
from squeeze.models.event import EventLog, PriceChangePayload
from squeeze.models.settings import AppSettings
from squeeze.models.subscription import Subscription
from squeeze.services.alert_service import (
    AlertService,
    budget_status,
    expiring_trials,
    recent_price_changes,
    upcoming_renewals,
)
from squeeze.services.subscription_service import SubscriptionService

TODAY = date(2024, 6, 1)


@pytest.fixture
def db():
    with tempfile.TemporaryDirectory() as d:
        conn = DatabaseConnection(db_path=Path(d) / "test.db")
        conn.connect()
        initialize_database(conn)
        yield conn
        conn.close()


def _sub(name="Test", days=3, **kwargs):
    return Subscription(
        name=name,
        amount_cents=kwargs.pop("amount_cents", 1000),
        next_renewal_date=(TODAY + timedelta(days=days)).isoformat(),
        **kwargs,
    )


class TestBudget:
    def test_no_limit(self):
        assert budget_status(5000, AppSettings()) is None
        assert budget_status(5000, AppSettings(monthly_budget_limit_cents=0)) is None

    @pytest.mark.parametrize(
        "spent,level,percent",
        [(5000, "ok", 50), (8000, "approaching", 80), (9999, "approaching", 100), (10000, "exceeded", 100), (15000, "exceeded", 150)],
    )
    def test_levels(self, spent, level, percent):
        status = budget_status(spent, AppSettings(monthly_budget_limit_cents=10000))
        assert status.level == level
        assert status.percent == percent
        assert status.remaining_cents == 10000 - spent

    def test_custom_threshold(self):
        settings = AppSettings(monthly_budget_limit_cents=10000, budget_alert_threshold=50)
        assert budget_status(5000, settings).level == "approaching"


class TestRenewalWindows:
    def test_expiring_trials(self):
        subs = [
            _sub("Soon", days=2, status="trial"),
            _sub("Today", days=0, status="trial"),
            _sub("Later", days=20, status="trial"),
            _sub("Paid", days=1),
            _sub("Lapsed", days=-1, status="trial"),
        ]
        assert [s.name for s in expiring_trials(subs, TODAY, 7)] == ["Today", "Soon"]

    def test_upcoming_renewals(self):
        subs = [
            _sub("Week", days=7),
            _sub("Tomorrow", days=1, status="trial"),
            _sub("Paused", days=2, status="paused"),
            _sub("Cancelled", days=2, status="cancelled"),
            _sub("Eight", days=8),
        ]
        assert [s.name for s in upcoming_renewals(subs, TODAY)] == ["Tomorrow", "Week"]
        assert [s.name for s in upcoming_renewals(subs, TODAY, within_days=30)] == ["Tomorrow", "Week", "Eight"]


class TestPriceChanges:
    def _event(self, sub_id, from_cents, to_cents, when):
        event = EventLog.build(sub_id, PriceChangePayload(from_cents=from_cents, to_cents=to_cents))
        return event.model_copy(update={"timestamp": when.isoformat()})

    def test_latest_change_in_window(self):
        now = datetime(2024, 6, 1, 12, 0)
        a, b = _sub("A"), _sub("B")
        events = [
            self._event(a.id, 900, 1000, now - timedelta(days=20)),
            self._event(a.id, 1000, 1100, now - timedelta(days=2)),
            self._event(b.id, 1500, 1200, now - timedelta(days=10)),
            self._event(b.id, 1000, 1500, now - timedelta(days=60)),
            self._event("deleted", 100, 200, now - timedelta(days=1)),
        ]
        changes = recent_price_changes(events, [a, b], now)
        assert [(c.name, c.to_cents) for c in changes] == [("A", 1100), ("B", 1200)]
        assert changes[0].is_increase
        assert not changes[1].is_increase

    def test_price_change_via_service(self, db):
        svc = SubscriptionService(db)
        sub = svc.add_subscription("Netflix", 1549, "2024-07-01")
        svc.update_subscription(sub.id, amount_cents=1649)
        changes = AlertService(db).get_price_changes()
        assert len(changes) == 1
        assert changes[0].from_cents == 1549


class TestReminders:
    def test_due_reminder_sent_once(self, db):
        svc = SubscriptionService(db)
        due = svc.add_subscription("Due", 1000, TODAY + timedelta(days=3), reminder_days_before=3)
        svc.add_subscription("NotYet", 1000, TODAY + timedelta(days=5), reminder_days_before=3)
        svc.add_subscription("Muted", 1000, TODAY + timedelta(days=3), reminder_enabled=False)
        svc.add_subscription("Paused", 1000, TODAY + timedelta(days=3), status="paused")

        alerts = AlertService(db)
        reminders = alerts.get_due_reminders(TODAY)
        assert [r.name for r in reminders] == ["Due"]

        sent = alerts.send_due_reminders(TODAY)
        assert [r.subscription_id for r in sent] == [due.id]
        assert svc.get_events(due.id)[-1].event_type == "reminder_sent"
        assert alerts.get_due_reminders(TODAY) == []
        assert alerts.send_due_reminders(TODAY) == []

    def test_new_renewal_gets_new_reminder(self, db):
        svc = SubscriptionService(db)
        sub = svc.add_subscription("Weekly", 500, TODAY + timedelta(days=1), cadence="weekly", reminder_days_before=1)
        alerts = AlertService(db)
        alerts.send_due_reminders(TODAY)

        svc.update_subscription(sub.id, next_renewal_date=TODAY + timedelta(days=8))
        assert [r.name for r in alerts.get_due_reminders(TODAY + timedelta(days=7))] == ["Weekly"]


class TestAlertService:
    def test_get_all(self, db):
        svc = SubscriptionService(db)
        svc.add_subscription("Trial", 999, TODAY + timedelta(days=2), status="trial")
        svc.add_subscription("Gym", 6000, TODAY + timedelta(days=5))
        svc.settings.update(monthly_budget_limit_cents=5000)

        result = AlertService(db).get_all(TODAY)
        assert result["budget"].level == "exceeded"
        assert [s.name for s in result["expiring_trials"]] == ["Trial"]
        assert [s.name for s in result["upcoming"]] == ["Trial", "Gym"]
        assert result["price_changes"] == []
