"""Tests for subscription management and the change log."""

import tempfile
from datetime import date, timedelta
from pathlib import Path

import pytest

from squeeze.core.database import DatabaseConnection
from squeeze.core.exceptions import NotFoundError, ValidationError
from squeeze.core.migrations import initialize_database
from squeeze.models.event import PriceChangePayload, StatusChangePayload
from squeeze.services.payment_method_service import PaymentMethodService
from squeeze.services.settings_service import SettingsService
from squeeze.services.subscription_service import SubscriptionService


@pytest.fixture
def db():
    with tempfile.TemporaryDirectory() as d:
        conn = DatabaseConnection(db_path=Path(d) / "test.db")
        conn.connect()
        initialize_database(conn)
        yield conn
        conn.close()


@pytest.fixture
def svc(db):
    return SubscriptionService(db)


def _add(svc, **kwargs):
    defaults = {"name": "Netflix", "amount_cents": 1649, "next_renewal_date": "2024-07-01"}
    defaults.update(kwargs)
    return svc.add_subscription(**defaults)


class TestAddSubscription:
    def test_add_uses_settings_defaults(self, db, svc):
        SettingsService(db).update(default_currency="USD", default_reminder_days=5)
        sub = _add(svc)
        assert sub.currency == "USD"
        assert sub.reminder_days_before == 5
        assert svc.get_subscription(sub.id).name == "Netflix"

    def test_add_logs_created_event(self, svc):
        sub = _add(svc)
        events = svc.get_events(sub.id)
        assert len(events) == 1
        assert events[0].event_type == "created"
        assert events[0].payload.subscription["amount_cents"] == 1649

    def test_currency_is_uppercased(self, svc):
        assert _add(svc, currency="eur").currency == "EUR"

    def test_accepts_date_objects(self, svc):
        assert _add(svc, next_renewal_date=date(2024, 2, 29)).next_renewal_date == "2024-02-29"

    def test_custom_days_dropped_for_fixed_cadence(self, svc):
        assert _add(svc, cadence="weekly", custom_days=10).custom_days is None

    @pytest.mark.parametrize(
        "overrides",
        [
            {"name": "   "},
            {"amount_cents": 0},
            {"amount_cents": -100},
            {"currency": "dollars"},
            {"cadence": "fortnightly"},
            {"cadence": "custom"},
            {"cadence": "custom", "custom_days": 0},
            {"next_renewal_date": "next tuesday"},
            {"next_renewal_date": ""},
            {"category": "gaming"},
            {"status": "expired"},
            {"reminder_days_before": -1},
            {"payment_method_id": "missing"},
            {"shared_members": [{"name": "A", "share_percent": 60}, {"name": "B", "share_percent": 50}]},
            {"shared_members": [{"name": "A", "share_percent": 120}]},
            {"created_at": "01/03/2024"},
        ],
    )
    def test_invalid_input_rejected(self, svc, overrides):
        with pytest.raises(ValidationError):
            _add(svc, **overrides)
        assert svc.list_subscriptions() == []

    def test_created_at_normalized(self, svc):
        assert _add(svc, created_at=" 2023-02-01 ").created_at == "2023-02-01T00:00:00"
        assert _add(svc, name="B", created_at="2023-02-01T08:15:30.250").created_at == "2023-02-01T08:15:30"

    def test_payment_method_reference(self, db, svc):
        pm = PaymentMethodService(db).add("Visa", "credit_card", "4242")
        assert _add(svc, payment_method_id=pm.id).payment_method_id == pm.id


class TestLookup:
    def test_list_by_status(self, svc):
        _add(svc, name="A")
        _add(svc, name="B", status="trial")
        assert [s.name for s in svc.list_subscriptions("trial")] == ["B"]
        assert len(svc.list_subscriptions()) == 2

    def test_list_unknown_status(self, svc):
        with pytest.raises(ValidationError):
            svc.list_subscriptions("gone")

    def test_resolve_by_id_or_name(self, svc):
        sub = _add(svc, name="Spotify")
        assert svc.resolve(sub.id).id == sub.id
        assert svc.resolve("spotify").id == sub.id
        with pytest.raises(NotFoundError):
            svc.resolve("Tidal")


class TestUpdateSubscription:
    def test_price_change_event(self, svc):
        sub = _add(svc, amount_cents=999)
        updated = svc.update_subscription(sub.id, amount_cents=1299)
        assert updated.amount_cents == 1299

        last = svc.get_events(sub.id)[-1]
        assert last.event_type == "price_change"
        assert last.payload == PriceChangePayload(from_cents=999, to_cents=1299)

    def test_status_change_wins_over_price(self, svc):
        sub = _add(svc, amount_cents=999)
        svc.update_subscription(sub.id, amount_cents=1299, status="paused")
        events = svc.get_events(sub.id)
        assert len(events) == 2
        assert events[-1].payload == StatusChangePayload(from_status="active", to_status="paused")

    def test_other_fields_log_edited(self, svc):
        sub = _add(svc)
        svc.update_subscription(sub.id, notes="family plan", category="streaming")
        last = svc.get_events(sub.id)[-1]
        assert last.event_type == "edited"
        assert last.payload.changes == {"category": "streaming", "notes": "family plan"}

    def test_unchanged_values_write_nothing(self, svc):
        sub = _add(svc)
        result = svc.update_subscription(sub.id, amount_cents=1649, name="Netflix")
        assert result.updated_at == sub.updated_at
        assert len(svc.get_events(sub.id)) == 1

    def test_missing_subscription(self, svc):
        assert svc.update_subscription("nope", notes="x") is None

    def test_unknown_field(self, svc):
        sub = _add(svc)
        with pytest.raises(ValidationError, match="id"):
            svc.update_subscription(sub.id, id="other")

    def test_invalid_change_leaves_record_alone(self, svc):
        sub = _add(svc)
        with pytest.raises(ValidationError):
            svc.update_subscription(sub.id, amount_cents=0)
        assert svc.get_subscription(sub.id).amount_cents == 1649
        assert len(svc.get_events(sub.id)) == 1

    def test_status_helpers(self, svc):
        sub = _add(svc)
        assert svc.pause(sub.id).status == "paused"
        assert svc.resume(sub.id).status == "active"
        assert svc.cancel(sub.id).status == "cancelled"
        types = [e.event_type for e in svc.get_events(sub.id)]
        assert types == ["created", "status_change", "status_change", "status_change"]


class TestDelete:
    def test_delete_keeps_history(self, svc):
        sub = _add(svc)
        svc.pause(sub.id)
        assert svc.delete_subscription(sub.id) is True
        assert svc.list_subscriptions() == []
        assert len(svc.get_events(sub.id)) == 2

    def test_delete_missing(self, svc):
        assert svc.delete_subscription("nope") is False


class TestAdvanceRenewals:
    def test_advances_stale_dates_once(self, svc):
        today = date(2024, 6, 1)
        stale = _add(svc, name="Stale", next_renewal_date=today - timedelta(days=95))
        _add(svc, name="Future", next_renewal_date=today + timedelta(days=3))
        _add(svc, name="Paused", status="paused", next_renewal_date="2023-01-01")

        advanced = svc.advance_renewals(today)
        assert [s.name for s in advanced] == ["Stale"]
        new_date = (today - timedelta(days=95) + timedelta(days=120)).isoformat()
        assert svc.get_subscription(stale.id).next_renewal_date == new_date

        event = svc.get_events(stale.id)[-1]
        assert event.event_type == "renewal_advanced"
        assert event.payload_dict == {"from": (today - timedelta(days=95)).isoformat(), "to": new_date}

        assert svc.advance_renewals(today) == []
        assert len(svc.get_events(stale.id)) == 2

    def test_renewal_due_today_is_left(self, svc):
        today = date(2024, 6, 1)
        _add(svc, next_renewal_date=today)
        assert svc.advance_renewals(today) == []


class TestUsageChecks:
    def test_latest_answer_wins(self, svc):
        sub = _add(svc)
        svc.save_usage_check(sub.id, "2024-05", "yes")
        svc.save_usage_check(sub.id, "2024-05", "no")
        checks = svc.get_usage_checks(sub.id, "2024-05")
        assert len(checks) == 1
        assert checks[0].used == "no"

    @pytest.mark.parametrize("month,answer", [("2024-13", "yes"), ("May 2024", "yes"), ("2024-05", "maybe")])
    def test_invalid_check(self, svc, month, answer):
        sub = _add(svc)
        with pytest.raises(ValidationError):
            svc.save_usage_check(sub.id, month, answer)

    def test_unknown_subscription(self, svc):
        with pytest.raises(NotFoundError):
            svc.save_usage_check("nope", "2024-05", "yes")
