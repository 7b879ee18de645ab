"""Tests for payment methods, settings and whole-store operations."""

import tempfile
from pathlib import Path

import pytest

from squeeze.core.database import DatabaseConnection
from squeeze.core.exceptions import NotFoundError, ValidationError
from squeeze.core.migrations import initialize_database
from squeeze.services.payment_method_service import PaymentMethodService
from squeeze.services.settings_service import DataService, SettingsService
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
def pm_svc(db):
    return PaymentMethodService(db)


class TestPaymentMethods:
    def test_add_and_list(self, pm_svc):
        pm_svc.add("Visa", "credit_card", "4242", "#1a1f71")
        pm_svc.add("PayPal", "paypal")
        methods = pm_svc.list()
        assert [m.name for m in methods] == ["Visa", "PayPal"]
        assert methods[1].last_four is None

    @pytest.mark.parametrize(
        "args",
        [("", "credit_card", None), ("Visa", "crypto", None), ("Visa", "credit_card", "42"), ("Visa", "credit_card", "abcd")],
    )
    def test_invalid(self, pm_svc, args):
        with pytest.raises(ValidationError):
            pm_svc.add(*args)

    def test_update(self, pm_svc):
        pm = pm_svc.add("Visa", "credit_card", "4242")
        updated = pm_svc.update(pm.id, name="Visa Infinite")
        assert updated.name == "Visa Infinite"
        assert updated.last_four == "4242"
        assert pm_svc.update("nope", name="x") is None

    def test_update_validates(self, pm_svc):
        pm = pm_svc.add("Visa")
        with pytest.raises(ValidationError):
            pm_svc.update(pm.id, last_four="12345")

    def test_delete_detaches_subscriptions(self, db, pm_svc):
        pm = pm_svc.add("Visa", "credit_card", "4242")
        subs = SubscriptionService(db)
        a = subs.add_subscription("A", 500, "2024-07-01", payment_method_id=pm.id)
        b = subs.add_subscription("B", 700, "2024-07-01", payment_method_id=pm.id)
        assert pm_svc.usage_count(pm.id) == 2

        assert pm_svc.delete(pm.id) is True
        assert subs.get_subscription(a.id).payment_method_id is None
        assert subs.get_subscription(b.id).payment_method_id is None
        with pytest.raises(NotFoundError):
            pm_svc.get(pm.id)

    def test_delete_missing(self, pm_svc):
        assert pm_svc.delete("nope") is False


class TestSettings:
    def test_update(self, db):
        svc = SettingsService(db)
        settings = svc.update(default_currency="usd", monthly_budget_limit_cents=5000)
        assert settings.default_currency == "USD"
        assert svc.get().monthly_budget_limit_cents == 5000

    def test_remove_budget(self, db):
        svc = SettingsService(db)
        svc.update(monthly_budget_limit_cents=5000)
        assert svc.update(monthly_budget_limit_cents=None).monthly_budget_limit_cents is None

    @pytest.mark.parametrize(
        "changes",
        [
            {"default_currency": "US"},
            {"budget_alert_threshold": 101},
            {"budget_alert_threshold": -1},
            {"default_reminder_days": -2},
            {"trial_expiration_days": -1},
            {"monthly_budget_limit_cents": -100},
            {"theme": "dark"},
        ],
    )
    def test_invalid(self, db, changes):
        with pytest.raises(ValidationError):
            SettingsService(db).update(**changes)


class TestClearAll:
    def test_clear_all(self, db):
        pm = PaymentMethodService(db).add("Visa")
        subs = SubscriptionService(db)
        sub = subs.add_subscription("A", 500, "2024-07-01", payment_method_id=pm.id)
        subs.save_usage_check(sub.id, "2024-06", "yes")
        SettingsService(db).update(default_currency="EUR")

        counts = DataService(db).clear_all()
        assert counts == {"events": 1, "usage_checks": 1, "subscriptions": 1, "payment_methods": 1}
        assert subs.list_subscriptions() == []
        assert subs.get_events() == []
        assert SettingsService(db).get().default_currency == "CAD"
