"""Tests for CSV export and import."""

import csv
import io
import tempfile
from datetime import datetime
from pathlib import Path

import pytest

from squeeze.core.database import DatabaseConnection
from squeeze.core.exceptions import CsvImportError
from squeeze.core.migrations import initialize_database
from squeeze.models.subscription import Subscription
from squeeze.services.csv_service import CSV_COLUMNS, CsvImporter, cents_to_decimal, export_csv
from squeeze.services.insights_service import InsightsService
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


def _importer(svc):
    return CsvImporter(svc, svc.settings.get())


class TestExport:
    def test_header_only_when_empty(self):
        assert export_csv([]) == ",".join(CSV_COLUMNS) + "\n"

    def test_amounts_and_quoting(self):
        sub = Subscription(
            name="Adobe, Inc",
            amount_cents=7999,
            next_renewal_date="2024-07-01",
            reminder_enabled=False,
            notes='Says "work"',
        )
        rows = list(csv.reader(io.StringIO(export_csv([sub]))))
        assert len(rows) == 2
        row = dict(zip(rows[0], rows[1]))
        assert row["Name"] == "Adobe, Inc"
        assert row["Amount"] == "79.99"
        assert row["Custom Days"] == ""
        assert row["Reminder Enabled"] == "false"
        assert row["Notes"] == 'Says "work"'

    def test_cents_to_decimal(self):
        assert cents_to_decimal(100) == "1.00"
        assert cents_to_decimal(5) == "0.05"
        assert cents_to_decimal(123456) == "1234.56"


class TestImport:
    def test_round_trip_into_empty_store(self, svc):
        svc.add_subscription("Netflix", 1649, "2024-07-01", category="streaming", notes="family, shared")
        svc.add_subscription(
            "Backup", 499, "2024-07-15", cadence="custom", custom_days=14, currency="USD", reminder_enabled=False
        )
        exported = export_csv(svc.list_subscriptions())

        with tempfile.TemporaryDirectory() as d:
            conn = DatabaseConnection(db_path=Path(d) / "other.db")
            conn.connect()
            initialize_database(conn)
            target = SubscriptionService(conn)
            result = _importer(target).import_text(exported)
            assert result.imported == 2
            assert result.skipped == 0

            by_name = {s.name: s for s in target.list_subscriptions()}
            for original in svc.list_subscriptions():
                copy = by_name[original.name]
                for field in ("amount_cents", "currency", "cadence", "custom_days", "next_renewal_date",
                              "category", "status", "reminder_enabled", "reminder_days_before", "notes",
                              "created_at"):
                    assert getattr(copy, field) == getattr(original, field)
            conn.close()

    def test_duplicates_skipped(self, svc):
        svc.add_subscription("Netflix", 1649, "2024-07-01")
        text = "Name,Amount,Next Renewal\nnetflix,15.49,2024-07-01\nSpotify,11.99,2024-07-02\nSPOTIFY,11.99,2024-07-02\n"
        result = _importer(svc).import_text(text)
        assert result.imported == 1
        assert result.skipped == 2
        assert result.errors == []
        assert len(svc.list_subscriptions()) == 2

    def test_header_case_and_bom(self, svc):
        text = '\ufeffNAME, amount ,NEXT RENEWAL,Cadence,Currency\nGym,"$1,049.50",2024-08-01,YEARLY,usd\n'
        result = _importer(svc).import_text(text)
        assert result.imported == 1
        sub = svc.list_subscriptions()[0]
        assert sub.amount_cents == 104950
        assert sub.cadence == "yearly"
        assert sub.currency == "USD"

    def test_defaults_for_missing_columns(self, svc):
        svc.settings.update(default_reminder_days=5)
        result = _importer(svc).import_text("Name,Amount,Next Renewal,Category\nThing,9.99,2024-08-01,gaming\n")
        assert result.imported == 1
        sub = svc.list_subscriptions()[0]
        assert sub.category == "other"
        assert sub.status == "active"
        assert sub.reminder_enabled is True
        assert sub.reminder_days_before == 5
        assert sub.currency == "CAD"

    def test_bad_rows_reported(self, svc):
        text = (
            "Name,Amount,Next Renewal\n"
            ",5.00,2024-08-01\n"
            "Free,abc,2024-08-01\n"
            "Undated,5.00,\n"
            "Good,5.00,2024-08-01\n"
        )
        result = _importer(svc).import_text(text)
        assert result.imported == 1
        assert result.skipped == 3
        assert len(result.errors) == 3
        assert result.errors[0].startswith("Row 2")
        assert "Free" in result.errors[1]

    def test_created_at_checked(self, svc):
        text = (
            "Name,Amount,Next Renewal,Created At\n"
            "Netflix,9.99,2026-11-01,01/03/2024\n"
            "Spotify,11.99,2026-11-02,2024-01-03\n"
        )
        result = _importer(svc).import_text(text)
        assert result.imported == 1
        assert result.skipped == 1
        assert "Netflix" in result.errors[0]
        [sub] = svc.list_subscriptions()
        assert sub.created_at == "2024-01-03T00:00:00"

        yoy = InsightsService(svc.db).get_year_over_year(datetime(2026, 10, 19))
        assert yoy.last_year_monthly_cents == 1199

    @pytest.mark.parametrize("text", ["", "Amount,Next Renewal\n5.00,2024-08-01\n"])
    def test_unreadable_file(self, svc, text):
        with pytest.raises(CsvImportError):
            _importer(svc).import_text(text)
