"""App settings and bulk data operations."""

from __future__ import annotations

import re
from typing import Any

from squeeze.core.database import DatabaseConnection
from squeeze.core.exceptions import ValidationError
from squeeze.core.log import get_logger
from squeeze.models.event import EventRepository
from squeeze.models.payment_method import PaymentMethodRepository
from squeeze.models.settings import AppSettings, SettingsRepository
from squeeze.models.subscription import SubscriptionRepository
from squeeze.models.usage import UsageCheckRepository

logger = get_logger(__name__)

_SETTING_FIELDS = tuple(AppSettings.model_fields)


class SettingsService:
    def __init__(self, db: DatabaseConnection) -> None:
        self.db = db
        self.repo = SettingsRepository(db)

    def get(self) -> AppSettings:
        return self.repo.get()

    def update(self, **changes: Any) -> AppSettings:
        """Validate and merge a partial settings change."""
        unknown = set(changes) - set(_SETTING_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown setting(s): {', '.join(sorted(unknown))}")

        if "default_currency" in changes:
            currency = str(changes["default_currency"] or "").strip().upper()
            if not re.match(r"^[A-Z]{3}$", currency):
                raise ValidationError(f"Invalid currency code: {changes['default_currency']!r}")
            changes["default_currency"] = currency
        if "budget_alert_threshold" in changes and not (0 <= changes["budget_alert_threshold"] <= 100):
            raise ValidationError("Budget alert threshold must be between 0 and 100.")
        for key in ("default_reminder_days", "trial_expiration_days"):
            if key in changes and changes[key] < 0:
                raise ValidationError(f"{key.replace('_', ' ').capitalize()} must be zero or more.")
        limit = changes.get("monthly_budget_limit_cents")
        if limit is not None and limit < 0:
            raise ValidationError("Budget limit cannot be negative.")

        settings = self.repo.update(**changes)
        logger.info("Updated settings: %s", ", ".join(changes))
        return settings


class DataService:
    """Whole-store operations."""

    def __init__(self, db: DatabaseConnection) -> None:
        self.db = db

    def clear_all(self) -> dict[str, int]:
        """Remove every record of every kind, events included. Returns counts removed."""
        counts: dict[str, int] = {}
        with self.db.transaction():
            counts["events"] = EventRepository(self.db).delete_all()
            counts["usage_checks"] = UsageCheckRepository(self.db).delete_all()
            counts["subscriptions"] = SubscriptionRepository(self.db).delete_all()
            counts["payment_methods"] = PaymentMethodRepository(self.db).delete_all()
            SettingsRepository(self.db).reset()
        logger.warning("Cleared all data: %s", counts)
        return counts
