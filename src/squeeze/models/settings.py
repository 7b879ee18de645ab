"""App settings singleton and its repository."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel

from squeeze.core.database import DatabaseConnection
from squeeze.models.base import now_iso


class AppSettings(BaseModel):
    """User preferences that affect totals and alerts."""

    default_currency: str = "CAD"
    default_reminder_days: int = 3
    include_trials_in_total: bool = True
    monthly_budget_limit_cents: int | None = None
    budget_alert_threshold: int = 80  # percent
    trial_expiration_days: int = 7


class SettingsRepository:
    """Stores ``AppSettings`` as a single JSON row, created on first read."""

    def __init__(self, db: DatabaseConnection) -> None:
        self.db = db

    def get(self) -> AppSettings:
        row = self.db.fetchone("SELECT settings_json FROM app_settings WHERE id = 1")
        if row is None:
            settings = AppSettings()
            self._write(settings, insert=True)
            return settings
        # Unknown keys from older versions are ignored; missing ones take defaults
        return AppSettings(**json.loads(row["settings_json"] or "{}"))

    def update(self, **changes: Any) -> AppSettings:
        current = self.get()
        merged = AppSettings(**{**current.model_dump(), **changes})
        self._write(merged)
        return merged

    def reset(self) -> None:
        self.db.execute("DELETE FROM app_settings")
        self.db.commit()

    def _write(self, settings: AppSettings, insert: bool = False) -> None:
        payload = settings.model_dump_json()
        if insert:
            self.db.execute(
                "INSERT INTO app_settings (id, settings_json, updated_at) VALUES (1, ?, ?)",
                (payload, now_iso()),
            )
        else:
            self.db.execute(
                "UPDATE app_settings SET settings_json = ?, updated_at = ? WHERE id = 1",
                (payload, now_iso()),
            )
        self.db.commit()
