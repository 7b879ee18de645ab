"""Subscription model and repository."""

from __future__ import annotations

import json
from datetime import date
from typing import Any, ClassVar

from pydantic import BaseModel, Field

from squeeze.models.base import BaseRepository, SqueezeModel, new_id, now_iso
from squeeze.services.cadence import monthly_equivalent

CADENCES = ("weekly", "monthly", "yearly", "custom")
CATEGORIES = ("streaming", "utilities", "software", "fitness", "other")
STATUSES = ("active", "trial", "paused", "cancelled")

# Statuses that keep billing (and therefore keep renewing)
BILLING_STATUSES = ("active", "trial")
DORMANT_STATUSES = ("paused", "cancelled")


class SharedMember(BaseModel):
    """Someone the subscription cost is split with."""

    id: str = Field(default_factory=new_id)
    name: str
    share_percent: float | None = None


class Subscription(SqueezeModel):
    """A recurring payment the user is tracking."""

    name: str
    amount_cents: int
    currency: str = "CAD"
    cadence: str = "monthly"  # weekly, monthly, yearly, custom
    custom_days: int | None = None
    next_renewal_date: str
    category: str = "other"  # streaming, utilities, software, fitness, other
    status: str = "active"  # active, trial, paused, cancelled
    reminder_enabled: bool = True
    reminder_days_before: int = 3
    notes: str = ""
    cancel_url: str = ""
    shared_members: list[SharedMember] = Field(default_factory=list)
    payment_method_id: str | None = None

    @property
    def amount(self) -> float:
        return self.amount_cents / 100

    @property
    def renewal_date(self) -> date:
        return date.fromisoformat(self.next_renewal_date[:10])

    @property
    def monthly_equivalent_cents(self) -> float:
        """Unrounded monthly-equivalent cost, for aggregation."""
        return monthly_equivalent(self.amount_cents, self.cadence, self.custom_days)

    @property
    def monthly_cost_cents(self) -> int:
        """Normalize cost to monthly."""
        return round(self.monthly_equivalent_cents)

    @property
    def yearly_cost_cents(self) -> int:
        """Normalize cost to yearly."""
        return round(self.monthly_equivalent_cents * 12)

    @property
    def my_share_cents(self) -> int:
        """The user's part of a single payment after splitting with members.

        Members with an explicit percentage take exactly that; whatever is left
        is split evenly between the user and the remaining members.
        """
        if not self.shared_members:
            return self.amount_cents
        explicit = sum(m.share_percent for m in self.shared_members if m.share_percent is not None)
        implicit_people = 1 + sum(1 for m in self.shared_members if m.share_percent is None)
        remaining = max(0.0, 100.0 - explicit)
        return round(self.amount_cents * remaining / implicit_people / 100)

    def days_until_renewal(self, today: date | None = None) -> int:
        today = today or date.today()
        return (self.renewal_date - today).days

    def to_row(self) -> dict[str, Any]:
        data = self.model_dump()
        data["reminder_enabled"] = int(data["reminder_enabled"])
        data["shared_members"] = json.dumps(data["shared_members"])
        return data

    @classmethod
    def from_row(cls, row: Any) -> "Subscription":
        d = {k: row[k] for k in row.keys()}
        d["reminder_enabled"] = bool(d.get("reminder_enabled", 1))
        d["shared_members"] = json.loads(d.get("shared_members") or "[]")
        return cls(**d)


class SubscriptionRepository(BaseRepository):
    table: ClassVar[str] = "subscriptions"
    model_class: ClassVar[type[SqueezeModel]] = Subscription  # type: ignore[assignment]

    def find_by_status(self, status: str) -> list[Subscription]:
        """Get subscriptions by status (active, trial, paused, cancelled)."""
        rows = self.db.fetchall(
            "SELECT * FROM subscriptions WHERE status = ? ORDER BY rowid",
            (status,),
        )
        return [Subscription.from_row(r) for r in rows]

    def find_by_name(self, name: str) -> Subscription | None:
        """Case-insensitive exact name lookup."""
        row = self.db.fetchone(
            "SELECT * FROM subscriptions WHERE LOWER(name) = ? ORDER BY rowid LIMIT 1",
            (name.strip().lower(),),
        )
        return Subscription.from_row(row) if row else None

    def find_by_payment_method(self, payment_method_id: str) -> list[Subscription]:
        rows = self.db.fetchall(
            "SELECT * FROM subscriptions WHERE payment_method_id = ? ORDER BY rowid",
            (payment_method_id,),
        )
        return [Subscription.from_row(r) for r in rows]

    def clear_payment_method(self, payment_method_id: str) -> int:
        """Drop a payment method reference from every subscription using it."""
        cursor = self.db.execute(
            "UPDATE subscriptions SET payment_method_id = NULL, updated_at = ? WHERE payment_method_id = ?",
            (now_iso(), payment_method_id),
        )
        self.db.commit()
        return cursor.rowcount

    def get_all_names(self) -> set[str]:
        """Lowercased names of every subscription, for duplicate detection."""
        rows = self.db.fetchall("SELECT name FROM subscriptions")
        return {r["name"].strip().lower() for r in rows}
