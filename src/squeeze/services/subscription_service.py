"""Subscription lifecycle service — validation, change events, renewals and usage checks."""

from __future__ import annotations

import re
from datetime import date
from typing import Any

from squeeze.core.database import DatabaseConnection
from squeeze.core.exceptions import NotFoundError, ValidationError
from squeeze.core.log import get_logger
from squeeze.models.event import (
    CreatedPayload,
    EditedPayload,
    EventLog,
    EventRepository,
    PriceChangePayload,
    RenewalAdvancedPayload,
    StatusChangePayload,
)
from squeeze.models.payment_method import PaymentMethodRepository
from squeeze.models.settings import SettingsRepository
from squeeze.models.subscription import (
    CADENCES,
    CATEGORIES,
    STATUSES,
    SharedMember,
    Subscription,
    SubscriptionRepository,
)
from squeeze.models.usage import USAGE_ANSWERS, UsageCheck, UsageCheckRepository
from squeeze.services.recurrence import parse_moment
from squeeze.services.renewal import advance

logger = get_logger(__name__)

_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")

# Fields a caller may change through update_subscription
EDITABLE_FIELDS = (
    "name",
    "amount_cents",
    "currency",
    "cadence",
    "custom_days",
    "next_renewal_date",
    "category",
    "status",
    "reminder_enabled",
    "reminder_days_before",
    "notes",
    "cancel_url",
    "shared_members",
    "payment_method_id",
)


def _normalize_date(value: Any) -> str:
    if isinstance(value, date):
        return value.isoformat()
    if not value:
        raise ValidationError("Next renewal date is required.")
    try:
        return date.fromisoformat(str(value).strip()[:10]).isoformat()
    except ValueError:
        raise ValidationError(f"Invalid renewal date: {value!r} (expected YYYY-MM-DD).")


def _normalize_moment(value: str) -> str:
    try:
        return parse_moment(value).isoformat(timespec="seconds")
    except ValueError:
        raise ValidationError(f"Invalid created-at timestamp: {value!r} (expected ISO 8601).")


def _normalize_members(members: Any) -> list[dict[str, Any]]:
    result = []
    for m in members or []:
        member = m if isinstance(m, SharedMember) else SharedMember(**m)
        if not member.name.strip():
            raise ValidationError("Shared member name is required.")
        if member.share_percent is not None and not (0 <= member.share_percent <= 100):
            raise ValidationError(f"Share for {member.name} must be between 0 and 100.")
        result.append(member.model_dump())
    explicit = sum(m["share_percent"] for m in result if m["share_percent"] is not None)
    if explicit > 100:
        raise ValidationError("Shared member percentages add up to more than 100.")
    return result


class SubscriptionService:
    """Business logic for subscription operations.

    Every write that changes a subscription also appends an event, inside one
    transaction, so the history never disagrees with the records.
    """

    def __init__(self, db: DatabaseConnection) -> None:
        self.db = db
        self.repo = SubscriptionRepository(db)
        self.events = EventRepository(db)
        self.usage = UsageCheckRepository(db)
        self.payment_methods = PaymentMethodRepository(db)
        self.settings = SettingsRepository(db)

    # ── Validation ────────────────────────────────────────────────

    def _validate(self, fields: dict[str, Any]) -> dict[str, Any]:
        """Check and normalize a full set of subscription fields."""
        name = str(fields.get("name") or "").strip()
        if not name:
            raise ValidationError("Subscription name is required.")
        fields["name"] = name

        amount = fields.get("amount_cents")
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise ValidationError("Amount must be greater than zero.")

        currency = str(fields.get("currency") or "").strip().upper()
        if not _CURRENCY_RE.match(currency):
            raise ValidationError(f"Invalid currency code: {fields.get('currency')!r}")
        fields["currency"] = currency

        if fields.get("cadence") not in CADENCES:
            raise ValidationError(f"Invalid cadence: {fields.get('cadence')}")
        if fields["cadence"] == "custom":
            days = fields.get("custom_days")
            if not isinstance(days, int) or days <= 0:
                raise ValidationError("Custom cadence needs a positive number of days.")
        else:
            fields["custom_days"] = None

        fields["next_renewal_date"] = _normalize_date(fields.get("next_renewal_date"))

        if fields.get("category") not in CATEGORIES:
            raise ValidationError(f"Invalid category: {fields.get('category')}")
        if fields.get("status") not in STATUSES:
            raise ValidationError(f"Invalid status: {fields.get('status')}")

        reminder_days = fields.get("reminder_days_before")
        if not isinstance(reminder_days, int) or reminder_days < 0:
            raise ValidationError("Reminder days must be zero or more.")

        fields["shared_members"] = _normalize_members(fields.get("shared_members"))

        pm_id = fields.get("payment_method_id")
        if pm_id and self.payment_methods.find(pm_id) is None:
            raise ValidationError(f"Unknown payment method: {pm_id}")
        fields["payment_method_id"] = pm_id or None
        return fields

    # ── CRUD ──────────────────────────────────────────────────────

    def add_subscription(
        self,
        name: str,
        amount_cents: int,
        next_renewal_date: str | date,
        currency: str | None = None,
        cadence: str = "monthly",
        custom_days: int | None = None,
        category: str = "other",
        status: str = "active",
        reminder_enabled: bool = True,
        reminder_days_before: int | None = None,
        notes: str = "",
        cancel_url: str = "",
        shared_members: list[Any] | None = None,
        payment_method_id: str | None = None,
        created_at: str | None = None,
    ) -> Subscription:
        """Validate and store a new subscription, logging a ``created`` event."""
        settings = self.settings.get()
        fields = self._validate({
            "name": name,
            "amount_cents": amount_cents,
            "currency": currency or settings.default_currency,
            "cadence": cadence,
            "custom_days": custom_days,
            "next_renewal_date": next_renewal_date,
            "category": category,
            "status": status,
            "reminder_enabled": bool(reminder_enabled),
            "reminder_days_before": (
                settings.default_reminder_days if reminder_days_before is None else reminder_days_before
            ),
            "notes": notes or "",
            "cancel_url": cancel_url or "",
            "shared_members": shared_members,
            "payment_method_id": payment_method_id,
        })
        if created_at:
            fields["created_at"] = fields["updated_at"] = _normalize_moment(created_at)
        sub = Subscription(**fields)

        with self.db.transaction():
            self.repo.insert(sub)
            self.events.append(sub.id, CreatedPayload(subscription=sub.model_dump()))
        logger.info("Added subscription %s (%s)", sub.name, sub.id)
        return sub

    def list_subscriptions(self, status: str | None = None) -> list[Subscription]:
        if status:
            if status not in STATUSES:
                raise ValidationError(f"Invalid status: {status}")
            return self.repo.find_by_status(status)
        return self.repo.list_all()  # type: ignore[return-value]

    def get_subscription(self, sub_id: str) -> Subscription:
        return self.repo.get(sub_id)  # type: ignore[return-value]

    def resolve(self, ref: str) -> Subscription:
        """Look a subscription up by id, falling back to a case-insensitive name."""
        sub = self.repo.find(ref) or self.repo.find_by_name(ref)
        if sub is None:
            raise NotFoundError(f"Subscription not found: {ref}")
        return sub  # type: ignore[return-value]

    def update_subscription(self, sub_id: str, **changes: Any) -> Subscription | None:
        """Apply changes and log exactly one event describing them.

        A status change wins over a price change, which wins over a plain edit.
        Returns None if the subscription doesn't exist. Changes that leave every
        field as it was write nothing.
        """
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        current = self.repo.find(sub_id)
        if current is None:
            return None
        before = current.model_dump()
        merged = self._validate({**before, **changes})
        diff = {k: merged[k] for k in EDITABLE_FIELDS if merged[k] != before[k]}
        if not diff:
            logger.debug("No changes for subscription %s", sub_id)
            return current  # type: ignore[return-value]

        if "status" in diff:
            payload: Any = StatusChangePayload(from_status=before["status"], to_status=diff["status"])
        elif "amount_cents" in diff:
            payload = PriceChangePayload(from_cents=before["amount_cents"], to_cents=diff["amount_cents"])
        else:
            payload = EditedPayload(changes=diff)

        with self.db.transaction():
            updated = self.repo.update(sub_id, **diff)
            self.events.append(sub_id, payload)
        logger.info("Updated subscription %s: %s", sub_id, ", ".join(diff))
        return updated  # type: ignore[return-value]

    def delete_subscription(self, sub_id: str) -> bool:
        """Hard delete. The subscription's events are kept."""
        deleted = self.repo.delete(sub_id)
        if deleted:
            logger.info("Deleted subscription %s", sub_id)
        else:
            logger.debug("Delete skipped, no subscription %s", sub_id)
        return deleted

    # ── Status helpers ────────────────────────────────────────────

    def set_status(self, sub_id: str, status: str) -> Subscription | None:
        return self.update_subscription(sub_id, status=status)

    def pause(self, sub_id: str) -> Subscription | None:
        return self.set_status(sub_id, "paused")

    def resume(self, sub_id: str) -> Subscription | None:
        return self.set_status(sub_id, "active")

    def cancel(self, sub_id: str) -> Subscription | None:
        return self.set_status(sub_id, "cancelled")

    # ── Renewals ──────────────────────────────────────────────────

    def advance_renewals(self, today: date | None = None) -> list[Subscription]:
        """Roll every stale renewal date forward, logging ``renewal_advanced`` for each.

        Running it again on the same day changes nothing.
        """
        today = today or date.today()
        advanced: list[Subscription] = []
        with self.db.transaction():
            for sub in self.repo.list_all():
                new = advance(sub, today)  # type: ignore[arg-type]
                if new is None:
                    continue
                self.repo.update(sub.id, next_renewal_date=new.next_renewal_date)
                self.events.append(
                    sub.id,
                    RenewalAdvancedPayload(
                        from_date=sub.next_renewal_date,  # type: ignore[attr-defined]
                        to_date=new.next_renewal_date,
                    ),
                )
                advanced.append(new)
        if advanced:
            logger.info("Advanced %d renewal date(s)", len(advanced))
        return advanced

    # ── Usage checks ──────────────────────────────────────────────

    def save_usage_check(self, sub_id: str, month: str, used: str) -> UsageCheck:
        """Record whether a subscription was used in a month, replacing any earlier answer."""
        if not _MONTH_RE.match(month or ""):
            raise ValidationError(f"Invalid month: {month!r} (expected YYYY-MM).")
        if used not in USAGE_ANSWERS:
            raise ValidationError(f"Invalid answer: {used} (expected yes, no or skip).")
        self.repo.get(sub_id)

        check = UsageCheck(subscription_id=sub_id, month=month, used=used)
        with self.db.transaction():
            self.usage.replace(check)
        logger.info("Usage check for %s in %s: %s", sub_id, month, used)
        return check

    def get_usage_checks(self, sub_id: str | None = None, month: str | None = None) -> list[UsageCheck]:
        return self.usage.query(subscription_id=sub_id, month=month)

    # ── Events ────────────────────────────────────────────────────

    def get_events(self, sub_id: str | None = None) -> list[EventLog]:
        if sub_id:
            return self.events.for_subscription(sub_id)
        return self.events.list_all()  # type: ignore[return-value]
