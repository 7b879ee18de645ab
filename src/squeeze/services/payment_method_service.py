"""Payment method management business logic."""

from __future__ import annotations

import re
from typing import Any

from squeeze.core.database import DatabaseConnection
from squeeze.core.exceptions import ValidationError
from squeeze.core.log import get_logger
from squeeze.models.payment_method import PAYMENT_METHOD_TYPES, PaymentMethod, PaymentMethodRepository
from squeeze.models.subscription import SubscriptionRepository

logger = get_logger(__name__)

_LAST_FOUR_RE = re.compile(r"^\d{4}$")


def _check(fields: dict[str, Any]) -> dict[str, Any]:
    name = str(fields.get("name") or "").strip()
    if not name:
        raise ValidationError("Payment method name is required.")
    fields["name"] = name
    if fields.get("method_type") not in PAYMENT_METHOD_TYPES:
        raise ValidationError(f"Invalid payment method type: {fields.get('method_type')}")
    last_four = fields.get("last_four") or None
    if last_four is not None and not _LAST_FOUR_RE.match(str(last_four)):
        raise ValidationError("Last four must be exactly 4 digits.")
    fields["last_four"] = last_four
    fields["color"] = fields.get("color") or None
    return fields


class PaymentMethodService:
    """Business logic for payment method operations."""

    def __init__(self, db: DatabaseConnection) -> None:
        self.db = db
        self.repo = PaymentMethodRepository(db)
        self.subscriptions = SubscriptionRepository(db)

    def add(
        self,
        name: str,
        method_type: str = "credit_card",
        last_four: str | None = None,
        color: str | None = None,
    ) -> PaymentMethod:
        fields = _check({"name": name, "method_type": method_type, "last_four": last_four, "color": color})
        pm = PaymentMethod(**fields)
        self.repo.insert(pm)
        logger.info("Added payment method %s", pm.display_name)
        return pm

    def list(self) -> list[PaymentMethod]:
        return self.repo.list_all()  # type: ignore[return-value]

    def get(self, pm_id: str) -> PaymentMethod:
        return self.repo.get(pm_id)  # type: ignore[return-value]

    def update(self, pm_id: str, **changes: Any) -> PaymentMethod | None:
        current = self.repo.find(pm_id)
        if current is None:
            return None
        fields = _check({**current.model_dump(), **changes})
        return self.repo.update(pm_id, **{k: fields[k] for k in changes})  # type: ignore[return-value]

    def delete(self, pm_id: str) -> bool:
        """Delete a payment method and detach it from every subscription."""
        with self.db.transaction():
            cleared = self.subscriptions.clear_payment_method(pm_id)
            deleted = self.repo.delete(pm_id)
        if deleted:
            logger.info("Deleted payment method %s (detached from %d subscription(s))", pm_id, cleared)
        return deleted

    def usage_count(self, pm_id: str) -> int:
        return len(self.subscriptions.find_by_payment_method(pm_id))
