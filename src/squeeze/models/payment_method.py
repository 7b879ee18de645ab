"""Payment method model and repository."""

from __future__ import annotations

from typing import ClassVar

from squeeze.models.base import BaseRepository, SqueezeModel

PAYMENT_METHOD_TYPES = ("credit_card", "debit_card", "bank_account", "paypal", "other")


class PaymentMethod(SqueezeModel):
    """A card, account or wallet that subscriptions are charged to."""

    name: str
    method_type: str = "credit_card"  # credit_card, debit_card, bank_account, paypal, other
    last_four: str | None = None
    color: str | None = None

    @property
    def display_name(self) -> str:
        if self.last_four:
            return f"{self.name} ••{self.last_four}"
        return self.name


class PaymentMethodRepository(BaseRepository):
    table: ClassVar[str] = "payment_methods"
    model_class: ClassVar[type[SqueezeModel]] = PaymentMethod  # type: ignore[assignment]
