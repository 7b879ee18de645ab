"""Event log model, typed payloads and repository.

Every payload model carries a ``type`` literal that matches the event type, so
``payload_json`` always decodes back into the right shape through
``EVENT_PAYLOAD_ADAPTER``.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from squeeze.models.base import BaseRepository, SqueezeModel, now_iso

EVENT_TYPES = (
    "created",
    "edited",
    "status_change",
    "price_change",
    "reminder_sent",
    "renewal_advanced",
)


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreatedPayload(_Payload):
    type: Literal["created"] = "created"
    subscription: dict[str, Any]


class EditedPayload(_Payload):
    type: Literal["edited"] = "edited"
    changes: dict[str, Any]


class StatusChangePayload(_Payload):
    type: Literal["status_change"] = "status_change"
    from_status: str = Field(alias="from")
    to_status: str = Field(alias="to")


class PriceChangePayload(_Payload):
    type: Literal["price_change"] = "price_change"
    from_cents: int = Field(alias="from")
    to_cents: int = Field(alias="to")

    @property
    def is_increase(self) -> bool:
        return self.to_cents > self.from_cents


class RenewalAdvancedPayload(_Payload):
    type: Literal["renewal_advanced"] = "renewal_advanced"
    from_date: str = Field(alias="from")
    to_date: str = Field(alias="to")


class ReminderSentPayload(_Payload):
    type: Literal["reminder_sent"] = "reminder_sent"
    renewal_date: str
    days_before: int


EventPayload = Annotated[
    Union[
        CreatedPayload,
        EditedPayload,
        StatusChangePayload,
        PriceChangePayload,
        RenewalAdvancedPayload,
        ReminderSentPayload,
    ],
    Field(discriminator="type"),
]

EVENT_PAYLOAD_ADAPTER: TypeAdapter[EventPayload] = TypeAdapter(EventPayload)


class EventLog(SqueezeModel):
    """An immutable audit entry about one subscription."""

    subscription_id: str
    event_type: str
    payload_json: str = "{}"
    timestamp: str = Field(default_factory=now_iso)
    created_at: str = Field(default="", exclude=True)
    updated_at: str = Field(default="", exclude=True)

    @classmethod
    def build(cls, subscription_id: str, payload: BaseModel) -> "EventLog":
        """Create an event whose type is taken from the payload's tag."""
        data = payload.model_dump(by_alias=True)
        return cls(
            subscription_id=subscription_id,
            event_type=data["type"],
            payload_json=json.dumps(data, default=str),
        )

    @property
    def payload(self) -> EventPayload:
        data = json.loads(self.payload_json or "{}")
        data.setdefault("type", self.event_type)
        return EVENT_PAYLOAD_ADAPTER.validate_python(data)

    @property
    def payload_dict(self) -> dict[str, Any]:
        data = json.loads(self.payload_json or "{}")
        data.pop("type", None)
        return data

    def to_row(self) -> dict[str, Any]:
        return self.model_dump()

    @classmethod
    def from_row(cls, row: Any) -> "EventLog":
        d = {k: row[k] for k in row.keys()}
        return cls(**d)


class EventRepository(BaseRepository):
    """Append-only store; events are never updated and only removed in bulk."""

    table: ClassVar[str] = "events"
    model_class: ClassVar[type[SqueezeModel]] = EventLog  # type: ignore[assignment]
    has_updated_at: ClassVar[bool] = False

    def append(self, subscription_id: str, payload: BaseModel) -> EventLog:
        event = EventLog.build(subscription_id, payload)
        self.insert(event)
        return event

    def for_subscription(self, subscription_id: str) -> list[EventLog]:
        rows = self.db.fetchall(
            "SELECT * FROM events WHERE subscription_id = ? ORDER BY rowid",
            (subscription_id,),
        )
        return [EventLog.from_row(r) for r in rows]

    def find_by_type(self, event_type: str) -> list[EventLog]:
        rows = self.db.fetchall(
            "SELECT * FROM events WHERE event_type = ? ORDER BY rowid",
            (event_type,),
        )
        return [EventLog.from_row(r) for r in rows]
