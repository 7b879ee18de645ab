"""Usage check model and repository."""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import Field

from squeeze.models.base import BaseRepository, SqueezeModel, now_iso

USAGE_ANSWERS = ("yes", "no", "skip")


class UsageCheck(SqueezeModel):
    """A monthly self-report of whether a subscription was actually used."""

    subscription_id: str
    month: str  # YYYY-MM
    used: str  # yes, no, skip
    timestamp: str = Field(default_factory=now_iso)
    created_at: str = Field(default="", exclude=True)
    updated_at: str = Field(default="", exclude=True)

    @classmethod
    def from_row(cls, row: Any) -> "UsageCheck":
        d = {k: row[k] for k in row.keys()}
        return cls(**d)


class UsageCheckRepository(BaseRepository):
    table: ClassVar[str] = "usage_checks"
    model_class: ClassVar[type[SqueezeModel]] = UsageCheck  # type: ignore[assignment]
    has_updated_at: ClassVar[bool] = False

    def replace(self, check: UsageCheck) -> UsageCheck:
        """Store a check, dropping any earlier one for the same subscription and month."""
        self.db.execute(
            "DELETE FROM usage_checks WHERE subscription_id = ? AND month = ?",
            (check.subscription_id, check.month),
        )
        return self.insert(check)  # type: ignore[return-value]

    def query(self, subscription_id: str | None = None, month: str | None = None) -> list[UsageCheck]:
        clauses: list[str] = []
        params: list[str] = []
        if subscription_id is not None:
            clauses.append("subscription_id = ?")
            params.append(subscription_id)
        if month is not None:
            clauses.append("month = ?")
            params.append(month)
        sql = "SELECT * FROM usage_checks"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY rowid"
        return [UsageCheck.from_row(r) for r in self.db.fetchall(sql, tuple(params))]
