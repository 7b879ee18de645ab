"""Base model and repository classes for Squeeze."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, ClassVar

from pydantic import BaseModel, Field

from squeeze.core.database import DatabaseConnection
from squeeze.core.exceptions import NotFoundError


def new_id() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def now_iso() -> str:
    """Return the current local datetime as an ISO string (second precision)."""
    return datetime.now().isoformat(timespec="seconds")


class SqueezeModel(BaseModel):
    """Base for all Squeeze Pydantic models."""

    id: str = Field(default_factory=new_id)
    created_at: str = Field(default_factory=now_iso)
    updated_at: str = Field(default_factory=now_iso)

    def to_row(self) -> dict[str, Any]:
        """Convert model to a flat dict suitable for DB insertion."""
        return self.model_dump()

    @classmethod
    def from_row(cls, row: Any) -> "SqueezeModel":
        """Create model from a sqlite3.Row or dict."""
        if hasattr(row, "keys"):
            return cls(**{k: row[k] for k in row.keys()})
        return cls(**row)


class BaseRepository:
    """Generic CRUD repository backed by SQLite.

    Missing ids are reported as ``None``/``False`` by ``find``, ``update`` and
    ``delete``; only ``get`` raises.
    """

    table: ClassVar[str] = ""
    model_class: ClassVar[type[SqueezeModel]] = SqueezeModel
    has_updated_at: ClassVar[bool] = True

    def __init__(self, db: DatabaseConnection) -> None:
        self.db = db

    def insert(self, model: SqueezeModel) -> SqueezeModel:
        """Insert a new record."""
        data = model.to_row()
        cols = ", ".join(data.keys())
        placeholders = ", ".join(f":{k}" for k in data.keys())
        self.db.execute(f"INSERT INTO {self.table} ({cols}) VALUES ({placeholders})", data)
        self.db.commit()
        return model

    def find(self, entity_id: str) -> SqueezeModel | None:
        """Fetch a single record by ID, or None."""
        row = self.db.fetchone(f"SELECT * FROM {self.table} WHERE id = ?", (entity_id,))
        return self.model_class.from_row(row) if row else None

    def get(self, entity_id: str) -> SqueezeModel:
        """Fetch a single record by ID."""
        model = self.find(entity_id)
        if model is None:
            raise NotFoundError(f"{self.model_class.__name__} not found: {entity_id}")
        return model

    def list_all(self) -> list[SqueezeModel]:
        """List all records in insertion order."""
        rows = self.db.fetchall(f"SELECT * FROM {self.table} ORDER BY rowid")
        return [self.model_class.from_row(r) for r in rows]

    def update(self, entity_id: str, **updates: Any) -> SqueezeModel | None:
        """Update specific fields on a record. Returns None if it doesn't exist."""
        current = self.find(entity_id)
        if current is None:
            return None
        if self.has_updated_at:
            updates["updated_at"] = now_iso()

        merged = self.model_class(**{**current.model_dump(), **updates})
        row = merged.to_row()
        values = {k: row[k] for k in updates}
        set_clause = ", ".join(f"{k} = :{k}" for k in values)
        values["_id"] = entity_id
        self.db.execute(f"UPDATE {self.table} SET {set_clause} WHERE id = :_id", values)
        self.db.commit()
        return merged

    def delete(self, entity_id: str) -> bool:
        """Delete a record by ID (hard delete). Returns False if it didn't exist."""
        cursor = self.db.execute(f"DELETE FROM {self.table} WHERE id = ?", (entity_id,))
        self.db.commit()
        return cursor.rowcount > 0

    def delete_all(self) -> int:
        """Delete every record in the table."""
        cursor = self.db.execute(f"DELETE FROM {self.table}")
        self.db.commit()
        return cursor.rowcount

    def count(self, where: str = "", params: tuple = ()) -> int:
        """Count records with optional WHERE clause."""
        sql = f"SELECT COUNT(*) as cnt FROM {self.table}"
        if where:
            sql += f" WHERE {where}"
        row = self.db.fetchone(sql, params)
        return row["cnt"] if row else 0
