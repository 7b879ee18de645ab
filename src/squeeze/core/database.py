"""Database connection — SQLite wrapper for the local record store."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

from squeeze.core.config import get_data_dir
from squeeze.core.exceptions import DatabaseError
from squeeze.core.log import get_logger

logger = get_logger(__name__)

DB_FILENAME = "squeeze.db"


class DatabaseConnection:
    """Manages a connection to the Squeeze SQLite database."""

    def __init__(self, db_path: Path | None = None) -> None:
        self.db_path = db_path or (get_data_dir() / DB_FILENAME)
        self._conn: sqlite3.Connection | None = None
        self._depth = 0

    def connect(self) -> None:
        """Open the database connection."""
        try:
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.execute("PRAGMA journal_mode = WAL")
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.row_factory = sqlite3.Row
        except Exception as e:
            raise DatabaseError(f"Failed to connect to database: {e}") from e
        logger.debug("Opened database %s", self.db_path)

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    @property
    def conn(self) -> sqlite3.Connection:
        """Return the active connection, raising if not connected."""
        if self._conn is None:
            raise DatabaseError("Database not connected. Call connect() first.")
        return self._conn

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def execute(self, sql: str, params: tuple[Any, ...] | dict[str, Any] = ()) -> sqlite3.Cursor:
        """Execute a SQL statement."""
        try:
            return self.conn.execute(sql, params)
        except Exception as e:
            raise DatabaseError(f"SQL error: {e}\nQuery: {sql}") from e

    def executemany(self, sql: str, params_seq: list[tuple[Any, ...]]) -> sqlite3.Cursor:
        """Execute a SQL statement with multiple parameter sets."""
        try:
            return self.conn.executemany(sql, params_seq)
        except Exception as e:
            raise DatabaseError(f"SQL error: {e}\nQuery: {sql}") from e

    def fetchone(self, sql: str, params: tuple[Any, ...] | dict[str, Any] = ()) -> sqlite3.Row | None:
        """Execute and fetch one row."""
        return self.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: tuple[Any, ...] | dict[str, Any] = ()) -> list[sqlite3.Row]:
        """Execute and fetch all rows."""
        return self.execute(sql, params).fetchall()

    def commit(self) -> None:
        """Commit the current transaction, unless inside ``transaction()``."""
        if self._depth == 0:
            self.conn.commit()

    def rollback(self) -> None:
        """Rollback the current transaction."""
        self.conn.rollback()

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """Context manager for a database transaction.

        Repository calls made inside the block skip their own commits, so a
        record write and its event log entry land together or not at all.
        Nested blocks join the outermost one.
        """
        self._depth += 1
        try:
            yield
        except Exception:
            self._depth -= 1
            if self._depth == 0:
                self.rollback()
            raise
        self._depth -= 1
        if self._depth == 0:
            self.conn.commit()

    def __enter__(self) -> "DatabaseConnection":
        self.connect()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
