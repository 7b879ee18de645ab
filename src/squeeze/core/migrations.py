"""Schema versioning and migrations for the Squeeze database."""

from __future__ import annotations

from squeeze.core.database import DatabaseConnection
from squeeze.core.exceptions import DatabaseError
from squeeze.core.log import get_logger

logger = get_logger(__name__)

CURRENT_SCHEMA_VERSION = 2

MIGRATIONS: dict[int, str | list[str]] = {
    1: """
    -- Schema version tracking
    CREATE TABLE IF NOT EXISTS schema_version (
        version INTEGER NOT NULL,
        applied_at TEXT NOT NULL DEFAULT (datetime('now'))
    );

    -- Payment methods
    CREATE TABLE IF NOT EXISTS payment_methods (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        method_type TEXT NOT NULL DEFAULT 'credit_card',
        last_four TEXT,
        color TEXT,
        created_at TEXT NOT NULL DEFAULT (datetime('now')),
        updated_at TEXT NOT NULL DEFAULT (datetime('now'))
    );

    -- Subscriptions
    CREATE TABLE IF NOT EXISTS subscriptions (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        amount_cents INTEGER NOT NULL,
        currency TEXT NOT NULL DEFAULT 'CAD',
        cadence TEXT NOT NULL DEFAULT 'monthly',
        custom_days INTEGER,
        next_renewal_date TEXT NOT NULL,
        category TEXT NOT NULL DEFAULT 'other',
        status TEXT NOT NULL DEFAULT 'active',
        reminder_enabled INTEGER NOT NULL DEFAULT 1,
        reminder_days_before INTEGER NOT NULL DEFAULT 3,
        notes TEXT NOT NULL DEFAULT '',
        cancel_url TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL DEFAULT (datetime('now')),
        updated_at TEXT NOT NULL DEFAULT (datetime('now'))
    );
    CREATE INDEX IF NOT EXISTS idx_subscriptions_status ON subscriptions(status);

    -- Event log (append-only; no foreign key, events outlive their subscription)
    CREATE TABLE IF NOT EXISTS events (
        id TEXT PRIMARY KEY,
        subscription_id TEXT NOT NULL,
        event_type TEXT NOT NULL,
        payload_json TEXT NOT NULL DEFAULT '{}',
        timestamp TEXT NOT NULL DEFAULT (datetime('now'))
    );
    CREATE INDEX IF NOT EXISTS idx_events_subscription ON events(subscription_id);

    -- Monthly usage self-reports
    CREATE TABLE IF NOT EXISTS usage_checks (
        id TEXT PRIMARY KEY,
        subscription_id TEXT NOT NULL,
        month TEXT NOT NULL,
        used TEXT NOT NULL,
        timestamp TEXT NOT NULL DEFAULT (datetime('now'))
    );
    CREATE UNIQUE INDEX IF NOT EXISTS idx_usage_checks_pair ON usage_checks(subscription_id, month);

    -- Singleton app settings, stored as one JSON blob
    CREATE TABLE IF NOT EXISTS app_settings (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        settings_json TEXT NOT NULL DEFAULT '{}',
        updated_at TEXT NOT NULL DEFAULT (datetime('now'))
    );

    INSERT INTO schema_version (version) VALUES (1);
    """,
    2: [
        # Shared members and payment method link
        "ALTER TABLE subscriptions ADD COLUMN shared_members TEXT NOT NULL DEFAULT '[]'",
        "ALTER TABLE subscriptions ADD COLUMN payment_method_id TEXT",
        "CREATE INDEX IF NOT EXISTS idx_subscriptions_payment_method ON subscriptions(payment_method_id)",
        "INSERT INTO schema_version (version) VALUES (2)",
    ],
}


def get_schema_version(db: DatabaseConnection) -> int:
    """Get the current schema version, or 0 if the table doesn't exist."""
    try:
        row = db.fetchone("SELECT MAX(version) as v FROM schema_version")
        return row["v"] if row and row["v"] else 0
    except DatabaseError:
        return 0


def run_migrations(db: DatabaseConnection) -> int:
    """Run all pending migrations and return the final schema version."""
    current = get_schema_version(db)

    for version in sorted(MIGRATIONS.keys()):
        if version > current:
            try:
                migration = MIGRATIONS[version]
                if isinstance(migration, list):
                    for stmt in migration:
                        db.execute(stmt)
                    db.commit()
                else:
                    db.conn.executescript(migration)
                    db.commit()
                current = version
            except Exception as e:
                raise DatabaseError(f"Migration to v{version} failed: {e}") from e
            logger.info("Migrated database to schema v%d", version)

    return current


def initialize_database(db: DatabaseConnection) -> int:
    """Set up the database schema from scratch or run pending migrations."""
    return run_migrations(db)
