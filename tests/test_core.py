"""Tests for core infrastructure."""

import logging
import tempfile
from pathlib import Path

import pytest

from squeeze.core import config as config_mod
from squeeze.core.database import DatabaseConnection
from squeeze.core.exceptions import ConfigError, DatabaseError
from squeeze.core.log import configure_logging, get_logger
from squeeze.core.migrations import CURRENT_SCHEMA_VERSION, get_schema_version, initialize_database


@pytest.fixture
def tmp_dir():
    with tempfile.TemporaryDirectory() as d:
        yield Path(d)


@pytest.fixture
def db(tmp_dir):
    """Create a fresh test database."""
    conn = DatabaseConnection(db_path=tmp_dir / "test.db")
    conn.connect()
    initialize_database(conn)
    yield conn
    conn.close()


class TestConfig:
    def test_defaults_when_missing(self, tmp_dir, monkeypatch):
        monkeypatch.setenv("SQUEEZE_CONFIG_DIR", str(tmp_dir))
        cfg = config_mod.load_config()
        assert cfg["general"]["log_level"] == "WARNING"
        assert cfg["display"]["date_format"] == "%b %d, %Y"

    def test_update_and_reload(self, tmp_dir, monkeypatch):
        monkeypatch.setenv("SQUEEZE_CONFIG_DIR", str(tmp_dir))
        config_mod.update_config(general={"log_level": "DEBUG"})
        assert (tmp_dir / "squeeze.toml").exists()

        cfg = config_mod.load_config()
        assert cfg["general"]["log_level"] == "DEBUG"
        # Untouched keys still come from the defaults
        assert cfg["general"]["data_dir"] == "~/.local/share/squeeze"

    def test_partial_file_is_merged(self, tmp_dir, monkeypatch):
        monkeypatch.setenv("SQUEEZE_CONFIG_DIR", str(tmp_dir))
        (tmp_dir / "squeeze.toml").write_text('[display]\ndate_format = "%Y-%m-%d"\n')
        cfg = config_mod.load_config()
        assert cfg["display"]["date_format"] == "%Y-%m-%d"
        assert cfg["general"]["log_level"] == "WARNING"

    def test_invalid_toml_raises(self, tmp_dir, monkeypatch):
        monkeypatch.setenv("SQUEEZE_CONFIG_DIR", str(tmp_dir))
        (tmp_dir / "squeeze.toml").write_text("this is = = not toml")
        with pytest.raises(ConfigError):
            config_mod.load_config()

    def test_bad_log_level_rejected(self, tmp_dir, monkeypatch):
        monkeypatch.setenv("SQUEEZE_CONFIG_DIR", str(tmp_dir))
        (tmp_dir / "squeeze.toml").write_text('[general]\nlog_level = "LOUD"\n')
        with pytest.raises(ConfigError, match="log_level"):
            config_mod.load_config()

    def test_set_value(self, tmp_dir, monkeypatch):
        monkeypatch.setenv("SQUEEZE_CONFIG_DIR", str(tmp_dir))
        config_mod.set_value("general.log_level", "info")
        assert config_mod.get_value("general.log_level") == "INFO"
        with pytest.raises(ConfigError):
            config_mod.set_value("general.colour", "red")

    def test_data_dir_from_config(self, tmp_dir):
        data_dir = config_mod.get_data_dir({"general": {"data_dir": str(tmp_dir / "data")}})
        assert data_dir == tmp_dir / "data"
        assert data_dir.is_dir()


class TestDatabase:
    def test_connect_and_query(self, tmp_dir):
        conn = DatabaseConnection(db_path=tmp_dir / "test.db")
        conn.connect()
        conn.execute("CREATE TABLE test (id INTEGER PRIMARY KEY, name TEXT)")
        conn.execute("INSERT INTO test VALUES (1, 'hello')")
        conn.commit()
        row = conn.fetchone("SELECT * FROM test WHERE id = 1")
        assert row["name"] == "hello"
        conn.close()

    def test_transaction_rollback(self, tmp_dir):
        conn = DatabaseConnection(db_path=tmp_dir / "test.db")
        conn.connect()
        conn.execute("CREATE TABLE test (id INTEGER PRIMARY KEY)")
        conn.commit()

        try:
            with conn.transaction():
                conn.execute("INSERT INTO test VALUES (1)")
                raise ValueError("oops")
        except ValueError:
            pass

        row = conn.fetchone("SELECT COUNT(*) as cnt FROM test")
        assert row["cnt"] == 0
        conn.close()

    def test_commit_inside_transaction_is_deferred(self, tmp_dir):
        conn = DatabaseConnection(db_path=tmp_dir / "test.db")
        conn.connect()
        conn.execute("CREATE TABLE test (id INTEGER PRIMARY KEY)")
        conn.commit()

        with pytest.raises(RuntimeError):
            with conn.transaction():
                conn.execute("INSERT INTO test VALUES (1)")
                conn.commit()  # what a repository would do
                with conn.transaction():
                    conn.execute("INSERT INTO test VALUES (2)")
                assert conn.in_transaction
                raise RuntimeError("fail after inner block")

        assert not conn.in_transaction
        row = conn.fetchone("SELECT COUNT(*) as cnt FROM test")
        assert row["cnt"] == 0
        conn.close()

    def test_bad_sql_raises_database_error(self, db):
        with pytest.raises(DatabaseError, match="SQL error"):
            db.execute("SELECT * FROM nowhere")

    def test_not_connected(self, tmp_dir):
        conn = DatabaseConnection(db_path=tmp_dir / "test.db")
        with pytest.raises(DatabaseError, match="not connected"):
            conn.execute("SELECT 1")


class TestMigrations:
    def test_initialize_creates_tables(self, db):
        assert get_schema_version(db) == CURRENT_SCHEMA_VERSION

        tables = db.fetchall("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name")
        table_names = [t["name"] for t in tables]
        for name in ("subscriptions", "events", "usage_checks", "payment_methods", "app_settings", "schema_version"):
            assert name in table_names

    def test_subscription_columns_from_later_migrations(self, db):
        cols = {r["name"] for r in db.fetchall("PRAGMA table_info(subscriptions)")}
        assert "shared_members" in cols
        assert "payment_method_id" in cols

    def test_initialize_is_idempotent(self, db):
        initialize_database(db)
        rows = db.fetchall("SELECT version FROM schema_version")
        assert max(r["version"] for r in rows) == CURRENT_SCHEMA_VERSION

    def test_fresh_database_has_version_zero(self, tmp_dir):
        conn = DatabaseConnection(db_path=tmp_dir / "empty.db")
        conn.connect()
        assert get_schema_version(conn) == 0
        conn.close()


class TestLogging:
    def test_loggers_share_package_handler(self):
        configure_logging("INFO")
        configure_logging("DEBUG")
        root = logging.getLogger("squeeze")
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG
        assert get_logger("squeeze.services.x").getEffectiveLevel() == logging.DEBUG

    def test_unknown_level_falls_back_to_warning(self):
        configure_logging("chatty")
        assert logging.getLogger("squeeze").level == logging.WARNING
