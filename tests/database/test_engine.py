"""
Tests for the database engine helpers.
"""

import pytest
from sqlalchemy import inspect, text

from database.engine import (
    DEFAULT_DATABASE_URL,
    DatabasePersistenceError,
    create_database_engine,
    dispose_engine,
    get_database_url,
    get_engine,
    get_session_factory,
    initialize_database,
    transaction_scope,
    verify_database_connection,
)


MEMORY_URL = "sqlite+pysqlite:///:memory:"


@pytest.fixture
def memory_env(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("PRIVATE_TRADING_DATABASE_URL", MEMORY_URL)
    dispose_engine()
    yield
    dispose_engine()


class TestDatabaseUrl:
    """URL resolution order."""

    def test_prefixed_variable_wins(self, monkeypatch):
        monkeypatch.setenv("PRIVATE_TRADING_DATABASE_URL", "sqlite:///a.db")
        monkeypatch.setenv("DATABASE_URL", "sqlite:///b.db")
        assert get_database_url() == "sqlite:///a.db"

    def test_default(self, monkeypatch):
        monkeypatch.delenv("PRIVATE_TRADING_DATABASE_URL", raising=False)
        monkeypatch.delenv("DATABASE_URL", raising=False)
        assert get_database_url() == DEFAULT_DATABASE_URL


class TestEngine:
    """Engine, tables and transaction scope."""

    def test_initialize_creates_ledger_tables(self):
        engine = initialize_database(create_database_engine(MEMORY_URL))
        tables = set(inspect(engine).get_table_names())
        assert {
            "trading_orders",
            "trading_trades",
            "trading_portfolio",
            "trading_market_prices",
            "trading_events",
        } <= tables
        engine.dispose()

    def test_process_wide_engine(self, memory_env):
        engine = get_engine()
        assert get_engine() is engine
        assert verify_database_connection()

        with transaction_scope() as session:
            assert session.execute(text("SELECT 1")).scalar() == 1
        assert get_session_factory() is get_session_factory()

    def test_failed_statement_wrapped(self, memory_env):
        with pytest.raises(DatabasePersistenceError):
            with transaction_scope() as session:
                session.execute(text("SELECT * FROM missing_table"))
