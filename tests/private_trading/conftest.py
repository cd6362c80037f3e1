"""
Shared fixtures for the private trading tests.
"""

from datetime import datetime, timezone

import pytest

from core.clock import MockClock
from database.engine import create_database_engine, create_session_factory, initialize_database
from private_trading.config import TradingLedgerConfig
from private_trading.repository import LedgerRepository
from private_trading.service import PrivateTradingService


START = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return MockClock(START)


@pytest.fixture
def config():
    return TradingLedgerConfig.for_testing()


@pytest.fixture
def service(config, clock):
    """In-memory service with the default fill and balance policies."""
    return PrivateTradingService(config=config, clock=clock)


@pytest.fixture
def engine():
    engine = create_database_engine("sqlite+pysqlite:///:memory:")
    initialize_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def repository(engine):
    return LedgerRepository(create_session_factory(engine))
