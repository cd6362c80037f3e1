"""
Database Package Initialization.

============================================================
LEDGER DATABASE PERSISTENCE LAYER
============================================================

Engine, sessions and transaction scopes shared by the ledger
repository.

REQUIRED:
- Every failure raises hard exceptions
- All transactions are explicit with commit/rollback

============================================================
"""

from .base import Base, TimestampMixin
from .engine import (
    # Engine creation
    DEFAULT_DATABASE_URL,
    get_database_url,
    create_database_engine,
    get_engine,
    dispose_engine,

    # Session management
    create_session_factory,
    get_session_factory,
    transaction_scope,

    # Database initialization
    verify_database_connection,
    create_all_tables,
    initialize_database,

    # Exceptions
    DatabasePersistenceError,
    DatabaseConnectionError,
    DatabaseInitializationError,
)


__all__ = [
    "Base",
    "TimestampMixin",
    "DEFAULT_DATABASE_URL",
    "get_database_url",
    "create_database_engine",
    "get_engine",
    "dispose_engine",
    "create_session_factory",
    "get_session_factory",
    "transaction_scope",
    "verify_database_connection",
    "create_all_tables",
    "initialize_database",
    "DatabasePersistenceError",
    "DatabaseConnectionError",
    "DatabaseInitializationError",
]
