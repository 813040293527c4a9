"""
Database Package Initialization.

============================================================
DURABLE NEWS ARCHIVE
============================================================

Keyed upsert storage for news items, queried once at
startup to bootstrap the in-memory store and written on
every item mutation.

- Explicit engine ownership (no module-level engine)
- Explicit transactions with commit/rollback
- Startup failures raise; runtime write failures are
  logged and reported

============================================================
"""

from .engine import (
    Base,
    REQUIRED_TABLES,
    create_database_engine,
    create_session_factory,
    transaction_scope,
    initialize_database,
    get_table_row_counts,
    dispose_engine,
    redact_url,
    DatabasePersistenceError,
    DatabaseConnectionError,
    DatabaseInitializationError,
)
from .models import NewsItemRecord
from .repository import NewsRepository, UPDATABLE_COLUMNS, item_to_row, record_to_item


__all__ = [
    "Base",
    "REQUIRED_TABLES",
    "create_database_engine",
    "create_session_factory",
    "transaction_scope",
    "initialize_database",
    "get_table_row_counts",
    "dispose_engine",
    "redact_url",
    "DatabasePersistenceError",
    "DatabaseConnectionError",
    "DatabaseInitializationError",
    "NewsItemRecord",
    "NewsRepository",
    "UPDATABLE_COLUMNS",
    "item_to_row",
    "record_to_item",
]
