"""
Database Persistence Layer - Core Engine.

============================================================
DURABLE NEWS STORAGE
============================================================

Engine, sessions and schema bootstrap for the news archive.

SQLite is the default backend; PostgreSQL works through the
same code path. The runtime creates and owns the engine, so
nothing here holds global connection state.

Startup problems raise DatabaseInitializationError or
DatabaseConnectionError. Runtime write problems surface as
DatabasePersistenceError from transaction_scope and are
turned into a boolean by the repository.

============================================================
"""

import logging
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from sqlalchemy import create_engine, event, func, inspect, select, table, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool


logger = logging.getLogger(__name__)

Base = declarative_base()

REQUIRED_TABLES = ("news_items",)

IN_MEMORY_SQLITE_URLS = ("sqlite://", "sqlite:///:memory:")


# =============================================================
# ERRORS
# =============================================================

class DatabasePersistenceError(Exception):
    """A read or write against the archive did not complete."""


class DatabaseConnectionError(DatabasePersistenceError):
    """The archive could not be reached at all."""


class DatabaseInitializationError(DatabasePersistenceError):
    """The archive was reachable but its schema could not be prepared."""


# =============================================================
# ENGINE
# =============================================================

def redact_url(database_url: str) -> str:
    """Drop credentials from a database URL for logging."""
    if "@" not in database_url:
        return database_url
    scheme, _, rest = database_url.partition("://")
    return f"{scheme}://{rest.rsplit('@', 1)[-1]}"


def create_database_engine(
    database_url: str,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_recycle: int = 1800,
    echo: bool = False,
) -> Engine:
    """
    Build an engine for `database_url`.

    SQLite engines may be shared by the event loop thread and
    worker threads; in-memory SQLite keeps a single connection
    so every session sees the same database. Server backends
    get a pre-pinged connection pool.
    """
    logger.info(f"Opening news archive at {redact_url(database_url)}")

    if database_url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if database_url in IN_MEMORY_SQLITE_URLS:
            options["poolclass"] = StaticPool
    else:
        options = {
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_recycle": pool_recycle,
            "pool_pre_ping": True,
        }

    engine = create_engine(database_url, echo=echo, **options)

    @event.listens_for(engine, "connect")
    def _log_new_connection(dbapi_conn, connection_record):
        logger.debug(f"New archive connection opened ({engine.dialect.name})")

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def dispose_engine(engine: Optional[Engine]) -> None:
    if engine is None:
        return
    engine.dispose()
    logger.debug("News archive engine disposed")


# =============================================================
# TRANSACTIONS
# =============================================================

@contextmanager
def transaction_scope(session_factory: sessionmaker) -> Iterator[Session]:
    """
    One session, one transaction.

    The block's work is committed when it exits normally.
    Any error inside the block or during commit rolls the
    transaction back and is re-raised as
    DatabasePersistenceError.

        with transaction_scope(factory) as session:
            session.execute(stmt)
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Archive transaction rolled back ({type(e).__name__}): {e}")
        raise DatabasePersistenceError(str(e)) from e
    finally:
        session.close()


# =============================================================
# SCHEMA BOOTSTRAP
# =============================================================

def _check_connectivity(engine: Engine) -> None:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        raise DatabaseConnectionError(f"Archive unreachable: {e}") from e


def _ensure_schema(engine: Engine) -> None:
    # Registers NewsItemRecord on Base.metadata.
    from . import models  # noqa: F401

    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as e:
        raise DatabaseInitializationError(f"Schema creation failed: {e}") from e

    present = set(inspect(engine).get_table_names())
    absent = [name for name in REQUIRED_TABLES if name not in present]
    if absent:
        raise DatabaseInitializationError(f"Tables still missing after create: {absent}")


def initialize_database(engine: Engine) -> None:
    """
    Make the archive usable or fail loudly.

    Checks connectivity, then creates any missing tables.
    Called once by the runtime before anything reads history.

    Raises:
        DatabaseConnectionError: If no connection can be made
        DatabaseInitializationError: If the schema cannot be created
    """
    try:
        _check_connectivity(engine)
        _ensure_schema(engine)
    except DatabasePersistenceError as e:
        logger.critical(f"News archive unusable: {e}")
        raise
    logger.info(f"News archive ready: {', '.join(REQUIRED_TABLES)}")


def get_table_row_counts(engine: Engine) -> Dict[str, int]:
    """Row counts per required table, -1 where the count failed."""
    counts: Dict[str, int] = {}
    with engine.connect() as conn:
        for name in REQUIRED_TABLES:
            try:
                counts[name] = conn.execute(select(func.count()).select_from(table(name))).scalar_one()
            except SQLAlchemyError:
                counts[name] = -1
    return counts


__all__ = [
    "Base",
    "REQUIRED_TABLES",
    "create_database_engine",
    "create_session_factory",
    "dispose_engine",
    "transaction_scope",
    "initialize_database",
    "get_table_row_counts",
    "redact_url",
    "DatabasePersistenceError",
    "DatabaseConnectionError",
    "DatabaseInitializationError",
]
