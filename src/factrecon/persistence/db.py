"""Database connectivity and transaction helpers for factrecon.

Provides engine creation and a transaction context manager. The core talks to the
store exclusively through SQLAlchemy Core `text()` statements, so any transactional
backend SQLAlchemy supports will do; PostgreSQL is the production target and SQLite
is used in tests.

Environment Variables:
    FACTRECON_DATABASE_URL: Connection string for the fact/conflict store.

Design Requirements:
    - Every multi-statement write runs in one transaction
    - Fail closed on missing configuration
"""

from __future__ import annotations

import logging
import os
from collections.abc import Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from sqlalchemy import create_engine

if TYPE_CHECKING:
    from sqlalchemy import Connection, Engine

logger = logging.getLogger(__name__)

FACTRECON_DATABASE_URL_ENV = "FACTRECON_DATABASE_URL"

_engine: Engine | None = None


class DatabaseConfigError(Exception):
    """Raised when database configuration is missing or invalid.

    This is a fail-closed error - operations requiring the database
    should not proceed without valid configuration.
    """

    pass


def is_database_configured() -> bool:
    """Check if a database URL is configured via environment."""
    return bool(os.environ.get(FACTRECON_DATABASE_URL_ENV))


def _normalize_url(url: str) -> str:
    """Rewrite the legacy postgres:// scheme that SQLAlchemy no longer accepts."""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def get_database_url() -> str:
    """Get the database URL from environment.

    Returns:
        Database connection string.

    Raises:
        DatabaseConfigError: If FACTRECON_DATABASE_URL is not set.
    """
    url = os.environ.get(FACTRECON_DATABASE_URL_ENV, "").strip()

    if not url:
        raise DatabaseConfigError(
            f"Database URL not configured. Set {FACTRECON_DATABASE_URL_ENV} environment variable."
        )

    return _normalize_url(url)


def get_engine() -> Engine:
    """Get or create the process-wide database engine.

    Returns:
        SQLAlchemy Engine built from FACTRECON_DATABASE_URL.

    Raises:
        DatabaseConfigError: If FACTRECON_DATABASE_URL is not set.
    """
    global _engine

    if _engine is None:
        url = get_database_url()
        if url.startswith("sqlite"):
            _engine = create_engine(url, echo=False)
        else:
            _engine = create_engine(
                url,
                pool_size=5,
                max_overflow=10,
                pool_pre_ping=True,
                echo=False,
            )
        logger.info("Created database engine (%s)", _engine.dialect.name)

    return _engine


@contextmanager
def transaction(engine: Engine | None = None) -> Generator[Connection, None, None]:
    """Context manager for a connection with an open transaction.

    Commits on success. On any exception the transaction is rolled back and the
    original exception propagates unchanged.

    Args:
        engine: Engine to use. If None, uses the configured process-wide engine.

    Yields:
        SQLAlchemy Connection in a transaction.

    Raises:
        DatabaseConfigError: If no engine is given and none is configured.
    """
    if engine is None:
        engine = get_engine()
    with engine.connect() as conn, conn.begin():
        yield conn


def reset_engines() -> None:
    """Reset the global engine instance.

    Used for testing to ensure fresh engine creation.
    """
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None
