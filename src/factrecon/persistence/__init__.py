"""Persistence layer: engine/transaction helpers, schema, migrations and repositories."""

from factrecon.persistence.db import (
    DatabaseConfigError,
    get_database_url,
    get_engine,
    is_database_configured,
    reset_engines,
    transaction,
)
from factrecon.persistence.schema import drop_schema, ensure_schema

__all__ = [
    "DatabaseConfigError",
    "drop_schema",
    "ensure_schema",
    "get_database_url",
    "get_engine",
    "is_database_configured",
    "reset_engines",
    "transaction",
]
