"""Portable DDL for the fact store and conflict records.

The statements run unchanged on PostgreSQL and SQLite. Timestamps are fixed-width
UTC text (see persistence.codec); JSON payloads are text.

Tables:
- facts: one row per attributed claim
- fact_sources: 1..N provenance rows per fact
- fact_relationships: 0..N directed edges per fact
- conflict_records: one row per unordered fact pair (fact1_id < fact2_id)
- source_metadata: source registry
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import text

if TYPE_CHECKING:
    from sqlalchemy import Connection

logger = logging.getLogger(__name__)

TABLES = ("facts", "fact_sources", "fact_relationships", "conflict_records", "source_metadata")

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS facts (
        fact_id TEXT PRIMARY KEY,
        document_id TEXT NOT NULL,
        category TEXT NOT NULL,
        value TEXT NOT NULL,
        confidence DOUBLE PRECISION NOT NULL DEFAULT 0.5,
        created_at TEXT NOT NULL,
        updated_at TEXT,
        CONSTRAINT ck_facts_confidence CHECK (confidence >= 0 AND confidence <= 1)
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_facts_document_category ON facts (document_id, category)",
    """
    CREATE TABLE IF NOT EXISTS fact_sources (
        attribution_id TEXT PRIMARY KEY,
        fact_id TEXT NOT NULL REFERENCES facts(fact_id),
        position INTEGER NOT NULL,
        source_id TEXT NOT NULL,
        context TEXT,
        extraction_date TEXT NOT NULL,
        extraction_method TEXT,
        metadata TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_fact_sources_fact_id ON fact_sources (fact_id)",
    "CREATE INDEX IF NOT EXISTS ix_fact_sources_source_id ON fact_sources (source_id)",
    """
    CREATE TABLE IF NOT EXISTS fact_relationships (
        relationship_id TEXT PRIMARY KEY,
        fact_id TEXT NOT NULL REFERENCES facts(fact_id),
        position INTEGER NOT NULL,
        related_fact_id TEXT NOT NULL,
        type TEXT NOT NULL,
        description TEXT,
        confidence DOUBLE PRECISION NOT NULL DEFAULT 0.5
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_fact_relationships_fact_id ON fact_relationships (fact_id)",
    """
    CREATE INDEX IF NOT EXISTS ix_fact_relationships_related_fact_id
    ON fact_relationships (related_fact_id)
    """,
    """
    CREATE TABLE IF NOT EXISTS conflict_records (
        conflict_id TEXT PRIMARY KEY,
        document_id TEXT NOT NULL,
        conflict_type TEXT NOT NULL,
        severity TEXT NOT NULL,
        fact1_id TEXT NOT NULL REFERENCES facts(fact_id),
        fact2_id TEXT NOT NULL REFERENCES facts(fact_id),
        detection_date TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'unresolved',
        resolution_strategy TEXT,
        resolved_fact_id TEXT,
        resolution_date TEXT,
        resolution_by TEXT,
        resolution_notes TEXT,
        CONSTRAINT uq_conflict_records_pair UNIQUE (fact1_id, fact2_id),
        CONSTRAINT ck_conflict_records_distinct CHECK (fact1_id <> fact2_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_conflict_records_document_id ON conflict_records (document_id)",
    "CREATE INDEX IF NOT EXISTS ix_conflict_records_status ON conflict_records (status)",
    """
    CREATE TABLE IF NOT EXISTS source_metadata (
        source_id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        source_type TEXT,
        last_updated TEXT,
        is_primary BOOLEAN NOT NULL DEFAULT FALSE,
        metadata TEXT
    )
    """,
)

DROP_STATEMENTS: tuple[str, ...] = (
    "DROP TABLE IF EXISTS conflict_records",
    "DROP TABLE IF EXISTS fact_relationships",
    "DROP TABLE IF EXISTS fact_sources",
    "DROP TABLE IF EXISTS source_metadata",
    "DROP TABLE IF EXISTS facts",
)


def ensure_schema(conn: Connection) -> None:
    """Create all tables and indexes if they do not exist yet."""
    for statement in SCHEMA_STATEMENTS:
        conn.execute(text(statement))
    logger.debug("Schema ensured (%d statements)", len(SCHEMA_STATEMENTS))


def drop_schema(conn: Connection) -> None:
    """Drop all factrecon tables. Used by migrations downgrade and tests."""
    for statement in DROP_STATEMENTS:
        conn.execute(text(statement))
