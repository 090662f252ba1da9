"""Source metadata repository (the SQL-backed source registry table)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import bindparam, text

from factrecon.models.source import SourceInfo
from factrecon.persistence.codec import dump_json, format_timestamp, load_json, parse_timestamp

if TYPE_CHECKING:
    from sqlalchemy import Connection

logger = logging.getLogger(__name__)


class SourcesRepository:
    """Repository for source_metadata rows."""

    def __init__(self, conn: Connection) -> None:
        """Initialize repository with an open connection."""
        self._conn = conn

    def upsert(self, source: SourceInfo) -> None:
        """Insert a source or replace its metadata."""
        self._conn.execute(
            text(
                """
                INSERT INTO source_metadata (
                    source_id, name, source_type, last_updated, is_primary, metadata
                ) VALUES (
                    :source_id, :name, :source_type, :last_updated, :is_primary, :metadata
                )
                ON CONFLICT (source_id) DO UPDATE SET
                    name = excluded.name,
                    source_type = excluded.source_type,
                    last_updated = excluded.last_updated,
                    is_primary = excluded.is_primary,
                    metadata = excluded.metadata
                """
            ),
            {
                "source_id": source.source_id,
                "name": source.name,
                "source_type": source.source_type,
                "last_updated": format_timestamp(source.last_updated),
                "is_primary": source.is_primary,
                "metadata": dump_json(source.metadata),
            },
        )

    def get(self, source_id: str) -> SourceInfo | None:
        row = self._conn.execute(
            text(
                """
                SELECT source_id, name, source_type, last_updated, is_primary, metadata
                FROM source_metadata
                WHERE source_id = :source_id
                """
            ),
            {"source_id": source_id},
        ).fetchone()
        if row is None:
            return None
        return self._row_to_source(row)

    def get_many(self, source_ids: list[str]) -> dict[str, SourceInfo]:
        """Return the known sources among source_ids, keyed by id."""
        if not source_ids:
            return {}
        rows = self._conn.execute(
            text(
                """
                SELECT source_id, name, source_type, last_updated, is_primary, metadata
                FROM source_metadata
                WHERE source_id IN :ids
                """
            ).bindparams(bindparam("ids", expanding=True)),
            {"ids": list(source_ids)},
        ).fetchall()
        return {row.source_id: self._row_to_source(row) for row in rows}

    @staticmethod
    def _row_to_source(row: Any) -> SourceInfo:
        return SourceInfo(
            source_id=row.source_id,
            name=row.name,
            source_type=row.source_type,
            last_updated=parse_timestamp(row.last_updated),
            is_primary=bool(row.is_primary),
            metadata=load_json(row.metadata) or {},
        )
