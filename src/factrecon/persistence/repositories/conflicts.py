"""Conflict records repository.

Conflict rows are append-only: they are inserted once per unordered fact pair and
afterwards only their status and resolution columns change.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import text

from factrecon.models.conflict import ConflictRecord, ConflictStatus, normalize_pair
from factrecon.persistence.codec import format_timestamp, parse_timestamp

if TYPE_CHECKING:
    from sqlalchemy import Connection

logger = logging.getLogger(__name__)

_CONFLICT_COLUMNS = """
    conflict_id, document_id, conflict_type, severity, fact1_id, fact2_id,
    detection_date, status, resolution_strategy, resolved_fact_id,
    resolution_date, resolution_by, resolution_notes
"""

_SEVERITY_ORDER = """
    CASE severity WHEN 'high' THEN 3 WHEN 'medium' THEN 2 WHEN 'low' THEN 1 ELSE 0 END
"""


class ConflictsRepository:
    """Repository for conflict record persistence operations."""

    def __init__(self, conn: Connection) -> None:
        """Initialize repository with an open connection."""
        self._conn = conn

    def existing_pairs(self, document_id: str) -> set[tuple[str, str]]:
        """Return the normalised fact pairs already recorded for a document."""
        rows = self._conn.execute(
            text(
                """
                SELECT fact1_id, fact2_id
                FROM conflict_records
                WHERE document_id = :document_id
                """
            ),
            {"document_id": document_id},
        ).fetchall()
        return {normalize_pair(row.fact1_id, row.fact2_id) for row in rows}

    def insert_if_absent(self, record: ConflictRecord) -> bool:
        """Insert a conflict unless its pair is already recorded.

        The pair is normalised before writing. Returns True only when a row was
        actually written.
        """
        fact1_id, fact2_id = normalize_pair(record.fact1_id, record.fact2_id)
        result = self._conn.execute(
            text(
                """
                INSERT INTO conflict_records (
                    conflict_id, document_id, conflict_type, severity,
                    fact1_id, fact2_id, detection_date, status
                ) VALUES (
                    :conflict_id, :document_id, :conflict_type, :severity,
                    :fact1_id, :fact2_id, :detection_date, :status
                )
                ON CONFLICT (fact1_id, fact2_id) DO NOTHING
                """
            ),
            {
                "conflict_id": record.conflict_id,
                "document_id": record.document_id,
                "conflict_type": record.conflict_type,
                "severity": str(record.severity),
                "fact1_id": fact1_id,
                "fact2_id": fact2_id,
                "detection_date": format_timestamp(record.detection_date),
                "status": str(record.status),
            },
        )
        return result.rowcount == 1

    def get(self, conflict_id: str) -> ConflictRecord | None:
        """Get a conflict record by ID."""
        row = self._conn.execute(
            text(f"SELECT {_CONFLICT_COLUMNS} FROM conflict_records WHERE conflict_id = :id"),
            {"id": conflict_id},
        ).fetchone()

        if row is None:
            return None

        return self._row_to_record(row)

    def list_by_document(
        self, document_id: str, status: str | None = None
    ) -> list[ConflictRecord]:
        """List a document's conflicts, newest detection first."""
        params: dict[str, Any] = {"document_id": document_id}
        status_clause = ""
        if status is not None:
            status_clause = "AND status = :status"
            params["status"] = status

        rows = self._conn.execute(
            text(
                f"""
                SELECT {_CONFLICT_COLUMNS}
                FROM conflict_records
                WHERE document_id = :document_id {status_clause}
                ORDER BY detection_date DESC, conflict_id
                """
            ),
            params,
        ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def list_unresolved(self, limit: int = 100) -> list[ConflictRecord]:
        """List unresolved conflicts, most severe first, then newest first."""
        rows = self._conn.execute(
            text(
                f"""
                SELECT {_CONFLICT_COLUMNS}
                FROM conflict_records
                WHERE status = :status
                ORDER BY {_SEVERITY_ORDER} DESC, detection_date DESC, conflict_id
                LIMIT :limit
                """
            ),
            {"status": ConflictStatus.UNRESOLVED.value, "limit": limit},
        ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def mark_resolved_auto(
        self,
        conflict_id: str,
        *,
        strategy: str,
        resolved_fact_id: str,
        notes: str,
        resolution_date: datetime,
    ) -> bool:
        """Record an automatic resolution. Only rows still unresolved are updated."""
        result = self._conn.execute(
            text(
                """
                UPDATE conflict_records
                SET status = :new_status,
                    resolution_strategy = :strategy,
                    resolved_fact_id = :resolved_fact_id,
                    resolution_date = :resolution_date,
                    resolution_by = 'system',
                    resolution_notes = :notes
                WHERE conflict_id = :conflict_id AND status = :expected_status
                """
            ),
            {
                "conflict_id": conflict_id,
                "new_status": ConflictStatus.RESOLVED_AUTO.value,
                "expected_status": ConflictStatus.UNRESOLVED.value,
                "strategy": strategy,
                "resolved_fact_id": resolved_fact_id,
                "resolution_date": format_timestamp(resolution_date),
                "notes": notes,
            },
        )
        return result.rowcount > 0

    def mark_resolved_manual(
        self,
        conflict_id: str,
        *,
        resolved_fact_id: str,
        actor: str,
        notes: str | None,
        resolution_date: datetime,
    ) -> bool:
        """Record a manual resolution, overriding any earlier decision."""
        result = self._conn.execute(
            text(
                """
                UPDATE conflict_records
                SET status = :new_status,
                    resolution_strategy = :strategy,
                    resolved_fact_id = :resolved_fact_id,
                    resolution_date = :resolution_date,
                    resolution_by = :actor,
                    resolution_notes = :notes
                WHERE conflict_id = :conflict_id
                """
            ),
            {
                "conflict_id": conflict_id,
                "new_status": ConflictStatus.RESOLVED_MANUAL.value,
                "strategy": "manual",
                "resolved_fact_id": resolved_fact_id,
                "resolution_date": format_timestamp(resolution_date),
                "actor": actor,
                "notes": notes,
            },
        )
        return result.rowcount > 0

    def mark_flagged(self, conflict_id: str, *, notes: str | None) -> bool:
        """Flag a conflict for review; any previously selected winner is cleared."""
        result = self._conn.execute(
            text(
                """
                UPDATE conflict_records
                SET status = :new_status,
                    resolved_fact_id = NULL,
                    resolution_notes = :notes
                WHERE conflict_id = :conflict_id
                """
            ),
            {
                "conflict_id": conflict_id,
                "new_status": ConflictStatus.FLAGGED.value,
                "notes": notes,
            },
        )
        return result.rowcount > 0

    def count_by(self, column: str, document_id: str | None = None) -> dict[str, int]:
        """Count conflicts grouped by 'status' or 'severity', optionally for one document."""
        if column not in ("status", "severity"):
            raise ValueError(f"Cannot group conflicts by {column!r}")
        where = "WHERE document_id = :document_id" if document_id is not None else ""
        rows = self._conn.execute(
            text(
                f"""
                SELECT {column} AS bucket, COUNT(*) AS n
                FROM conflict_records
                {where}
                GROUP BY {column}
                """
            ),
            {"document_id": document_id} if document_id is not None else {},
        ).fetchall()
        return {row.bucket: int(row.n) for row in rows}

    @staticmethod
    def _row_to_record(row: Any) -> ConflictRecord:
        return ConflictRecord(
            conflict_id=row.conflict_id,
            document_id=row.document_id,
            conflict_type=row.conflict_type,
            severity=row.severity,
            fact1_id=row.fact1_id,
            fact2_id=row.fact2_id,
            detection_date=parse_timestamp(row.detection_date),
            status=row.status,
            resolution_strategy=row.resolution_strategy,
            resolved_fact_id=row.resolved_fact_id,
            resolution_date=parse_timestamp(row.resolution_date),
            resolution_by=row.resolution_by,
            resolution_notes=row.resolution_notes,
        )
