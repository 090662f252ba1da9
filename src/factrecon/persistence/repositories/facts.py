"""Facts repository for the attributed fact store.

Provides row-level access to facts, their source attributions and their outgoing
relationships. Callers own the transaction: every method runs on the connection the
repository was built with.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import bindparam, text

from factrecon.models.fact import Fact, FactRelationship, SourceAttribution
from factrecon.persistence.codec import dump_json, format_timestamp, load_json, parse_timestamp

if TYPE_CHECKING:
    from sqlalchemy import Connection

logger = logging.getLogger(__name__)

_FACT_COLUMNS = "fact_id, document_id, category, value, confidence, created_at, updated_at"


def escape_like(needle: str) -> str:
    """Escape LIKE wildcards so the needle matches literally (escape char is backslash)."""
    return needle.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class FactsRepository:
    """Repository for fact, attribution and relationship rows."""

    def __init__(self, conn: Connection) -> None:
        """Initialize repository with an open connection."""
        self._conn = conn

    def insert_fact(
        self,
        *,
        fact_id: str,
        document_id: str,
        category: str,
        value: Any,
        confidence: float,
        created_at: datetime,
    ) -> None:
        """Insert the fact row itself (without sources or relationships)."""
        self._conn.execute(
            text(
                """
                INSERT INTO facts (
                    fact_id, document_id, category, value, confidence, created_at, updated_at
                ) VALUES (
                    :fact_id, :document_id, :category, :value, :confidence, :created_at, NULL
                )
                """
            ),
            {
                "fact_id": fact_id,
                "document_id": document_id,
                "category": category,
                "value": dump_json(value),
                "confidence": confidence,
                "created_at": format_timestamp(created_at),
            },
        )

    def update_fact_row(
        self, fact_id: str, *, value: Any, confidence: float, updated_at: datetime
    ) -> bool:
        """Replace value and confidence. Returns False if no such fact exists."""
        result = self._conn.execute(
            text(
                """
                UPDATE facts
                SET value = :value, confidence = :confidence, updated_at = :updated_at
                WHERE fact_id = :fact_id
                """
            ),
            {
                "fact_id": fact_id,
                "value": dump_json(value),
                "confidence": confidence,
                "updated_at": format_timestamp(updated_at),
            },
        )
        return result.rowcount > 0

    def insert_sources(self, fact_id: str, sources: list[SourceAttribution]) -> None:
        """Insert attribution rows, keeping their order."""
        for position, source in enumerate(sources):
            self._conn.execute(
                text(
                    """
                    INSERT INTO fact_sources (
                        attribution_id, fact_id, position, source_id, context,
                        extraction_date, extraction_method, metadata
                    ) VALUES (
                        :attribution_id, :fact_id, :position, :source_id, :context,
                        :extraction_date, :extraction_method, :metadata
                    )
                    """
                ),
                {
                    "attribution_id": str(uuid.uuid4()),
                    "fact_id": fact_id,
                    "position": position,
                    "source_id": source.source_id,
                    "context": source.context,
                    "extraction_date": format_timestamp(source.extraction_date),
                    "extraction_method": source.extraction_method,
                    "metadata": dump_json(source.metadata) if source.metadata is not None else None,
                },
            )

    def insert_relationships(self, fact_id: str, relationships: list[FactRelationship]) -> None:
        """Insert outgoing relationship rows owned by fact_id."""
        for position, rel in enumerate(relationships):
            self._conn.execute(
                text(
                    """
                    INSERT INTO fact_relationships (
                        relationship_id, fact_id, position, related_fact_id,
                        type, description, confidence
                    ) VALUES (
                        :relationship_id, :fact_id, :position, :related_fact_id,
                        :type, :description, :confidence
                    )
                    """
                ),
                {
                    "relationship_id": str(uuid.uuid4()),
                    "fact_id": fact_id,
                    "position": position,
                    "related_fact_id": rel.related_fact_id,
                    "type": rel.type,
                    "description": rel.description,
                    "confidence": rel.confidence,
                },
            )

    def delete_sources(self, fact_id: str) -> None:
        self._conn.execute(
            text("DELETE FROM fact_sources WHERE fact_id = :fact_id"), {"fact_id": fact_id}
        )

    def delete_relationships(self, fact_id: str) -> None:
        self._conn.execute(
            text("DELETE FROM fact_relationships WHERE fact_id = :fact_id"), {"fact_id": fact_id}
        )

    def get(self, fact_id: str) -> Fact | None:
        """Get a fact by ID with its sources and relationships."""
        row = self._conn.execute(
            text(f"SELECT {_FACT_COLUMNS} FROM facts WHERE fact_id = :fact_id"),
            {"fact_id": fact_id},
        ).fetchone()

        if row is None:
            return None

        return self._hydrate([row])[0]

    def get_many(self, fact_ids: list[str]) -> dict[str, Fact]:
        """Get several facts keyed by id. Unknown ids are absent from the result."""
        if not fact_ids:
            return {}
        stmt = text(f"SELECT {_FACT_COLUMNS} FROM facts WHERE fact_id IN :ids").bindparams(
            bindparam("ids", expanding=True)
        )
        rows = self._conn.execute(stmt, {"ids": list(fact_ids)}).fetchall()
        return {fact.fact_id: fact for fact in self._hydrate(rows) if fact.fact_id}

    def list_by_document(
        self,
        document_id: str,
        category: str | None = None,
        min_confidence: float = 0.0,
    ) -> list[Fact]:
        """List a document's facts in insertion order."""
        params: dict[str, Any] = {"document_id": document_id, "min_confidence": min_confidence}
        category_clause = ""
        if category is not None:
            category_clause = "AND category = :category"
            params["category"] = category

        rows = self._conn.execute(
            text(
                f"""
                SELECT {_FACT_COLUMNS}
                FROM facts
                WHERE document_id = :document_id
                  AND confidence >= :min_confidence
                  {category_clause}
                ORDER BY created_at, fact_id
                """
            ),
            params,
        ).fetchall()
        return self._hydrate(rows)

    def search(
        self,
        category: str | None = None,
        text_contains: str | None = None,
        min_confidence: float = 0.0,
        limit: int = 100,
    ) -> list[Fact]:
        """Case-insensitive substring search over the serialised value."""
        clauses = ["confidence >= :min_confidence"]
        params: dict[str, Any] = {"min_confidence": min_confidence, "limit": limit}
        if category is not None:
            clauses.append("category = :category")
            params["category"] = category
        if text_contains:
            clauses.append("LOWER(value) LIKE :pattern ESCAPE '\\'")
            params["pattern"] = f"%{escape_like(text_contains.lower())}%"

        rows = self._conn.execute(
            text(
                f"""
                SELECT {_FACT_COLUMNS}
                FROM facts
                WHERE {" AND ".join(clauses)}
                ORDER BY confidence DESC, created_at DESC, fact_id
                LIMIT :limit
                """
            ),
            params,
        ).fetchall()
        return self._hydrate(rows)

    def list_by_source(
        self, source_id: str, min_confidence: float = 0.0, limit: int = 100
    ) -> list[Fact]:
        """List facts attributed to source_id, most confident first."""
        rows = self._conn.execute(
            text(
                f"""
                SELECT {_FACT_COLUMNS}
                FROM facts
                WHERE confidence >= :min_confidence
                  AND fact_id IN (
                      SELECT fact_id FROM fact_sources WHERE source_id = :source_id
                  )
                ORDER BY confidence DESC, created_at DESC, fact_id
                LIMIT :limit
                """
            ),
            {"source_id": source_id, "min_confidence": min_confidence, "limit": limit},
        ).fetchall()
        return self._hydrate(rows)

    def list_contradictions(self, document_id: str) -> list[FactRelationship]:
        """Relationship edges of type 'contradicts' with both endpoints in the document."""
        rows = self._conn.execute(
            text(
                """
                SELECT r.fact_id, r.related_fact_id, r.type, r.description, r.confidence
                FROM fact_relationships r
                JOIN facts f1 ON f1.fact_id = r.fact_id
                JOIN facts f2 ON f2.fact_id = r.related_fact_id
                WHERE r.type = 'contradicts'
                  AND f1.document_id = :document_id
                  AND f2.document_id = :document_id
                ORDER BY f1.created_at, r.fact_id, r.position
                """
            ),
            {"document_id": document_id},
        ).fetchall()
        return [self._row_to_relationship(row) for row in rows]

    def list_outgoing(
        self, fact_id: str, relationship_type: str | None = None
    ) -> list[FactRelationship]:
        """Outgoing relationship edges of a fact, in stored order."""
        params: dict[str, Any] = {"fact_id": fact_id}
        type_clause = ""
        if relationship_type is not None:
            type_clause = "AND type = :type"
            params["type"] = relationship_type
        rows = self._conn.execute(
            text(
                f"""
                SELECT fact_id, related_fact_id, type, description, confidence
                FROM fact_relationships
                WHERE fact_id = :fact_id {type_clause}
                ORDER BY position
                """
            ),
            params,
        ).fetchall()
        return [self._row_to_relationship(row) for row in rows]

    def count_sources_for_document(self, document_id: str) -> dict[str, int]:
        """Number of attributions per source id across a document's facts."""
        rows = self._conn.execute(
            text(
                """
                SELECT s.source_id, COUNT(*) AS n
                FROM fact_sources s
                JOIN facts f ON f.fact_id = s.fact_id
                WHERE f.document_id = :document_id
                GROUP BY s.source_id
                ORDER BY s.source_id
                """
            ),
            {"document_id": document_id},
        ).fetchall()
        return {row.source_id: int(row.n) for row in rows}

    def list_documents_with_multiple_facts(self) -> list[str]:
        rows = self._conn.execute(
            text(
                """
                SELECT document_id
                FROM facts
                GROUP BY document_id
                HAVING COUNT(*) > 1
                ORDER BY document_id
                """
            )
        ).fetchall()
        return [row.document_id for row in rows]

    def _hydrate(self, rows: Any) -> list[Fact]:
        """Build Fact models for rows, loading sources and relationships in one query each."""
        if not rows:
            return []

        ids = [row.fact_id for row in rows]
        sources: dict[str, list[SourceAttribution]] = defaultdict(list)
        relationships: dict[str, list[FactRelationship]] = defaultdict(list)

        source_rows = self._conn.execute(
            text(
                """
                SELECT fact_id, source_id, context, extraction_date, extraction_method, metadata
                FROM fact_sources
                WHERE fact_id IN :ids
                ORDER BY fact_id, position
                """
            ).bindparams(bindparam("ids", expanding=True)),
            {"ids": ids},
        ).fetchall()
        for row in source_rows:
            sources[row.fact_id].append(
                SourceAttribution(
                    source_id=row.source_id,
                    context=row.context,
                    extraction_date=parse_timestamp(row.extraction_date),
                    extraction_method=row.extraction_method,
                    metadata=load_json(row.metadata),
                )
            )

        rel_rows = self._conn.execute(
            text(
                """
                SELECT fact_id, related_fact_id, type, description, confidence
                FROM fact_relationships
                WHERE fact_id IN :ids
                ORDER BY fact_id, position
                """
            ).bindparams(bindparam("ids", expanding=True)),
            {"ids": ids},
        ).fetchall()
        for row in rel_rows:
            relationships[row.fact_id].append(self._row_to_relationship(row))

        return [
            self._row_to_fact(row, sources[row.fact_id], relationships[row.fact_id])
            for row in rows
        ]

    @staticmethod
    def _row_to_fact(
        row: Any,
        sources: list[SourceAttribution],
        relationships: list[FactRelationship],
    ) -> Fact:
        return Fact(
            fact_id=row.fact_id,
            document_id=row.document_id,
            category=row.category,
            value=load_json(row.value),
            confidence=float(row.confidence),
            sources=sources,
            relationships=relationships,
            created_at=parse_timestamp(row.created_at),
            updated_at=parse_timestamp(row.updated_at),
        )

    @staticmethod
    def _row_to_relationship(row: Any) -> FactRelationship:
        return FactRelationship(
            fact_id=row.fact_id,
            related_fact_id=row.related_fact_id,
            type=row.type,
            description=row.description,
            confidence=float(row.confidence),
        )
