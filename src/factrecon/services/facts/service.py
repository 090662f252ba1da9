"""FactStore - business logic layer for the attributed fact store.

Facts, their source attributions and their relationships are written together in
one transaction; a failure anywhere rolls everything back and the original
exception propagates. Updates replace the value, confidence, sources and
relationships as a whole (replace, not merge).
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from typing import TYPE_CHECKING

from factrecon.audit.sink import AuditSink, InMemoryAuditSink, build_event, emit_safely
from factrecon.models.fact import Fact, FactRelationship, KnowledgeSummary
from factrecon.models.taxonomy import TaxonomyMonitor
from factrecon.observability.tracing import traced_operation
from factrecon.persistence.codec import utc_now
from factrecon.persistence.db import transaction
from factrecon.persistence.repositories.facts import FactsRepository

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


class FactStoreError(Exception):
    """Base exception for FactStore errors."""

    pass


class FactNotFoundError(FactStoreError):
    """Raised when a fact is not found."""

    def __init__(self, fact_id: str) -> None:
        self.fact_id = fact_id
        super().__init__(f"Fact {fact_id} not found")


class FactIdRequiredError(FactStoreError, ValueError):
    """Raised when an update is attempted on a fact without an id."""

    def __init__(self) -> None:
        super().__init__("Fact id is required for update")


class FactStore:
    """Service layer for storing and querying attributed facts.

    Args:
        engine: SQLAlchemy engine for the fact store database.
        taxonomy: Monitor notified about unknown categories and relationship types.
        audit_sink: Sink for fact.created / fact.updated events.
    """

    def __init__(
        self,
        engine: Engine,
        taxonomy: TaxonomyMonitor | None = None,
        audit_sink: AuditSink | None = None,
    ) -> None:
        self._engine = engine
        self._taxonomy = taxonomy or TaxonomyMonitor()
        self._audit_sink = audit_sink or InMemoryAuditSink()

    @property
    def engine(self) -> Engine:
        return self._engine

    def _check_taxonomy(self, fact: Fact) -> None:
        context = f"document {fact.document_id}"
        self._taxonomy.check_category(fact.category, context)
        for rel in fact.relationships:
            self._taxonomy.check_relationship_type(rel.type, context)

    @traced_operation("store_fact")
    def store_fact(self, fact: Fact) -> Fact:
        """Store a new fact with its sources and relationships.

        A fact_id is generated unless the producer supplied one.

        Returns:
            The stored fact, with fact_id and created_at set.
        """
        self._check_taxonomy(fact)

        fact_id = fact.fact_id or str(uuid.uuid4())
        now = utc_now()
        stored = fact.model_copy(
            update={
                "fact_id": fact_id,
                "created_at": now,
                "updated_at": None,
                "relationships": [
                    rel.model_copy(update={"fact_id": fact_id}) for rel in fact.relationships
                ],
            }
        )

        with transaction(self._engine) as conn:
            repo = FactsRepository(conn)
            repo.insert_fact(
                fact_id=fact_id,
                document_id=stored.document_id,
                category=stored.category,
                value=stored.value,
                confidence=stored.confidence,
                created_at=now,
            )
            repo.insert_sources(fact_id, stored.sources)
            repo.insert_relationships(fact_id, stored.relationships)

        logger.info(
            "Stored %s fact %s for document %s (%d sources)",
            stored.category,
            fact_id,
            stored.document_id,
            len(stored.sources),
        )
        emit_safely(
            self._audit_sink,
            build_event(
                "fact.created",
                resource_type="fact",
                resource_id=fact_id,
                details={
                    "document_id": stored.document_id,
                    "category": stored.category,
                    "source_ids": stored.source_ids,
                },
            ),
        )
        return stored

    @traced_operation("get_facts_for_document")
    def get_facts_for_document(
        self,
        document_id: str,
        category: str | None = None,
        min_confidence: float = 0.0,
    ) -> list[Fact]:
        """List a document's facts in insertion order, sources and relationships loaded."""
        with transaction(self._engine) as conn:
            return FactsRepository(conn).list_by_document(
                document_id, category=category, min_confidence=min_confidence
            )

    def get_fact_by_id(self, fact_id: str) -> Fact:
        """Get a fact by ID.

        Raises:
            FactNotFoundError: If no fact has this id.
        """
        with transaction(self._engine) as conn:
            fact = FactsRepository(conn).get(fact_id)
        if fact is None:
            raise FactNotFoundError(fact_id)
        return fact

    @traced_operation("update_fact")
    def update_fact(self, fact: Fact) -> Fact:
        """Replace a fact's value, confidence, sources and relationships.

        The sources and relationships on the argument become the complete new sets;
        nothing from the stored version is kept. document_id and category are not
        changed by an update.

        Raises:
            FactIdRequiredError: If fact.fact_id is missing (raised before any I/O).
            FactNotFoundError: If no fact has this id.
        """
        if not fact.fact_id:
            raise FactIdRequiredError()

        fact_id = fact.fact_id
        self._check_taxonomy(fact)
        now = utc_now()
        relationships = [
            rel.model_copy(update={"fact_id": fact_id}) for rel in fact.relationships
        ]

        with transaction(self._engine) as conn:
            repo = FactsRepository(conn)
            if not repo.update_fact_row(
                fact_id, value=fact.value, confidence=fact.confidence, updated_at=now
            ):
                raise FactNotFoundError(fact_id)
            repo.delete_sources(fact_id)
            repo.delete_relationships(fact_id)
            repo.insert_sources(fact_id, fact.sources)
            repo.insert_relationships(fact_id, relationships)
            updated = repo.get(fact_id)

        assert updated is not None
        logger.info("Updated fact %s", fact_id)
        emit_safely(
            self._audit_sink,
            build_event(
                "fact.updated",
                resource_type="fact",
                resource_id=fact_id,
                details={
                    "document_id": updated.document_id,
                    "confidence": updated.confidence,
                    "source_ids": updated.source_ids,
                },
            ),
        )
        return updated

    def search_facts(
        self,
        category: str | None = None,
        text_contains: str | None = None,
        min_confidence: float = 0.0,
        limit: int = 100,
    ) -> list[Fact]:
        """Search facts across documents.

        text_contains is a case-insensitive substring match over the serialised value;
        LIKE wildcards in it match literally. Results are ordered by confidence, then
        newest first.
        """
        with transaction(self._engine) as conn:
            return FactsRepository(conn).search(
                category=category,
                text_contains=text_contains,
                min_confidence=min_confidence,
                limit=limit,
            )

    def find_contradictions(self, document_id: str) -> list[FactRelationship]:
        """Author-asserted 'contradicts' edges between facts of the document.

        Independent of detected conflict records.
        """
        with transaction(self._engine) as conn:
            return FactsRepository(conn).list_contradictions(document_id)

    def get_facts_from_source(
        self, source_id: str, min_confidence: float = 0.0, limit: int = 100
    ) -> list[Fact]:
        with transaction(self._engine) as conn:
            return FactsRepository(conn).list_by_source(
                source_id, min_confidence=min_confidence, limit=limit
            )

    def get_related_facts(
        self, fact_id: str, relationship_type: str | None = None
    ) -> list[tuple[FactRelationship, Fact]]:
        """Outgoing relationships of a fact paired with their target facts.

        Edges whose target is not stored are skipped.

        Raises:
            FactNotFoundError: If the source fact does not exist.
        """
        with transaction(self._engine) as conn:
            repo = FactsRepository(conn)
            if repo.get(fact_id) is None:
                raise FactNotFoundError(fact_id)
            edges = repo.list_outgoing(fact_id, relationship_type)
            targets = repo.get_many([edge.related_fact_id for edge in edges])

        return [
            (edge, targets[edge.related_fact_id])
            for edge in edges
            if edge.related_fact_id in targets
        ]

    def get_knowledge_summary(self, document_id: str) -> KnowledgeSummary:
        """Summarise a document's facts: counts, sources, contradictions, top facts."""
        with transaction(self._engine) as conn:
            repo = FactsRepository(conn)
            facts = repo.list_by_document(document_id)
            source_counts = repo.count_sources_for_document(document_id)
            contradictions = repo.list_contradictions(document_id)

        top: dict[str, Fact] = {}
        for fact in facts:
            current = top.get(fact.category)
            if current is None or fact.confidence > current.confidence:
                top[fact.category] = fact

        return KnowledgeSummary(
            document_id=document_id,
            fact_counts=dict(Counter(fact.category for fact in facts)),
            source_counts=source_counts,
            contradiction_count=len(contradictions),
            top_facts_by_category=top,
        )

    def list_documents_with_multiple_facts(self) -> list[str]:
        with transaction(self._engine) as conn:
            return FactsRepository(conn).list_documents_with_multiple_facts()
