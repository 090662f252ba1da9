"""Conflict detector for attributed facts.

Groups a document's facts by category and compares every unordered pair within a
group using the category predicate. New conflicts are recorded with an atomic
insert-if-absent on the normalised fact pair, so repeated runs never duplicate a
record. Newly detected conflicts at or below the auto-resolution severity cutoff are
handed to the ConflictService for automatic resolution.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from typing import TYPE_CHECKING

from factrecon.audit.sink import AuditSink, InMemoryAuditSink
from factrecon.config import ReconciliationSettings
from factrecon.models.conflict import ConflictRecord, normalize_pair
from factrecon.models.fact import Fact
from factrecon.models.taxonomy import TaxonomyMonitor
from factrecon.observability.tracing import traced_operation
from factrecon.persistence.codec import utc_now
from factrecon.persistence.db import transaction
from factrecon.persistence.repositories.conflicts import ConflictsRepository
from factrecon.persistence.repositories.facts import FactsRepository
from factrecon.services.conflicts.predicates import PREDICATES, ConflictPredicate, facts_conflict
from factrecon.services.conflicts.service import ConflictService
from factrecon.services.conflicts.severity import classify_severity

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from factrecon.services.resolution.registry import SourceRegistry

logger = logging.getLogger(__name__)


class ConflictDetector:
    """Detects conflicts between facts of the same document and category.

    Also exposes get_conflicts_for_document, get_unresolved_conflicts and
    resolve_conflict_manually by delegation to its ConflictService, so an
    orchestrator can work with a single object.
    """

    def __init__(
        self,
        engine: Engine,
        settings: ReconciliationSettings | None = None,
        conflict_service: ConflictService | None = None,
        registry: SourceRegistry | None = None,
        predicates: dict[str, ConflictPredicate] | None = None,
        taxonomy: TaxonomyMonitor | None = None,
        audit_sink: AuditSink | None = None,
    ) -> None:
        self._engine = engine
        self._settings = settings or ReconciliationSettings()
        self._predicates = dict(PREDICATES if predicates is None else predicates)
        self._service = conflict_service or ConflictService(
            engine,
            settings=self._settings,
            registry=registry,
            taxonomy=taxonomy or TaxonomyMonitor(),
            audit_sink=audit_sink or InMemoryAuditSink(),
        )

    @property
    def conflict_service(self) -> ConflictService:
        return self._service

    @staticmethod
    def _group_by_category(facts: list[Fact]) -> dict[str, list[Fact]]:
        groups: dict[str, list[Fact]] = defaultdict(list)
        for fact in facts:
            groups[fact.category].append(fact)
        return groups

    def _record_new_conflicts(self, document_id: str) -> list[ConflictRecord]:
        detected_at = utc_now()
        new_records: list[ConflictRecord] = []

        with transaction(self._engine) as conn:
            facts = FactsRepository(conn).list_by_document(document_id)
            conflicts_repo = ConflictsRepository(conn)
            recorded = conflicts_repo.existing_pairs(document_id)

            for category, group in self._group_by_category(facts).items():
                if len(group) < 2 or category not in self._predicates:
                    continue
                for i, fact1 in enumerate(group):
                    for fact2 in group[i + 1 :]:
                        assert fact1.fact_id is not None and fact2.fact_id is not None
                        pair = normalize_pair(fact1.fact_id, fact2.fact_id)
                        if pair in recorded:
                            continue
                        if not facts_conflict(
                            fact1, fact2, self._settings.thresholds, self._predicates
                        ):
                            continue

                        record = ConflictRecord(
                            conflict_id=str(uuid.uuid4()),
                            document_id=document_id,
                            conflict_type=category,
                            severity=classify_severity(category, fact1, fact2),
                            fact1_id=pair[0],
                            fact2_id=pair[1],
                            detection_date=detected_at,
                        )
                        if conflicts_repo.insert_if_absent(record):
                            new_records.append(record)
                        recorded.add(pair)

        return new_records

    @traced_operation("detect_conflicts")
    def detect_conflicts(self, document_id: str) -> list[ConflictRecord]:
        """Detect and record new conflicts for a document.

        Returns:
            Newly created records only, reflecting any automatic resolution applied.
        """
        new_records = self._record_new_conflicts(document_id)

        for record in new_records:
            self._service.emit_detected(record)

        logger.info(
            "Detected %d new conflicts for document %s", len(new_records), document_id
        )

        policy = self._settings.auto_resolution
        results: list[ConflictRecord] = []
        for record in new_records:
            if policy.allows(record.severity):
                results.append(self._service.auto_resolve(record))
            else:
                results.append(record)
        return results

    def detect_all(self) -> dict[str, list[ConflictRecord]]:
        """Run detection for every document holding more than one fact."""
        with transaction(self._engine) as conn:
            document_ids = FactsRepository(conn).list_documents_with_multiple_facts()

        results = {doc_id: self.detect_conflicts(doc_id) for doc_id in document_ids}
        logger.info(
            "Batch detection over %d documents recorded %d conflicts",
            len(document_ids),
            sum(len(r) for r in results.values()),
        )
        return results

    def get_conflicts_for_document(
        self, document_id: str, status: str | None = None
    ) -> list[ConflictRecord]:
        return self._service.get_conflicts_for_document(document_id, status=status)

    def get_unresolved_conflicts(self, limit: int = 100) -> list[ConflictRecord]:
        return self._service.get_unresolved_conflicts(limit=limit)

    def resolve_conflict_manually(
        self,
        conflict_id: str,
        selected_fact_id: str,
        notes: str | None = None,
        actor: str = "user",
    ) -> ConflictRecord:
        return self._service.resolve_conflict_manually(
            conflict_id, selected_fact_id, notes=notes, actor=actor
        )

    def flag_conflict(self, conflict_id: str, notes: str | None = None) -> ConflictRecord:
        return self._service.flag_conflict(conflict_id, notes=notes)
