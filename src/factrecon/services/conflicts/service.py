"""ConflictService - lifecycle of detected conflicts.

Implements the resolution workflows on top of the conflict_records table:
- Automatic resolution through the ResolutionEngine (only rows still unresolved)
- Manual resolution by an actor, which overrides any earlier decision
- Flagging for external review, which records notes and no winner

Every write is a transactional update of the existing row. Facts are never deleted
or merged by resolution.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from factrecon.audit.sink import AuditSink, InMemoryAuditSink, build_event, emit_safely
from factrecon.config import ReconciliationSettings
from factrecon.models.conflict import (
    ConflictRecord,
    ConflictSeverity,
    ConflictStatus,
    Resolution,
)
from factrecon.models.taxonomy import TaxonomyMonitor
from factrecon.observability.tracing import traced_operation
from factrecon.persistence.codec import utc_now
from factrecon.persistence.db import transaction
from factrecon.persistence.repositories.conflicts import ConflictsRepository
from factrecon.persistence.repositories.facts import FactsRepository
from factrecon.services.resolution.engine import ResolutionEngine
from factrecon.services.resolution.registry import SourceRegistry, SqlSourceRegistry

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


class ConflictServiceError(Exception):
    """Base exception for ConflictService errors."""

    pass


class ConflictNotFoundError(ConflictServiceError):
    """Raised when a conflict is not found."""

    def __init__(self, conflict_id: str) -> None:
        self.conflict_id = conflict_id
        super().__init__(f"Conflict {conflict_id} not found")


class InvalidSelectionError(ConflictServiceError):
    """Raised when a manual resolution selects a fact outside the conflict's pair."""

    def __init__(self, conflict_id: str, selected_fact_id: str) -> None:
        self.conflict_id = conflict_id
        self.selected_fact_id = selected_fact_id
        super().__init__(
            f"Fact {selected_fact_id} is not part of conflict {conflict_id}"
        )


class ConflictService:
    """Service layer for conflict queries and resolution workflows.

    Args:
        engine: SQLAlchemy engine for the fact store database.
        settings: Reconciliation settings (source priorities, resolution thresholds).
        resolution_engine: Engine override; built from settings when omitted.
        registry: Source registry; defaults to the SQL-backed registry on the same engine.
        taxonomy: Monitor notified about unknown statuses and strategies.
        audit_sink: Sink for conflict.* events.
    """

    def __init__(
        self,
        engine: Engine,
        settings: ReconciliationSettings | None = None,
        resolution_engine: ResolutionEngine | None = None,
        registry: SourceRegistry | None = None,
        taxonomy: TaxonomyMonitor | None = None,
        audit_sink: AuditSink | None = None,
    ) -> None:
        settings = settings or ReconciliationSettings()
        self._engine = engine
        self._resolution_engine = resolution_engine or ResolutionEngine(
            source_priorities=settings.source_priorities,
            thresholds=settings.resolution_thresholds,
        )
        self._registry: SourceRegistry = registry or SqlSourceRegistry(engine)
        self._taxonomy = taxonomy or TaxonomyMonitor()
        self._audit_sink = audit_sink or InMemoryAuditSink()

    def _observe(self, record: ConflictRecord) -> ConflictRecord:
        context = f"conflict {record.conflict_id}"
        self._taxonomy.check_status(record.status, context)
        if record.resolution_strategy is not None:
            self._taxonomy.check_strategy(record.resolution_strategy, context)
        return record

    def _emit_audit_event(
        self,
        event_type: str,
        record: ConflictRecord,
        actor: str = "system",
        details: dict[str, Any] | None = None,
    ) -> None:
        payload: dict[str, Any] = {
            "document_id": record.document_id,
            "conflict_type": record.conflict_type,
            "severity": str(record.severity),
            "status": record.status,
            "fact1_id": record.fact1_id,
            "fact2_id": record.fact2_id,
        }
        if details:
            payload.update(details)
        emit_safely(
            self._audit_sink,
            build_event(
                event_type,
                resource_type="conflict",
                resource_id=record.conflict_id,
                actor=actor,
                details=payload,
            ),
        )

    def emit_detected(self, record: ConflictRecord) -> None:
        """Emit conflict.detected for a newly recorded conflict."""
        self._emit_audit_event("conflict.detected", record)

    def get(self, conflict_id: str) -> ConflictRecord:
        """Get a conflict by ID.

        Raises:
            ConflictNotFoundError: If no conflict has this id.
        """
        with transaction(self._engine) as conn:
            record = ConflictsRepository(conn).get(conflict_id)
        if record is None:
            raise ConflictNotFoundError(conflict_id)
        return self._observe(record)

    def get_conflicts_for_document(
        self, document_id: str, status: str | None = None
    ) -> list[ConflictRecord]:
        """List a document's conflicts, newest detection first, optionally by status."""
        if status is not None:
            self._taxonomy.check_status(status, f"query for document {document_id}")
        with transaction(self._engine) as conn:
            records = ConflictsRepository(conn).list_by_document(document_id, status=status)
        return [self._observe(r) for r in records]

    def get_unresolved_conflicts(self, limit: int = 100) -> list[ConflictRecord]:
        """List unresolved conflicts across documents: high severity first, then newest."""
        with transaction(self._engine) as conn:
            records = ConflictsRepository(conn).list_unresolved(limit=limit)
        return [self._observe(r) for r in records]

    def _resolve(self, record: ConflictRecord) -> Resolution | None:
        with transaction(self._engine) as conn:
            facts = FactsRepository(conn).get_many([record.fact1_id, record.fact2_id])

        fact1 = facts.get(record.fact1_id)
        fact2 = facts.get(record.fact2_id)
        if fact1 is None or fact2 is None:
            logger.warning(
                "Cannot resolve conflict %s: one or both facts not found", record.conflict_id
            )
            return None

        snapshot = self._registry.snapshot(fact1.source_ids + fact2.source_ids)
        return self._resolution_engine.resolve(fact1, fact2, snapshot)

    def suggest_resolution(self, conflict_id: str) -> Resolution | None:
        """Run the resolution engine against current facts without writing anything.

        Raises:
            ConflictNotFoundError: If no conflict has this id.
        """
        return self._resolve(self.get(conflict_id))

    @traced_operation("auto_resolve")
    def auto_resolve(self, conflict: ConflictRecord) -> ConflictRecord:
        """Resolve a conflict automatically if a strategy decides.

        Only a row that is still unresolved is updated; otherwise the stored record
        is returned unchanged.

        Returns:
            The current state of the conflict record.
        """
        resolution = self._resolve(conflict)
        if resolution is None:
            logger.info("Conflict %s left unresolved: no strategy decided", conflict.conflict_id)
            return conflict

        with transaction(self._engine) as conn:
            repo = ConflictsRepository(conn)
            updated = repo.mark_resolved_auto(
                conflict.conflict_id,
                strategy=str(resolution.strategy),
                resolved_fact_id=resolution.selected_fact_id,
                notes=resolution.notes,
                resolution_date=utc_now(),
            )
            current = repo.get(conflict.conflict_id)

        if current is None:
            raise ConflictNotFoundError(conflict.conflict_id)
        if not updated:
            logger.info(
                "Conflict %s not auto-resolved: status is %s", conflict.conflict_id, current.status
            )
            return current

        logger.info(
            "Auto-resolved conflict %s via %s: %s",
            conflict.conflict_id,
            resolution.strategy,
            resolution.notes,
        )
        self._emit_audit_event(
            "conflict.resolved_auto",
            current,
            details={
                "strategy": str(resolution.strategy),
                "resolved_fact_id": resolution.selected_fact_id,
            },
        )
        return current

    def resolve_conflict_manually(
        self,
        conflict_id: str,
        selected_fact_id: str,
        notes: str | None = None,
        actor: str = "user",
    ) -> ConflictRecord:
        """Resolve a conflict by explicit human selection.

        Allowed from any status, including overriding an automatic resolution.

        Raises:
            ConflictNotFoundError: If no conflict has this id.
            InvalidSelectionError: If selected_fact_id is not one of the pair.
        """
        with transaction(self._engine) as conn:
            repo = ConflictsRepository(conn)
            existing = repo.get(conflict_id)
            if existing is None:
                raise ConflictNotFoundError(conflict_id)
            if not existing.involves(selected_fact_id):
                raise InvalidSelectionError(conflict_id, selected_fact_id)
            repo.mark_resolved_manual(
                conflict_id,
                resolved_fact_id=selected_fact_id,
                actor=actor,
                notes=notes,
                resolution_date=utc_now(),
            )
            current = repo.get(conflict_id)

        assert current is not None
        logger.info("Conflict %s resolved manually by %s", conflict_id, actor)
        self._emit_audit_event(
            "conflict.resolved_manual",
            current,
            actor=actor,
            details={
                "resolved_fact_id": selected_fact_id,
                "previous_status": existing.status,
            },
        )
        return current

    def flag_conflict(
        self, conflict_id: str, notes: str | None = None, actor: str = "user"
    ) -> ConflictRecord:
        """Flag a conflict for review that needs external judgment. No winner is selected.

        Raises:
            ConflictNotFoundError: If no conflict has this id.
        """
        with transaction(self._engine) as conn:
            repo = ConflictsRepository(conn)
            existing = repo.get(conflict_id)
            if existing is None:
                raise ConflictNotFoundError(conflict_id)
            repo.mark_flagged(conflict_id, notes=notes)
            current = repo.get(conflict_id)

        assert current is not None
        logger.info("Conflict %s flagged", conflict_id)
        self._emit_audit_event(
            "conflict.flagged",
            current,
            actor=actor,
            details={"previous_status": existing.status},
        )
        return current

    def get_conflict_statistics(self, document_id: str | None = None) -> dict[str, Any]:
        """Count conflicts by status and severity, for one document or overall."""
        with transaction(self._engine) as conn:
            repo = ConflictsRepository(conn)
            by_status = repo.count_by("status", document_id)
            by_severity = repo.count_by("severity", document_id)

        statuses = {s.value: 0 for s in ConflictStatus}
        statuses.update(by_status)
        severities = {s.value: 0 for s in ConflictSeverity}
        severities.update(by_severity)
        return {
            "document_id": document_id,
            "total": sum(by_status.values()),
            "by_status": statuses,
            "by_severity": severities,
        }
