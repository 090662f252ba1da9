"""Pytest configuration and fixtures for factrecon tests.

Provides an in-memory SQLite engine with the schema applied, service fixtures wired
to an in-memory audit sink, a seeded source registry and a fact builder.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import datetime
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from factrecon.audit.sink import AUDIT_LOG_PATH_ENV, InMemoryAuditSink
from factrecon.config import ReconciliationSettings
from factrecon.models.fact import Fact, FactRelationship, SourceAttribution
from factrecon.models.source import SourceInfo
from factrecon.models.taxonomy import TaxonomyMonitor
from factrecon.observability.tracing import OTEL_ENABLED_ENV
from factrecon.persistence.db import FACTRECON_DATABASE_URL_ENV, reset_engines
from factrecon.persistence.schema import ensure_schema
from factrecon.services.conflicts.detector import ConflictDetector
from factrecon.services.conflicts.service import ConflictService
from factrecon.services.facts.service import FactStore
from factrecon.services.resolution.registry import SqlSourceRegistry
from tests.fixtures.synthetic.facts_fixture import (
    DOCUMENT_ID,
    EXTRACTED_AT,
    SRC_COGR,
    SRC_FEDERAL_REGISTER,
    SRC_UNKNOWN,
    SRC_WHITE_HOUSE,
)

FactFactory = Callable[..., Fact]


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Any) -> Iterator[None]:
    """Keep tests independent of the developer's environment."""
    monkeypatch.delenv(FACTRECON_DATABASE_URL_ENV, raising=False)
    monkeypatch.delenv(OTEL_ENABLED_ENV, raising=False)
    monkeypatch.setenv(AUDIT_LOG_PATH_ENV, str(tmp_path / "audit" / "events.jsonl"))
    reset_engines()
    yield
    reset_engines()


@pytest.fixture
def engine() -> Iterator[Engine]:
    """In-memory SQLite engine shared across connections, schema applied."""
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    with eng.begin() as conn:
        ensure_schema(conn)
    yield eng
    eng.dispose()


@pytest.fixture
def audit_sink() -> InMemoryAuditSink:
    """Provide in-memory audit sink."""
    return InMemoryAuditSink()


@pytest.fixture
def taxonomy() -> TaxonomyMonitor:
    return TaxonomyMonitor()


@pytest.fixture
def registry(engine: Engine) -> SqlSourceRegistry:
    """SQL source registry seeded with a few named sources."""
    reg = SqlSourceRegistry(engine)
    reg.register(
        SourceInfo(
            source_id=SRC_FEDERAL_REGISTER,
            name="Federal Register",
            source_type="federal_register",
            is_primary=True,
        )
    )
    reg.register(SourceInfo(source_id=SRC_WHITE_HOUSE, name="White House"))
    reg.register(
        SourceInfo(source_id=SRC_COGR, name="Council on Governmental Relations (COGR)")
    )
    reg.register(SourceInfo(source_id=SRC_UNKNOWN, name="Unknown Policy Blog"))
    return reg


@pytest.fixture
def fact_store(
    engine: Engine, taxonomy: TaxonomyMonitor, audit_sink: InMemoryAuditSink
) -> FactStore:
    return FactStore(engine, taxonomy=taxonomy, audit_sink=audit_sink)


@pytest.fixture
def conflict_service(
    engine: Engine,
    registry: SqlSourceRegistry,
    taxonomy: TaxonomyMonitor,
    audit_sink: InMemoryAuditSink,
) -> ConflictService:
    return ConflictService(engine, registry=registry, taxonomy=taxonomy, audit_sink=audit_sink)


@pytest.fixture
def make_detector(
    engine: Engine,
    registry: SqlSourceRegistry,
    taxonomy: TaxonomyMonitor,
    audit_sink: InMemoryAuditSink,
) -> Callable[..., ConflictDetector]:
    """Build a detector, optionally with custom settings."""

    def _make(settings: ReconciliationSettings | None = None) -> ConflictDetector:
        return ConflictDetector(
            engine,
            settings=settings,
            registry=registry,
            taxonomy=taxonomy,
            audit_sink=audit_sink,
        )

    return _make


@pytest.fixture
def detector(make_detector: Callable[..., ConflictDetector]) -> ConflictDetector:
    return make_detector()


@pytest.fixture
def make_fact() -> FactFactory:
    """Build an unsaved Fact with one attribution per source id."""

    def _make(
        category: str,
        value: Any,
        *,
        document_id: str = DOCUMENT_ID,
        confidence: float = 0.5,
        source_ids: tuple[str, ...] = (SRC_UNKNOWN,),
        extraction_date: datetime | None = None,
        relationships: list[FactRelationship] | None = None,
        fact_id: str | None = None,
    ) -> Fact:
        extracted = extraction_date or EXTRACTED_AT
        return Fact(
            fact_id=fact_id,
            document_id=document_id,
            category=category,
            value=value,
            confidence=confidence,
            sources=[
                SourceAttribution(
                    source_id=sid,
                    context="Section 1",
                    extraction_date=extracted,
                    extraction_method="ai",
                )
                for sid in source_ids
            ],
            relationships=relationships or [],
        )

    return _make
