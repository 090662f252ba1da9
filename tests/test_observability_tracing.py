"""Tests for factrecon OpenTelemetry tracing.

- Tracing OFF by default, ON via FACTRECON_OTEL_ENABLED=1
- Spans carry identifiers and result counts, never fact values
- Errors are recorded on the span and re-raised unchanged
- Tests use the in-memory exporter (no external collector required)
"""

from __future__ import annotations

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from factrecon.observability import tracing
from factrecon.observability.tracing import OTEL_ENABLED_ENV, is_otel_enabled, traced_operation
from factrecon.services.facts import FactNotFoundError, FactStore
from tests.fixtures.synthetic.facts_fixture import DOCUMENT_ID, STATUS_ACTIVE


@pytest.fixture
def exporter(monkeypatch: pytest.MonkeyPatch) -> InMemorySpanExporter:
    """Route factrecon spans to an in-memory exporter."""
    span_exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    monkeypatch.setattr(tracing.trace, "get_tracer", provider.get_tracer)
    return span_exporter


class TestTracingConfiguration:
    """Tests for the enable switch."""

    def test_disabled_by_default(self) -> None:
        assert is_otel_enabled() is False

    @pytest.mark.parametrize(("raw", "expected"), [("1", True), ("YES", True), ("0", False)])
    def test_env_switch(self, monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool) -> None:
        monkeypatch.setenv(OTEL_ENABLED_ENV, raw)

        assert is_otel_enabled() is expected

    def test_no_spans_when_disabled(
        self, exporter: InMemorySpanExporter, fact_store: FactStore
    ) -> None:
        fact_store.get_facts_for_document(DOCUMENT_ID)

        assert exporter.get_finished_spans() == ()


class TestTracedOperations:
    """Tests for spans around service operations."""

    @pytest.fixture(autouse=True)
    def enable_tracing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(OTEL_ENABLED_ENV, "1")

    def test_store_fact_span(
        self, exporter: InMemorySpanExporter, fact_store: FactStore, make_fact
    ) -> None:
        fact_store.store_fact(make_fact("status", STATUS_ACTIVE))

        [span] = exporter.get_finished_spans()
        assert span.name == "factrecon.store_fact"
        assert STATUS_ACTIVE not in {str(v) for v in span.attributes.values()}

    def test_list_result_count_and_subject(
        self, exporter: InMemorySpanExporter, fact_store: FactStore, make_fact
    ) -> None:
        fact_store.store_fact(make_fact("status", STATUS_ACTIVE))
        exporter.clear()

        fact_store.get_facts_for_document(DOCUMENT_ID)

        [span] = exporter.get_finished_spans()
        assert span.name == "factrecon.get_facts_for_document"
        assert span.attributes["factrecon.subject_id"] == DOCUMENT_ID
        assert span.attributes["factrecon.result_count"] == 1

    def test_keyword_identifiers_recorded(self, exporter: InMemorySpanExporter) -> None:
        @traced_operation("lookup")
        def lookup(*, document_id: str) -> list[str]:
            return []

        lookup(document_id="doc-9")

        [span] = exporter.get_finished_spans()
        assert span.attributes["factrecon.document_id"] == "doc-9"
        assert span.attributes["factrecon.result_count"] == 0

    def test_error_recorded_and_reraised(
        self, exporter: InMemorySpanExporter, fact_store: FactStore, make_fact
    ) -> None:
        with pytest.raises(FactNotFoundError):
            fact_store.update_fact(make_fact("status", STATUS_ACTIVE, fact_id="missing"))

        [span] = exporter.get_finished_spans()
        assert span.attributes["error"] is True
        assert span.attributes["error.type"] == "FactNotFoundError"
