"""Tests for fact, conflict and source models and the taxonomy monitor."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from factrecon.models.conflict import (
    ConflictRecord,
    ConflictSeverity,
    ConflictStatus,
    Resolution,
    normalize_pair,
)
from factrecon.models.fact import Fact, FactCategory, FactRelationship, SourceAttribution
from factrecon.models.source import SourceInfo
from factrecon.models.taxonomy import TaxonomyMonitor


class TestFactModel:
    """Tests for the Fact model."""

    def test_defaults(self) -> None:
        """Confidence defaults to 0.5 and collections start empty."""
        fact = Fact(document_id="doc-1", category="date", value={"date": "2025-04-01"})

        assert fact.fact_id is None
        assert fact.confidence == 0.5
        assert fact.sources == []
        assert fact.relationships == []

    @pytest.mark.parametrize("confidence", [-0.01, 1.01])
    def test_confidence_out_of_range_rejected(self, confidence: float) -> None:
        """Confidence must lie in [0, 1]."""
        with pytest.raises(ValidationError):
            Fact(document_id="doc-1", category="date", value={}, confidence=confidence)

    def test_unknown_category_is_accepted(self) -> None:
        """Categories are open strings; known_category is None for extensions."""
        fact = Fact(document_id="doc-1", category="penalty", value="x")

        assert fact.category == "penalty"
        assert fact.known_category is None

    def test_known_category(self) -> None:
        """Known categories map back to the enum, surrounding whitespace stripped."""
        fact = Fact(document_id="doc-1", category=" status ", value="active")

        assert fact.known_category is FactCategory.STATUS

    def test_extraction_date_defaults_to_now(self) -> None:
        """An attribution without extraction_date is stamped at creation."""
        before = datetime.now(UTC)
        attribution = SourceAttribution(source_id="src-1")

        assert attribution.extraction_date >= before
        assert attribution.extraction_date.tzinfo is not None

    def test_naive_extraction_date_assumed_utc(self) -> None:
        """A naive extraction_date is read as UTC; aware values are kept."""
        naive = SourceAttribution(source_id="src-1", extraction_date=datetime(2025, 1, 1, 9))
        aware = SourceAttribution(
            source_id="src-1", extraction_date=datetime(2025, 1, 1, 9, tzinfo=UTC)
        )

        assert naive.extraction_date == datetime(2025, 1, 1, 9, tzinfo=UTC)
        assert naive.extraction_date == aware.extraction_date

    def test_source_ids_preserve_order(self) -> None:
        """source_ids lists attributions in the order given."""
        fact = Fact(
            document_id="doc-1",
            category="date",
            value={},
            sources=[SourceAttribution(source_id="b"), SourceAttribution(source_id="a")],
        )

        assert fact.source_ids == ["b", "a"]

    def test_relationship_confidence_default(self) -> None:
        rel = FactRelationship(related_fact_id="f-2", type="supports")

        assert rel.confidence == 0.5


class TestSourceInfo:
    """Tests for the source registry entry model."""

    def test_naive_last_updated_assumed_utc(self) -> None:
        source = SourceInfo(source_id="src-1", name="One", last_updated=datetime(2025, 1, 1))

        assert source.last_updated == datetime(2025, 1, 1, tzinfo=UTC)
        assert source.last_updated.tzinfo is UTC

    def test_last_updated_optional(self) -> None:
        assert SourceInfo(source_id="src-1", name="One").last_updated is None


class TestConflictModel:
    """Tests for ConflictRecord and related types."""

    def test_fact_cannot_conflict_with_itself(self) -> None:
        """fact1_id and fact2_id must differ."""
        with pytest.raises(ValidationError):
            ConflictRecord(
                conflict_id="c-1",
                document_id="doc-1",
                conflict_type="date",
                severity=ConflictSeverity.HIGH,
                fact1_id="f-1",
                fact2_id="f-1",
                detection_date=datetime.now(UTC),
            )

    def test_new_record_is_unresolved(self) -> None:
        record = ConflictRecord(
            conflict_id="c-1",
            document_id="doc-1",
            conflict_type="date",
            severity="medium",
            fact1_id="f-2",
            fact2_id="f-1",
            detection_date=datetime.now(UTC),
        )

        assert record.status == ConflictStatus.UNRESOLVED
        assert record.severity is ConflictSeverity.MEDIUM
        assert record.pair == ("f-1", "f-2")
        assert record.involves("f-2")
        assert not record.involves("f-3")

    def test_severity_rank(self) -> None:
        """Severity ranks order low < medium < high."""
        assert ConflictSeverity.LOW.rank < ConflictSeverity.MEDIUM.rank < ConflictSeverity.HIGH.rank

    def test_normalize_pair_is_order_independent(self) -> None:
        assert normalize_pair("b", "a") == normalize_pair("a", "b") == ("a", "b")

    def test_resolution_is_frozen(self) -> None:
        """Resolutions are immutable decisions."""
        resolution = Resolution(selected_fact_id="f-1", strategy="confidence", notes="n")

        with pytest.raises(ValidationError):
            resolution.notes = "changed"  # type: ignore[misc]


class TestTaxonomyMonitor:
    """Tests for lenient enum validation."""

    def test_known_values_pass_silently(self) -> None:
        monitor = TaxonomyMonitor()

        assert monitor.check_category("date")
        assert monitor.check_relationship_type("contradicts")
        assert monitor.check_status("flagged")
        assert monitor.check_strategy("newest_source")
        assert monitor.warnings == []

    def test_unknown_values_recorded_and_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """Unknown values produce a warning record and a log line, never an error."""
        monitor = TaxonomyMonitor()

        with caplog.at_level(logging.WARNING, logger="factrecon.models.taxonomy"):
            assert not monitor.check_category("penalty", "document doc-1")
            assert not monitor.check_status("archived")

        assert [(w.field, w.value) for w in monitor.warnings] == [
            ("category", "penalty"),
            ("status", "archived"),
        ]
        assert monitor.warnings[0].context == "document doc-1"
        assert "penalty" in caplog.text

    def test_injected_logger_is_used(self, caplog: pytest.LogCaptureFixture) -> None:
        monitor = TaxonomyMonitor(log=logging.getLogger("custom.taxonomy"))

        with caplog.at_level(logging.WARNING, logger="custom.taxonomy"):
            monitor.check_relationship_type("mentions")

        assert any(r.name == "custom.taxonomy" for r in caplog.records)

    def test_clear(self) -> None:
        monitor = TaxonomyMonitor()
        monitor.check_strategy("coin_flip")

        monitor.clear()

        assert monitor.warnings == []

    def test_retains_only_most_recent_warnings(self) -> None:
        monitor = TaxonomyMonitor(max_warnings=2)

        for value in ("archived", "pending", "withdrawn"):
            monitor.check_status(value)

        assert [w.value for w in monitor.warnings] == ["pending", "withdrawn"]
