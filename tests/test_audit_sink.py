"""Tests for audit sinks and event envelopes."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from factrecon.audit.sink import (
    AuditSinkError,
    InMemoryAuditSink,
    JsonlFileAuditSink,
    build_event,
    get_audit_sink,
)


class TestBuildEvent:
    """Tests for the event envelope."""

    def test_envelope_fields(self) -> None:
        event = build_event(
            "conflict.flagged",
            resource_type="conflict",
            resource_id="c-1",
            actor="reviewer",
            details={"document_id": "doc-1"},
        )

        assert event["event_type"] == "conflict.flagged"
        assert event["resource"] == {"resource_type": "conflict", "resource_id": "c-1"}
        assert event["actor"] == "reviewer"
        assert event["summary"] == "conflict.flagged for conflict c-1"
        assert event["details"] == {"document_id": "doc-1"}
        assert event["occurred_at"].endswith("Z")
        assert event["event_id"]

    def test_details_omitted_when_empty(self) -> None:
        event = build_event("fact.created", resource_type="fact", resource_id="f-1")

        assert "details" not in event
        assert event["actor"] == "system"


class TestJsonlFileAuditSink:
    """Tests for the JSONL file sink."""

    def test_appends_one_line_per_event(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "audit.jsonl"
        sink = JsonlFileAuditSink(str(path))

        sink.emit(build_event("fact.created", resource_type="fact", resource_id="f-1"))
        sink.emit(build_event("fact.updated", resource_type="fact", resource_id="f-1"))

        lines = path.read_text(encoding="utf-8").splitlines()
        assert [json.loads(line)["event_type"] for line in lines] == [
            "fact.created",
            "fact.updated",
        ]

    def test_path_from_environment(self) -> None:
        """The autouse fixture points FACTRECON_AUDIT_LOG_PATH at a temp file."""
        sink = get_audit_sink()

        assert isinstance(sink, JsonlFileAuditSink)
        assert str(sink.file_path).endswith("events.jsonl")

    def test_unserialisable_event(self, tmp_path: Path) -> None:
        sink = JsonlFileAuditSink(str(tmp_path / "audit.jsonl"))

        with pytest.raises(AuditSinkError, match="serialize"):
            sink.emit({"event_type": "x", "details": {"value": object()}})


class TestInMemoryAuditSink:
    """Tests for the in-memory sink."""

    def test_records_and_clears(self) -> None:
        sink = InMemoryAuditSink()

        sink.emit(build_event("fact.created", resource_type="fact", resource_id="f-1"))

        assert sink.event_types() == ["fact.created"]
        sink.clear()
        assert sink.events == []

    def test_rejects_unserialisable_event(self) -> None:
        with pytest.raises(AuditSinkError):
            InMemoryAuditSink().emit({"details": {1, 2}})
