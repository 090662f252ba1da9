"""Audit event sink implementations for factrecon.

Provides append-only sinks for audit event persistence. All sinks implement the
AuditSink protocol. Services emit one event per committed state change
(fact.created, fact.updated, conflict.detected, conflict.resolved_auto,
conflict.resolved_manual, conflict.flagged).

Design requirements:
- Append-only: never truncate/overwrite
- Fail closed: any IO failure raises AuditSinkError
- Deterministic: consistent JSON serialization (sorted keys, no extra whitespace)
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

AUDIT_LOG_PATH_ENV = "FACTRECON_AUDIT_LOG_PATH"
DEFAULT_AUDIT_LOG_PATH = "./var/audit/audit_events.jsonl"


class AuditSinkError(Exception):
    """Raised when audit event emission fails."""

    pass


@runtime_checkable
class AuditSink(Protocol):
    """Protocol for audit event sinks.

    All implementations must be append-only and fail closed on errors.
    """

    def emit(self, event: dict[str, Any]) -> None:
        """Emit an audit event to the sink.

        Raises:
            AuditSinkError: If emission fails for any reason
        """
        ...


class JsonlFileAuditSink:
    """Append-only JSONL file sink for audit events.

    Configuration:
    - File path from env FACTRECON_AUDIT_LOG_PATH (default: ./var/audit/audit_events.jsonl)
    - Creates parent directories if missing
    - Appends one line per event, never truncates existing content
    """

    def __init__(self, file_path: str | None = None) -> None:
        if file_path is not None:
            self._file_path = Path(file_path)
        else:
            self._file_path = Path(os.environ.get(AUDIT_LOG_PATH_ENV) or DEFAULT_AUDIT_LOG_PATH)

    @property
    def file_path(self) -> Path:
        """Return the configured file path."""
        return self._file_path

    def _ensure_parent_directory(self) -> None:
        parent = self._file_path.parent
        if not parent.exists():
            try:
                parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise AuditSinkError(f"Failed to create audit log directory {parent}: {e}") from e

    def emit(self, event: dict[str, Any]) -> None:
        """Serialize the event as a single JSON line and append it to the file.

        Raises:
            AuditSinkError: If serialization or file write fails
        """
        try:
            line = json.dumps(event, sort_keys=True, separators=(",", ":")) + "\n"
        except (TypeError, ValueError) as e:
            raise AuditSinkError(f"Failed to serialize audit event: {e}") from e

        self._ensure_parent_directory()

        try:
            with open(self._file_path, mode="a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            raise AuditSinkError(f"Failed to write audit event to {self._file_path}: {e}") from e


class InMemoryAuditSink:
    """In-memory audit sink for testing (no disk writes)."""

    def __init__(self) -> None:
        self._events: list[dict[str, Any]] = []

    def emit(self, event: dict[str, Any]) -> None:
        # Round-trip through JSON so tests see exactly what a file sink would write
        try:
            line = json.dumps(event, sort_keys=True, separators=(",", ":"))
            self._events.append(json.loads(line))
        except (TypeError, ValueError) as e:
            raise AuditSinkError(f"Failed to serialize audit event: {e}") from e

    @property
    def events(self) -> list[dict[str, Any]]:
        """Return all emitted events."""
        return list(self._events)

    def event_types(self) -> list[str]:
        """Return the event_type of every emitted event, in order."""
        return [e["event_type"] for e in self._events]

    def clear(self) -> None:
        self._events.clear()


def get_audit_sink() -> AuditSink:
    """Factory function to get the configured audit sink (JSONL file)."""
    return JsonlFileAuditSink()


def build_event(
    event_type: str,
    *,
    resource_type: str,
    resource_id: str,
    actor: str = "system",
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build an audit event envelope."""
    event: dict[str, Any] = {
        "event_id": str(uuid.uuid4()),
        "occurred_at": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        "event_type": event_type,
        "resource": {
            "resource_type": resource_type,
            "resource_id": resource_id,
        },
        "actor": actor,
        "summary": f"{event_type} for {resource_type} {resource_id}",
    }
    if details:
        event["details"] = details
    return event


def emit_safely(sink: AuditSink, event: dict[str, Any]) -> None:
    """Emit an event; sink failures are logged and never undo the committed write."""
    try:
        sink.emit(event)
    except AuditSinkError as e:
        logger.warning("Failed to emit audit event %s: %s", event.get("event_type"), e)
