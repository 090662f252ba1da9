"""Audit event sinks."""

from factrecon.audit.sink import (
    AUDIT_LOG_PATH_ENV,
    DEFAULT_AUDIT_LOG_PATH,
    AuditSink,
    AuditSinkError,
    InMemoryAuditSink,
    JsonlFileAuditSink,
    build_event,
    emit_safely,
    get_audit_sink,
)

__all__ = [
    "AUDIT_LOG_PATH_ENV",
    "DEFAULT_AUDIT_LOG_PATH",
    "AuditSink",
    "AuditSinkError",
    "InMemoryAuditSink",
    "JsonlFileAuditSink",
    "build_event",
    "emit_safely",
    "get_audit_sink",
]
