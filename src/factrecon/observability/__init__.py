"""Observability helpers (OpenTelemetry tracing)."""

from factrecon.observability.tracing import is_otel_enabled, traced_operation

__all__ = ["is_otel_enabled", "traced_operation"]
