"""OpenTelemetry tracing for store and detection operations.

Spans are emitted only when FACTRECON_OTEL_ENABLED is truthy. Span attributes are
limited to identifiers and counts; fact values and notes are never exported.
"""

from __future__ import annotations

import functools
import logging
import os
from collections.abc import Callable
from typing import Any, TypeVar, cast

from opentelemetry import trace

logger = logging.getLogger(__name__)

OTEL_ENABLED_ENV = "FACTRECON_OTEL_ENABLED"

F = TypeVar("F", bound=Callable[..., Any])

_ID_ARGUMENTS = ("document_id", "fact_id", "conflict_id", "source_id")


def _get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    val = os.environ.get(key, "").strip().lower()
    if val in ("1", "true", "yes"):
        return True
    if val in ("0", "false", "no"):
        return False
    return default


def is_otel_enabled() -> bool:
    """Check if OpenTelemetry tracing is enabled."""
    return _get_env_bool(OTEL_ENABLED_ENV, False)


def traced_operation(operation: str) -> Callable[[F], F]:
    """Decorator to trace a service method with OpenTelemetry.

    Id-like keyword arguments (document_id, fact_id, conflict_id, source_id) are
    recorded as span attributes, as is the length of a list result.

    Args:
        operation: Operation name (e.g., "store_fact", "detect_conflicts").
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            if not is_otel_enabled():
                return func(*args, **kwargs)

            tracer = trace.get_tracer("factrecon")
            with tracer.start_as_current_span(f"factrecon.{operation}") as span:
                for name in _ID_ARGUMENTS:
                    value = kwargs.get(name)
                    if isinstance(value, str):
                        span.set_attribute(f"factrecon.{name}", value)
                if len(args) > 1 and isinstance(args[1], str):
                    span.set_attribute("factrecon.subject_id", args[1])

                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    span.set_attribute("error", True)
                    span.set_attribute("error.type", type(e).__name__)
                    raise

                if isinstance(result, list):
                    span.set_attribute("factrecon.result_count", len(result))
                return result

        return cast(F, wrapper)

    return decorator
