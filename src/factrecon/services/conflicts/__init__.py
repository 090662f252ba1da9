"""Conflict detection, severity classification and lifecycle services."""

from factrecon.services.conflicts.detector import ConflictDetector
from factrecon.services.conflicts.predicates import (
    PREDICATES,
    STATUS_KEYWORDS,
    facts_conflict,
    parse_date,
    text_similarity,
)
from factrecon.services.conflicts.service import (
    ConflictNotFoundError,
    ConflictService,
    ConflictServiceError,
    InvalidSelectionError,
)
from factrecon.services.conflicts.severity import classify_severity

__all__ = [
    "PREDICATES",
    "STATUS_KEYWORDS",
    "ConflictDetector",
    "ConflictNotFoundError",
    "ConflictService",
    "ConflictServiceError",
    "InvalidSelectionError",
    "classify_severity",
    "facts_conflict",
    "parse_date",
    "text_similarity",
]
