"""Lenient taxonomy validation for string-typed enum fields.

Categories, relationship types, conflict statuses and resolution strategies are stored
as plain strings so that producers can introduce new values without a schema change.
A TaxonomyMonitor is injected into the stores and services; it logs a warning and keeps
a structured record whenever a value falls outside the known enum, and processing
continues.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass

from factrecon.models.conflict import ConflictStatus, ResolutionStrategy
from factrecon.models.fact import FactCategory, RelationshipType

logger = logging.getLogger(__name__)

DEFAULT_MAX_WARNINGS = 1000


@dataclass(frozen=True)
class TaxonomyWarning:
    """One out-of-taxonomy value observed by the monitor."""

    field: str
    value: str
    context: str | None = None


class TaxonomyMonitor:
    """Collector for unknown enum values.

    Only the most recent max_warnings records are kept; every occurrence is still logged.

    Args:
        log: Logger used for warnings. Defaults to this module's logger.
        max_warnings: Number of records to retain.
    """

    def __init__(
        self, log: logging.Logger | None = None, max_warnings: int = DEFAULT_MAX_WARNINGS
    ) -> None:
        self._log = log or logger
        self._warnings: deque[TaxonomyWarning] = deque(maxlen=max_warnings)

    @property
    def warnings(self) -> list[TaxonomyWarning]:
        """Return the retained warnings, oldest first."""
        return list(self._warnings)

    def clear(self) -> None:
        """Drop all recorded warnings."""
        self._warnings.clear()

    def _check(
        self, field: str, value: str, known: Iterable[str], context: str | None
    ) -> bool:
        if value in set(known):
            return True
        self._warnings.append(TaxonomyWarning(field=field, value=value, context=context))
        self._log.warning("Unknown %s %r (%s)", field, value, context or "no context")
        return False

    def check_category(self, value: str, context: str | None = None) -> bool:
        """Return True if value is a known FactCategory; record a warning otherwise."""
        return self._check("category", value, (c.value for c in FactCategory), context)

    def check_relationship_type(self, value: str, context: str | None = None) -> bool:
        """Return True if value is a known RelationshipType."""
        return self._check(
            "relationship_type", value, (t.value for t in RelationshipType), context
        )

    def check_status(self, value: str, context: str | None = None) -> bool:
        return self._check("status", value, (s.value for s in ConflictStatus), context)

    def check_strategy(self, value: str, context: str | None = None) -> bool:
        return self._check(
            "resolution_strategy", value, (s.value for s in ResolutionStrategy), context
        )
