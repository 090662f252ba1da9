"""Conflict record model for detected disagreements between two facts.

A conflict always involves two facts of the same category about the same document.
Records are append-only: once detected they are never deleted, only moved through
their lifecycle (unresolved -> resolved_auto / resolved_manual / flagged).
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator


class ConflictSeverity(StrEnum):
    """Urgency tier assigned to a conflict at detection time."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Numeric rank (low=1, medium=2, high=3) used for policy cutoffs and ordering."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    ConflictSeverity.LOW: 1,
    ConflictSeverity.MEDIUM: 2,
    ConflictSeverity.HIGH: 3,
}


class ConflictStatus(StrEnum):
    """Lifecycle status of a conflict record."""

    UNRESOLVED = "unresolved"
    RESOLVED_AUTO = "resolved_auto"
    RESOLVED_MANUAL = "resolved_manual"
    FLAGGED = "flagged"


class ResolutionStrategy(StrEnum):
    """Named policy used to pick the winning fact of a conflict."""

    SOURCE_PRIORITY = "source_priority"
    NEWEST_SOURCE = "newest_source"
    RECENCY = "recency"
    CONFIDENCE = "confidence"
    MANUAL = "manual"


def normalize_pair(fact_a: str, fact_b: str) -> tuple[str, str]:
    """Return the unordered fact pair in canonical (smaller, larger) order."""
    return (fact_a, fact_b) if fact_a <= fact_b else (fact_b, fact_a)


class Resolution(BaseModel):
    """Decision produced by a resolution strategy."""

    selected_fact_id: str
    strategy: str
    notes: str

    model_config = {"frozen": True, "extra": "forbid"}


class ConflictRecord(BaseModel):
    """A detected disagreement between two facts.

    Invariants:
    - fact1_id != fact2_id
    - at most one record per unordered {fact1_id, fact2_id} pair (enforced by the store)
    - conflict_type equals both facts' category at detection time
    """

    conflict_id: str = Field(..., description="UUID for this conflict")
    document_id: str = Field(..., description="Document both facts describe")
    conflict_type: str = Field(..., description="Shared category of the two facts")
    severity: ConflictSeverity = Field(..., description="Severity tier at detection")
    fact1_id: str
    fact2_id: str
    detection_date: datetime
    status: str = Field(default=ConflictStatus.UNRESOLVED)
    resolution_strategy: str | None = None
    resolved_fact_id: str | None = Field(
        default=None, description="Fact selected by the resolution, if any"
    )
    resolution_date: datetime | None = None
    resolution_by: str | None = None
    resolution_notes: str | None = None

    @model_validator(mode="after")
    def check_distinct_facts(self) -> ConflictRecord:
        """A fact cannot conflict with itself."""
        if self.fact1_id == self.fact2_id:
            raise ValueError("fact1_id and fact2_id must differ")
        return self

    def involves(self, fact_id: str) -> bool:
        """Return True if fact_id is one side of this conflict."""
        return fact_id in (self.fact1_id, self.fact2_id)

    @property
    def pair(self) -> tuple[str, str]:
        """Canonical unordered pair key."""
        return normalize_pair(self.fact1_id, self.fact2_id)

    model_config = {"frozen": False, "extra": "forbid"}
