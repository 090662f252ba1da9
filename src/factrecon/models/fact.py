"""Fact model for attributed claims about a tracked document.

A fact is one sourced assertion (a date, a requirement, a status, ...) about a single
document. Facts carry:
- Source attributions for provenance (1..N)
- Directed relationships to other facts (0..N)
- A confidence score in [0, 1]

Category and relationship type are plain strings. The known values live in
FactCategory and RelationshipType; unknown values are accepted and reported to a
TaxonomyMonitor instead of being rejected.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class FactCategory(StrEnum):
    """Known fact categories."""

    DATE = "date"
    REQUIREMENT = "requirement"
    IMPACT = "impact"
    ENTITY = "entity"
    DEFINITION = "definition"
    EXEMPTION = "exemption"
    AUTHORITY = "authority"
    AMENDMENT = "amendment"
    STATUS = "status"
    GUIDANCE = "guidance"


class RelationshipType(StrEnum):
    """Known directed relationship types between facts."""

    SUPPORTS = "supports"
    CONTRADICTS = "contradicts"
    REFINES = "refines"
    SUPERSEDES = "supersedes"
    DEPENDS_ON = "depends_on"
    RELATES_TO = "relates_to"
    EXEMPTS_FROM = "exempts_from"
    IMPLEMENTS = "implements"
    AFFECTS = "affects"


def _utc_now() -> datetime:
    return datetime.now(UTC)


class SourceAttribution(BaseModel):
    """Provenance record linking a fact to the source it was extracted from."""

    source_id: str = Field(..., min_length=1, description="Source registry identifier")
    context: str | None = Field(
        default=None, description="Free-text locator inside the source, e.g. 'Section 3, para 2'"
    )
    extraction_date: datetime = Field(
        default_factory=_utc_now, description="When the fact was extracted from this source"
    )
    extraction_method: str | None = Field(
        default=None, description="How the fact was extracted (ai, manual, rule, feed)"
    )
    metadata: dict[str, Any] | None = Field(
        default=None, description="Additional extraction metadata (JSON-serialisable)"
    )

    @field_validator("extraction_date")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Treat a naive extraction date as UTC."""
        return v if v.tzinfo else v.replace(tzinfo=UTC)

    model_config = {"frozen": True, "extra": "forbid"}


class FactRelationship(BaseModel):
    """Directed, typed edge from one fact to another.

    Relationships are informational; nothing prevents cycles.
    """

    fact_id: str | None = Field(
        default=None, description="Owning fact (filled in by the store on write)"
    )
    related_fact_id: str = Field(..., min_length=1, description="Target fact")
    type: str = Field(..., min_length=1, description="Relationship type (see RelationshipType)")
    description: str | None = Field(default=None, description="Why the facts are related")
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    model_config = {"frozen": True, "extra": "forbid"}


class Fact(BaseModel):
    """A single attributed claim about a document.

    Facts are never merged. Updates go through FactStore.update_fact, which replaces
    the value, confidence, sources and relationships as a whole.
    """

    fact_id: str | None = Field(default=None, description="UUID assigned by the store")
    document_id: str = Field(..., min_length=1, description="Document this fact describes")
    category: str = Field(..., min_length=1, description="Fact category (see FactCategory)")
    value: Any = Field(..., description="Category-specific payload (JSON-serialisable)")
    confidence: float = Field(default=0.5, ge=0.0, le=1.0, description="Confidence score")
    sources: list[SourceAttribution] = Field(default_factory=list)
    relationships: list[FactRelationship] = Field(default_factory=list)
    created_at: datetime | None = Field(default=None, description="Set by the store")
    updated_at: datetime | None = Field(default=None, description="Set by the store on update")

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v: Any) -> Any:
        """Strip surrounding whitespace from the category tag."""
        if isinstance(v, str):
            return v.strip()
        return v

    @property
    def known_category(self) -> FactCategory | None:
        """Return the category as a FactCategory, or None when it is an extension."""
        try:
            return FactCategory(self.category)
        except ValueError:
            return None

    @property
    def source_ids(self) -> list[str]:
        """Source ids attributed to this fact, in attribution order."""
        return [s.source_id for s in self.sources]

    model_config = {"frozen": False, "extra": "forbid"}


class KnowledgeSummary(BaseModel):
    """Aggregate view of the facts recorded for one document."""

    document_id: str
    fact_counts: dict[str, int] = Field(default_factory=dict)
    source_counts: dict[str, int] = Field(default_factory=dict)
    contradiction_count: int = 0
    top_facts_by_category: dict[str, Fact] = Field(default_factory=dict)
