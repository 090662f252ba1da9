"""Domain models for facts, sources and conflicts."""

from factrecon.models.conflict import (
    ConflictRecord,
    ConflictSeverity,
    ConflictStatus,
    Resolution,
    ResolutionStrategy,
    normalize_pair,
)
from factrecon.models.fact import (
    Fact,
    FactCategory,
    FactRelationship,
    KnowledgeSummary,
    RelationshipType,
    SourceAttribution,
)
from factrecon.models.source import SourceInfo
from factrecon.models.taxonomy import TaxonomyMonitor, TaxonomyWarning

__all__ = [
    "ConflictRecord",
    "ConflictSeverity",
    "ConflictStatus",
    "Fact",
    "FactCategory",
    "FactRelationship",
    "KnowledgeSummary",
    "RelationshipType",
    "Resolution",
    "ResolutionStrategy",
    "SourceAttribution",
    "SourceInfo",
    "TaxonomyMonitor",
    "TaxonomyWarning",
    "normalize_pair",
]
