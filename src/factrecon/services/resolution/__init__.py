"""Conflict resolution: strategies, engine and source registry."""

from factrecon.services.resolution.engine import ResolutionEngine
from factrecon.services.resolution.registry import (
    InMemorySourceRegistry,
    SourceRegistry,
    SqlSourceRegistry,
)
from factrecon.services.resolution.strategies import (
    STRATEGY_ORDER,
    StrategyContext,
    fact_priority,
    latest_extraction_date,
    newest_source_date,
    resolve_by_confidence,
    resolve_by_newest_source,
    resolve_by_recency,
    resolve_by_source_priority,
)

__all__ = [
    "InMemorySourceRegistry",
    "ResolutionEngine",
    "STRATEGY_ORDER",
    "SourceRegistry",
    "SqlSourceRegistry",
    "StrategyContext",
    "fact_priority",
    "latest_extraction_date",
    "newest_source_date",
    "resolve_by_confidence",
    "resolve_by_newest_source",
    "resolve_by_recency",
    "resolve_by_source_priority",
]
