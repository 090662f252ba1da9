"""Resolution strategies for conflicting facts.

Each strategy inspects two facts (plus a snapshot of their sources' registry
metadata) and either selects a winner or abstains by returning None. The engine
tries them in STRATEGY_ORDER and the first decision wins.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime

from factrecon.config import DEFAULT_SOURCE_PRIORITIES, ResolutionThresholds
from factrecon.models.conflict import Resolution, ResolutionStrategy
from factrecon.models.fact import Fact
from factrecon.models.source import SourceInfo

logger = logging.getLogger(__name__)

UNKNOWN_SOURCE_PRIORITY = 1
NO_SOURCE_PRIORITY = 0


@dataclass(frozen=True)
class StrategyContext:
    """Configuration shared by all strategies during one resolution."""

    source_priorities: Mapping[str, int] = field(
        default_factory=lambda: dict(DEFAULT_SOURCE_PRIORITIES)
    )
    thresholds: ResolutionThresholds = field(default_factory=ResolutionThresholds)


Strategy = Callable[[Fact, Fact, Mapping[str, SourceInfo], StrategyContext], Resolution | None]


def _fact_id(fact: Fact) -> str:
    if fact.fact_id is None:
        raise ValueError("Cannot resolve a conflict between unsaved facts")
    return fact.fact_id


def _iso(value: datetime | None) -> str:
    if value is None:
        return "undated"
    return value.isoformat().replace("+00:00", "Z")


def fact_priority(
    fact: Fact, sources: Mapping[str, SourceInfo], priorities: Mapping[str, int]
) -> int:
    """Highest priority among the fact's sources.

    Sources missing from the snapshot or with an unlisted name count as
    UNKNOWN_SOURCE_PRIORITY; a fact with no sources scores NO_SOURCE_PRIORITY.
    """
    if not fact.sources:
        return NO_SOURCE_PRIORITY
    best = NO_SOURCE_PRIORITY
    for attribution in fact.sources:
        info = sources.get(attribution.source_id)
        priority = (
            priorities.get(info.name, UNKNOWN_SOURCE_PRIORITY)
            if info is not None
            else UNKNOWN_SOURCE_PRIORITY
        )
        best = max(best, priority)
    return best


def newest_source_date(fact: Fact, sources: Mapping[str, SourceInfo]) -> datetime | None:
    """Latest registry last_updated among the fact's sources, or None if none is dated."""
    dates = [
        info.last_updated
        for info in (sources.get(a.source_id) for a in fact.sources)
        if info is not None and info.last_updated is not None
    ]
    return max(dates) if dates else None


def latest_extraction_date(fact: Fact) -> datetime | None:
    """Latest extraction_date among the fact's own attributions."""
    dates = [a.extraction_date for a in fact.sources]
    return max(dates) if dates else None


def _pick_newer(
    fact1: Fact,
    fact2: Fact,
    date1: datetime | None,
    date2: datetime | None,
    window_hours: float,
    strategy: ResolutionStrategy,
    label: str,
) -> Resolution | None:
    # An undated side counts as infinitely old; two undated sides never decide.
    if date1 is None and date2 is None:
        return None
    window = window_hours * 3600
    if date2 is None or (date1 is not None and (date1 - date2).total_seconds() > window):
        winner, newer, older = fact1, date1, date2
    elif date1 is None or (date2 - date1).total_seconds() > window:
        winner, newer, older = fact2, date2, date1
    else:
        return None
    return Resolution(
        selected_fact_id=_fact_id(winner),
        strategy=strategy,
        notes=f"Selected fact from {label} ({_iso(newer)} > {_iso(older)})",
    )


def resolve_by_source_priority(
    fact1: Fact, fact2: Fact, sources: Mapping[str, SourceInfo], context: StrategyContext
) -> Resolution | None:
    """Prefer the fact backed by the more authoritative source."""
    priority1 = fact_priority(fact1, sources, context.source_priorities)
    priority2 = fact_priority(fact2, sources, context.source_priorities)
    if priority1 > priority2:
        return Resolution(
            selected_fact_id=_fact_id(fact1),
            strategy=ResolutionStrategy.SOURCE_PRIORITY,
            notes=f"Selected fact from higher priority source ({priority1} > {priority2})",
        )
    if priority2 > priority1:
        return Resolution(
            selected_fact_id=_fact_id(fact2),
            strategy=ResolutionStrategy.SOURCE_PRIORITY,
            notes=f"Selected fact from higher priority source ({priority2} > {priority1})",
        )
    return None


def resolve_by_newest_source(
    fact1: Fact, fact2: Fact, sources: Mapping[str, SourceInfo], context: StrategyContext
) -> Resolution | None:
    """Prefer the fact whose source was updated more recently."""
    return _pick_newer(
        fact1,
        fact2,
        newest_source_date(fact1, sources),
        newest_source_date(fact2, sources),
        context.thresholds.recency_window_hours,
        ResolutionStrategy.NEWEST_SOURCE,
        "newer source",
    )


def resolve_by_recency(
    fact1: Fact, fact2: Fact, sources: Mapping[str, SourceInfo], context: StrategyContext
) -> Resolution | None:
    """Prefer the more recently extracted fact."""
    return _pick_newer(
        fact1,
        fact2,
        latest_extraction_date(fact1),
        latest_extraction_date(fact2),
        context.thresholds.recency_window_hours,
        ResolutionStrategy.RECENCY,
        "more recent extraction",
    )


def resolve_by_confidence(
    fact1: Fact, fact2: Fact, sources: Mapping[str, SourceInfo], context: StrategyContext
) -> Resolution | None:
    """Prefer the clearly more confident fact."""
    margin = context.thresholds.confidence_margin
    if fact1.confidence - fact2.confidence > margin:
        return Resolution(
            selected_fact_id=_fact_id(fact1),
            strategy=ResolutionStrategy.CONFIDENCE,
            notes=(
                f"Selected fact with higher confidence "
                f"({fact1.confidence:.2f} > {fact2.confidence:.2f})"
            ),
        )
    if fact2.confidence - fact1.confidence > margin:
        return Resolution(
            selected_fact_id=_fact_id(fact2),
            strategy=ResolutionStrategy.CONFIDENCE,
            notes=(
                f"Selected fact with higher confidence "
                f"({fact2.confidence:.2f} > {fact1.confidence:.2f})"
            ),
        )
    return None


STRATEGY_ORDER: tuple[tuple[ResolutionStrategy, Strategy], ...] = (
    (ResolutionStrategy.SOURCE_PRIORITY, resolve_by_source_priority),
    (ResolutionStrategy.NEWEST_SOURCE, resolve_by_newest_source),
    (ResolutionStrategy.RECENCY, resolve_by_recency),
    (ResolutionStrategy.CONFIDENCE, resolve_by_confidence),
)
