"""ResolutionEngine - cascading auto-resolution of fact conflicts."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from factrecon.config import DEFAULT_SOURCE_PRIORITIES, ResolutionThresholds
from factrecon.models.conflict import Resolution, ResolutionStrategy
from factrecon.models.fact import Fact
from factrecon.models.source import SourceInfo
from factrecon.services.resolution.strategies import STRATEGY_ORDER, Strategy, StrategyContext

logger = logging.getLogger(__name__)


class ResolutionEngine:
    """Pick a winning fact by consulting strategies in a fixed order.

    Order: source_priority, newest_source, recency, confidence. The first strategy
    that decides wins; if none decides the conflict stays unresolved. Resolution is
    deterministic for identical inputs.
    """

    def __init__(
        self,
        source_priorities: Mapping[str, int] | None = None,
        thresholds: ResolutionThresholds | None = None,
        strategies: tuple[tuple[ResolutionStrategy, Strategy], ...] = STRATEGY_ORDER,
    ) -> None:
        self._context = StrategyContext(
            source_priorities=dict(
                DEFAULT_SOURCE_PRIORITIES if source_priorities is None else source_priorities
            ),
            thresholds=thresholds or ResolutionThresholds(),
        )
        self._strategies = strategies

    @property
    def strategy_names(self) -> list[str]:
        return [str(name) for name, _ in self._strategies]

    def resolve(
        self, fact1: Fact, fact2: Fact, sources: Mapping[str, SourceInfo]
    ) -> Resolution | None:
        """Resolve a conflict between two facts.

        Args:
            fact1: First fact of the conflict.
            fact2: Second fact of the conflict.
            sources: Registry snapshot covering both facts' source ids. Missing ids are
                treated as unknown sources.

        Returns:
            The first strategy's decision, or None when no strategy decides.
        """
        for name, strategy in self._strategies:
            resolution = strategy(fact1, fact2, sources, self._context)
            if resolution is not None:
                logger.debug(
                    "Strategy %s selected fact %s over %s",
                    name,
                    resolution.selected_fact_id,
                    fact2.fact_id if resolution.selected_fact_id == fact1.fact_id else fact1.fact_id,
                )
                return resolution
            logger.debug("Strategy %s abstained for %s / %s", name, fact1.fact_id, fact2.fact_id)
        return None
