"""Source registry: maps source ids to authority and publication metadata.

The resolution engine only needs a snapshot of the sources involved in one conflict,
so the protocol is a single batch lookup.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from factrecon.models.source import SourceInfo
from factrecon.persistence.db import transaction
from factrecon.persistence.repositories.sources import SourcesRepository

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


@runtime_checkable
class SourceRegistry(Protocol):
    """Protocol for source registries."""

    def snapshot(self, source_ids: Iterable[str]) -> dict[str, SourceInfo]:
        """Return the known sources among source_ids. Unknown ids are omitted."""
        ...


class InMemorySourceRegistry:
    """Dict-backed registry for tests and embedded use."""

    def __init__(self, sources: Iterable[SourceInfo] = ()) -> None:
        self._sources: dict[str, SourceInfo] = {s.source_id: s for s in sources}

    def register(self, source: SourceInfo) -> SourceInfo:
        self._sources[source.source_id] = source
        return source

    def get(self, source_id: str) -> SourceInfo | None:
        return self._sources.get(source_id)

    def snapshot(self, source_ids: Iterable[str]) -> dict[str, SourceInfo]:
        return {sid: self._sources[sid] for sid in set(source_ids) if sid in self._sources}


class SqlSourceRegistry:
    """Registry backed by the source_metadata table."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def register(self, source: SourceInfo) -> SourceInfo:
        """Insert or replace a source entry."""
        with transaction(self._engine) as conn:
            SourcesRepository(conn).upsert(source)
        logger.info("Registered source %s (%s)", source.source_id, source.name)
        return source

    def get(self, source_id: str) -> SourceInfo | None:
        with transaction(self._engine) as conn:
            return SourcesRepository(conn).get(source_id)

    def snapshot(self, source_ids: Iterable[str]) -> dict[str, SourceInfo]:
        ids = sorted(set(source_ids))
        if not ids:
            return {}
        with transaction(self._engine) as conn:
            return SourcesRepository(conn).get_many(ids)
