"""Persistence repositories for factrecon.

Each repository wraps an open SQLAlchemy connection; the calling service owns the
transaction.
"""

from factrecon.persistence.repositories.conflicts import ConflictsRepository
from factrecon.persistence.repositories.facts import FactsRepository, escape_like
from factrecon.persistence.repositories.sources import SourcesRepository

__all__ = [
    "ConflictsRepository",
    "FactsRepository",
    "SourcesRepository",
    "escape_like",
]
