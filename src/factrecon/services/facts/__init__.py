"""Fact store service."""

from factrecon.services.facts.service import (
    FactIdRequiredError,
    FactNotFoundError,
    FactStore,
    FactStoreError,
)

__all__ = [
    "FactIdRequiredError",
    "FactNotFoundError",
    "FactStore",
    "FactStoreError",
]
