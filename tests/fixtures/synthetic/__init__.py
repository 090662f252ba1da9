"""Synthetic deterministic fixtures for factrecon tests."""

from tests.fixtures.synthetic.facts_fixture import (
    DOCUMENT_ID,
    OTHER_DOCUMENT_ID,
    SRC_COGR,
    SRC_FEDERAL_REGISTER,
    SRC_UNKNOWN,
    SRC_WHITE_HOUSE,
)

__all__ = [
    "DOCUMENT_ID",
    "OTHER_DOCUMENT_ID",
    "SRC_COGR",
    "SRC_FEDERAL_REGISTER",
    "SRC_UNKNOWN",
    "SRC_WHITE_HOUSE",
]
