"""Severity classification for detected conflicts.

Pure and deterministic: the same category and fact payloads always yield the same
severity.
"""

from __future__ import annotations

from factrecon.models.conflict import ConflictSeverity
from factrecon.models.fact import Fact, FactCategory

HIGH_DATE_TYPES = frozenset({"deadline", "effective"})
HIGH_STATUS_KEYWORDS = ("revoked", "stayed")


def _date_type(fact: Fact) -> str | None:
    if isinstance(fact.value, dict):
        date_type = fact.value.get("dateType")
        return date_type if isinstance(date_type, str) else None
    return None


def _status_is_critical(fact: Fact) -> bool:
    if not isinstance(fact.value, str):
        return False
    status = fact.value.lower()
    return any(keyword in status for keyword in HIGH_STATUS_KEYWORDS)


def classify_severity(category: str, fact1: Fact, fact2: Fact) -> ConflictSeverity:
    """Return the severity tier for a conflict between fact1 and fact2."""
    if category == FactCategory.DATE:
        if _date_type(fact1) in HIGH_DATE_TYPES or _date_type(fact2) in HIGH_DATE_TYPES:
            return ConflictSeverity.HIGH
        return ConflictSeverity.MEDIUM

    if category == FactCategory.REQUIREMENT:
        return ConflictSeverity.HIGH

    if category == FactCategory.STATUS:
        if _status_is_critical(fact1) or _status_is_critical(fact2):
            return ConflictSeverity.HIGH
        return ConflictSeverity.MEDIUM

    return ConflictSeverity.MEDIUM
