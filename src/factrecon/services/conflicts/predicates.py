"""Category-specific pairwise conflict predicates.

Each predicate takes two facts of the same category and returns True when they
genuinely disagree. Predicates are registered in PREDICATES keyed by category;
categories without a predicate (entity, definition, exemption, authority, amendment
and any unknown category) never conflict.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Any

from factrecon.config import DetectionThresholds
from factrecon.models.fact import Fact, FactCategory

ConflictPredicate = Callable[[Fact, Fact, DetectionThresholds], bool]

_PUNCTUATION = re.compile(r"[^\w\s]")

LEVELS = {"high": 3, "medium": 2, "low": 1}

STATUS_KEYWORDS = (
    "active",
    "inactive",
    "revoked",
    "stayed",
    "implemented",
    "superseded",
    "upheld",
    "blocked",
    "expired",
)

_DATE_FORMATS = ("%B %d, %Y", "%b %d, %Y", "%m/%d/%Y", "%Y/%m/%d")


def _word_set(value: str) -> set[str]:
    return set(_PUNCTUATION.sub("", value.lower()).split())


def text_similarity(text_a: str | None, text_b: str | None) -> float:
    """Jaccard similarity of the two texts' word sets.

    Texts are lower-cased and stripped of punctuation before splitting on whitespace.
    Returns 0.0 when either text is empty or absent.
    """
    if not text_a or not text_b:
        return 0.0
    words_a = _word_set(text_a)
    words_b = _word_set(text_b)
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / len(words_a | words_b)


def parse_date(value: Any) -> datetime | None:
    """Best-effort conversion of a payload date to an aware UTC datetime.

    Returns None for missing or unparseable values.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if not isinstance(value, str):
        return None

    raw = value.strip()
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        parsed = None
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(raw, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def hours_apart(first: datetime, second: datetime) -> float:
    return abs((first - second).total_seconds()) / 3600.0


def level(value: Any) -> int:
    """Map high/medium/low (any case) to 3/2/1; anything else is 0."""
    if not isinstance(value, str):
        return 0
    return LEVELS.get(value.strip().lower(), 0)


def _payload(fact: Fact) -> dict[str, Any]:
    return fact.value if isinstance(fact.value, dict) else {}


def _description(fact: Fact) -> str | None:
    if isinstance(fact.value, str):
        return fact.value
    description = _payload(fact).get("description")
    return description if isinstance(description, str) else None


def _dates_differ(first: Any, second: Any, tolerance_hours: float) -> bool:
    parsed_first = parse_date(first)
    parsed_second = parse_date(second)
    if parsed_first is None or parsed_second is None:
        return False
    return hours_apart(parsed_first, parsed_second) > tolerance_hours


def dates_conflict(fact1: Fact, fact2: Fact, thresholds: DetectionThresholds) -> bool:
    """Same date sub-type, more than the tolerance apart."""
    value1, value2 = _payload(fact1), _payload(fact2)
    if value1.get("dateType") != value2.get("dateType"):
        return False
    return _dates_differ(value1.get("date"), value2.get("date"), thresholds.date_tolerance_hours)


def requirements_conflict(fact1: Fact, fact2: Fact, thresholds: DetectionThresholds) -> bool:
    """Similar descriptions with diverging deadlines or priorities."""
    value1, value2 = _payload(fact1), _payload(fact2)
    similarity = text_similarity(value1.get("description"), value2.get("description"))
    if similarity <= thresholds.requirement_similarity:
        return False

    deadline1, deadline2 = value1.get("deadline"), value2.get("deadline")
    if deadline1 and deadline2 and _dates_differ(
        deadline1, deadline2, thresholds.date_tolerance_hours
    ):
        return True

    priority1, priority2 = value1.get("priority"), value2.get("priority")
    if priority1 and priority2:
        return abs(level(priority1) - level(priority2)) > 1

    return False


def impacts_conflict(fact1: Fact, fact2: Fact, thresholds: DetectionThresholds) -> bool:
    """Same impact sub-type, similar descriptions, severities more than a level apart."""
    value1, value2 = _payload(fact1), _payload(fact2)
    if value1.get("impactType") != value2.get("impactType"):
        return False
    similarity = text_similarity(value1.get("description"), value2.get("description"))
    if similarity <= thresholds.impact_similarity:
        return False
    severity1, severity2 = value1.get("severity"), value2.get("severity")
    if not severity1 or not severity2:
        return False
    return abs(level(severity1) - level(severity2)) > 1


def status_conflict(fact1: Fact, fact2: Fact, thresholds: DetectionThresholds) -> bool:
    """One status mentions a keyword and the other mentions a different one.

    Matching is case-insensitive substring containment, so "inactive" also
    mentions "active".
    """
    if not isinstance(fact1.value, str) or not isinstance(fact2.value, str):
        return False
    status1, status2 = fact1.value.lower(), fact2.value.lower()
    mentioned1 = {k for k in STATUS_KEYWORDS if k in status1}
    mentioned2 = {k for k in STATUS_KEYWORDS if k in status2}
    return any(k1 != k2 for k1 in mentioned1 for k2 in mentioned2)


def guidance_conflict(fact1: Fact, fact2: Fact, thresholds: DetectionThresholds) -> bool:
    """Moderately similar guidance: related but not a restatement."""
    description1, description2 = _description(fact1), _description(fact2)
    if not description1 or not description2:
        return False
    similarity = text_similarity(description1, description2)
    return thresholds.guidance_similarity_min < similarity < thresholds.guidance_similarity_max


PREDICATES: dict[str, ConflictPredicate] = {
    FactCategory.DATE.value: dates_conflict,
    FactCategory.REQUIREMENT.value: requirements_conflict,
    FactCategory.IMPACT.value: impacts_conflict,
    FactCategory.STATUS.value: status_conflict,
    FactCategory.GUIDANCE.value: guidance_conflict,
}


def facts_conflict(
    fact1: Fact,
    fact2: Fact,
    thresholds: DetectionThresholds | None = None,
    predicates: dict[str, ConflictPredicate] | None = None,
) -> bool:
    """Evaluate the predicate registered for the facts' shared category.

    Facts of different categories never conflict.
    """
    if fact1.category != fact2.category:
        return False
    predicate = (predicates or PREDICATES).get(fact1.category)
    if predicate is None:
        return False
    return predicate(fact1, fact2, thresholds or DetectionThresholds())
