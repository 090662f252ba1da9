"""Synthetic deterministic fixtures for fact store and conflict testing.

Provides stable test data including:
- Document and source identifiers
- Fact payloads for the four reference conflict scenarios:
  A: effective dates a month apart from sources of very different authority
  B: near-identical requirements with deadlines 46 days apart
  C: opposing order statuses ("active" vs "stayed")
  D: loosely related guidance (similarity ~0.45, below the conflict band)

Timestamps use stable values.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

DOCUMENT_ID = "eo-2025-0001"
OTHER_DOCUMENT_ID = "eo-2025-0002"

SRC_FEDERAL_REGISTER = "src-federal-register"
SRC_WHITE_HOUSE = "src-white-house"
SRC_COGR = "src-cogr"
SRC_UNKNOWN = "src-unknown-blog"

EXTRACTED_AT = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)

# Scenario A
EFFECTIVE_DATE_FR: dict[str, Any] = {
    "date": "2025-04-01",
    "dateType": "effective",
    "description": "Order takes effect",
}
EFFECTIVE_DATE_BLOG: dict[str, Any] = {
    "date": "2025-05-01",
    "dateType": "effective",
    "description": "Order takes effect",
}

# Scenario B: 9 shared words out of 11 distinct (similarity ~0.82)
REQUIREMENT_EARLY: dict[str, Any] = {
    "description": "Institutions must submit a compliance report to the funding agency",
    "deadline": "2025-03-01",
}
REQUIREMENT_LATE: dict[str, Any] = {
    "description": "Institutions must submit a compliance report to the federal agency",
    "deadline": "2025-04-16",
}

# Scenario C
STATUS_ACTIVE = "Order remains active"
STATUS_STAYED = "Order was stayed by court"

# Scenario D: 5 shared words out of 11 distinct (similarity ~0.45)
GUIDANCE_GRANT_TERMS: dict[str, Any] = {
    "description": "Universities should review all existing grant award terms",
}
GUIDANCE_POLICIES: dict[str, Any] = {
    "description": "Universities should review all existing policies before July",
}

# 6 shared words out of 10 distinct (similarity 0.60, inside the conflict band)
GUIDANCE_GRANT_TERMS_VARIANT: dict[str, Any] = {
    "description": "Universities should review all existing grant contracts quickly",
}
