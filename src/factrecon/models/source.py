"""Source registry entry model."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator


class SourceInfo(BaseModel):
    """Metadata about an upstream source, as known to the source registry.

    Only name and last_updated take part in conflict resolution; the rest is
    descriptive authority/publication metadata.
    """

    source_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, description="Display name, key of the priority table")
    source_type: str | None = Field(default=None, description="e.g. federal_register, agency_feed")
    last_updated: datetime | None = Field(
        default=None, description="When the source itself was last updated or published"
    )
    is_primary: bool = Field(default=False)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("last_updated")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        """Treat a naive last_updated timestamp as UTC."""
        if v is None or v.tzinfo:
            return v
        return v.replace(tzinfo=UTC)

    model_config = {"frozen": True, "extra": "forbid"}
