"""
Tracking event models shipped to the structured ingest endpoint.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class TrackingEvent(BaseModel):
    """One structured event: an opaque timestamp plus string attributes.

    The timestamp is passed through untouched; its format is whatever the
    ingest service expects (ISO 8601 for Humio).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    timestamp: str
    attributes: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def now(cls, **attributes: str) -> TrackingEvent:
        """Build an event stamped with the current UTC time."""
        stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
        return cls(
            timestamp=stamp.replace("+00:00", "Z"),
            attributes=dict(attributes),
        )


class IngestRequest(BaseModel):
    """Tag-scoped batch; the wire body is a one-element list of these."""

    model_config = ConfigDict(frozen=True)

    tags: dict[str, str]
    events: list[TrackingEvent]


__all__ = ["IngestRequest", "TrackingEvent"]
