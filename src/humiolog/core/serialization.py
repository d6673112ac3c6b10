"""
Serialization of ingest payloads.

Uses orjson and hands bytes straight to the HTTP client without an
intermediate ``str``. The wire body is a JSON array holding exactly one
tag-scoped batch: ``[{"tags": {...}, "events": [...]}]``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

import orjson
from pydantic import ValidationError

from .errors import SerializationError
from .events import IngestRequest, TrackingEvent


def _default(obj: Any) -> Any:
    """Default serializer hook for unsupported types.

    Keep minimal; upstream objects are pydantic models or plain JSON types.
    """
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


@dataclass
class SerializedView:
    """A lightweight container exposing zero-copy friendly views."""

    data: bytes

    @property
    def view(self) -> memoryview:
        return memoryview(self.data)

    def __bytes__(self) -> bytes:  # convenience
        return self.data

    def __len__(self) -> int:
        return len(self.data)


def serialize_ingest_request(
    tags: Mapping[str, str],
    events: Sequence[TrackingEvent],
) -> SerializedView:
    """Encode one chunk of events as the structured ingest body.

    Raises:
        SerializationError: the tags or events cannot be represented as JSON.
    """
    try:
        request = IngestRequest(tags=dict(tags), events=list(events))
        data = orjson.dumps([request], default=_default)
    except (TypeError, ValueError, ValidationError) as e:
        # orjson.JSONEncodeError subclasses TypeError
        raise SerializationError("Serialization failed", cause=e) from e
    return SerializedView(data=data)


def deserialize_ingest_body(data: bytes) -> list[IngestRequest]:
    """Parse a wire body back into requests; used by tests and tooling."""
    raw = orjson.loads(data)
    if not isinstance(raw, list):
        raise SerializationError("ingest body must be a JSON array")
    return [IngestRequest.model_validate(item) for item in raw]
