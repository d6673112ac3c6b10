from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from ..core.events import TrackingEvent
from .http_client import IngestSender


@runtime_checkable
class BaseSender(Protocol):
    """Base async sender interface used by the flusher.

    ``send`` delivers one chunk of events or raises a ``HumioLogError``;
    the error's ``retryable`` flag decides whether the flusher re-sends the
    same chunk or drops it.
    """

    async def start(self) -> None:  # Optional lifecycle hook
        ...

    async def stop(self) -> None:  # Optional lifecycle hook
        ...

    async def send(self, _events: Sequence[TrackingEvent]) -> None:  # noqa: ARG002
        """Deliver one chunk of events to the ingest endpoint."""
        ...


__all__ = [
    "BaseSender",
    "IngestSender",
]
