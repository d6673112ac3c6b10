"""
humiolog - asyncio log shipper for structured ingest endpoints.

Events are buffered in memory and shipped in the background, in small
batches, to a Humio / LogScale ``humio-structured`` ingest endpoint with
at-least-once retry semantics.

Example:
    logger = HumioLogger("ingest-token", {"service": "api"})
    await logger.enqueue(TrackingEvent.now(user="u1"))
"""

from ._version import __version__
from .core.errors import (
    HumioLogError,
    IngestRejectedError,
    RequestBuildError,
    RetryableStatusError,
    SerializationError,
    TransportError,
)
from .core.events import TrackingEvent
from .core.logger import DrainResult, HumioLogger
from .core.settings import HUMIO_ENDPOINT, Settings

__all__ = [
    "DrainResult",
    "HUMIO_ENDPOINT",
    "HumioLogError",
    "HumioLogger",
    "IngestRejectedError",
    "RequestBuildError",
    "RetryableStatusError",
    "SerializationError",
    "Settings",
    "TrackingEvent",
    "TransportError",
    "__version__",
]
