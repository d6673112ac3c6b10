"""
HTTP sender for the structured ingest endpoint.

Uses one pooled ``httpx.AsyncClient`` per sender for connection reuse and
maps every failure onto the ``HumioLogError`` taxonomy so the flusher can
decide between retrying and dropping a chunk.
"""

from __future__ import annotations

from typing import Mapping, Sequence

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .._version import __version__
from ..core.errors import (
    IngestRejectedError,
    RequestBuildError,
    RetryableStatusError,
    TransportError,
)
from ..core.events import TrackingEvent
from ..core.serialization import serialize_ingest_request

__all__ = ["IngestSender", "IngestSenderConfig", "is_retryable_status"]

# Statuses worth re-sending the same chunk for
_RETRYABLE_STATUSES = frozenset({408, 425, 429})


def is_retryable_status(status_code: int) -> bool:
    return status_code >= 500 or status_code in _RETRYABLE_STATUSES


class IngestSenderConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)  # fmt: skip

    url: str
    token: str
    tags: dict[str, str] = Field(default_factory=dict)
    timeout_seconds: float | None = Field(default=None, gt=0.0)

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Mapping[str, str] | None) -> dict[str, str]:
        if value is None:
            return {}
        return dict(value)


class IngestSender:
    """POSTs chunks of tracking events to a structured ingest endpoint."""

    name = "humio-ingest"

    def __init__(
        self,
        config: IngestSenderConfig,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._owns_client = client is None
        self._headers = {
            "Authorization": f"Bearer {config.token}",
            "Content-Type": "application/json",
            "User-Agent": f"humiolog/{__version__}",
        }
        self._last_status: int | None = None
        self._last_error: str | None = None

    @property
    def config(self) -> IngestSenderConfig:
        return self._config

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            if self._config.timeout_seconds is not None:
                self._client = httpx.AsyncClient(timeout=self._config.timeout_seconds)
            else:
                self._client = httpx.AsyncClient()
        return self._client

    async def start(self) -> None:
        self._get_client()

    async def stop(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def send(self, events: Sequence[TrackingEvent]) -> None:
        """Deliver one chunk.

        Raises:
            SerializationError: payload could not be encoded (not retryable).
            RequestBuildError: URL or headers were rejected by the client.
            TransportError: network failure or a retryable HTTP status.
            IngestRejectedError: a 4xx the endpoint will keep returning.
        """
        view = serialize_ingest_request(self._config.tags, events)
        client = self._get_client()
        try:
            response = await client.post(
                self._config.url,
                content=view.data,
                headers=self._headers,
            )
        except (httpx.InvalidURL, httpx.UnsupportedProtocol, ValueError) as exc:
            self._record_error(exc)
            raise RequestBuildError("could not build ingest request", cause=exc) from exc
        except httpx.HTTPError as exc:
            self._record_error(exc)
            raise TransportError("ingest request failed", cause=exc) from exc

        self._last_status = response.status_code
        if response.status_code < 400:
            self._last_error = None
            return
        snippet = _body_snippet(response)
        self._last_error = f"HTTP {response.status_code}"
        if is_retryable_status(response.status_code):
            raise RetryableStatusError(
                f"ingest endpoint returned {response.status_code}",
                status_code=response.status_code,
            )
        raise IngestRejectedError(
            f"ingest endpoint rejected batch with {response.status_code}",
            status_code=response.status_code,
            body=snippet,
        )

    async def health_check(self) -> bool:
        return (
            self._last_error is None
            and self._last_status is not None
            and self._last_status < 400
        )

    def _record_error(self, exc: Exception) -> None:
        self._last_error = str(exc)
        self._last_status = None


def _body_snippet(response: httpx.Response) -> str | None:
    try:
        return response.text[:256]
    except Exception:
        return None


# Mark Pydantic validators as used for vulture
_VULTURE_USED: tuple[object, ...] = (IngestSenderConfig._coerce_tags,)
