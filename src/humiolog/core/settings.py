"""
Configuration model for humiolog using Pydantic v2 Settings.

Every field can be overridden from the environment with the ``HUMIOLOG_``
prefix, e.g. ``HUMIOLOG_TICK_INTERVAL_SECONDS=2``. The ingest token and the
tag set are per-logger and passed at construction, not read from here.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import (  # type: ignore[import-not-found]
    BaseSettings,
    SettingsConfigDict,
)

HUMIO_ENDPOINT = "https://cloud.humio.com:443/api/v1/ingest/humio-structured"

OverflowPolicy = Literal["drop_oldest", "drop_newest"]


class Settings(BaseSettings):
    """Shipping behaviour shared by every logger built from it."""

    url: str = Field(
        default=HUMIO_ENDPOINT,
        description="Structured ingest endpoint events are POSTed to",
    )
    chunk_size: int = Field(
        default=10,
        ge=1,
        description="Maximum number of events per ingest request",
    )
    tick_interval_seconds: float = Field(
        default=1.0,
        gt=0.0,
        description="Delay between two drains of the outbox",
    )
    retry_delay_seconds: float = Field(
        default=0.5,
        gt=0.0,
        description="Delay before re-sending a chunk whose delivery failed",
    )
    request_timeout_seconds: float | None = Field(
        default=None,
        gt=0.0,
        description="Per-request timeout; None keeps the HTTP client default",
    )
    max_pending: int | None = Field(
        default=None,
        ge=1,
        description="Optional cap on buffered events; None means unbounded",
    )
    overflow_policy: OverflowPolicy = Field(
        default="drop_oldest",
        description="Which event to discard when max_pending is reached",
    )
    shutdown_timeout_seconds: float | None = Field(
        default=10.0,
        gt=0.0,
        description="Drain bound used when leaving ``async with``; None waits forever",
    )
    internal_logging_enabled: bool = Field(
        default=True,
        description="Emit WARN diagnostics for internal errors",
    )
    enable_metrics: bool = Field(
        default=False,
        description="Enable Prometheus-compatible metrics",
    )

    model_config = SettingsConfigDict(
        env_prefix="HUMIOLOG_",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("url")
    @classmethod
    def _ensure_url_non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("url must not be empty")
        return value

    def to_dict(self) -> dict[str, object]:
        from typing import cast

        return cast(dict[str, object], self.model_dump(exclude_none=True))


# Mark Pydantic validators as used for vulture
_VULTURE_USED: tuple[object, ...] = (Settings._ensure_url_non_empty,)
