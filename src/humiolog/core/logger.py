"""
Producer-facing logger that owns an outbox and its background flusher.

A ``HumioLogger`` bundles the outbox, the static tag set, the ingest token
and the endpoint URL. Constructing one inside a running event loop spawns
exactly one flusher task; outside a loop the task is spawned by the first
``enqueue`` or ``start`` call made on a loop. Share the instance across
producers: they all feed the same outbox.
"""

from __future__ import annotations

import asyncio
import types
from dataclasses import dataclass
from typing import Mapping

from ..metrics.metrics import MetricsCollector
from ..sinks import BaseSender
from ..sinks.http_client import IngestSender, IngestSenderConfig
from . import diagnostics
from .events import TrackingEvent
from .flusher import Flusher
from .outbox import Outbox
from .settings import Settings


@dataclass(frozen=True)
class DrainResult:
    """Counters reported by ``HumioLogger.stop_and_drain``."""

    submitted: int
    delivered: int
    dropped: int
    pending: int
    timed_out: bool = False


class HumioLogger:
    """Ships tracking events to a structured ingest endpoint in the background."""

    def __init__(
        self,
        token: str,
        tags: Mapping[str, str] | None = None,
        *,
        settings: Settings | None = None,
        url: str | None = None,
        sender: BaseSender | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._token = token
        self._tags = dict(tags or {})
        self._url = url or self._settings.url
        self._metrics = metrics or MetricsCollector(
            enabled=self._settings.enable_metrics
        )
        self._outbox = Outbox(
            max_size=self._settings.max_pending,
            overflow_policy=self._settings.overflow_policy,
            on_drop=self._on_overflow,
            diagnostics_enabled=self._settings.internal_logging_enabled,
        )
        self._sender: BaseSender = sender or IngestSender(
            IngestSenderConfig(
                url=self._url,
                token=token,
                tags=self._tags,
                timeout_seconds=self._settings.request_timeout_seconds,
            )
        )
        self._flusher = Flusher(
            outbox=self._outbox,
            sender=self._sender,
            chunk_size=self._settings.chunk_size,
            tick_interval_seconds=self._settings.tick_interval_seconds,
            retry_delay_seconds=self._settings.retry_delay_seconds,
            metrics=self._metrics,
            diagnostics_enabled=self._settings.internal_logging_enabled,
        )
        self._task: asyncio.Task[None] | None = None
        self._submitted = 0
        self._stopped = False
        self._drain_result: DrainResult | None = None

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet; the first enqueue()/start() on a loop spawns it
            pass
        else:
            self.start()

    @property
    def url(self) -> str:
        return self._url

    @property
    def tags(self) -> dict[str, str]:
        return dict(self._tags)

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    @property
    def pending(self) -> int:
        """Events waiting in the outbox (in-flight chunks excluded)."""
        return len(self._outbox)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Spawn the flusher task on the running loop if not already running."""
        if self._stopped or self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        try:
            await self._sender.start()
        except Exception as exc:
            # Keep ticking; each send reports its own failure
            diagnostics.exception("logger", "sender start failed", exc)
        await self._flusher.run()

    async def enqueue(self, event: TrackingEvent) -> bool:
        """Queue one event for shipping. Never blocks on the network."""
        if not self._accepting():
            return False
        self.start()
        self._submitted += 1
        self._metrics.record_enqueued_nowait()
        return await self._outbox.enqueue(event)

    def enqueue_nowait(self, event: TrackingEvent) -> bool:
        """Synchronous ``enqueue`` for code running on the event loop thread."""
        if not self._accepting():
            return False
        self.start()
        self._submitted += 1
        self._metrics.record_enqueued_nowait()
        return self._outbox.enqueue_nowait(event)

    async def track(self, **attributes: str) -> bool:
        """Enqueue an event stamped with the current UTC time."""
        return await self.enqueue(TrackingEvent.now(**attributes))

    def _accepting(self) -> bool:
        if not self._stopped:
            return True
        diagnostics.warn(
            "logger",
            "event enqueued after stop_and_drain; discarded",
            _rate_limit_key="enqueue_after_stop",
            _enabled=self._settings.internal_logging_enabled,
        )
        return False

    def _on_overflow(self, count: int) -> None:
        self._metrics.record_dropped_nowait(count, reason="overflow")

    async def stop_and_drain(self, *, timeout: float | None = None) -> DrainResult:
        """Stop ticking, ship everything still pending and close the sender.

        Pending chunks are retried with the normal policy; ``timeout`` bounds
        the whole drain. Events not delivered by then are reported as
        ``pending``.
        """
        if self._drain_result is not None:
            return self._drain_result
        self._stopped = True
        self._flusher.request_stop()
        task = self._task
        if task is None or task.done():
            task = self._task = asyncio.get_running_loop().create_task(self._run())
        timed_out = False
        try:
            await asyncio.wait_for(task, timeout=timeout)
        except asyncio.TimeoutError:
            timed_out = True
            diagnostics.warn(
                "logger",
                "drain timed out; undelivered events discarded",
                timeout=timeout,
                _enabled=self._settings.internal_logging_enabled,
            )
        finally:
            try:
                await self._sender.stop()
            except Exception as exc:
                diagnostics.exception("logger", "sender stop failed", exc)

        dropped = self._outbox.dropped + self._flusher.dropped
        delivered = self._flusher.delivered
        self._drain_result = DrainResult(
            submitted=self._submitted,
            delivered=delivered,
            dropped=dropped,
            pending=max(0, self._submitted - delivered - dropped),
            timed_out=timed_out,
        )
        return self._drain_result

    async def __aenter__(self) -> HumioLogger:
        self.start()
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc: BaseException | None,
        _tb: types.TracebackType | None,
    ) -> None:
        # Events still undelivered at the bound are reported as pending
        await self.stop_and_drain(timeout=self._settings.shutdown_timeout_seconds)


__all__ = ["DrainResult", "HumioLogger"]
