"""
Background flusher that drains the outbox and ships events in chunks.

Each tick drains the outbox, cuts the snapshot into chunks of at most
``chunk_size`` events and delivers them strictly in order. A chunk that
fails with a retryable error is re-sent after ``retry_delay_seconds`` until
it succeeds; the next chunk waits behind it. Non-retryable failures
(serialization errors, rejected 4xx) drop that chunk only. Any other
exception from the sender ends that tick's flush, and the rest of its
snapshot is counted as dropped.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING

from . import diagnostics
from .errors import HumioLogError
from .events import TrackingEvent
from .outbox import Outbox

if TYPE_CHECKING:
    from ..metrics.metrics import MetricsCollector
    from ..sinks import BaseSender


def chunked(
    events: Sequence[TrackingEvent], size: int
) -> Iterator[Sequence[TrackingEvent]]:
    """Yield contiguous, order-preserving slices of at most ``size`` events."""
    if size <= 0:
        raise ValueError("size must be > 0")
    for start in range(0, len(events), size):
        yield events[start : start + size]


class Flusher:
    """Drains an outbox on a fixed tick and delivers chunks with retries."""

    def __init__(
        self,
        *,
        outbox: Outbox,
        sender: BaseSender,
        chunk_size: int = 10,
        tick_interval_seconds: float = 1.0,
        retry_delay_seconds: float = 0.5,
        metrics: MetricsCollector | None = None,
        diagnostics_enabled: bool | None = None,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be > 0")
        self._outbox = outbox
        self._sender = sender
        self._chunk_size = chunk_size
        self._tick_interval = tick_interval_seconds
        self._retry_delay = retry_delay_seconds
        self._metrics = metrics
        self._diagnostics_enabled = diagnostics_enabled
        self._stop_event = asyncio.Event()
        self._flush_task: asyncio.Task[int] | None = None
        self._delivered = 0
        self._dropped = 0
        # Drained events whose chunk is neither delivered nor dropped yet
        self._unresolved = 0

    @property
    def delivered(self) -> int:
        return self._delivered

    @property
    def dropped(self) -> int:
        return self._dropped

    def request_stop(self) -> None:
        """Ask ``run`` to perform one last flush and return."""
        self._stop_event.set()

    async def run(self) -> None:
        """Tick loop. Only returns after ``request_stop``."""
        while True:
            stopping = await self._wait_for_tick()
            await self._run_isolated_flush()
            if stopping:
                return

    async def _wait_for_tick(self) -> bool:
        if self._stop_event.is_set():
            return True
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self._tick_interval)
        except asyncio.TimeoutError:
            return False
        return True

    async def _run_isolated_flush(self) -> None:
        # A fault inside one tick must not end the loop
        self._flush_task = asyncio.create_task(self.flush_once())
        try:
            await self._flush_task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                self._flush_task.cancel()
                raise
            # Only the child was cancelled; keep ticking
            diagnostics.warn(
                "flusher", "flush task cancelled", _enabled=self._diagnostics_enabled
            )
            await self._discard_unresolved("cancelled")
        except Exception as exc:
            diagnostics.exception(
                "flusher", "flush task failed", exc, discarded=self._unresolved
            )
            await self._discard_unresolved("fault")
        finally:
            self._flush_task = None

    async def flush_once(self) -> int:
        """Drain the outbox once and deliver every chunk of the snapshot.

        Returns the number of events delivered.
        """
        events = await self._outbox.drain()
        if not events:
            return 0
        self._unresolved = len(events)
        delivered = 0
        for chunk in chunked(events, self._chunk_size):
            if await self._deliver(chunk):
                delivered += len(chunk)
            self._unresolved -= len(chunk)
        if self._metrics is not None:
            await self._metrics.record_flush()
        return delivered

    async def _deliver(self, chunk: Sequence[TrackingEvent]) -> bool:
        """Send one chunk until it is delivered or permanently refused."""
        attempt = 0
        while True:
            attempt += 1
            start = time.perf_counter()
            try:
                await self._sender.send(chunk)
            except HumioLogError as exc:
                await self._record_send(
                    chunk, start, ok=False, category=exc.category.value
                )
                if not exc.retryable:
                    await self._drop(chunk, exc)
                    return False
                diagnostics.warn(
                    "flusher",
                    "send failed, retrying chunk",
                    attempt=attempt,
                    chunk_size=len(chunk),
                    error_type=type(exc).__name__,
                    error=str(exc),
                    _rate_limit_key="send_retry",
                    _enabled=self._diagnostics_enabled,
                )
                await asyncio.sleep(self._retry_delay)
                continue
            await self._record_send(chunk, start, ok=True)
            self._delivered += len(chunk)
            return True

    async def _drop(self, chunk: Sequence[TrackingEvent], exc: HumioLogError) -> None:
        self._dropped += len(chunk)
        fields: dict[str, object] = {
            "chunk_size": len(chunk),
            "category": exc.category.value,
            "error": str(exc),
        }
        status_code = getattr(exc, "status_code", None)
        if status_code is not None:
            fields["status_code"] = status_code
        diagnostics.error("flusher", "dropping undeliverable chunk", **fields)
        if self._metrics is not None:
            await self._metrics.record_dropped(len(chunk), reason=exc.category.value)

    async def _discard_unresolved(self, reason: str) -> None:
        # The drained snapshot is gone once its flush task ends
        lost, self._unresolved = self._unresolved, 0
        if not lost:
            return
        self._dropped += lost
        if self._metrics is not None:
            await self._metrics.record_dropped(lost, reason=reason)

    async def _record_send(
        self,
        chunk: Sequence[TrackingEvent],
        start: float,
        *,
        ok: bool,
        category: str | None = None,
    ) -> None:
        if self._metrics is None:
            return
        try:
            await self._metrics.record_send(
                batch_size=len(chunk),
                latency_seconds=time.perf_counter() - start,
                ok=ok,
                category=category,
            )
        except Exception:
            pass
