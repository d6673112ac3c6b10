"""
Async-first shipping metrics for humiolog.

Implements minimal Prometheus-compatible counters and a request latency
histogram for the outbox and the flusher.

Design goals:
- Pure async/await, no blocking I/O
- Zero global state; instances are logger-scoped
- Safe no-op exporter behavior when metrics are disabled by settings
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from prometheus_client import CollectorRegistry, Counter, Histogram


@dataclass
class ShipperMetrics:
    """Captured runtime metrics for quick assertions in tests."""

    events_enqueued: int = 0
    events_delivered: int = 0
    events_dropped: int = 0
    send_attempts: int = 0
    send_failures: int = 0
    flushes: int = 0


class MetricsCollector:
    """Logger-scoped async metrics collector.

    In-memory counters are always tracked. Prometheus exporters are only
    created when ``enabled`` is True, in an isolated registry.
    """

    def __init__(self, *, enabled: bool = False) -> None:
        self._enabled = bool(enabled)
        self._lock = asyncio.Lock()
        self._state = ShipperMetrics()

        self._c_enqueued: Any | None = None
        self._c_delivered: Any | None = None
        self._c_dropped: Any | None = None
        self._c_attempts: Any | None = None
        self._c_failures: Any | None = None
        self._h_send_latency: Any | None = None
        self._registry: CollectorRegistry | None = None

        if self._enabled:
            # Isolated registry avoids duplicate registration across loggers
            self._registry = CollectorRegistry()
            self._c_enqueued = Counter(
                "humiolog_events_enqueued_total",
                "Total number of events accepted into the outbox",
                registry=self._registry,
            )
            self._c_delivered = Counter(
                "humiolog_events_delivered_total",
                "Total number of events accepted by the ingest endpoint",
                registry=self._registry,
            )
            self._c_dropped = Counter(
                "humiolog_events_dropped_total",
                "Total number of events discarded",
                ["reason"],
                registry=self._registry,
            )
            self._c_attempts = Counter(
                "humiolog_send_attempts_total",
                "Total number of ingest requests issued",
                registry=self._registry,
            )
            self._c_failures = Counter(
                "humiolog_send_failures_total",
                "Total number of failed ingest requests",
                ["category"],
                registry=self._registry,
            )
            self._h_send_latency = Histogram(
                "humiolog_send_seconds",
                "Latency of a single ingest request",
                buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
                registry=self._registry,
            )

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def registry(self) -> CollectorRegistry | None:
        """Expose the isolated Prometheus registry when enabled."""
        return self._registry

    def record_enqueued_nowait(self, count: int = 1) -> None:
        # Producer hot path; a plain increment never suspends so needs no lock
        self._state.events_enqueued += count
        if self._c_enqueued is not None:
            self._c_enqueued.inc(count)

    async def record_send(
        self,
        *,
        batch_size: int,
        latency_seconds: float,
        ok: bool,
        category: str | None = None,
    ) -> None:
        async with self._lock:
            self._state.send_attempts += 1
            if ok:
                self._state.events_delivered += batch_size
            else:
                self._state.send_failures += 1
        if not self._enabled:
            return
        if self._c_attempts is not None:
            self._c_attempts.inc()
        if self._h_send_latency is not None:
            self._h_send_latency.observe(latency_seconds)
        if ok and self._c_delivered is not None:
            self._c_delivered.inc(batch_size)
        if not ok and self._c_failures is not None:
            self._c_failures.labels(category=category or "unknown").inc()

    def record_dropped_nowait(self, count: int, *, reason: str) -> None:
        self._state.events_dropped += count
        if self._c_dropped is not None:
            self._c_dropped.labels(reason=reason).inc(count)

    async def record_dropped(self, count: int, *, reason: str) -> None:
        async with self._lock:
            self._state.events_dropped += count
        if self._c_dropped is not None:
            self._c_dropped.labels(reason=reason).inc(count)

    async def record_flush(self) -> None:
        async with self._lock:
            self._state.flushes += 1

    async def snapshot(self) -> ShipperMetrics:
        # Lightweight copy without exposing internals
        async with self._lock:
            return ShipperMetrics(
                events_enqueued=self._state.events_enqueued,
                events_delivered=self._state.events_delivered,
                events_dropped=self._state.events_dropped,
                send_attempts=self._state.send_attempts,
                send_failures=self._state.send_failures,
                flushes=self._state.flushes,
            )
