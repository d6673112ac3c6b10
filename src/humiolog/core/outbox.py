"""
Pending-event buffer shared by producers and the flusher.

Design:
- One ``asyncio.Lock`` guards both enqueue and drain
- ``drain`` swaps in a fresh buffer and returns the old one, so the critical
  section is O(1) regardless of how many events are pending
- Unbounded by default; an optional ``max_size`` turns on an overflow policy
  that discards either the oldest pending event or the incoming one
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Callable

from . import diagnostics
from .events import TrackingEvent
from .settings import OverflowPolicy


class Outbox:
    """Ordered buffer of tracking events waiting to be shipped."""

    def __init__(
        self,
        *,
        max_size: int | None = None,
        overflow_policy: OverflowPolicy = "drop_oldest",
        on_drop: Callable[[int], None] | None = None,
        diagnostics_enabled: bool | None = None,
    ) -> None:
        if max_size is not None and max_size <= 0:
            raise ValueError("max_size must be > 0")
        if overflow_policy not in ("drop_oldest", "drop_newest"):
            raise ValueError(f"unknown overflow policy: {overflow_policy!r}")
        self._max_size = max_size
        self._policy = overflow_policy
        self._on_drop = on_drop
        self._diagnostics_enabled = diagnostics_enabled
        self._lock = asyncio.Lock()
        self._events: deque[TrackingEvent] = deque()
        self._dropped = 0

    @property
    def max_size(self) -> int | None:
        return self._max_size

    @property
    def dropped(self) -> int:
        """Events discarded by the overflow policy since creation."""
        return self._dropped

    def __len__(self) -> int:
        return len(self._events)

    async def enqueue(self, event: TrackingEvent) -> bool:
        """Append one event. Returns False only if overflow discarded it."""
        async with self._lock:
            return self._append(event)

    def enqueue_nowait(self, event: TrackingEvent) -> bool:
        """Append without awaiting the lock.

        Must be called from the event loop thread. Safe against a concurrent
        ``drain`` because the drain critical section never suspends.
        """
        return self._append(event)

    async def drain(self) -> list[TrackingEvent]:
        """Take everything pending and leave the outbox empty."""
        async with self._lock:
            events, self._events = self._events, deque()
        return list(events)

    def _append(self, event: TrackingEvent) -> bool:
        if self._max_size is None or len(self._events) < self._max_size:
            self._events.append(event)
            return True
        if self._policy == "drop_oldest":
            self._events.popleft()
            self._events.append(event)
            accepted = True
        else:
            accepted = False
        self._record_drop()
        return accepted

    def _record_drop(self) -> None:
        self._dropped += 1
        diagnostics.warn(
            "outbox",
            "outbox full, event discarded",
            policy=self._policy,
            max_size=self._max_size,
            dropped_total=self._dropped,
            _rate_limit_key="outbox_overflow",
            _enabled=self._diagnostics_enabled,
        )
        if self._on_drop is not None:
            try:
                self._on_drop(1)
            except Exception:
                # Metrics callbacks must never break enqueue
                pass
