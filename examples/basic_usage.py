"""
Basic usage example for humiolog.

Several producers share one logger; events are shipped in the background
and the remaining ones are drained on exit.
"""

import asyncio
import os

from humiolog import HumioLogger, Settings, TrackingEvent


async def worker(logger: HumioLogger, name: str) -> None:
    for n in range(5):
        await logger.track(worker=name, step=str(n))
        await asyncio.sleep(0.1)


async def main() -> None:
    """Demonstrate basic humiolog usage."""

    settings = Settings(max_pending=10_000, overflow_policy="drop_oldest")
    token = os.environ.get("HUMIO_INGEST_TOKEN", "dev-token")
    logger = HumioLogger(token, {"service": "example", "env": "dev"}, settings=settings)

    # Explicit timestamp instead of TrackingEvent.now()
    logger.enqueue_nowait(
        TrackingEvent(timestamp="2024-01-01T00:00:00Z", attributes={"phase": "boot"})
    )

    await asyncio.gather(*(worker(logger, f"w{i}") for i in range(3)))

    result = await logger.stop_and_drain(timeout=10.0)
    print(
        f"submitted={result.submitted} delivered={result.delivered} "
        f"dropped={result.dropped} pending={result.pending}"
    )


if __name__ == "__main__":
    asyncio.run(main())
