"""
kubereats.runtime.drain

Graceful shutdown sequence.

Responsibilities:
- Flip readiness off first, then wait (bounded) for in-flight work.
- Abandon remaining requests when the grace period expires (DrainTimeout).
- Leave the runtime in its terminal `stopped` state in every case.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from kubereats.observability.logging import get_logger
from kubereats.runtime.inflight import InflightTracker
from kubereats.runtime.lifecycle import ServiceRuntime

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class DrainOutcome:
    timed_out: bool
    abandoned: int
    elapsed_seconds: float


async def drain(
    *,
    runtime: ServiceRuntime,
    tracker: InflightTracker,
    grace_period: float,
) -> DrainOutcome:
    started = time.monotonic()
    runtime.begin_drain()
    log.info("drain_started", inflight=tracker.count, grace_period_seconds=grace_period)

    finished = await tracker.wait_idle(timeout=grace_period)
    abandoned = 0
    if not finished:
        abandoned = tracker.abandon()
        # DrainTimeout: recorded, never raised.
        log.warning(
            "drain_timeout",
            abandoned=abandoned,
            grace_period_seconds=grace_period,
        )

    runtime.stop()
    elapsed = time.monotonic() - started
    log.info("drain_finished", timed_out=not finished, elapsed_seconds=round(elapsed, 3))
    return DrainOutcome(timed_out=not finished, abandoned=abandoned, elapsed_seconds=elapsed)


# --- Module Notes -----------------------------------------------------------
# Under uvicorn the termination signal closes the listening sockets before this
# starts (see `kubereats.api.server`), so no new connection can add work during the wait.
