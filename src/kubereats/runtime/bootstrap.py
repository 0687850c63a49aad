"""
kubereats.runtime.bootstrap

Startup sequence that promotes an instance from Starting to Ready.

Responsibilities:
- Run dependency pre-checks, each bounded by a timeout.
- Promote the runtime to Ready only when every check passed.
- Record a StartupFault (and stay not-ready) otherwise.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from kubereats.observability.logging import get_logger
from kubereats.runtime.lifecycle import ServiceRuntime
from kubereats.settings import Settings, split_endpoint

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class StartupFault(Exception):
    """
    A startup check failed or timed out. Surfaced only through the health endpoints:
    the instance stays alive but never becomes ready.
    """

    check: str
    reason: str

    def __str__(self) -> str:
        return f"startup check {self.check!r} failed: {self.reason}"


@dataclass(frozen=True, slots=True)
class StartupCheck:
    name: str
    run: Callable[[], Awaitable[None]]


def tcp_dependency_check(host: str, port: int) -> StartupCheck:
    async def _connect() -> None:
        _, writer = await asyncio.open_connection(host, port)
        writer.close()
        await writer.wait_closed()

    shown = f"[{host}]" if ":" in host else host
    return StartupCheck(name=f"tcp://{shown}:{port}", run=_connect)


def checks_from_settings(settings: Settings) -> list[StartupCheck]:
    checks: list[StartupCheck] = []
    for entry in settings.dependencies:
        host, port = split_endpoint(entry)
        checks.append(tcp_dependency_check(host, port))
    return checks


async def run_startup(
    *,
    runtime: ServiceRuntime,
    checks: Sequence[StartupCheck],
    timeout: float,
) -> bool:
    log.info("startup_begin", checks=[c.name for c in checks])
    try:
        for check in checks:
            await _run_check(check, timeout=timeout)
    except StartupFault as fault:
        runtime.fail_startup(fault)
        return False
    return runtime.mark_ready()


async def _run_check(check: StartupCheck, *, timeout: float) -> None:
    try:
        await asyncio.wait_for(check.run(), timeout=timeout)
    except TimeoutError as e:
        raise StartupFault(check=check.name, reason=f"timed out after {timeout}s") from e
    except Exception as e:
        raise StartupFault(check=check.name, reason=str(e) or type(e).__name__) from e
    log.info("startup_check_passed", check=check.name)


# --- Module Notes -----------------------------------------------------------
# `run_startup` is started as a background task by the app lifespan so the health
# endpoints answer (alive, not ready) for the whole Starting interval.
