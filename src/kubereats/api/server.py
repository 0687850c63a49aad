"""
kubereats.api.server

uvicorn server wrapper that ties termination signals to the lifecycle.

Responsibilities:
- Begin the drain (readiness off) as soon as a termination signal arrives.
- Close the listening sockets in the same step, so no new connection is accepted.
- Run the app's drain task and let uvicorn shut down only once it has finished.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from types import FrameType

import uvicorn
from fastapi import FastAPI

from kubereats.observability.logging import get_logger
from kubereats.runtime.drain import DrainOutcome
from kubereats.runtime.lifecycle import ServiceRuntime

log = get_logger(__name__)


class ServiceServer(uvicorn.Server):
    def __init__(
        self,
        config: uvicorn.Config,
        *,
        runtime: ServiceRuntime,
        start_drain: Callable[[], asyncio.Task[DrainOutcome]],
    ) -> None:
        super().__init__(config)
        self._runtime = runtime
        self._start_drain = start_drain
        self._signalled = False
        self.drain_task: asyncio.Task[DrainOutcome] | None = None

    def handle_exit(self, sig: int, frame: FrameType | None) -> None:
        if self._signalled:
            # Repeated signal: stop waiting for the drain.
            log.warning("termination_signal_repeated", signal=sig)
            super().handle_exit(sig, frame)
            return
        self._signalled = True

        self._runtime.begin_drain()
        log.info("termination_signal", signal=sig)

        listeners = list(getattr(self, "servers", ()))
        if not listeners:
            # Not serving yet; the lifespan shutdown runs the drain.
            super().handle_exit(sig, frame)
            return

        loop = listeners[0].get_loop()
        for listener in listeners:
            loop.call_soon_threadsafe(listener.close)
        loop.call_soon_threadsafe(self._run_drain)

    def _run_drain(self) -> None:
        self.drain_task = self._start_drain()
        self.drain_task.add_done_callback(self._drained)

    def _drained(self, task: asyncio.Task[DrainOutcome]) -> None:
        self.should_exit = True


def build_server(
    app: FastAPI,
    *,
    host: str,
    port: int,
    grace_period: float,
) -> ServiceServer:
    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_config=None,  # structlog
        # Backstop for connections still open after the drain task has finished.
        timeout_graceful_shutdown=grace_period,
    )
    return ServiceServer(
        config,
        runtime=app.state.runtime,
        start_drain=app.state.start_drain,
    )


# --- Module Notes -----------------------------------------------------------
# Signal handlers run on the event loop's thread, but the listener close and the
# drain start are still scheduled with call_soon_threadsafe so handle_exit is safe
# to call from any thread. uvicorn's own shutdown closes the listeners again (a
# no-op), closes idle keep-alive connections and then runs the lifespan, which
# awaits the same drain task.
