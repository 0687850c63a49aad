"""
kubereats.api.app

FastAPI app factory shared by every KubeEats service.

Responsibilities:
- Build the FastAPI application from the route table and register middleware.
- Start the bootstrap in the background so health endpoints answer while Starting.
- Own the single drain task (started by a termination signal or by shutdown)
  and leave the runtime Stopped.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator, Iterable, Sequence
from contextlib import asynccontextmanager

from fastapi import FastAPI

from kubereats import __version__
from kubereats.api.dispatch import RouteDispatchMiddleware
from kubereats.api.routes import build_route_table
from kubereats.observability.logging import configure_logging, get_logger
from kubereats.observability.middleware import RequestContextMiddleware
from kubereats.routing.table import RouteEntry
from kubereats.runtime.bootstrap import StartupCheck, checks_from_settings, run_startup
from kubereats.runtime.drain import DrainOutcome, drain
from kubereats.runtime.identity import identity_from_settings
from kubereats.runtime.inflight import InflightTracker
from kubereats.runtime.lifecycle import ServiceRuntime
from kubereats.settings import Settings

log = get_logger(__name__)


def create_app(
    *,
    settings: Settings,
    runtime: ServiceRuntime | None = None,
    checks: Sequence[StartupCheck] | None = None,
    extra_routes: Iterable[RouteEntry] = (),
) -> FastAPI:
    if runtime is None:
        runtime = ServiceRuntime(identity=identity_from_settings(settings))
    identity = runtime.identity

    # Configure structured logging once at process startup (before app serves requests).
    configure_logging(
        service_name=identity.name,
        instance_id=identity.instance_id,
        level=settings.log_level,
    )

    startup_checks = checks_from_settings(settings) if checks is None else list(checks)
    tracker = InflightTracker()
    table = build_route_table(extra_routes)
    drain_task: asyncio.Task[DrainOutcome] | None = None

    def start_drain() -> asyncio.Task[DrainOutcome]:
        # One drain per app: the signal handler and the lifespan share it.
        nonlocal drain_task
        if drain_task is None:
            drain_task = asyncio.create_task(
                drain(
                    runtime=runtime,
                    tracker=tracker,
                    grace_period=settings.drain_grace_period_seconds,
                ),
                name="kubereats-drain",
            )
        return drain_task

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env, listen_address=identity.listen_address)
        bootstrap = asyncio.create_task(
            run_startup(
                runtime=runtime,
                checks=startup_checks,
                timeout=settings.startup_check_timeout_seconds,
            ),
            name="kubereats-bootstrap",
        )
        app.state.bootstrap = bootstrap
        try:
            yield
        finally:
            if not bootstrap.done():
                bootstrap.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await bootstrap
            outcome = await start_drain()
            log.info("shutdown", timed_out=outcome.timed_out, abandoned=outcome.abandoned)

    app = FastAPI(
        title=f"KubeEats {identity.name}",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        redirect_slashes=False,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.runtime = runtime
    app.state.tracker = tracker
    app.state.route_table = table
    app.state.start_drain = start_drain

    table.install(app)
    app.add_middleware(RequestContextMiddleware, instance_id=identity.instance_id)
    # Added last, so it wraps everything else (see `kubereats.api.dispatch`).
    app.add_middleware(RouteDispatchMiddleware, table=table, runtime=runtime, tracker=tracker)

    return app


# --- Module Notes -----------------------------------------------------------
# App composition stays here; lifecycle rules live in `kubereats.runtime`,
# dispatch rules in `kubereats.routing`.
