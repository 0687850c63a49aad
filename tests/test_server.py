"""
tests.test_server

Termination signals against a real uvicorn server.

Responsibilities:
- The signal flips readiness off and closes the listeners before anything else.
- An in-flight request either finishes inside the grace period or is abandoned at its end.
- A repeated signal stops waiting for the drain.
"""

from __future__ import annotations

import asyncio
import signal
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import pytest
import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from kubereats.api.app import create_app
from kubereats.api.server import ServiceServer, build_server
from kubereats.routing.table import RouteEntry
from kubereats.runtime.drain import drain
from kubereats.runtime.identity import ServiceIdentity, ServiceKind
from kubereats.runtime.inflight import InflightTracker
from kubereats.runtime.lifecycle import LifecycleState, ServiceRuntime
from kubereats.settings import Settings

GRACE = 0.3


async def _app(scope, receive, send) -> None:
    return None


def _ready_runtime() -> ServiceRuntime:
    runtime = ServiceRuntime(
        identity=ServiceIdentity(kind=ServiceKind.order, name="Order Service", listen_address="x:1")
    )
    runtime.mark_ready()
    return runtime


def _slow_route(delay: float) -> RouteEntry:
    async def slow_order() -> PlainTextResponse:
        await asyncio.sleep(delay)
        return PlainTextResponse("done")

    return RouteEntry(method="GET", path="/slow", endpoint=slow_order, name="slow")


def _order_app(delay: float) -> FastAPI:
    settings = Settings(
        env="test",
        service="order",
        api_host="127.0.0.1",
        drain_grace_period_seconds=GRACE,
    )
    return create_app(settings=settings, checks=[], extra_routes=[_slow_route(delay)])


async def _wait_for_inflight(tracker: InflightTracker, count: int) -> None:
    for _ in range(200):
        if tracker.count == count:
            return
        await asyncio.sleep(0.01)
    raise AssertionError(f"expected {count} in-flight requests, saw {tracker.count}")


@asynccontextmanager
async def _running(app: FastAPI) -> AsyncIterator[tuple[ServiceServer, int]]:
    server = build_server(app, host="127.0.0.1", port=0, grace_period=GRACE)
    serving = asyncio.create_task(server.serve())
    for _ in range(500):
        if server.started:
            break
        if serving.done():
            serving.result()
        await asyncio.sleep(0.01)
    else:
        raise AssertionError("server did not start")

    port = server.servers[0].sockets[0].getsockname()[1]
    try:
        yield server, port
    finally:
        server.should_exit = True
        await asyncio.wait_for(serving, timeout=5.0)


async def _connect(port: int) -> None:
    _, writer = await asyncio.open_connection("127.0.0.1", port)
    writer.close()
    await writer.wait_closed()


def test_signal_before_serving_begins_drain_and_exits() -> None:
    runtime = _ready_runtime()
    server = ServiceServer(uvicorn.Config(_app), runtime=runtime, start_drain=lambda: None)

    server.handle_exit(signal.SIGTERM, None)

    assert runtime.state is LifecycleState.draining
    assert runtime.readiness() is False
    assert server.should_exit is True
    assert server.drain_task is None


@pytest.mark.asyncio
async def test_repeated_signal_stops_waiting_for_the_drain() -> None:
    runtime = _ready_runtime()
    tracker = InflightTracker()
    listener = await asyncio.start_server(lambda r, w: w.close(), host="127.0.0.1", port=0)
    server = ServiceServer(
        uvicorn.Config(_app),
        runtime=runtime,
        start_drain=lambda: asyncio.create_task(
            drain(runtime=runtime, tracker=tracker, grace_period=GRACE)
        ),
    )
    server.servers = [listener]

    async with tracker.track():
        server.handle_exit(signal.SIGTERM, None)
        await asyncio.sleep(0.01)

        assert listener.is_serving() is False
        assert server.drain_task is not None
        assert server.should_exit is False

        server.handle_exit(signal.SIGTERM, None)
        assert server.should_exit is True

    outcome = await server.drain_task
    assert outcome.timed_out is False
    assert runtime.state is LifecycleState.stopped
    await listener.wait_closed()


@pytest.mark.asyncio
async def test_signal_refuses_new_connections_and_finishes_inflight_request() -> None:
    app = _order_app(delay=GRACE / 3)
    runtime = app.state.runtime

    async with _running(app) as (server, port):
        await app.state.bootstrap
        await _connect(port)

        async with httpx.AsyncClient(base_url=f"http://127.0.0.1:{port}") as client:
            slow = asyncio.create_task(client.get("/slow"))
            await _wait_for_inflight(app.state.tracker, 1)

            server.handle_exit(signal.SIGTERM, None)
            assert runtime.readiness() is False
            await asyncio.sleep(0.01)

            with pytest.raises(OSError):
                await _connect(port)

            r = await slow
            assert (r.status_code, r.text) == (200, "done")
            assert r.headers["connection"] == "close"

        outcome = await asyncio.wait_for(server.drain_task, timeout=GRACE + 2.0)

    assert outcome.timed_out is False
    assert outcome.abandoned == 0
    assert runtime.state is LifecycleState.stopped


@pytest.mark.asyncio
async def test_signal_abandons_request_still_running_at_end_of_grace_period() -> None:
    app = _order_app(delay=30.0)
    runtime = app.state.runtime
    tracker = app.state.tracker

    async with _running(app) as (server, port):
        await app.state.bootstrap

        async with httpx.AsyncClient(base_url=f"http://127.0.0.1:{port}") as client:
            slow = asyncio.create_task(client.get("/slow"))
            await _wait_for_inflight(tracker, 1)

            server.handle_exit(signal.SIGTERM, None)
            await asyncio.sleep(0.01)

            with pytest.raises(OSError):
                await _connect(port)

            outcome = await asyncio.wait_for(server.drain_task, timeout=GRACE + 2.0)

            try:
                r = await slow
            except httpx.HTTPError:
                pass  # connection dropped before the 503 was read
            else:
                assert r.status_code == 503
                assert r.headers["connection"] == "close"

    assert outcome.timed_out is True
    assert outcome.abandoned == 1
    assert GRACE <= outcome.elapsed_seconds < GRACE + 1.0
    assert tracker.count == 0
    assert runtime.state is LifecycleState.stopped
