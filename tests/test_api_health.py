"""
tests.test_api_health

HTTP contract of the health, identity and routing-miss answers.

Responsibilities:
- Every service kind answers the same paths; only the identity differs.
- Startup faults, drain and a corrupted state show up on the health endpoints.
"""

from __future__ import annotations

import pytest

from kubereats.api.app import create_app
from kubereats.runtime.bootstrap import StartupCheck, StartupFault
from kubereats.runtime.lifecycle import LifecycleState
from kubereats.settings import Settings


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("service", "banner"),
    [
        ("user", "User Service is running!"),
        ("order", "Order Service is running!"),
        ("restaurant", "Restaurant Service is running!"),
    ],
)
async def test_every_service_kind_exposes_the_same_contract(serve, service, banner) -> None:
    app = create_app(settings=Settings(env="test", service=service), checks=[])

    async with serve(app) as client:
        await app.state.bootstrap

        r = await client.get("/")
        assert r.status_code == 200
        assert r.text == banner
        assert r.headers["content-type"].startswith("text/plain")

        r = await client.get("/health")
        assert (r.status_code, r.text) == (200, "OK")

        r = await client.get("/health/live")
        assert (r.status_code, r.text) == (200, "ALIVE")


@pytest.mark.asyncio
async def test_info_reports_identity_and_state(serve, settings) -> None:
    app = create_app(settings=settings, checks=[])
    runtime = app.state.runtime

    async with serve(app) as client:
        await app.state.bootstrap
        r = await client.get("/info")

    assert r.status_code == 200
    body = r.json()
    assert body["service"] == "User Service"
    assert body["kind"] == "user"
    assert body["instance_id"] == runtime.identity.instance_id
    assert body["state"] == "ready"
    assert body["alive"] is True
    assert body["ready"] is True
    assert body["env"] == "test"


@pytest.mark.asyncio
async def test_unknown_path_and_wrong_method_are_distinguishable(serve, settings) -> None:
    app = create_app(settings=settings, checks=[])

    async with serve(app) as client:
        await app.state.bootstrap

        r = await client.get("/orders")
        assert r.status_code == 404

        r = await client.post("/health")
        assert r.status_code == 405
        assert r.headers["allow"] == "GET"

        # Exact paths only.
        r = await client.get("/health/")
        assert r.status_code == 404

        # Docs endpoints are not part of the contract.
        r = await client.get("/docs")
        assert r.status_code == 404


@pytest.mark.asyncio
async def test_responses_carry_request_and_instance_ids(serve, settings) -> None:
    app = create_app(settings=settings, checks=[])

    async with serve(app) as client:
        await app.state.bootstrap
        r = await client.get("/", headers={"x-request-id": "req-123"})

    assert r.headers["x-request-id"] == "req-123"
    assert r.headers["x-instance-id"] == app.state.runtime.identity.instance_id


@pytest.mark.asyncio
async def test_failed_startup_stays_alive_but_never_ready(serve, settings) -> None:
    async def _unreachable() -> None:
        raise ConnectionRefusedError("db:5432 refused")

    app = create_app(
        settings=settings,
        checks=[StartupCheck(name="tcp://db:5432", run=_unreachable)],
    )
    runtime = app.state.runtime

    async with serve(app) as client:
        assert await app.state.bootstrap is False

        r = await client.get("/health")
        assert (r.status_code, r.text) == (503, "STARTING")

        r = await client.get("/health/live")
        assert r.status_code == 200

        r = await client.get("/")
        assert r.status_code == 200

        assert runtime.state is LifecycleState.starting
        assert isinstance(runtime.startup_fault, StartupFault)
        assert runtime.startup_fault.check == "tcp://db:5432"


@pytest.mark.asyncio
async def test_draining_instance_fails_readiness_and_closes_connections(serve, settings) -> None:
    app = create_app(settings=settings, checks=[])
    runtime = app.state.runtime

    async with serve(app) as client:
        await app.state.bootstrap
        r = await client.get("/")
        assert r.headers.get("connection") != "close"

        runtime.begin_drain()

        r = await client.get("/health")
        assert (r.status_code, r.text) == (503, "DRAINING")
        assert r.headers["connection"] == "close"

        r = await client.get("/health/live")
        assert r.status_code == 200

    assert runtime.state is LifecycleState.stopped


@pytest.mark.asyncio
async def test_corrupted_runtime_fails_liveness(serve, settings) -> None:
    app = create_app(settings=settings, checks=[])

    async with serve(app) as client:
        await app.state.bootstrap
        app.state.runtime._state = "bogus"

        r = await client.get("/health/live")
        assert (r.status_code, r.text) == (503, "DEAD")

        r = await client.get("/health")
        assert (r.status_code, r.text) == (503, "BOGUS")

        # Let the lifespan drain run against a sane holder.
        app.state.runtime._state = LifecycleState.ready
