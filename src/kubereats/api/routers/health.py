"""
kubereats.api.routers.health

Liveness and readiness endpoints.

Responsibilities:
- Answer readiness on `/health`: "OK" only while the runtime is Ready.
- Answer liveness on `/health/live`.
"""

from __future__ import annotations

from fastapi import Depends
from fastapi.responses import PlainTextResponse
from starlette.status import HTTP_503_SERVICE_UNAVAILABLE

from kubereats.api.deps import runtime_dep
from kubereats.routing.table import RouteTable
from kubereats.runtime.lifecycle import ServiceRuntime


async def readiness(runtime: ServiceRuntime = Depends(runtime_dep)) -> PlainTextResponse:
    # Readiness: a snapshot of the lifecycle state, nothing downstream is called.
    report = runtime.report()
    if report.ready:
        return PlainTextResponse("OK")
    return PlainTextResponse(str(report.state).upper(), status_code=HTTP_503_SERVICE_UNAVAILABLE)


async def liveness(runtime: ServiceRuntime = Depends(runtime_dep)) -> PlainTextResponse:
    # Liveness: answering at all means the loop is not wedged.
    if runtime.liveness():
        return PlainTextResponse("ALIVE")
    return PlainTextResponse("DEAD", status_code=HTTP_503_SERVICE_UNAVAILABLE)


def register(table: RouteTable) -> None:
    table.add("GET", "/health", readiness, name="readiness", health_check=True)
    table.add("GET", "/health/live", liveness, name="liveness", health_check=True)


# --- Module Notes -----------------------------------------------------------
# The orchestrator polls /health for readiness and /health/live for liveness.
