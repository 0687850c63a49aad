"""
kubereats.api.routers.identity

Identity endpoints shared by every service kind.

Responsibilities:
- Answer `/` with the plain-text banner of the running service.
- Expose `/info` with the instance identity and a snapshot of its lifecycle.
"""

from __future__ import annotations

from fastapi import Depends
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from kubereats import __version__
from kubereats.api.deps import runtime_dep, settings_dep
from kubereats.routing.table import RouteTable
from kubereats.runtime.lifecycle import ServiceRuntime
from kubereats.settings import Settings


class InfoResponse(BaseModel):
    service: str
    kind: str
    instance_id: str
    listen_address: str
    state: str
    alive: bool
    ready: bool
    version: str
    env: str


async def service_banner(runtime: ServiceRuntime = Depends(runtime_dep)) -> PlainTextResponse:
    return PlainTextResponse(runtime.identity.banner)


async def service_info(
    runtime: ServiceRuntime = Depends(runtime_dep),
    settings: Settings = Depends(settings_dep),
) -> InfoResponse:
    identity = runtime.identity
    report = runtime.report()
    return InfoResponse(
        service=identity.name,
        kind=str(identity.kind),
        instance_id=identity.instance_id,
        listen_address=identity.listen_address,
        state=str(report.state),
        alive=report.alive,
        ready=report.ready,
        version=__version__,
        env=settings.env,
    )


def register(table: RouteTable) -> None:
    # `/` doubles as a basic liveness check, so it is not counted as in-flight work.
    table.add("GET", "/", service_banner, name="identity", health_check=True)
    table.add("GET", "/info", service_info, name="info", health_check=True)


# --- Module Notes -----------------------------------------------------------
# The banner text is part of the external contract; clients match on it verbatim.
