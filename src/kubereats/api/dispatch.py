"""
kubereats.api.dispatch

Route resolution and in-flight accounting middleware.

Responsibilities:
- Resolve every request against the route table before the framework sees it.
- Answer routing misses with 404/405 responses.
- Count business requests as in-flight work for the drain sequence.
- Ask keep-alive clients to reconnect elsewhere once the instance is draining.
- Answer requests abandoned at the end of the grace period with a 503.
"""

from __future__ import annotations

import asyncio

from starlette.datastructures import MutableHeaders
from starlette.responses import PlainTextResponse, Response
from starlette.status import HTTP_503_SERVICE_UNAVAILABLE
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from kubereats.observability.logging import get_logger
from kubereats.routing.table import MethodNotAllowed, RouteTable, RoutingMiss
from kubereats.runtime.inflight import InflightTracker
from kubereats.runtime.lifecycle import LifecycleState, ServiceRuntime

log = get_logger(__name__)


class RouteDispatchMiddleware:
    """
    Plain ASGI middleware, installed outermost: the task it runs in is the task that
    owns the whole request, which is what the drain sequence cancels on timeout.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        table: RouteTable,
        runtime: ServiceRuntime,
        tracker: InflightTracker,
    ) -> None:
        self.app = app
        self._table = table
        self._runtime = runtime
        self._tracker = tracker

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = False

        async def closing_send(message: Message) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
                if self._runtime.state is LifecycleState.draining:
                    # Finish this request, but do not keep the connection around.
                    MutableHeaders(scope=message)["connection"] = "close"
            await send(message)

        try:
            entry = self._table.resolve(scope["method"], scope["path"])
        except RoutingMiss as miss:
            log.info(
                "routing_miss",
                method=miss.method,
                path=miss.path,
                status_code=miss.status_code,
            )
            await _miss_response(miss)(scope, receive, closing_send)
            return

        if entry.health_check:
            await self.app(scope, receive, closing_send)
            return

        try:
            async with self._tracker.track():
                await self.app(scope, receive, closing_send)
        except asyncio.CancelledError:
            if not started and self._runtime.state is not LifecycleState.ready:
                log.warning("request_abandoned", method=scope["method"], path=scope["path"])
                await _abandoned_response()(scope, receive, closing_send)
            raise


def _miss_response(miss: RoutingMiss) -> Response:
    headers = None
    if isinstance(miss, MethodNotAllowed):
        headers = {"allow": ", ".join(miss.allowed)}
    return PlainTextResponse(miss.detail, status_code=miss.status_code, headers=headers)


def _abandoned_response() -> Response:
    return PlainTextResponse(
        "Service Unavailable",
        status_code=HTTP_503_SERVICE_UNAVAILABLE,
        headers={"connection": "close"},
    )


# --- Module Notes -----------------------------------------------------------
# Starlette would produce its own 404/405 for these cases; resolving here keeps the
# route table the single source of truth for what a service answers.
# The cancellation is re-raised after the 503 is written, so uvicorn closes the
# connection instead of reusing it.
