"""
kubereats.api.routes

Route table shared by the User, Order and Restaurant services.
"""

from __future__ import annotations

from collections.abc import Iterable

from kubereats.api.routers import health, identity
from kubereats.routing.table import RouteEntry, RouteTable


def build_route_table(extra_routes: Iterable[RouteEntry] = ()) -> RouteTable:
    """
    Same shape for every service kind; business routes come in through `extra_routes`.
    The returned table is frozen.
    """

    table = RouteTable()
    identity.register(table)
    health.register(table)
    for entry in extra_routes:
        table.add(entry.method, entry.path, entry.endpoint, name=entry.name, health_check=entry.health_check)
    return table.freeze()
