"""
kubereats.routing

Route table shared by every service kind.
"""

from kubereats.routing.table import (
    DuplicateRouteError,
    MethodNotAllowed,
    RouteEntry,
    RouteNotFound,
    RouteTable,
    RouteTableFrozenError,
    RoutingMiss,
)

__all__ = [
    "DuplicateRouteError",
    "MethodNotAllowed",
    "RouteEntry",
    "RouteNotFound",
    "RouteTable",
    "RouteTableFrozenError",
    "RoutingMiss",
]
