"""
kubereats.routing.table

Static route table with exact (method, path) dispatch.

Responsibilities:
- Hold the fixed set of RouteEntry values, unique per (method, path).
- Resolve a request to exactly one entry, or to a 404/405-class RoutingMiss.
- Register the entries on the FastAPI application.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI
from starlette.status import HTTP_404_NOT_FOUND, HTTP_405_METHOD_NOT_ALLOWED


@dataclass(frozen=True, slots=True)
class RouteEntry:
    method: str
    path: str
    endpoint: Callable[..., Any]
    name: str | None = None
    # Health routes are answered during drain without counting as in-flight work.
    health_check: bool = False

    @property
    def key(self) -> tuple[str, str]:
        return (self.method, self.path)


class RoutingError(Exception):
    pass


class DuplicateRouteError(RoutingError):
    def __init__(self, method: str, path: str) -> None:
        super().__init__(f"route already registered: {method} {path}")
        self.method = method
        self.path = path


class RouteTableFrozenError(RoutingError):
    pass


class RoutingMiss(RoutingError):
    """
    No entry matches the request. Answered as a response, never a process fault.
    """

    status_code: int = HTTP_404_NOT_FOUND
    detail: str = "Not Found"

    def __init__(self, method: str, path: str) -> None:
        super().__init__(f"{self.detail}: {method} {path}")
        self.method = method
        self.path = path


class RouteNotFound(RoutingMiss):
    pass


class MethodNotAllowed(RoutingMiss):
    status_code = HTTP_405_METHOD_NOT_ALLOWED
    detail = "Method Not Allowed"

    def __init__(self, method: str, path: str, *, allowed: Iterable[str]) -> None:
        super().__init__(method, path)
        self.allowed: tuple[str, ...] = tuple(sorted(allowed))


class RouteTable:
    """
    Read-only after `freeze()`. Uniqueness of (method, path) guarantees at most one
    match, so resolution needs no precedence rules.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], RouteEntry] = {}
        self._methods_by_path: dict[str, set[str]] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def add(
        self,
        method: str,
        path: str,
        endpoint: Callable[..., Any],
        *,
        name: str | None = None,
        health_check: bool = False,
    ) -> RouteEntry:
        if self._frozen:
            raise RouteTableFrozenError("route table is frozen")
        if not path.startswith("/"):
            raise ValueError(f"route path must start with '/': {path!r}")
        entry = RouteEntry(
            method=method.upper(), path=path, endpoint=endpoint, name=name, health_check=health_check
        )
        if entry.key in self._entries:
            raise DuplicateRouteError(entry.method, entry.path)
        self._entries[entry.key] = entry
        self._methods_by_path.setdefault(entry.path, set()).add(entry.method)
        return entry

    def freeze(self) -> RouteTable:
        self._frozen = True
        return self

    def resolve(self, method: str, path: str) -> RouteEntry:
        method = method.upper()
        entry = self._entries.get((method, path))
        if entry is not None:
            return entry
        allowed = self._methods_by_path.get(path)
        if allowed:
            raise MethodNotAllowed(method, path, allowed=allowed)
        raise RouteNotFound(method, path)

    def install(self, app: FastAPI) -> None:
        for entry in self:
            app.add_api_route(
                entry.path,
                entry.endpoint,
                methods=[entry.method],
                name=entry.name,
            )

    def __iter__(self) -> Iterator[RouteEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


# --- Module Notes -----------------------------------------------------------
# Paths are matched literally: "/health/" and "/health" are different keys.
