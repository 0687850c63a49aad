"""
kubereats.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings and the service runtime.
- Encapsulate app.state access patterns.
"""

from __future__ import annotations

from fastapi import Request

from kubereats.runtime.lifecycle import ServiceRuntime
from kubereats.settings import Settings


def settings_dep(request: Request) -> Settings:
    # The app was built from these settings in `kubereats.api.app.create_app`.
    return request.app.state.settings  # type: ignore[attr-defined]


def runtime_dep(request: Request) -> ServiceRuntime:
    return request.app.state.runtime  # type: ignore[attr-defined]


# --- Module Notes -----------------------------------------------------------
# Business routes added later obtain their collaborators here as well.
