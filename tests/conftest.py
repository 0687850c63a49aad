"""
tests.conftest

Shared helpers for driving a service app in-process.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

import httpx
import pytest
from fastapi import FastAPI

from kubereats.settings import Settings


@pytest.fixture
def settings() -> Settings:
    return Settings(env="test", service="user", drain_grace_period_seconds=2.0)


@pytest.fixture
def serve() -> Callable[[FastAPI], AbstractAsyncContextManager[httpx.AsyncClient]]:
    @asynccontextmanager
    async def _serve(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
        # httpx ASGITransport does not manage lifespan; run it explicitly.
        async with app.router.lifespan_context(app):
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
                yield client

    return _serve
