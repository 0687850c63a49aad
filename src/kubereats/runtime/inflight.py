"""
kubereats.runtime.inflight

In-flight request accounting for graceful drain.

Responsibilities:
- Count requests currently being handled and remember the task serving each one.
- Let the drain sequence wait (bounded) for the count to reach zero.
- Cancel whatever is still running once the grace period is spent.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class InflightTracker:
    """
    Lives on the event loop: every method must be called from the loop thread.
    """

    def __init__(self) -> None:
        self._tasks: dict[asyncio.Task, int] = {}
        self._count = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def count(self) -> int:
        return self._count

    @asynccontextmanager
    async def track(self) -> AsyncIterator[None]:
        task = asyncio.current_task()
        self._enter(task)
        try:
            yield
        finally:
            self._exit(task)

    async def wait_idle(self, timeout: float) -> bool:
        """
        Wait until no request is in flight. Returns False if `timeout` elapsed first.
        """

        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
        except TimeoutError:
            return self._count == 0
        return True

    def abandon(self) -> int:
        # Cancel every task still serving a request; returns how many were cancelled.
        abandoned = 0
        for task in list(self._tasks):
            if not task.done():
                task.cancel()
                abandoned += 1
        return abandoned

    def _enter(self, task: asyncio.Task | None) -> None:
        self._count += 1
        self._idle.clear()
        if task is not None:
            self._tasks[task] = self._tasks.get(task, 0) + 1

    def _exit(self, task: asyncio.Task | None) -> None:
        self._count -= 1
        if task is not None:
            remaining = self._tasks.get(task, 0) - 1
            if remaining > 0:
                self._tasks[task] = remaining
            else:
                self._tasks.pop(task, None)
        if self._count == 0:
            self._idle.set()
