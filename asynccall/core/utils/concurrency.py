#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Concurrency primitives for asynccall.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, Set


def create_loop_future() -> "asyncio.Future[Any]":
    """
    Create a future bound to the currently running event loop.
    """
    return asyncio.get_running_loop().create_future()


class BackgroundTaskGroup:
    """
    Strongly referenced set of fire-and-forget tasks.

    The event loop only keeps weak references to tasks, so tasks spawned from
    transport callbacks must be held somewhere until they finish.
    """

    def __init__(
        self,
        on_error: Optional[Callable[[asyncio.Task, BaseException], None]] = None,
    ) -> None:
        self._tasks: Set[asyncio.Task] = set()
        self._on_error = on_error

    def spawn(
        self,
        coroutine: Awaitable[Any],
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> asyncio.Task:
        """
        Schedule ``coroutine`` and keep a reference until it completes.

        Must be called from the thread running the target loop.
        """
        if loop is None:
            loop = asyncio.get_running_loop()
        task = loop.create_task(coroutine)
        self._tasks.add(task)
        task.add_done_callback(self._discard)
        return task

    def _discard(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled() or self._on_error is None:
            return
        exc = task.exception()
        if exc is not None:
            self._on_error(task, exc)

    def __len__(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """
        Wait until every task spawned so far, and any they spawn, has finished.
        """
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
