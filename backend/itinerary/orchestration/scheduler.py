"""Detached task scheduling for background generation."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from fastapi import BackgroundTasks

logger = logging.getLogger(__name__)

DetachedTask = Callable[[], Awaitable[None]]


class Scheduler(Protocol):
    """Runs a task to completion independently of its initiator."""

    def run_detached(self, task: DetachedTask) -> None:
        """Schedule `task` without awaiting it."""
        ...


class AsyncioTaskScheduler:
    """Schedules tasks on the running event loop.

    Strong references are kept until each task finishes so the loop cannot
    garbage-collect a pending task.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    def run_detached(self, task: DetachedTask) -> None:
        async def runner() -> None:
            await task()

        handle = asyncio.create_task(runner())
        self._tasks.add(handle)
        handle.add_done_callback(self._on_done)

    def _on_done(self, handle: "asyncio.Task[None]") -> None:
        self._tasks.discard(handle)
        if handle.cancelled():
            logger.warning("Detached task was cancelled")
            return
        error = handle.exception()
        if error is not None:
            logger.error("Detached task raised", exc_info=error)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every pending task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class BackgroundTasksScheduler:
    """Adapts FastAPI BackgroundTasks: the task runs after the response is sent."""

    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def run_detached(self, task: DetachedTask) -> None:
        self._background_tasks.add_task(task)
