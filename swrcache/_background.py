from __future__ import annotations

import logging
import types
from typing import Any, Awaitable, Callable, Optional

import anyio
from anyio.abc import TaskGroup

logger = logging.getLogger("swrcache.background")


class BackgroundTasks:
    """
    Runs fire-and-forget jobs inside an anyio task group.

    The task group is opened when the object is entered and closed, after
    every outstanding job has finished, when it is exited. A job's exception
    is logged and discarded; it never reaches whoever scheduled the job and
    never cancels sibling jobs.
    """

    def __init__(self) -> None:
        self._task_group: Optional[TaskGroup] = None

    @property
    def running(self) -> bool:
        return self._task_group is not None

    def start_soon(self, func: Callable[..., Awaitable[Any]], *args: Any, name: str) -> None:
        if self._task_group is None:
            raise RuntimeError(
                "Background tasks are not running. Use the cache proxy as an async context manager, "
                "e.g. `async with AsyncCacheProxy(...) as proxy: ...`"
            )
        self._task_group.start_soon(self._run_detached, func, args, name, name=name)

    async def _run_detached(self, func: Callable[..., Awaitable[Any]], args: tuple[Any, ...], name: str) -> None:
        try:
            await func(*args)
        except Exception:
            logger.debug(f"Background task failed: {name}", exc_info=True)

    async def __aenter__(self) -> "BackgroundTasks":
        if self._task_group is not None:
            raise RuntimeError("Background tasks are already running")
        task_group = anyio.create_task_group()
        await task_group.__aenter__()
        self._task_group = task_group
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: types.TracebackType | None = None,
    ) -> None:
        assert self._task_group is not None
        # Jobs run to completion even when the body raised; the body's exception
        # propagates unchanged once they are done. Jobs still running may
        # schedule follow-up jobs while the group drains.
        try:
            await self._task_group.__aexit__(None, None, None)
        finally:
            self._task_group = None
