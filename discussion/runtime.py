"""Execution runtime for discussion work.

Participant turns and post-run side effects (trace writes) are submitted to
the runtime as tasks.  The runtime must be started before use and drained with
``run_until_idle`` so nothing is still in flight when a result is returned.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DiscussionRuntime:
    """Tracks the tasks belonging to discussions.

    Usage::

        async with DiscussionRuntime() as runtime:
            turn = await runtime.submit(participant.take_turn(transcript))
            await runtime.run_until_idle()
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def start(self) -> None:
        if self._running:
            raise RuntimeError("Runtime is already started.")
        self._running = True
        logger.debug("Runtime started")

    def submit(self, coro: Coroutine[Any, Any, T]) -> asyncio.Task[T]:
        """Schedule *coro* on the runtime and return its task."""
        if not self._running:
            coro.close()
            raise RuntimeError("Runtime is not started; call start() first.")
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def run_until_idle(self) -> None:
        """Wait until every submitted task, including ones submitted meanwhile, is done.

        Failures of tasks nobody awaited are logged here.
        """
        while self._tasks:
            tasks = list(self._tasks)
            results = await asyncio.gather(*tasks, return_exceptions=True)
            for task, result in zip(tasks, results):
                if isinstance(result, Exception):
                    logger.error(
                        "Runtime task %s failed: %s: %s",
                        task.get_name(),
                        type(result).__name__,
                        result,
                    )

    async def stop(self) -> None:
        """Cancel whatever is still pending and refuse further submissions."""
        self._running = False
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Runtime stopped, cancelled %d pending task(s)", len(tasks))
        else:
            logger.debug("Runtime stopped")

    async def __aenter__(self) -> DiscussionRuntime:
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()
