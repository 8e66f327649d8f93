"""Serial work queue.

Reconciliation and reconnect recovery both write the cached member list, so
they run through one queue with one worker: each item runs to completion
before the next one starts, in submission order.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

log = logging.getLogger("bedrock_portal.actor")


@dataclass(frozen=True)
class _WorkItem:
    generation: int
    work: Callable[[], Awaitable[None]]
    label: str


class SerialActor:
    """Runs submitted coroutines strictly one at a time."""

    def __init__(self, name: str = "portal"):
        self._name = name
        self._queue: asyncio.Queue[_WorkItem] = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self._generation = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def pending_count(self) -> int:
        return self._queue.qsize()

    def submit(self, work: Callable[[], Awaitable[None]], label: str = "work") -> bool:
        """Queue a coroutine function. Returns False once the actor is closed."""
        if self._closed:
            log.debug("[%s] Dropping %s, actor closed", self._name, label)
            return False
        self._queue.put_nowait(_WorkItem(self._generation, work, label))
        self._ensure_running()
        return True

    async def join(self) -> None:
        """Wait until everything submitted so far has been processed."""
        await self._queue.join()

    async def close(self) -> None:
        """Stop the worker and drop anything still queued."""
        self._closed = True
        self._generation += 1

        task = self._task
        self._task = None
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        while not self._queue.empty():
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._queue.task_done()

    def _ensure_running(self) -> None:
        if self._task and not self._task.done():
            return
        self._task = asyncio.create_task(self._loop())

    async def _loop(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                if item.generation != self._generation:
                    continue
                await item.work()
            except asyncio.CancelledError:
                raise
            except Exception:
                log.exception("[%s] %s failed", self._name, item.label)
            finally:
                self._queue.task_done()
