"""FIFO single-flight scheduler for work against the shared browser session."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from typing import Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


class SerialQueue:
    """Runs submitted coroutines one at a time, in submission order.

    A failed task never blocks or poisons later ones. A task that never
    settles stalls the queue; callers that need bounded latency must apply
    their own timeout inside the task. Cancelling a returned handle does not
    cancel the task: it still runs in its turn and later tasks wait for it.
    """

    def __init__(self):
        self._tail: Optional[asyncio.Task] = None

    def enqueue(self, fn: Callable[[], Awaitable[T]]) -> asyncio.Future[T]:
        """Chain ``fn`` after the current tail.

        Returns:
            A future settling with exactly ``fn``'s own result or exception.
        """
        previous = self._tail

        async def chained() -> T:
            if previous is not None and not previous.done():
                await asyncio.wait([previous])
            return await fn()

        task = asyncio.ensure_future(chained())
        task.add_done_callback(_log_unretrieved)
        # The chain holds the inner task; callers only get a shielded handle.
        self._tail = task
        return asyncio.shield(task)

    async def run(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Enqueue ``fn`` and await it; cancelling the caller leaves the task running."""
        return await self.enqueue(fn)


def _log_unretrieved(task: asyncio.Task):
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug(f"Queued task failed: {error!r}")
