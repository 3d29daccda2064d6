"""
Fire-and-forget writes.

Side effects such as the last-login stamp and the session log must never
delay or fail the request that triggered them. They run as tracked asyncio
tasks; failures are logged and dropped, and pending work is drained when the
application shuts down.
"""

import asyncio
import logging
from typing import Awaitable

logger = logging.getLogger(__name__)


class BackgroundWriter:
    """Runs best-effort store writes outside the request path."""

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()
        self._stats = {"submitted": 0, "failed": 0}

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def get_stats(self) -> dict:
        return {**self._stats, "pending": self.pending}

    def submit(self, coro: Awaitable, description: str) -> asyncio.Task:
        """Schedule ``coro`` on the running loop and return its task."""
        task = asyncio.create_task(self._run(coro, description))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._stats["submitted"] += 1
        return task

    async def _run(self, coro: Awaitable, description: str):
        try:
            await coro
        except Exception as e:
            self._stats["failed"] += 1
            logger.warning(f"Background write failed ({description}): {e}")

    async def drain(self):
        """Wait for every pending write to finish."""
        if not self._tasks:
            return
        logger.info(f"Draining {len(self._tasks)} background write(s)")
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
