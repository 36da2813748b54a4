"""Timers: periodic workspace auto-sync and per-document debounced auto-save.

Both own ``asyncio`` tasks and must be stopped when their owner (the
session or the server lifespan) is torn down.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class AutoSyncScheduler:
    """Call ``callback`` every ``interval`` seconds until stopped.

    A failing callback is logged and the loop keeps going.
    """

    def __init__(
        self, interval: float, callback: Callable[[], Awaitable[object]]
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.interval = interval
        self.callback = callback
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info("Auto-sync every %ss", self.interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Auto-sync stopped")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.callback()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Auto-sync run failed")


class DebouncedSaver:
    """Save a document ``delay`` seconds after its last edit.

    Each ``schedule(path)`` restarts that path's countdown.
    """

    def __init__(
        self, delay: float, save: Callable[[str], Awaitable[object]]
    ) -> None:
        if delay < 0:
            raise ValueError(f"delay must not be negative, got {delay}")
        self.delay = delay
        self.save = save
        self._pending: dict[str, asyncio.Task] = {}

    def pending(self) -> list[str]:
        return sorted(self._pending)

    def schedule(self, path: str) -> None:
        self.cancel(path)
        self._pending[path] = asyncio.create_task(self._save_later(path))

    def cancel(self, path: str) -> None:
        task = self._pending.pop(path, None)
        if task is not None:
            task.cancel()

    def rename(self, old_path: str, new_path: str) -> None:
        """Move a pending save to a document's new path."""
        if old_path in self._pending:
            self.cancel(old_path)
            self.schedule(new_path)

    async def cancel_all(self) -> None:
        tasks = list(self._pending.values())
        self._pending.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _save_later(self, path: str) -> None:
        await asyncio.sleep(self.delay)
        # drop our own entry before saving so a new edit can reschedule
        if self._pending.get(path) is asyncio.current_task():
            del self._pending[path]
        try:
            await self.save(path)
        except Exception:
            logger.exception("Auto-save of %s failed", path)
