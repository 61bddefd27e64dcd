"""Debounce scheduler: one cancelable pending task per channel."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Mapping

from core.repositories.movements import ResourceKind

logger = logging.getLogger(__name__)


class DebounceChannel(str, Enum):
    ENTRIES_SEARCH = "entries-search"
    EXITS_SEARCH = "exits-search"
    SHARED_FILTER = "shared-filter"

    @classmethod
    def search_for(cls, resource: ResourceKind) -> "DebounceChannel":
        if ResourceKind(resource) is ResourceKind.ENTRIES:
            return cls.ENTRIES_SEARCH
        return cls.EXITS_SEARCH


Action = Callable[[], Awaitable[object]]


class DebounceScheduler:
    """
    Coalesces rapid edits: each ``schedule`` call cancels the channel's pending
    task and arms a new one that runs ``action`` after the quiet period.

    Once the quiet period has elapsed the task leaves its channel, so a later
    edit cannot abort the call it dispatched.
    """

    def __init__(self, delays: Mapping[DebounceChannel, float]):
        self._delays = dict(delays)
        self._pending: dict[DebounceChannel, asyncio.Task] = {}
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    def schedule(self, channel: DebounceChannel, action: Action) -> asyncio.Task:
        if self._closed:
            raise RuntimeError("DebounceScheduler is closed")
        self.cancel(channel)
        task = asyncio.get_running_loop().create_task(
            self._fire(channel, action), name=f"debounce:{channel.value}"
        )
        self._pending[channel] = task
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def pending(self, channel: DebounceChannel) -> bool:
        return channel in self._pending

    @property
    def busy(self) -> bool:
        return bool(self._tasks)

    def cancel(self, channel: DebounceChannel) -> bool:
        task = self._pending.pop(channel, None)
        if task is None:
            return False
        task.cancel()
        return True

    def close(self) -> None:
        """Cancel every pending task; nothing fires afterwards."""
        self._closed = True
        for channel in list(self._pending):
            self.cancel(channel)

    async def wait(self) -> None:
        """Wait until no task (pending or fired) is left."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _fire(self, channel: DebounceChannel, action: Action) -> None:
        await asyncio.sleep(self._delays[channel])
        if self._pending.get(channel) is asyncio.current_task():
            del self._pending[channel]
        logger.debug("Debounce %s: déclenchement", channel.value)
        await action()

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Tâche différée %s en échec", task.get_name(), exc_info=exc)


__all__ = ["DebounceChannel", "DebounceScheduler"]
