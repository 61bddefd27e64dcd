"""
Movements Controller - keeps the entries and exits collections in sync.

Composition root of the synchronization layer: owns the filter and pagination
state, the debounce scheduler, the fetch orchestrator and the mutation
coordinator for one consumer. Setters are plain methods meant to be called
from the event loop; they return the task they scheduled (or ``None``) so
callers can await it when they need to.

Usage:
    async with MovementsController(service) as controller:
        controller.set_search(ResourceKind.ENTRIES, "gants")
        await controller.wait_idle()
        rows = controller.entries
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Coroutine, Mapping

from core.repositories.movements import (
    MovementRecord,
    MovementService,
    ResourceKind,
    parse_movement_date,
)
from core.settings import AppSettings, SyncSettings

from .debounce import DebounceChannel, DebounceScheduler
from .errors import MovementSyncError
from .mutations import MutationCoordinator
from .orchestrator import FetchOrchestrator
from .state import FilterState, PaginationState, PaginationTracker

logger = logging.getLogger(__name__)


def _as_date(value: date | str | None) -> date | None:
    if value is None or value == "":
        return None
    return parse_movement_date(value)


class MovementsController:
    def __init__(self, service: MovementService, settings: SyncSettings | None = None):
        settings = settings or AppSettings.load().sync
        self._settings = settings
        self.filters = FilterState()
        self.pagination = PaginationTracker(settings.page_limit, on_change=self._on_page_change)
        self._orchestrator = FetchOrchestrator(service, self.filters, self.pagination)
        self._mutations = MutationCoordinator(service, self._orchestrator)
        self._debounce = DebounceScheduler(
            {
                DebounceChannel.ENTRIES_SEARCH: settings.search_debounce,
                DebounceChannel.EXITS_SEARCH: settings.search_debounce,
                DebounceChannel.SHARED_FILTER: settings.filter_debounce,
            }
        )
        self._tasks: set[asyncio.Task] = set()
        self._mounted = False
        self._closed = False

    async def __aenter__(self) -> "MovementsController":
        await self.mount()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ------------------------------------------------------------------ state
    @property
    def entries(self) -> tuple[MovementRecord, ...]:
        return self._orchestrator.records(ResourceKind.ENTRIES)

    @property
    def exits(self) -> tuple[MovementRecord, ...]:
        return self._orchestrator.records(ResourceKind.EXITS)

    def records(self, resource: ResourceKind) -> tuple[MovementRecord, ...]:
        return self._orchestrator.records(resource)

    def page_state(self, resource: ResourceKind) -> PaginationState:
        return self.pagination[resource]

    @property
    def loading(self) -> bool:
        return self._orchestrator.loading

    @property
    def refreshing(self) -> bool:
        return self._orchestrator.refreshing

    @property
    def error(self) -> str | None:
        return self._orchestrator.error

    @property
    def error_resource(self) -> ResourceKind | None:
        return self._orchestrator.error_resource

    @property
    def last_error(self) -> MovementSyncError | None:
        return self._orchestrator.last_error

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def closed(self) -> bool:
        return self._closed

    # -------------------------------------------------------------- lifecycle
    async def mount(self) -> None:
        """Initial load: one blocking fetch per resource."""
        if self._closed:
            raise RuntimeError("MovementsController is closed")
        if self._mounted:
            raise RuntimeError("MovementsController is already mounted")
        self._mounted = True
        logger.debug("Montage du contrôleur de mouvements")
        await self._orchestrator.fetch_both(silent=False)

    async def close(self) -> None:
        """Teardown: cancel pending timers and drop every in-flight result."""
        if self._closed:
            return
        self._closed = True
        self._debounce.close()
        self._orchestrator.invalidate()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await self._debounce.wait()
        logger.debug("Contrôleur de mouvements fermé")

    async def wait_idle(self) -> None:
        """Wait until no scheduled fetch (debounced or paginated) is left."""
        while self._tasks or self._debounce.busy:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            await self._debounce.wait()

    # ---------------------------------------------------------------- fetches
    async def refresh(self, *, silent: bool = False) -> None:
        await self._orchestrator.fetch_both(silent=silent)

    async def refetch(self, resource: ResourceKind, *, silent: bool = False) -> None:
        await self._orchestrator.fetch_resource(resource, silent=silent)

    async def refetch_entries(self) -> None:
        await self._orchestrator.fetch_entries()

    async def refetch_exits(self) -> None:
        await self._orchestrator.fetch_exits()

    # ------------------------------------------------------------- pagination
    def set_page(self, resource: ResourceKind, page: int) -> asyncio.Task | None:
        return self.pagination.set_page(resource, page)

    def set_limit(self, resource: ResourceKind, limit: int) -> asyncio.Task | None:
        return self.pagination.set_limit(resource, limit)

    def _on_page_change(self, resource: ResourceKind) -> asyncio.Task | None:
        if not self._active():
            return None
        return self._spawn(
            self._orchestrator.fetch_resource(resource, silent=False),
            name=f"page:{resource.value}",
        )

    # ---------------------------------------------------------------- filters
    def set_search(self, resource: ResourceKind, text: str | None) -> asyncio.Task | None:
        resource = ResourceKind(resource)
        self.filters.set_search(resource, text)
        if not self._active():
            return None
        return self._debounce.schedule(
            DebounceChannel.search_for(resource),
            lambda: self._orchestrator.fetch_resource(resource, silent=True),
        )

    def set_search_entries(self, text: str | None) -> asyncio.Task | None:
        return self.set_search(ResourceKind.ENTRIES, text)

    def set_search_exits(self, text: str | None) -> asyncio.Task | None:
        return self.set_search(ResourceKind.EXITS, text)

    def set_date_range(
        self, start_date: date | str | None, end_date: date | str | None
    ) -> asyncio.Task | None:
        start, end = _as_date(start_date), _as_date(end_date)
        self.filters.start_date = start
        self.filters.end_date = end
        return self._schedule_shared_refresh()

    def set_start_date(self, value: date | str | None) -> asyncio.Task | None:
        self.filters.start_date = _as_date(value)
        return self._schedule_shared_refresh()

    def set_end_date(self, value: date | str | None) -> asyncio.Task | None:
        self.filters.end_date = _as_date(value)
        return self._schedule_shared_refresh()

    def set_category(self, category: str | None) -> asyncio.Task | None:
        self.filters.category = (category or "").strip() or None
        return self._schedule_shared_refresh()

    def _schedule_shared_refresh(self) -> asyncio.Task | None:
        if not self._active():
            return None
        return self._debounce.schedule(
            DebounceChannel.SHARED_FILTER,
            lambda: self._orchestrator.fetch_both(silent=True),
        )

    # -------------------------------------------------------------- mutations
    async def create(self, resource: ResourceKind, payload: Mapping[str, Any]) -> MovementRecord | None:
        return await self._mutations.create(resource, payload)

    async def update(
        self, resource: ResourceKind, id: int, payload: Mapping[str, Any]
    ) -> MovementRecord | None:
        return await self._mutations.update(resource, id, payload)

    async def delete(self, resource: ResourceKind, id: int) -> None:
        await self._mutations.delete(resource, id)

    async def update_quantity(self, id: int, payload: Mapping[str, Any]) -> MovementRecord | None:
        return await self._mutations.update_quantity(id, payload)

    # ---------------------------------------------------------------- helpers
    def _active(self) -> bool:
        return self._mounted and not self._closed

    def _spawn(self, coro: Coroutine[Any, Any, None], *, name: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task


__all__ = ["MovementsController"]
