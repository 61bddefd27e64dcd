"""
Fetch Orchestrator - concurrent entries/exits loading with supersession.

Every fetch is tagged with a RequestGeneration. A result (or a failure) is
committed only when its generation is still the current one for the resource
and has not been cancelled; anything else is dropped as a CancellationError.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from itertools import count
from typing import Any, Iterator

from core.repositories.base import PagedResult
from core.repositories.movements import MovementRecord, MovementService, ResourceKind

from .errors import CancellationError, FetchError, MovementSyncError
from .state import FilterState, PaginationTracker, RequestGeneration

logger = logging.getLogger(__name__)

_DEFAULT_FETCH_MESSAGES = {
    ResourceKind.ENTRIES: "Erreur lors du chargement des entrées",
    ResourceKind.EXITS: "Erreur lors du chargement des sorties",
}


class FetchOrchestrator:
    def __init__(
        self,
        service: MovementService,
        filters: FilterState,
        pagination: PaginationTracker,
    ):
        self._service = service
        self._filters = filters
        self._pagination = pagination
        self._records: dict[ResourceKind, tuple[MovementRecord, ...]] = {
            resource: () for resource in ResourceKind
        }
        self._current: dict[ResourceKind, RequestGeneration | None] = {
            resource: None for resource in ResourceKind
        }
        self._orchestration: RequestGeneration | None = None
        self._numbers = count(1)
        self._loading = 0
        self._refreshing = 0
        self.error: str | None = None
        self.error_resource: ResourceKind | None = None
        self.last_error: MovementSyncError | None = None

    @property
    def loading(self) -> bool:
        return self._loading > 0

    @property
    def refreshing(self) -> bool:
        return self._refreshing > 0

    def records(self, resource: ResourceKind) -> tuple[MovementRecord, ...]:
        return self._records[ResourceKind(resource)]

    @contextmanager
    def track(self, *, silent: bool) -> Iterator[None]:
        """Hold ``loading`` (or ``refreshing`` when silent) for the block."""
        if silent:
            self._refreshing += 1
        else:
            self._loading += 1
        try:
            yield
        finally:
            if silent:
                self._refreshing -= 1
            else:
                self._loading -= 1

    async def fetch_both(self, *, silent: bool = False) -> None:
        if self._orchestration is not None:
            self._orchestration.cancel()
        generation = self._next_generation(ResourceKind)
        self._orchestration = generation
        for resource in ResourceKind:
            self._current[resource] = generation
        self.clear_error()

        with self.track(silent=silent):
            await asyncio.gather(*(self._fetch(resource, generation) for resource in ResourceKind))

    async def fetch_resource(self, resource: ResourceKind, *, silent: bool = False) -> None:
        resource = ResourceKind(resource)
        generation = self._next_generation((resource,))
        self._current[resource] = generation
        self.clear_error()

        with self.track(silent=silent):
            await self._fetch(resource, generation)

    async def fetch_entries(self, *, silent: bool = False) -> None:
        await self.fetch_resource(ResourceKind.ENTRIES, silent=silent)

    async def fetch_exits(self, *, silent: bool = False) -> None:
        await self.fetch_resource(ResourceKind.EXITS, silent=silent)

    def invalidate(self) -> None:
        """Cancel every outstanding generation; late results are dropped."""
        if self._orchestration is not None:
            self._orchestration.cancel()
        for generation in self._current.values():
            if generation is not None:
                generation.cancel()

    def clear_error(self) -> None:
        self.error = None
        self.error_resource = None
        self.last_error = None

    def record_error(self, error: MovementSyncError, resource: ResourceKind | None) -> None:
        self.error = str(error)
        self.error_resource = resource
        self.last_error = error

    def _next_generation(self, resources) -> RequestGeneration:
        return RequestGeneration(number=next(self._numbers), resources=frozenset(resources))

    def _query(self, resource: ResourceKind) -> dict[str, Any]:
        state = self._pagination[resource]
        return {
            "start_date": self._filters.start_date,
            "end_date": self._filters.end_date,
            "page": state.page,
            "limit": state.limit,
            "category": self._filters.category,
            "search": self._filters.search_for(resource).strip() or None,
        }

    def _is_stale(self, resource: ResourceKind, generation: RequestGeneration) -> bool:
        return generation.cancelled or self._current[resource] is not generation

    async def _fetch(self, resource: ResourceKind, generation: RequestGeneration) -> None:
        query = self._query(resource)
        logger.debug("Chargement %s #%s %s", resource.value, generation.number, query)
        try:
            result = await self._service.get_all(resource, **query)
            self._commit(resource, generation, result)
        except CancellationError as exc:
            logger.debug("Résultat ignoré: %s", exc)
        except Exception as exc:
            if self._is_stale(resource, generation):
                logger.debug("Échec ignoré (%s #%s périmé): %s", resource.value, generation.number, exc)
                return
            message = str(exc) or _DEFAULT_FETCH_MESSAGES[resource]
            logger.warning("Chargement des %s en échec: %s", resource.label, message)
            self.record_error(FetchError(resource, message), resource)

    def _commit(self, resource: ResourceKind, generation: RequestGeneration, result: PagedResult) -> None:
        if self._is_stale(resource, generation):
            raise CancellationError(resource, generation.number)
        self._records[resource] = tuple(result.items)
        self._pagination.apply(resource, result)
        logger.debug(
            "%s #%s: %s lignes, total=%s, pages=%s",
            resource.value,
            generation.number,
            len(result.items),
            result.total,
            result.total_pages,
        )


__all__ = ["FetchOrchestrator"]
