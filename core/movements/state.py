"""Filter, pagination and request-generation state owned by the controller."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Optional

from core.repositories.base import PagedResult
from core.repositories.movements import ResourceKind


@dataclass
class FilterState:
    """Shared date/category filters plus one search text per resource.

    ``category`` is the category flag: ``None`` means unfiltered.
    """

    start_date: date | None = None
    end_date: date | None = None
    category: str | None = None
    search_entries: str = ""
    search_exits: str = ""

    def search_for(self, resource: ResourceKind) -> str:
        if ResourceKind(resource) is ResourceKind.ENTRIES:
            return self.search_entries
        return self.search_exits

    def set_search(self, resource: ResourceKind, text: str | None) -> None:
        text = text or ""
        if ResourceKind(resource) is ResourceKind.ENTRIES:
            self.search_entries = text
        else:
            self.search_exits = text


@dataclass
class PaginationState:
    page: int = 1
    limit: int = 100
    total_items: int = 0
    total_pages: int = 0


@dataclass
class RequestGeneration:
    """Token of one orchestrated or single-resource fetch."""

    number: int
    resources: frozenset[ResourceKind]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


PageChangeHook = Callable[[ResourceKind], Optional[Any]]


class PaginationTracker:
    """Per-resource pagination with setters that request a refetch."""

    def __init__(self, limit: int = 100, on_change: PageChangeHook | None = None):
        self._states = {resource: PaginationState(limit=limit) for resource in ResourceKind}
        self._on_change = on_change

    def __getitem__(self, resource: ResourceKind) -> PaginationState:
        return self._states[ResourceKind(resource)]

    def set_page(self, resource: ResourceKind, page: int):
        if page < 1:
            raise ValueError("page must be >= 1")
        self[resource].page = page
        return self._notify(resource)

    def set_limit(self, resource: ResourceKind, limit: int):
        # page unchanged, even past total_pages
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self[resource].limit = limit
        return self._notify(resource)

    def apply(self, resource: ResourceKind, result: PagedResult) -> None:
        """Copy the server totals; the requested page and limit stay local."""
        state = self[resource]
        state.total_items = result.total
        state.total_pages = result.total_pages

    def _notify(self, resource: ResourceKind):
        if self._on_change is None:
            return None
        return self._on_change(ResourceKind(resource))


__all__ = [
    "FilterState",
    "PaginationState",
    "PaginationTracker",
    "RequestGeneration",
]
