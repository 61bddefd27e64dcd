"""
Base Repository - Shared containers for paginated data access.

Every provider (in-memory, SQL, HTTP) returns the same ``PagedResult`` so the
synchronization layer never needs to know where the rows come from.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class PagedResult(Generic[T]):
    """Container for paginated results.

    ``total_pages`` is reported by the data source and kept as-is: callers
    never recompute it from ``total`` and ``per_page``.
    """

    items: Sequence[T]
    total: int
    page: int
    per_page: int
    total_pages: int

    @staticmethod
    def count_pages(total: int, per_page: int) -> int:
        if per_page <= 0:
            return 0
        return (total + per_page - 1) // per_page
