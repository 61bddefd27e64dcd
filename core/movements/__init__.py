"""
Synchronization layer for the entries / exits movement collections.

This module provides:
- MovementsController, the entry point used by consumers
- The components it composes (pagination, filters, debounce, fetch, mutations)
- The error taxonomy surfaced to callers
"""

from .controller import MovementsController
from .debounce import DebounceChannel, DebounceScheduler
from .errors import CancellationError, FetchError, MovementSyncError, MutationError
from .mutations import MutationCoordinator
from .orchestrator import FetchOrchestrator
from .state import FilterState, PaginationState, PaginationTracker, RequestGeneration

__all__ = [
    "CancellationError",
    "DebounceChannel",
    "DebounceScheduler",
    "FetchError",
    "FetchOrchestrator",
    "FilterState",
    "MovementSyncError",
    "MovementsController",
    "MutationCoordinator",
    "MutationError",
    "PaginationState",
    "PaginationTracker",
    "RequestGeneration",
]
