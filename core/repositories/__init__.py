"""
Repository Layer - Data providers for inventory movements.

This module provides:
- The paginated result container shared by every provider
- The asynchronous MovementService contract and its records
- In-memory and SQLAlchemy implementations
"""

from .base import PagedResult
from .movements import (
    InMemoryMovementRepository,
    InvalidMovementError,
    MovementEntry,
    MovementExit,
    MovementNotFoundError,
    MovementPage,
    MovementRecord,
    MovementService,
    MovementServiceError,
    ResourceKind,
)
from .stock_movements import SqlMovementRepository, ensure_movements_table

__all__ = [
    # Base
    "PagedResult",
    # Movements
    "InMemoryMovementRepository",
    "InvalidMovementError",
    "MovementEntry",
    "MovementExit",
    "MovementNotFoundError",
    "MovementPage",
    "MovementRecord",
    "MovementService",
    "MovementServiceError",
    "ResourceKind",
    # SQL
    "SqlMovementRepository",
    "ensure_movements_table",
]
