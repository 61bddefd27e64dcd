"""Mutation Coordinator: create/update/delete followed by a silent refetch."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Mapping

from core.repositories.movements import MovementRecord, MovementService, ResourceKind

from .errors import MutationError
from .orchestrator import FetchOrchestrator

logger = logging.getLogger(__name__)

_DEFAULT_MESSAGES = {
    "create": "Erreur lors de la création du mouvement",
    "update": "Erreur lors de la mise à jour du mouvement",
    "update_quantity": "Erreur lors de la mise à jour de la quantité",
    "delete": "Erreur lors de la suppression du mouvement",
}


class MutationCoordinator:
    """
    Wraps the service write operations.

    On success only the affected resource is refetched (silently, with the
    current page and filters). On failure the message is written to the shared
    error slot and a MutationError is raised so the caller can keep its input.
    """

    def __init__(self, service: MovementService, orchestrator: FetchOrchestrator):
        self._service = service
        self._orchestrator = orchestrator

    async def create(self, resource: ResourceKind, payload: Mapping[str, Any]) -> MovementRecord | None:
        resource = ResourceKind(resource)
        return await self._run(resource, "create", lambda: self._service.create(resource, payload))

    async def update(
        self, resource: ResourceKind, id: int, payload: Mapping[str, Any]
    ) -> MovementRecord | None:
        resource = ResourceKind(resource)
        return await self._run(resource, "update", lambda: self._service.update(resource, id, payload))

    async def update_quantity(self, id: int, payload: Mapping[str, Any]) -> MovementRecord | None:
        return await self._run(
            ResourceKind.EXITS,
            "update_quantity",
            lambda: self._service.update_quantity(id, payload),
        )

    async def delete(self, resource: ResourceKind, id: int) -> None:
        resource = ResourceKind(resource)
        with self._orchestrator.track(silent=True):
            try:
                await self._service.delete(resource, id)
            except Exception as exc:
                raise self._fail(resource, "delete", exc) from exc
            logger.info("Mouvement %s supprimé des %s", id, resource.label)
            await self._orchestrator.fetch_resource(resource, silent=True)

    async def _run(
        self,
        resource: ResourceKind,
        operation: str,
        call: Callable[[], Awaitable[MovementRecord | None]],
    ) -> MovementRecord | None:
        try:
            record = await call()
        except Exception as exc:
            raise self._fail(resource, operation, exc) from exc
        if record is None:
            logger.info("%s sur les %s: aucune donnée renvoyée", operation, resource.label)
            return None
        logger.info("%s sur les %s: mouvement %s", operation, resource.label, record.id)
        await self._orchestrator.fetch_resource(resource, silent=True)
        return record

    def _fail(self, resource: ResourceKind, operation: str, exc: Exception) -> MutationError:
        message = str(exc) or _DEFAULT_MESSAGES[operation]
        logger.warning("%s sur les %s en échec: %s", operation, resource.label, message)
        error = MutationError(resource, operation, message)
        self._orchestrator.record_error(error, resource)
        return error


__all__ = ["MutationCoordinator"]
