"""Erreurs de la couche de synchronisation des mouvements."""

from __future__ import annotations

from core.repositories.movements import ResourceKind


class MovementSyncError(Exception):
    """Exception de base du contrôleur de synchronisation."""


class CancellationError(MovementSyncError):
    """Résultat d'un chargement remplacé par un plus récent; jamais affiché."""

    def __init__(self, resource: ResourceKind, generation: int):
        super().__init__(f"{resource.value}: génération {generation} périmée")
        self.resource = resource
        self.generation = generation


class FetchError(MovementSyncError):
    """Échec de lecture d'une ressource, absorbé par le contrôleur."""

    def __init__(self, resource: ResourceKind, message: str):
        super().__init__(message)
        self.resource = resource
        self.message = message


class MutationError(MovementSyncError):
    """Échec de création, modification ou suppression, relancé à l'appelant."""

    def __init__(self, resource: ResourceKind, operation: str, message: str):
        super().__init__(message)
        self.resource = resource
        self.operation = operation
        self.message = message


__all__ = ["CancellationError", "FetchError", "MovementSyncError", "MutationError"]
