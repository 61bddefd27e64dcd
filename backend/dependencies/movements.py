from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request, status

from core.repositories.movements import MovementService


def require_api_key(request: Request, x_api_key: str | None = Header(default=None)) -> str | None:
    """
    Valide l'en-tête `X-API-KEY` si une clé est configurée sur l'application.

    Lorsqu'aucune clé n'est définie, l'accès est ouvert pour simplifier le dev local.
    """

    secret = getattr(request.app.state, "movements_api_key", None)
    if secret is None:
        return None

    if x_api_key is None or x_api_key != secret:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Clé API invalide",
            headers={"WWW-Authenticate": "Api-Key"},
        )
    return x_api_key


def get_movement_service(
    request: Request,
    _api_key: str | None = Depends(require_api_key),
) -> MovementService:
    """Fournisseur de mouvements attaché à l'application au démarrage."""

    return request.app.state.movement_service
