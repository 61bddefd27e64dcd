"""FastAPI application exposing the entries/exits movements for the SPA."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.api import movements as movements_router
from core.repositories.movements import InMemoryMovementRepository, MovementService
from core.repositories.stock_movements import SqlMovementRepository, ensure_movements_table
from core.data_repository import build_engine
from core.settings import AppSettings, configure_logging

logger = logging.getLogger(__name__)

_DEFAULT_ORIGINS = (
    "http://localhost:5173",
    "http://localhost:5174",
    "http://localhost:3000",
)


def _build_service(settings: AppSettings) -> MovementService:
    """Base SQL si DATABASE_URL est défini, sinon stockage en mémoire."""

    if not settings.database_url:
        logger.info("DATABASE_URL absent: mouvements conservés en mémoire")
        return InMemoryMovementRepository()
    engine = build_engine(settings.database_url)
    ensure_movements_table(engine)
    return SqlMovementRepository(engine)


def create_app(
    service: MovementService | None = None,
    settings: AppSettings | None = None,
) -> FastAPI:
    """Construit l'application FastAPI et branche le routeur des mouvements."""

    settings = settings or AppSettings.load()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Mouvements API",
        version="1.0.0",
        description="Entrées et sorties de stock, paginées et filtrables.",
        docs_url=None if settings.app_env == "production" else "/docs",
        redoc_url=None if settings.app_env == "production" else "/redoc",
    )
    app.state.movement_service = service if service is not None else _build_service(settings)
    app.state.movements_api_key = settings.movements_api_key or None

    allowed_origins = list(settings.cors_allowed_origins or _DEFAULT_ORIGINS)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials="*" not in allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(movements_router.router)

    @app.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return app


# COMMANDE POUR LANCER L'API : uvicorn backend.main:app --reload --port 3001
app = create_app()
