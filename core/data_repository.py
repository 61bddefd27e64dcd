"""Accès au moteur SQLAlchemy partagé par les dépôts SQL."""

from __future__ import annotations

import os
from functools import lru_cache
from urllib.parse import quote_plus

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from .settings import AppSettings


def _get_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value if value else None


def get_database_url(settings: AppSettings | None = None) -> str:
    """Build a SQLAlchemy compatible DATABASE_URL.

    Priority order:

    1. ``DATABASE_URL`` (already complete connection string).
    2. Individual ``POSTGRES_*`` variables when ``POSTGRES_DB`` is set.
    3. A local SQLite file, enough for development.
    """

    settings = settings or AppSettings.load()
    if settings.database_url:
        return settings.database_url

    database = _get_env("POSTGRES_DB")
    if database is None:
        return "sqlite:///movements.sqlite"

    user = quote_plus(_get_env("POSTGRES_USER") or "postgres")
    password = _get_env("POSTGRES_PASSWORD")
    host = _get_env("POSTGRES_HOST") or "localhost"
    port = _get_env("POSTGRES_PORT") or "5432"
    auth_part = user if password is None else f"{user}:{quote_plus(password)}"
    return f"postgresql+psycopg2://{auth_part}@{host}:{port}/{database}"


def build_engine(url: str) -> Engine:
    """Crée un moteur adapté au dialecte (SQLite mémoire partagé entre threads)."""

    if url in {"sqlite://", "sqlite:///:memory:"}:
        # Une seule connexion, sinon chaque thread verrait une base vide.
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True)


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Retourne le moteur SQLAlchemy, mis en cache via functools."""

    return build_engine(get_database_url())


__all__ = ["build_engine", "get_database_url", "get_engine"]
