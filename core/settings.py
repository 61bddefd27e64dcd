"""Configuration centralisée (backend core) avec validation minimale."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass


def _int_env(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} doit être un entier (reçu: {raw!r}).") from exc
    if value < minimum:
        raise ValueError(f"{name} doit être >= {minimum} (reçu: {value}).")
    return value


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} doit être un nombre (reçu: {raw!r}).") from exc


@dataclass(frozen=True)
class SyncSettings:
    """Timing and paging knobs for the movements synchronization controller."""

    page_limit: int = 100
    search_debounce: float = 0.7  # seconds
    filter_debounce: float = 0.3  # seconds

    def __post_init__(self) -> None:
        if self.page_limit < 1:
            raise ValueError("page_limit must be >= 1")
        if self.search_debounce < 0 or self.filter_debounce < 0:
            raise ValueError("debounce delays cannot be negative")


@dataclass(frozen=True)
class AppSettings:
    app_env: str = "development"
    log_level: str = "INFO"
    database_url: str = ""
    movements_api_url: str = "http://localhost:3001"
    movements_api_key: str | None = None
    http_timeout: float = 10.0
    sync: SyncSettings = SyncSettings()
    cors_allowed_origins: tuple[str, ...] = ()

    @staticmethod
    def load() -> "AppSettings":
        cors_raw = os.getenv("CORS_ALLOWED_ORIGINS")
        cors = tuple(entry.strip() for entry in cors_raw.split(",") if entry.strip()) if cors_raw else ()
        api_key = (os.getenv("MOVEMENTS_API_KEY") or "").strip() or None
        sync = SyncSettings(
            page_limit=_int_env("MOVEMENTS_PAGE_LIMIT", 100, minimum=1),
            search_debounce=_int_env("MOVEMENTS_SEARCH_DEBOUNCE_MS", 700) / 1000,
            filter_debounce=_int_env("MOVEMENTS_FILTER_DEBOUNCE_MS", 300) / 1000,
        )
        return AppSettings(
            app_env=os.getenv("APP_ENV", os.getenv("ENV", "development")).lower(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            database_url=os.getenv("DATABASE_URL", ""),
            movements_api_url=os.getenv("MOVEMENTS_API_URL", "http://localhost:3001").rstrip("/"),
            movements_api_key=api_key,
            http_timeout=_float_env("MOVEMENTS_HTTP_TIMEOUT", 10.0),
            sync=sync,
            cors_allowed_origins=cors,
        )


def configure_logging(level: str | int | None = None) -> None:
    """Applique le niveau de log (LOG_LEVEL par défaut) au logger racine."""

    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger().setLevel(level)


__all__ = ["AppSettings", "SyncSettings", "configure_logging"]
