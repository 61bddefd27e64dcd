"""
Stock Movement Repository - SQL data access for the mouvements_stock table.

Entries and exits share one table, told apart by the ``type`` column
(ENTREE / SORTIE). Blocking SQLAlchemy calls run in a worker thread so the
repository honours the asynchronous MovementService contract.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Mapping

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    delete,
    func,
    insert,
    or_,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core.data_repository import get_engine

from .base import PagedResult
from .movements import (
    InvalidMovementError,
    MovementNotFoundError,
    MovementPage,
    MovementRecord,
    MovementServiceError,
    ResourceKind,
    clean_payload,
    record_type,
)

logger = logging.getLogger(__name__)

metadata = MetaData()

mouvements_stock = Table(
    "mouvements_stock",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("type", String(10), nullable=False, index=True),
    Column("date_mvt", Date, nullable=False, index=True),
    Column("code_produit", String(64), nullable=False),
    Column("description", String(255), nullable=False),
    Column("prix_unitaire", Numeric(12, 2), nullable=False),
    Column("quantite", Integer, nullable=False),
    Column("responsable", String(120)),
    Column("area", String(120)),
    Column("categorie", String(120)),
    Column("projet", String(120)),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
)

# Correspondance champ métier -> colonne SQL
_COLUMNS = {
    "date": "date_mvt",
    "product_code": "code_produit",
    "description": "description",
    "unit_price": "prix_unitaire",
    "quantity": "quantite",
    "responsible": "responsable",
    "area": "area",
    "category": "categorie",
    "project": "projet",
}

_SEARCH_COLUMNS = ("code_produit", "description", "responsable", "area", "projet")


def ensure_movements_table(engine: Engine | None = None) -> None:
    """Crée la table mouvements_stock si elle n'existe pas."""

    metadata.create_all(engine or get_engine(), tables=[mouvements_stock])


class SqlMovementRepository:
    """SQLAlchemy implementation of MovementService."""

    def __init__(self, engine: Engine | None = None):
        self._engine = engine or get_engine()

    async def get_all(
        self,
        resource: ResourceKind,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
        page: int = 1,
        limit: int = 100,
        category: str | None = None,
        search: str | None = None,
    ) -> MovementPage:
        if page < 1 or limit < 1:
            raise InvalidMovementError("page et limit doivent être >= 1.")
        return await self._run(
            self._list,
            ResourceKind(resource),
            start_date,
            end_date,
            page,
            limit,
            category,
            search,
        )

    async def create(self, resource: ResourceKind, payload: Mapping[str, Any]) -> MovementRecord:
        resource = ResourceKind(resource)
        fields = clean_payload(resource, payload)
        return await self._run(self._insert, resource, fields)

    async def update(
        self, resource: ResourceKind, id: int, payload: Mapping[str, Any]
    ) -> MovementRecord:
        resource = ResourceKind(resource)
        fields = clean_payload(resource, payload, partial=True)
        return await self._run(self._update, resource, id, fields)

    async def delete(self, resource: ResourceKind, id: int) -> None:
        await self._run(self._delete, ResourceKind(resource), id)

    async def update_quantity(self, id: int, payload: Mapping[str, Any]) -> MovementRecord:
        if "quantity" not in payload:
            raise InvalidMovementError("quantity est obligatoire.")
        return await self.update(ResourceKind.EXITS, id, {"quantity": payload["quantity"]})

    async def _run(self, func_, *args):
        try:
            return await asyncio.to_thread(func_, *args)
        except SQLAlchemyError as exc:
            logger.exception("Erreur SQL sur mouvements_stock")
            raise MovementServiceError(f"Erreur base de données: {exc.__class__.__name__}") from exc

    def _list(
        self,
        resource: ResourceKind,
        start_date: date | None,
        end_date: date | None,
        page: int,
        limit: int,
        category: str | None,
        search: str | None,
    ) -> MovementPage:
        table = mouvements_stock
        conditions = [table.c.type == resource.movement_type]
        if start_date is not None:
            conditions.append(table.c.date_mvt >= start_date)
        if end_date is not None:
            conditions.append(table.c.date_mvt <= end_date)
        if category:
            conditions.append(func.lower(table.c.categorie) == category.lower())
        if search and search.strip():
            needle = search.strip().lower()
            conditions.append(
                or_(
                    *(
                        func.lower(table.c[name], type_=String).contains(needle, autoescape=True)
                        for name in _SEARCH_COLUMNS
                    )
                )
            )

        with self._engine.connect() as conn:
            total = conn.execute(
                select(func.count()).select_from(table).where(*conditions)
            ).scalar_one()
            rows = conn.execute(
                select(table)
                .where(*conditions)
                .order_by(table.c.date_mvt.desc(), table.c.id.desc())
                .limit(limit)
                .offset((page - 1) * limit)
            ).mappings().all()

        return PagedResult(
            items=[self._row_to_record(resource, row) for row in rows],
            total=int(total),
            page=page,
            per_page=limit,
            total_pages=PagedResult.count_pages(int(total), limit),
        )

    def _insert(self, resource: ResourceKind, fields: dict[str, Any]) -> MovementRecord:
        now = datetime.now(timezone.utc)
        values = {_COLUMNS[name]: value for name, value in fields.items()}
        values.update({"type": resource.movement_type, "created_at": now, "updated_at": now})
        with self._engine.begin() as conn:
            result = conn.execute(insert(mouvements_stock).values(**values))
            new_id = result.inserted_primary_key[0]
            row = self._fetch_row(conn, resource, new_id)
        return self._row_to_record(resource, row)

    def _update(self, resource: ResourceKind, id: int, fields: dict[str, Any]) -> MovementRecord:
        values = {_COLUMNS[name]: value for name, value in fields.items()}
        values["updated_at"] = datetime.now(timezone.utc)
        with self._engine.begin() as conn:
            result = conn.execute(
                update(mouvements_stock)
                .where(mouvements_stock.c.id == id, mouvements_stock.c.type == resource.movement_type)
                .values(**values)
            )
            if result.rowcount == 0:
                raise MovementNotFoundError(f"Mouvement {id} introuvable dans les {resource.label}.")
            row = self._fetch_row(conn, resource, id)
        return self._row_to_record(resource, row)

    def _delete(self, resource: ResourceKind, id: int) -> None:
        with self._engine.begin() as conn:
            result = conn.execute(
                delete(mouvements_stock).where(
                    mouvements_stock.c.id == id,
                    mouvements_stock.c.type == resource.movement_type,
                )
            )
            if result.rowcount == 0:
                raise MovementNotFoundError(f"Mouvement {id} introuvable dans les {resource.label}.")

    @staticmethod
    def _fetch_row(conn, resource: ResourceKind, id: int):
        row = conn.execute(
            select(mouvements_stock).where(
                mouvements_stock.c.id == id,
                mouvements_stock.c.type == resource.movement_type,
            )
        ).mappings().first()
        if row is None:
            raise MovementNotFoundError(f"Mouvement {id} introuvable dans les {resource.label}.")
        return row

    @staticmethod
    def _row_to_record(resource: ResourceKind, row: Mapping[str, Any]) -> MovementRecord:
        data = {
            "id": row["id"],
            "date": row["date_mvt"],
            "product_code": row["code_produit"],
            "description": row["description"],
            "unit_price": Decimal(str(row["prix_unitaire"])),
            "quantity": int(row["quantite"]),
            "responsible": row["responsable"],
            "area": row["area"],
            "category": row["categorie"],
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }
        if resource is ResourceKind.EXITS:
            data["project"] = row["projet"]
        return record_type(resource)(**data)


__all__ = ["SqlMovementRepository", "ensure_movements_table", "mouvements_stock"]
