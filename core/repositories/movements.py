"""
Movement Repository - Entries (inbound) and exits (outbound) inventory movements.

Defines the records, the asynchronous service contract consumed by the
synchronization controller and an in-memory implementation seeded at
construction time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from itertools import count
from typing import Any, Iterable, Mapping, Protocol

from .base import PagedResult


class ResourceKind(str, Enum):
    ENTRIES = "entries"
    EXITS = "exits"

    @property
    def movement_type(self) -> str:
        """Valeur stockée dans la colonne ``type`` des mouvements."""
        return "ENTREE" if self is ResourceKind.ENTRIES else "SORTIE"

    @property
    def label(self) -> str:
        return "entrées" if self is ResourceKind.ENTRIES else "sorties"


class MovementServiceError(Exception):
    """Exception de base des fournisseurs de mouvements (message lisible)."""


class MovementNotFoundError(MovementServiceError):
    """Levée lorsqu'un mouvement n'existe pas."""


class InvalidMovementError(MovementServiceError):
    """Levée lorsqu'une charge utile de mouvement est incomplète ou invalide."""


@dataclass(frozen=True)
class MovementRecord:
    """Inventory movement as returned by a provider."""

    id: int
    date: date
    product_code: str
    description: str
    unit_price: Decimal
    quantity: int
    responsible: str | None = None
    area: str | None = None
    category: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class MovementEntry(MovementRecord):
    """Inbound movement."""


@dataclass(frozen=True)
class MovementExit(MovementRecord):
    """Outbound movement, optionally tied to a project."""

    project: str | None = None


MovementPage = PagedResult[MovementRecord]

_RECORD_TYPES: dict[ResourceKind, type[MovementRecord]] = {
    ResourceKind.ENTRIES: MovementEntry,
    ResourceKind.EXITS: MovementExit,
}

_REQUIRED_FIELDS = ("date", "product_code", "description", "unit_price", "quantity")
_TEXT_FIELDS = ("responsible", "area", "category")
_DMY_PATTERN = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def record_type(resource: ResourceKind) -> type[MovementRecord]:
    return _RECORD_TYPES[ResourceKind(resource)]


def parse_movement_date(value: date | datetime | str) -> date:
    """Accepte ``date``, ``datetime``, ``YYYY-MM-DD`` ou ``DD/MM/YYYY``."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    match = _DMY_PATTERN.match(text)
    try:
        if match:
            day, month, year = (int(part) for part in match.groups())
            return date(year, month, day)
        return date.fromisoformat(text[:10])
    except ValueError as exc:
        raise InvalidMovementError(f"Date invalide: {value!r}") from exc


def format_date_dmy(value: date | str) -> str:
    """Formate une date en ``DD/MM/YYYY`` (les chaînes déjà au format passent telles quelles)."""

    if isinstance(value, str):
        if "/" in value or not value:
            return value
        parts = value.split("-")
        if len(parts) != 3 or not all(parts):
            return value
        yyyy, mm, dd = parts
        return f"{dd[:2]}/{mm}/{yyyy}"
    return value.strftime("%d/%m/%Y")


def _to_decimal(name: str, value: Any) -> Decimal:
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise InvalidMovementError(f"{name} doit être numérique (reçu: {value!r}).") from exc
    if not amount.is_finite() or amount < 0:
        raise InvalidMovementError(f"{name} doit être un nombre positif (reçu: {value!r}).")
    return amount


def _to_quantity(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidMovementError("quantity doit être un entier.")
    try:
        quantity = int(str(value).strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidMovementError(f"quantity doit être un entier (reçu: {value!r}).") from exc
    if quantity <= 0:
        raise InvalidMovementError("quantity doit être strictement positive.")
    return quantity


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def clean_payload(
    resource: ResourceKind,
    payload: Mapping[str, Any],
    *,
    partial: bool = False,
) -> dict[str, Any]:
    """Valide et normalise une charge utile de création/mise à jour.

    ``partial`` autorise l'absence des champs obligatoires (mise à jour).
    Les chaînes vides des champs optionnels deviennent ``None``.
    """

    resource = ResourceKind(resource)
    allowed = set(_REQUIRED_FIELDS) | set(_TEXT_FIELDS)
    if resource is ResourceKind.EXITS:
        allowed.add("project")
    unknown = set(payload) - allowed
    if unknown:
        raise InvalidMovementError(
            f"Champs inconnus pour les {resource.label}: {', '.join(sorted(unknown))}"
        )
    if not partial:
        missing = [name for name in _REQUIRED_FIELDS if payload.get(name) in (None, "")]
        if missing:
            raise InvalidMovementError(f"Champs obligatoires manquants: {', '.join(missing)}")

    cleaned: dict[str, Any] = {}
    for name, value in payload.items():
        if name == "date":
            cleaned[name] = parse_movement_date(value)
        elif name == "unit_price":
            cleaned[name] = _to_decimal(name, value)
        elif name == "quantity":
            cleaned[name] = _to_quantity(value)
        elif name in ("product_code", "description"):
            text = _to_text(value)
            if text is None:
                raise InvalidMovementError(f"{name} ne peut pas être vide.")
            cleaned[name] = text
        else:
            cleaned[name] = _to_text(value)
    return cleaned


def matches_search(record: MovementRecord, search: str | None) -> bool:
    if not search or not search.strip():
        return True
    needle = search.strip().lower()
    haystack = [
        record.product_code,
        record.description,
        record.responsible,
        record.area,
        getattr(record, "project", None),
    ]
    return any(needle in value.lower() for value in haystack if value)


class MovementService(Protocol):
    """Asynchronous data-provider contract for entries and exits."""

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
        ...

    async def create(self, resource: ResourceKind, payload: Mapping[str, Any]) -> MovementRecord | None:
        ...

    async def update(
        self, resource: ResourceKind, id: int, payload: Mapping[str, Any]
    ) -> MovementRecord | None:
        ...

    async def delete(self, resource: ResourceKind, id: int) -> None:
        ...

    async def update_quantity(self, id: int, payload: Mapping[str, Any]) -> MovementRecord | None:
        """Exits only: change the quantity of an outbound movement."""
        ...


class InMemoryMovementRepository:
    """In-memory implementation of MovementService.

    Rows are provided at construction, nothing is shared between instances.
    """

    def __init__(
        self,
        entries: Iterable[MovementRecord] = (),
        exits: Iterable[MovementRecord] = (),
    ):
        self._rows: dict[ResourceKind, dict[int, MovementRecord]] = {
            ResourceKind.ENTRIES: {record.id: record for record in entries},
            ResourceKind.EXITS: {record.id: record for record in exits},
        }
        self._ids = {
            resource: count(max(rows, default=0) + 1) for resource, rows in self._rows.items()
        }

    def snapshot(self, resource: ResourceKind) -> list[MovementRecord]:
        return list(self._rows[ResourceKind(resource)].values())

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
        rows = [
            record
            for record in self._rows[ResourceKind(resource)].values()
            if (start_date is None or record.date >= start_date)
            and (end_date is None or record.date <= end_date)
            and (not category or (record.category or "").lower() == category.lower())
            and matches_search(record, search)
        ]
        rows.sort(key=lambda record: (record.date, record.id), reverse=True)
        offset = (page - 1) * limit
        return PagedResult(
            items=rows[offset : offset + limit],
            total=len(rows),
            page=page,
            per_page=limit,
            total_pages=PagedResult.count_pages(len(rows), limit),
        )

    async def create(self, resource: ResourceKind, payload: Mapping[str, Any]) -> MovementRecord:
        resource = ResourceKind(resource)
        fields = clean_payload(resource, payload)
        now = datetime.now(timezone.utc)
        record = record_type(resource)(
            id=next(self._ids[resource]),
            created_at=now,
            updated_at=now,
            **fields,
        )
        self._rows[resource][record.id] = record
        return record

    async def update(
        self, resource: ResourceKind, id: int, payload: Mapping[str, Any]
    ) -> MovementRecord:
        resource = ResourceKind(resource)
        current = self._get(resource, id)
        fields = clean_payload(resource, payload, partial=True)
        record = replace(current, updated_at=datetime.now(timezone.utc), **fields)
        self._rows[resource][id] = record
        return record

    async def delete(self, resource: ResourceKind, id: int) -> None:
        resource = ResourceKind(resource)
        self._get(resource, id)
        del self._rows[resource][id]

    async def update_quantity(self, id: int, payload: Mapping[str, Any]) -> MovementRecord:
        if "quantity" not in payload:
            raise InvalidMovementError("quantity est obligatoire.")
        return await self.update(ResourceKind.EXITS, id, {"quantity": payload["quantity"]})

    def _get(self, resource: ResourceKind, id: int) -> MovementRecord:
        try:
            return self._rows[resource][id]
        except KeyError:
            raise MovementNotFoundError(
                f"Mouvement {id} introuvable dans les {resource.label}."
            ) from None


__all__ = [
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
    "clean_payload",
    "format_date_dmy",
    "matches_search",
    "parse_movement_date",
    "record_type",
]
