"""Client HTTP (httpx) du service de mouvements exposé par l'API backend."""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping

import httpx

from .repositories.base import PagedResult
from .repositories.movements import (
    MovementExit,
    MovementPage,
    MovementRecord,
    MovementServiceError,
    ResourceKind,
    clean_payload,
    format_date_dmy,
    parse_movement_date,
    record_type,
)
from .settings import AppSettings

logger = logging.getLogger(__name__)

# Champ métier -> nom JSON utilisé par l'API
WIRE_FIELDS = {
    "date": "fecha",
    "product_code": "codigoProducto",
    "description": "descripcion",
    "unit_price": "precioUnitario",
    "quantity": "cantidad",
    "responsible": "responsable",
    "area": "area",
    "category": "categoria",
    "project": "proyecto",
}


def _parse_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.debug("Horodatage illisible ignoré: %r", value)
        return None


def record_from_wire(resource: ResourceKind, data: Mapping[str, Any]) -> MovementRecord:
    """Construit un enregistrement à partir du JSON renvoyé par l'API."""

    resource = ResourceKind(resource)
    try:
        fields: dict[str, Any] = {
            "id": int(data["id"]),
            "date": parse_movement_date(data["fecha"]),
            "product_code": str(data["codigoProducto"]),
            "description": str(data.get("descripcion") or ""),
            "unit_price": Decimal(str(data["precioUnitario"])),
            "quantity": int(data["cantidad"]),
            "responsible": data.get("responsable"),
            "area": data.get("area"),
            "category": data.get("categoria"),
            "created_at": _parse_timestamp(data.get("createdAt")),
            "updated_at": _parse_timestamp(data.get("updatedAt")),
        }
    except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
        raise MovementServiceError(f"Réponse invalide pour les {resource.label}: {exc}") from exc
    if resource is ResourceKind.EXITS:
        fields["project"] = data.get("proyecto")
    return record_type(resource)(**fields)


def record_to_wire(record: MovementRecord) -> dict[str, Any]:
    """Sérialise un enregistrement avec les noms de champs de l'API."""

    data: dict[str, Any] = {
        "id": record.id,
        "fecha": format_date_dmy(record.date),
        "codigoProducto": record.product_code,
        "descripcion": record.description,
        "precioUnitario": float(record.unit_price),
        "cantidad": record.quantity,
        "responsable": record.responsible,
        "area": record.area,
        "categoria": record.category,
        "createdAt": record.created_at.isoformat() if record.created_at else None,
        "updatedAt": record.updated_at.isoformat() if record.updated_at else None,
    }
    if isinstance(record, MovementExit):
        data["proyecto"] = record.project
    return data


def payload_from_wire(body: Mapping[str, Any]) -> dict[str, Any]:
    """Inverse de ``payload_to_wire``: noms JSON -> champs métier."""

    return {name: body[wire] for name, wire in WIRE_FIELDS.items() if wire in body}


def payload_to_wire(resource: ResourceKind, payload: Mapping[str, Any], *, partial: bool) -> dict[str, Any]:
    """Normalise une charge utile (nombres, date ``DD/MM/YYYY``) pour l'API."""

    wire: dict[str, Any] = {}
    for name, value in clean_payload(resource, payload, partial=partial).items():
        if isinstance(value, date):
            value = format_date_dmy(value)
        elif isinstance(value, Decimal):
            value = float(value)
        wire[WIRE_FIELDS[name]] = value
    return wire


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, Mapping):
        for key in ("detail", "error", "message"):
            detail = body.get(key)
            if isinstance(detail, str) and detail:
                return detail
    return f"Erreur HTTP {response.status_code}"


class HttpMovementService:
    """MovementService talking to ``/movements/{entries|exits}``."""

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Accept": "application/json"}
        if api_key:
            headers["X-API-KEY"] = api_key
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: AppSettings | None = None) -> "HttpMovementService":
        settings = settings or AppSettings.load()
        return cls(
            settings.movements_api_url,
            api_key=settings.movements_api_key,
            timeout=settings.http_timeout,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpMovementService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

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
        resource = ResourceKind(resource)
        params: dict[str, Any] = {"page": page, "limit": limit}
        if start_date is not None:
            params["startDate"] = start_date.isoformat()
        if end_date is not None:
            params["endDate"] = end_date.isoformat()
        if category:
            params["categoria"] = category
        if search and search.strip():
            params["search"] = search.strip()

        body = await self._request("GET", f"/movements/{resource.value}", params=params) or {}
        if isinstance(body, list):
            # Ancien format: liste brute sans pagination
            items = [record_from_wire(resource, row) for row in body]
            return PagedResult(
                items=items,
                total=len(items),
                page=1,
                per_page=limit,
                total_pages=PagedResult.count_pages(len(items), limit),
            )
        pagination = body.get("pagination") or {}
        items = [record_from_wire(resource, row) for row in body.get("data") or []]
        total = int(pagination.get("total", len(items)))
        per_page = int(pagination.get("limit", limit))
        return PagedResult(
            items=items,
            total=total,
            page=int(pagination.get("page", page)),
            per_page=per_page,
            total_pages=int(pagination.get("totalPages", PagedResult.count_pages(total, per_page))),
        )

    async def create(self, resource: ResourceKind, payload: Mapping[str, Any]) -> MovementRecord | None:
        resource = ResourceKind(resource)
        body = await self._request(
            "POST",
            f"/movements/{resource.value}",
            json=payload_to_wire(resource, payload, partial=False),
        )
        return record_from_wire(resource, body) if body else None

    async def update(
        self, resource: ResourceKind, id: int, payload: Mapping[str, Any]
    ) -> MovementRecord | None:
        resource = ResourceKind(resource)
        body = await self._request(
            "PATCH",
            f"/movements/{resource.value}/{id}",
            json=payload_to_wire(resource, payload, partial=True),
        )
        return record_from_wire(resource, body) if body else None

    async def delete(self, resource: ResourceKind, id: int) -> None:
        await self._request("DELETE", f"/movements/{ResourceKind(resource).value}/{id}")

    async def update_quantity(self, id: int, payload: Mapping[str, Any]) -> MovementRecord | None:
        wire = payload_to_wire(ResourceKind.EXITS, {"quantity": payload.get("quantity")}, partial=True)
        body = await self._request("PATCH", f"/movements/exits/{id}/quantity", json=wire)
        return record_from_wire(ResourceKind.EXITS, body) if body else None

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s a échoué: %s", method, url, exc)
            raise MovementServiceError(str(exc) or "Erreur réseau") from exc
        if response.is_error:
            message = _error_message(response)
            logger.warning("%s %s -> %s: %s", method, url, response.status_code, message)
            raise MovementServiceError(message)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise MovementServiceError("Réponse JSON invalide") from exc


__all__ = [
    "HttpMovementService",
    "WIRE_FIELDS",
    "payload_from_wire",
    "payload_to_wire",
    "record_from_wire",
    "record_to_wire",
]
