"""Entries & exits movement endpoints."""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from backend.dependencies.movements import get_movement_service
from backend.schemas.movements import (
    EntryCreate,
    EntryOut,
    EntryPage,
    EntryUpdate,
    ExitCreate,
    ExitOut,
    ExitPage,
    ExitQuantityUpdate,
    ExitUpdate,
)
from core.movements_client import payload_from_wire, record_to_wire
from core.repositories.movements import (
    InvalidMovementError,
    MovementNotFoundError,
    MovementService,
    MovementServiceError,
    ResourceKind,
    parse_movement_date,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/movements", tags=["mouvements"])


def _http_error(exc: MovementServiceError) -> HTTPException:
    if isinstance(exc, MovementNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, InvalidMovementError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    logger.warning("Erreur du service de mouvements: %s", exc)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _query_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return parse_movement_date(value)
    except InvalidMovementError as exc:
        raise _http_error(exc) from exc


async def _list(
    service: MovementService,
    resource: ResourceKind,
    *,
    start_date: str | None,
    end_date: str | None,
    page: int,
    limit: int,
    categoria: str | None,
    search: str | None,
) -> dict[str, object]:
    try:
        result = await service.get_all(
            resource,
            start_date=_query_date(start_date),
            end_date=_query_date(end_date),
            page=page,
            limit=limit,
            category=categoria,
            search=search,
        )
    except MovementServiceError as exc:
        raise _http_error(exc) from exc
    return {
        "data": [record_to_wire(record) for record in result.items],
        "pagination": {
            "page": result.page,
            "limit": result.per_page,
            "total": result.total,
            "totalPages": result.total_pages,
        },
    }


@router.get("/entries", response_model=EntryPage)
async def list_entries(
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=500),
    categoria: str | None = Query(default=None),
    search: str | None = Query(default=None),
    service: MovementService = Depends(get_movement_service),
):
    return await _list(
        service,
        ResourceKind.ENTRIES,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
        categoria=categoria,
        search=search,
    )


@router.get("/exits", response_model=ExitPage)
async def list_exits(
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=500),
    categoria: str | None = Query(default=None),
    search: str | None = Query(default=None),
    service: MovementService = Depends(get_movement_service),
):
    return await _list(
        service,
        ResourceKind.EXITS,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
        categoria=categoria,
        search=search,
    )


@router.post("/entries", response_model=EntryOut, status_code=status.HTTP_201_CREATED)
async def create_entry(payload: EntryCreate, service: MovementService = Depends(get_movement_service)):
    try:
        record = await service.create(ResourceKind.ENTRIES, payload_from_wire(payload.model_dump()))
    except MovementServiceError as exc:
        raise _http_error(exc) from exc
    return record_to_wire(record)


@router.post("/exits", response_model=ExitOut, status_code=status.HTTP_201_CREATED)
async def create_exit(payload: ExitCreate, service: MovementService = Depends(get_movement_service)):
    try:
        record = await service.create(ResourceKind.EXITS, payload_from_wire(payload.model_dump()))
    except MovementServiceError as exc:
        raise _http_error(exc) from exc
    return record_to_wire(record)


@router.patch("/entries/{movement_id}", response_model=EntryOut)
async def update_entry(
    movement_id: int,
    payload: EntryUpdate,
    service: MovementService = Depends(get_movement_service),
):
    try:
        record = await service.update(
            ResourceKind.ENTRIES,
            movement_id,
            payload_from_wire(payload.model_dump(exclude_unset=True)),
        )
    except MovementServiceError as exc:
        raise _http_error(exc) from exc
    return record_to_wire(record)


@router.patch("/exits/{movement_id}", response_model=ExitOut)
async def update_exit(
    movement_id: int,
    payload: ExitUpdate,
    service: MovementService = Depends(get_movement_service),
):
    try:
        record = await service.update(
            ResourceKind.EXITS,
            movement_id,
            payload_from_wire(payload.model_dump(exclude_unset=True)),
        )
    except MovementServiceError as exc:
        raise _http_error(exc) from exc
    return record_to_wire(record)


@router.patch("/exits/{movement_id}/quantity", response_model=ExitOut)
async def update_exit_quantity(
    movement_id: int,
    payload: ExitQuantityUpdate,
    service: MovementService = Depends(get_movement_service),
):
    try:
        record = await service.update_quantity(movement_id, {"quantity": payload.cantidad})
    except MovementServiceError as exc:
        raise _http_error(exc) from exc
    return record_to_wire(record)


@router.delete("/entries/{movement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(movement_id: int, service: MovementService = Depends(get_movement_service)):
    try:
        await service.delete(ResourceKind.ENTRIES, movement_id)
    except MovementServiceError as exc:
        raise _http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/exits/{movement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_exit(movement_id: int, service: MovementService = Depends(get_movement_service)):
    try:
        await service.delete(ResourceKind.EXITS, movement_id)
    except MovementServiceError as exc:
        raise _http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
