"""Schemas for the entries/exits movement endpoints (front-end field names)."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


def _strip_optional(value: object) -> object:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


class MovementBase(BaseModel):
    fecha: str = Field(..., min_length=1, description="DD/MM/YYYY ou YYYY-MM-DD")
    codigoProducto: str = Field(..., min_length=1, max_length=64)
    descripcion: str = Field(..., min_length=1, max_length=255)
    precioUnitario: float = Field(..., ge=0)
    cantidad: int = Field(..., gt=0)
    responsable: Optional[str] = Field(default=None, max_length=120)
    area: Optional[str] = Field(default=None, max_length=120)
    categoria: Optional[str] = Field(default=None, max_length=120)

    @field_validator("responsable", "area", "categoria", mode="before")
    def _clean_optional(cls, value: object) -> object:
        return _strip_optional(value)


class EntryCreate(MovementBase):
    pass


class ExitCreate(MovementBase):
    proyecto: Optional[str] = Field(default=None, max_length=120)

    @field_validator("proyecto", mode="before")
    def _clean_project(cls, value: object) -> object:
        return _strip_optional(value)


class EntryUpdate(BaseModel):
    fecha: Optional[str] = None
    codigoProducto: Optional[str] = Field(default=None, min_length=1, max_length=64)
    descripcion: Optional[str] = Field(default=None, min_length=1, max_length=255)
    precioUnitario: Optional[float] = Field(default=None, ge=0)
    cantidad: Optional[int] = Field(default=None, gt=0)
    responsable: Optional[str] = Field(default=None, max_length=120)
    area: Optional[str] = Field(default=None, max_length=120)
    categoria: Optional[str] = Field(default=None, max_length=120)


class ExitUpdate(EntryUpdate):
    proyecto: Optional[str] = Field(default=None, max_length=120)


class ExitQuantityUpdate(BaseModel):
    cantidad: int = Field(..., gt=0)


class EntryOut(BaseModel):
    id: int
    fecha: str
    codigoProducto: str
    descripcion: str
    precioUnitario: float
    cantidad: int
    responsable: Optional[str] = None
    area: Optional[str] = None
    categoria: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class ExitOut(EntryOut):
    proyecto: Optional[str] = None


class PaginationMeta(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class EntryPage(BaseModel):
    data: List[EntryOut]
    pagination: PaginationMeta


class ExitPage(BaseModel):
    data: List[ExitOut]
    pagination: PaginationMeta


__all__ = [
    "EntryCreate",
    "EntryOut",
    "EntryPage",
    "EntryUpdate",
    "ExitCreate",
    "ExitOut",
    "ExitPage",
    "ExitQuantityUpdate",
    "ExitUpdate",
    "PaginationMeta",
]
