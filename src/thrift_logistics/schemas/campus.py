"""Campus zone schemas."""

from __future__ import annotations

from pydantic import BaseModel


class ZoneModel(BaseModel):
    code: str
    name: str
    description: str | None = None
    deliveryFee: float


class CampusZonesResponse(BaseModel):
    campus: str | None = None
    zones: list[ZoneModel]
