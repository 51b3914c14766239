"""Campus reference data endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...db.session import get_session
from ...schemas.campus import CampusZonesResponse, ZoneModel
from ...services.zoning import list_zones
from ..errors import internal_error

router = APIRouter(prefix="/campus", tags=["campus"])


@router.get("/zones", response_model=CampusZonesResponse, status_code=status.HTTP_200_OK)
def get_campus_zones(
    campus: str | None = Query(default=None, description="Campus name (case-insensitive)"),
    session: Session = Depends(get_session),
) -> CampusZonesResponse:
    try:
        zones = list_zones(session, campus)
    except Exception as exc:
        raise internal_error("list campus zones") from exc
    return CampusZonesResponse(
        campus=campus,
        zones=[
            ZoneModel(code=zone.code, name=zone.name, description=zone.description, deliveryFee=zone.delivery_fee)
            for zone in zones
        ],
    )
