"""Rider directory endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...db.session import get_session
from ...schemas.riders import RiderAvailabilityRequest, RiderModel, RiderRegistrationRequest
from ...services.dispatch import register_rider, set_availability
from ...services.errors import ServiceError
from ...services.security import Principal
from ..dependencies import get_principal, to_http_exception
from ..errors import internal_error

router = APIRouter(prefix="/riders", tags=["riders"])


@router.post("", response_model=RiderModel, status_code=status.HTTP_201_CREATED)
def create_rider(
    payload: RiderRegistrationRequest,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
) -> RiderModel:
    try:
        rider = register_rider(session, payload.userId, payload.zoneCode, principal)
        return RiderModel.from_rider(rider)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:
        raise internal_error("register a rider") from exc


@router.patch("/{rider_id}/availability", response_model=RiderModel, status_code=status.HTTP_200_OK)
def update_availability(
    rider_id: str,
    payload: RiderAvailabilityRequest,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
) -> RiderModel:
    try:
        rider = set_availability(session, rider_id, payload.isAvailable, principal)
        return RiderModel.from_rider(rider)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:
        raise internal_error("change rider availability") from exc
