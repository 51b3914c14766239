"""Delivery assignment, status and tracking endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...db.session import get_session
from ...models.domain import DeliveryStatus
from ...schemas.deliveries import (
    AssignDeliveryRequest,
    AssignmentResponse,
    RiderDeliveryModel,
    StatusUpdateRequest,
    StatusUpdateResponse,
    TrackingResponse,
)
from ...services.deliveries import list_rider_deliveries, track_delivery, update_delivery_status
from ...services.dispatch import assign_delivery
from ...services.errors import ServiceError
from ...services.security import Principal
from ..dependencies import get_principal, require_internal_key, to_http_exception
from ..errors import internal_error

router = APIRouter(prefix="/deliveries", tags=["deliveries"])


@router.post(
    "/assign",
    response_model=AssignmentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_internal_key)],
)
def assign(payload: AssignDeliveryRequest, session: Session = Depends(get_session)) -> AssignmentResponse:
    """Assign a rider to a confirmed order (called by the order pipeline)."""
    try:
        result = assign_delivery(session, payload.orderId)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:
        raise internal_error("assign a delivery") from exc
    return AssignmentResponse.from_result(result)


@router.patch("/{delivery_id}/status", response_model=StatusUpdateResponse, status_code=status.HTTP_200_OK)
def update_status(
    delivery_id: str,
    payload: StatusUpdateRequest,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
) -> StatusUpdateResponse:
    try:
        result = update_delivery_status(
            session, delivery_id, payload.status, principal, expected_version=payload.version
        )
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:
        raise internal_error("update a delivery status") from exc
    return StatusUpdateResponse.from_result(result)


@router.get("/track/{order_id}", response_model=TrackingResponse, status_code=status.HTTP_200_OK)
def track(
    order_id: str,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
) -> TrackingResponse:
    try:
        view = track_delivery(session, order_id, principal)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:
        raise internal_error("track a delivery") from exc
    return TrackingResponse.from_view(view)


@router.get("/rider", response_model=List[RiderDeliveryModel], status_code=status.HTTP_200_OK)
def rider_deliveries(
    delivery_status: DeliveryStatus | None = Query(default=None, alias="status", description="Optional status filter"),
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
) -> List[RiderDeliveryModel]:
    try:
        deliveries = list_rider_deliveries(session, principal, delivery_status)
        return [RiderDeliveryModel.from_delivery(delivery) for delivery in deliveries]
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:
        raise internal_error("list rider deliveries") from exc
