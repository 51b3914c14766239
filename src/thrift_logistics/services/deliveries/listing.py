"""Delivery lists for the signed-in rider."""

from __future__ import annotations

from sqlalchemy.orm import Session

from ...models.domain import Delivery, DeliveryStatus
from ...persistence import deliveries as delivery_store
from ...persistence import riders as rider_store
from ..errors import Forbidden, NotFound
from ..security import Principal


def list_rider_deliveries(
    session: Session,
    principal: Principal,
    status: DeliveryStatus | None = None,
) -> list[Delivery]:
    if not principal.is_rider:
        raise Forbidden("Only riders have a delivery list")
    rider = rider_store.get_rider_by_user(session, principal.user_id)
    if rider is None:
        raise NotFound("Rider profile not found", code="RIDER_NOT_FOUND")
    return delivery_store.list_deliveries_for_rider(session, rider.id, status)
