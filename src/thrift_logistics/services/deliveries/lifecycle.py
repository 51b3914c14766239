"""Delivery status state machine and its cascade into order status."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ...db.base import utcnow
from ...models.domain import Delivery, DeliveryStatus, OrderStatus
from ...persistence import deliveries as delivery_store
from ...persistence import orders as order_store
from ...persistence import riders as rider_store
from ..errors import Conflict, Forbidden, NotFound
from ..security import Principal

logger = logging.getLogger(__name__)

TERMINAL_STATES: frozenset[DeliveryStatus] = frozenset({DeliveryStatus.DELIVERED, DeliveryStatus.FAILED})

# Forward moves only (skipping ahead is allowed); FAILED from any non-terminal state.
ALLOWED_TRANSITIONS: dict[DeliveryStatus, frozenset[DeliveryStatus]] = {
    DeliveryStatus.ASSIGNED: frozenset(
        {DeliveryStatus.PICKED_UP, DeliveryStatus.IN_TRANSIT, DeliveryStatus.DELIVERED, DeliveryStatus.FAILED}
    ),
    DeliveryStatus.PICKED_UP: frozenset(
        {DeliveryStatus.IN_TRANSIT, DeliveryStatus.DELIVERED, DeliveryStatus.FAILED}
    ),
    DeliveryStatus.IN_TRANSIT: frozenset({DeliveryStatus.DELIVERED, DeliveryStatus.FAILED}),
    DeliveryStatus.DELIVERED: frozenset(),
    DeliveryStatus.FAILED: frozenset(),
}

ORDER_CASCADE: dict[DeliveryStatus, OrderStatus] = {
    DeliveryStatus.DELIVERED: OrderStatus.DELIVERED,
    DeliveryStatus.FAILED: OrderStatus.CANCELLED,
}


def is_allowed_transition(current: DeliveryStatus, requested: DeliveryStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS.get(current, frozenset())


@dataclass(slots=True)
class StatusUpdateResult:
    delivery_id: str
    order_id: str
    order_number: str
    status: DeliveryStatus
    previous_status: DeliveryStatus
    order_status: OrderStatus
    delivery_address: str
    rider_id: str | None
    rider_name: str | None
    assigned_at: datetime | None
    delivered_at: datetime | None
    updated_at: datetime


def _authorize(session: Session, delivery: Delivery | None, principal: Principal) -> Delivery:
    if principal.is_admin:
        if delivery is None:
            raise NotFound("Delivery not found", code="DELIVERY_NOT_FOUND")
        return delivery
    if not principal.is_rider or delivery is None or delivery.rider_id is None:
        raise Forbidden("Access denied to this delivery")
    rider = rider_store.get_rider_by_user(session, principal.user_id)
    if rider is None or rider.id != delivery.rider_id:
        raise Forbidden("Access denied to this delivery")
    return delivery


def _apply(delivery: Delivery, status: DeliveryStatus, now: datetime, reason: str | None) -> None:
    delivery.status = status
    if status is DeliveryStatus.PICKED_UP:
        delivery.picked_up_at = now
    elif status is DeliveryStatus.IN_TRANSIT:
        delivery.in_transit_at = now
    elif status is DeliveryStatus.DELIVERED:
        delivery.delivered_at = now
    elif status is DeliveryStatus.FAILED:
        delivery.failure_reason = reason


def transition_delivery(
    session: Session,
    delivery: Delivery,
    status: DeliveryStatus,
    *,
    now: datetime | None = None,
    reason: str | None = None,
) -> OrderStatus:
    """Move ``delivery`` to ``status`` and cascade into its order; caller commits.

    The flush is guarded by the delivery's version column, so a concurrent
    writer that committed first makes this raise ``DELIVERY_CHANGED``.
    """
    previous = delivery.status
    if not is_allowed_transition(previous, status):
        raise Conflict(
            f"Cannot move delivery from {previous.value} to {status.value}",
            code="INVALID_TRANSITION",
        )

    now = now or utcnow()
    _apply(delivery, status, now, reason)
    order = delivery.order
    cascade = ORDER_CASCADE.get(status)
    if cascade is not None:
        order_store.set_order_status(session, order, cascade)
    try:
        session.flush()
    except StaleDataError as exc:
        session.rollback()
        raise Conflict(
            "Delivery was updated by someone else, reload and retry",
            code="DELIVERY_CHANGED",
        ) from exc
    return order.status


def update_delivery_status(
    session: Session,
    delivery_id: str,
    status: DeliveryStatus,
    principal: Principal,
    *,
    now: datetime | None = None,
    expected_version: int | None = None,
) -> StatusUpdateResult:
    """Transition a delivery on behalf of its assigned rider or an admin."""
    delivery = _authorize(session, delivery_store.get_delivery(session, delivery_id), principal)
    if expected_version is not None and delivery.version != expected_version:
        raise Conflict("Delivery was updated by someone else, reload and retry", code="DELIVERY_CHANGED")

    previous = delivery.status
    try:
        order_status = transition_delivery(session, delivery, status, now=now)
        session.commit()
    except Exception:
        if session.in_transaction():
            session.rollback()
        raise

    logger.info(
        f"Delivery {delivery.id} moved {previous.value} -> {status.value} by {principal.role.value} "
        f"{principal.user_id}; order {delivery.order.order_number} is {order_status.value}"
    )
    rider = delivery.rider
    return StatusUpdateResult(
        delivery_id=delivery.id,
        order_id=delivery.order_id,
        order_number=delivery.order.order_number,
        status=delivery.status,
        previous_status=previous,
        order_status=order_status,
        delivery_address=delivery.delivery_address,
        rider_id=delivery.rider_id,
        rider_name=rider.user.full_name if rider else None,
        assigned_at=delivery.assigned_at,
        delivered_at=delivery.delivered_at,
        updated_at=delivery.updated_at,
    )
