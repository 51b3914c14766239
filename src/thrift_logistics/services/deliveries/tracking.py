"""Customer-facing delivery tracking: ETA heuristic and rider contact."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from ...config import settings
from ...db.base import utcnow
from ...models.domain import Delivery, DeliveryStatus, OrderStatus
from ...persistence import deliveries as delivery_store
from ...persistence import orders as order_store
from ..errors import Forbidden, NotFound
from ..security import Principal


def estimate_arrival(delivery: Delivery, now: datetime | None = None) -> datetime | None:
    """Heuristic ETA from status and timestamps (no live location)."""
    status = delivery.status
    if status in (DeliveryStatus.DELIVERED, DeliveryStatus.FAILED):
        return None
    if status is DeliveryStatus.ASSIGNED and delivery.assigned_at:
        return delivery.assigned_at + timedelta(minutes=settings.eta_assigned_minutes)
    if status is DeliveryStatus.PICKED_UP and delivery.assigned_at:
        return delivery.assigned_at + timedelta(minutes=settings.eta_picked_up_minutes)
    if status is DeliveryStatus.IN_TRANSIT:
        return (now or utcnow()) + timedelta(minutes=settings.eta_in_transit_minutes)
    return None


@dataclass(slots=True)
class RiderContact:
    id: str
    name: str
    phone: str | None
    zone_code: str
    zone_name: str


@dataclass(slots=True)
class Timeline:
    assigned: datetime | None
    picked_up: datetime | None
    in_transit: datetime | None
    delivered: datetime | None


@dataclass(slots=True)
class TrackingView:
    delivery_id: str
    order_id: str
    order_number: str
    status: DeliveryStatus
    delivery_address: str
    rider: RiderContact | None
    timeline: Timeline
    estimated_arrival: datetime | None
    order_total: Decimal
    order_status: OrderStatus


def track_delivery(
    session: Session,
    order_id: str,
    principal: Principal,
    *,
    now: datetime | None = None,
) -> TrackingView:
    order = order_store.get_order(session, order_id)
    # A missing order and someone else's order look the same to the caller
    if order is None or (not principal.is_admin and order.user_id != principal.user_id):
        raise Forbidden("Access denied to this delivery")

    delivery = delivery_store.get_delivery_for_order(session, order.id)
    if delivery is None:
        raise NotFound("Delivery not found for this order", code="DELIVERY_NOT_FOUND")

    rider = None
    if delivery.rider is not None:
        rider = RiderContact(
            id=delivery.rider.id,
            name=delivery.rider.user.full_name,
            phone=delivery.rider.user.phone,
            zone_code=delivery.rider.zone.code,
            zone_name=delivery.rider.zone.name,
        )

    return TrackingView(
        delivery_id=delivery.id,
        order_id=order.id,
        order_number=order.order_number,
        status=delivery.status,
        delivery_address=delivery.delivery_address,
        rider=rider,
        timeline=Timeline(
            assigned=delivery.assigned_at,
            picked_up=delivery.picked_up_at,
            in_transit=delivery.in_transit_at,
            delivered=delivery.delivered_at,
        ),
        estimated_arrival=estimate_arrival(delivery, now),
        order_total=order.total_amount,
        order_status=order.status,
    )
