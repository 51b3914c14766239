"""Zone-based delivery assignment with workload balancing and neighbour fallback."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...db.base import utcnow
from ...models.domain import Delivery, DeliveryStatus, OrderStatus, Rider
from ...persistence import deliveries as delivery_store
from ...persistence import orders as order_store
from ...persistence import zones as zone_store
from ..errors import BusinessUnavailable, Conflict, NotFound
from ..notifications import EmailNotifier, get_notifier
from ..zoning.graph import ZoneGraph
from .directory import RiderDirectory

logger = logging.getLogger(__name__)

_UNASSIGNABLE_ORDER_STATES = frozenset({OrderStatus.CANCELLED, OrderStatus.DELIVERED})


@dataclass(slots=True)
class AssignmentResult:
    delivery_id: str
    order_id: str
    order_number: str
    status: DeliveryStatus
    delivery_address: str
    rider_id: str
    rider_name: str
    rider_email: str
    rider_phone: str | None
    rider_zone_code: str
    rider_zone_name: str
    zone_id: str
    zone_code: str
    assigned_at: datetime
    used_fallback: bool


def _select_rider(session: Session, zone_id: str) -> tuple[Rider | None, bool]:
    """Pick the least-loaded available rider in the zone, else among its neighbours."""
    directory = RiderDirectory(session)
    candidates = directory.available_riders({zone_id}, lock=True)
    if candidates:
        return candidates[0], False

    neighbors = ZoneGraph(session).neighbors(zone_id)
    if not neighbors:
        return None, True
    candidates = directory.available_riders(neighbors, lock=True)
    return (candidates[0] if candidates else None), True


def assign_delivery(
    session: Session,
    order_id: str,
    *,
    notifier: EmailNotifier | None = None,
    now: datetime | None = None,
) -> AssignmentResult:
    """Create the Delivery for ``order_id`` and charge the chosen rider's workload.

    The delivery insert and the workload increment commit together or not at
    all. A second assignment for the same order is rejected with
    ``DELIVERY_EXISTS``, including when two calls race (unique ``order_id``).
    """
    order = order_store.get_order(session, order_id)
    if order is None:
        raise NotFound("Order not found", code="ORDER_NOT_FOUND")
    if order.status in _UNASSIGNABLE_ORDER_STATES:
        raise Conflict(f"Order is {order.status.value} and cannot be assigned", code="ORDER_NOT_ASSIGNABLE")
    if delivery_store.delivery_exists_for_order(session, order.id):
        raise Conflict("Delivery already assigned", code="DELIVERY_EXISTS")

    zone = zone_store.get_zone_by_code(session, order.campus_zone)
    if zone is None:
        raise NotFound(f"Campus zone not found: {order.campus_zone}", code="ZONE_NOT_FOUND")

    try:
        rider, used_fallback = _select_rider(session, zone.id)
        if rider is None:
            raise BusinessUnavailable(
                "No rider is available in this zone or its neighbours yet, try again shortly",
                code="NO_RIDERS_AVAILABLE",
            )

        delivery = Delivery(
            order_id=order.id,
            rider_id=rider.id,
            zone_id=zone.id,
            status=DeliveryStatus.ASSIGNED,
            delivery_address=order.delivery_address,
            assigned_at=now or utcnow(),
        )
        session.add(delivery)
        session.flush()
        RiderDirectory(session).increment_workload(rider.id)
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise Conflict("Delivery already assigned", code="DELIVERY_EXISTS") from exc
    except Exception:
        session.rollback()
        raise

    rider_user = rider.user
    logger.info(
        f"Delivery {delivery.id} for order {order.order_number} assigned to rider {rider.id} "
        f"in zone {rider.zone.code}{' (neighbour fallback)' if used_fallback else ''}"
    )
    (notifier or get_notifier()).rider_assigned(
        rider_user.email, rider_user.full_name, order.order_number, delivery.delivery_address
    )

    return AssignmentResult(
        delivery_id=delivery.id,
        order_id=order.id,
        order_number=order.order_number,
        status=delivery.status,
        delivery_address=delivery.delivery_address,
        rider_id=rider.id,
        rider_name=rider_user.full_name,
        rider_email=rider_user.email,
        rider_phone=rider_user.phone,
        rider_zone_code=rider.zone.code,
        rider_zone_name=rider.zone.name,
        zone_id=zone.id,
        zone_code=zone.code,
        assigned_at=delivery.assigned_at,
        used_fallback=used_fallback,
    )
