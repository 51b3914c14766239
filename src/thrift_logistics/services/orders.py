"""Order cancellation."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from ..models.domain import DeliveryStatus, OrderStatus
from ..persistence import deliveries as delivery_store
from ..persistence import orders as order_store
from .deliveries.lifecycle import TERMINAL_STATES, transition_delivery
from .errors import Conflict, Forbidden
from .security import Principal

logger = logging.getLogger(__name__)

CANCELLATION_REASON = "order_cancelled"


@dataclass(slots=True)
class CancellationResult:
    order_id: str
    order_number: str
    order_status: OrderStatus
    delivery_status: DeliveryStatus | None


def cancel_order(session: Session, order_id: str, principal: Principal) -> CancellationResult:
    """Cancel an order and fail its open delivery.

    The payment is left as it is; a cancelled order drops out of the
    second-installment sweep.
    """
    order = order_store.get_order(session, order_id, lock=True)
    if order is None or (not principal.is_admin and order.user_id != principal.user_id):
        raise Forbidden("Access denied to this order")
    if order.status is OrderStatus.DELIVERED:
        raise Conflict("Delivered orders cannot be cancelled", code="ORDER_NOT_CANCELLABLE")

    delivery = delivery_store.get_delivery_for_order(session, order.id)
    if order.status is OrderStatus.CANCELLED:
        session.rollback()
        return CancellationResult(order.id, order.order_number, order.status, delivery.status if delivery else None)

    try:
        if delivery is not None and delivery.status not in TERMINAL_STATES:
            transition_delivery(session, delivery, DeliveryStatus.FAILED, reason=CANCELLATION_REASON)
        order_store.set_order_status(session, order, OrderStatus.CANCELLED)
        session.commit()
    except Exception:
        if session.in_transaction():
            session.rollback()
        raise

    logger.info(f"Order {order.order_number} cancelled by {principal.role.value} {principal.user_id}")
    return CancellationResult(
        order_id=order.id,
        order_number=order.order_number,
        order_status=order.status,
        delivery_status=delivery.status if delivery else None,
    )
