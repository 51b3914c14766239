"""Database access for orders."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.domain import Order, OrderStatus


def get_order(session: Session, order_id: str, *, lock: bool = False) -> Order | None:
    if lock:
        return session.scalars(select(Order).where(Order.id == order_id).with_for_update()).first()
    return session.get(Order, order_id)


def set_order_status(session: Session, order: Order, status: OrderStatus) -> None:
    order.status = status
    session.add(order)
