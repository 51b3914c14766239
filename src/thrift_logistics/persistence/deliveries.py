"""Database access for deliveries."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from ..models.domain import Delivery, DeliveryStatus, Rider


def get_delivery(session: Session, delivery_id: str) -> Delivery | None:
    return session.get(Delivery, delivery_id)


def get_delivery_for_order(session: Session, order_id: str) -> Delivery | None:
    stmt = (
        select(Delivery)
        .where(Delivery.order_id == order_id)
        .options(joinedload(Delivery.rider).joinedload(Rider.user), joinedload(Delivery.rider).joinedload(Rider.zone))
    )
    return session.scalars(stmt).first()


def delivery_exists_for_order(session: Session, order_id: str) -> bool:
    return session.scalars(select(Delivery.id).where(Delivery.order_id == order_id)).first() is not None


def list_deliveries_for_rider(
    session: Session,
    rider_id: str,
    status: DeliveryStatus | None = None,
) -> list[Delivery]:
    stmt = select(Delivery).where(Delivery.rider_id == rider_id)
    if status is not None:
        stmt = stmt.where(Delivery.status == status)
    stmt = stmt.order_by(Delivery.created_at.desc())
    return list(session.scalars(stmt))
