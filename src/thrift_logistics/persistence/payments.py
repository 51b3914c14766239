"""Database access for payments."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ..models.domain import Order, OrderStatus, Payment, PaymentStatus


def get_payment(session: Session, payment_id: str) -> Payment | None:
    return session.get(Payment, payment_id)


def get_payment_for_order(session: Session, order_id: str) -> Payment | None:
    return session.scalars(select(Payment).where(Payment.order_id == order_id)).first()


def get_payment_by_reference(session: Session, reference: str, *, lock: bool = False) -> Payment | None:
    """Look up a payment by its first-charge or second-charge reference."""
    stmt = select(Payment).where(
        or_(Payment.transaction_ref == reference, Payment.second_charge_ref == reference)
    )
    if lock:
        # Re-read the row so a status committed by a concurrent caller is seen
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return session.scalars(stmt).first()


def _partial_installments():
    return (
        select(Payment)
        .join(Order, Order.id == Payment.order_id)
        .where(
            Payment.status == PaymentStatus.PARTIAL,
            Payment.installment_plan.is_(True),
            Payment.payday_date.is_not(None),
            Order.status != OrderStatus.CANCELLED,
        )
    )


def select_due_for_second_charge(session: Session, now: datetime) -> list[Payment]:
    stmt = _partial_installments().where(Payment.payday_date <= now).order_by(Payment.payday_date, Payment.id)
    return list(session.scalars(stmt))


def select_upcoming_installments(session: Session, now: datetime, horizon: datetime) -> list[Payment]:
    stmt = (
        _partial_installments()
        .where(Payment.payday_date > now, Payment.payday_date <= horizon)
        .order_by(Payment.payday_date, Payment.id)
    )
    return list(session.scalars(stmt))
