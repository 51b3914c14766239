from datetime import datetime, timedelta, timezone

import pytest

from src.thrift_logistics.models.domain import Delivery, DeliveryStatus, Order, OrderStatus
from src.thrift_logistics.persistence import payments as payment_store
from src.thrift_logistics.services.dispatch import assign_delivery
from src.thrift_logistics.services.errors import Conflict, Forbidden
from src.thrift_logistics.services.orders import CANCELLATION_REASON, cancel_order

from tests.factories import (
    add_campus,
    add_delivery,
    add_order,
    add_partial_installment,
    add_rider,
    add_user,
    add_zone,
    admin_principal,
    principal_for,
)


@pytest.fixture
def zone(session):
    return add_zone(session, add_campus(session), "UG-MAIN")


@pytest.fixture
def customer(session):
    return add_user(session)


def test_cancel_fails_open_delivery(session, session_factory, zone, customer):
    order = add_order(session, customer, zone.code)
    rider = add_rider(session, zone)
    delivery = add_delivery(session, order, rider, zone, status=DeliveryStatus.PICKED_UP)

    result = cancel_order(session, order.id, principal_for(customer))

    assert result.order_status is OrderStatus.CANCELLED
    assert result.delivery_status is DeliveryStatus.FAILED
    with session_factory() as check:
        stored = check.get(Delivery, delivery.id)
        assert stored.status is DeliveryStatus.FAILED
        assert stored.failure_reason == CANCELLATION_REASON
        assert check.get(Order, order.id).status is OrderStatus.CANCELLED


def test_cancel_without_delivery(session, zone, customer):
    order = add_order(session, customer, zone.code, status=OrderStatus.PENDING)

    result = cancel_order(session, order.id, admin_principal())

    assert result.order_status is OrderStatus.CANCELLED
    assert result.delivery_status is None


def test_cancel_is_idempotent(session, zone, customer):
    order = add_order(session, customer, zone.code)
    cancel_order(session, order.id, principal_for(customer))

    again = cancel_order(session, order.id, principal_for(customer))

    assert again.order_status is OrderStatus.CANCELLED


def test_delivered_order_cannot_be_cancelled(session, zone, customer):
    order = add_order(session, customer, zone.code, status=OrderStatus.DELIVERED)

    with pytest.raises(Conflict) as exc_info:
        cancel_order(session, order.id, principal_for(customer))

    assert exc_info.value.code == "ORDER_NOT_CANCELLABLE"


def test_strangers_cannot_cancel(session, zone, customer):
    order = add_order(session, customer, zone.code)
    stranger = add_user(session)

    with pytest.raises(Forbidden):
        cancel_order(session, order.id, principal_for(stranger))
    with pytest.raises(Forbidden):
        cancel_order(session, "missing-order", principal_for(stranger))


def test_cancelled_order_drops_out_of_second_charge(session, zone, customer):
    now = datetime(2026, 4, 1, tzinfo=timezone.utc)
    order = add_order(session, customer, zone.code, status=OrderStatus.PROCESSING)
    add_partial_installment(session, order, now - timedelta(days=1))
    assert len(payment_store.select_due_for_second_charge(session, now)) == 1

    cancel_order(session, order.id, principal_for(customer))

    assert payment_store.select_due_for_second_charge(session, now) == []


def test_cancelled_order_is_not_dispatched(session, zone, customer, notifier):
    rider = add_rider(session, zone)
    order = add_order(session, customer, zone.code)
    cancel_order(session, order.id, principal_for(customer))

    with pytest.raises(Conflict) as exc_info:
        assign_delivery(session, order.id, notifier=notifier)

    assert exc_info.value.code == "ORDER_NOT_ASSIGNABLE"
    session.refresh(rider)
    assert rider.total_deliveries == 0
