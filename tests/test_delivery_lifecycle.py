from datetime import datetime, timezone

import pytest

from src.thrift_logistics.models.domain import DeliveryStatus, OrderStatus, UserRole
from src.thrift_logistics.services.deliveries import (
    ALLOWED_TRANSITIONS,
    is_allowed_transition,
    list_rider_deliveries,
    update_delivery_status,
)
from src.thrift_logistics.services.errors import Conflict, Forbidden, NotFound
from src.thrift_logistics.services.security import Principal

from tests.factories import (
    add_campus,
    add_delivery,
    add_order,
    add_rider,
    add_user,
    add_zone,
    admin_principal,
    principal_for,
)

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def scenario(session):
    campus = add_campus(session)
    zone = add_zone(session, campus, "UG-MAIN")
    rider = add_rider(session, zone)
    customer = add_user(session)
    order = add_order(session, customer, "UG-MAIN", status=OrderStatus.PROCESSING)
    delivery = add_delivery(session, order, rider, zone, assigned_at=NOW)
    return {"zone": zone, "rider": rider, "customer": customer, "order": order, "delivery": delivery}


@pytest.mark.parametrize(
    "current, requested, allowed",
    [
        (DeliveryStatus.ASSIGNED, DeliveryStatus.PICKED_UP, True),
        (DeliveryStatus.ASSIGNED, DeliveryStatus.DELIVERED, True),
        (DeliveryStatus.PICKED_UP, DeliveryStatus.IN_TRANSIT, True),
        (DeliveryStatus.IN_TRANSIT, DeliveryStatus.FAILED, True),
        (DeliveryStatus.IN_TRANSIT, DeliveryStatus.PICKED_UP, False),
        (DeliveryStatus.PICKED_UP, DeliveryStatus.ASSIGNED, False),
        (DeliveryStatus.ASSIGNED, DeliveryStatus.ASSIGNED, False),
        (DeliveryStatus.DELIVERED, DeliveryStatus.FAILED, False),
        (DeliveryStatus.FAILED, DeliveryStatus.DELIVERED, False),
    ],
)
def test_transition_table(current, requested, allowed):
    assert is_allowed_transition(current, requested) is allowed


def test_terminal_states_have_no_exits():
    assert ALLOWED_TRANSITIONS[DeliveryStatus.DELIVERED] == frozenset()
    assert ALLOWED_TRANSITIONS[DeliveryStatus.FAILED] == frozenset()


def test_rider_walks_delivery_to_delivered(session, scenario):
    rider_principal = principal_for(scenario["rider"].user)
    delivery_id = scenario["delivery"].id
    picked_at = datetime(2026, 3, 2, 12, 10, tzinfo=timezone.utc)
    delivered_at = datetime(2026, 3, 2, 12, 40, tzinfo=timezone.utc)

    picked = update_delivery_status(session, delivery_id, DeliveryStatus.PICKED_UP, rider_principal, now=picked_at)
    assert picked.previous_status is DeliveryStatus.ASSIGNED
    assert picked.order_status is OrderStatus.PROCESSING

    update_delivery_status(session, delivery_id, DeliveryStatus.IN_TRANSIT, rider_principal)
    done = update_delivery_status(session, delivery_id, DeliveryStatus.DELIVERED, rider_principal, now=delivered_at)

    assert done.status is DeliveryStatus.DELIVERED
    assert done.delivered_at == delivered_at
    assert done.order_status is OrderStatus.DELIVERED
    session.refresh(scenario["order"])
    assert scenario["order"].status is OrderStatus.DELIVERED
    assert scenario["delivery"].picked_up_at == picked_at
    assert scenario["delivery"].in_transit_at is not None


def test_failed_delivery_cancels_order(session, scenario):
    result = update_delivery_status(
        session, scenario["delivery"].id, DeliveryStatus.FAILED, principal_for(scenario["rider"].user)
    )

    assert result.status is DeliveryStatus.FAILED
    assert result.order_status is OrderStatus.CANCELLED
    session.refresh(scenario["order"])
    assert scenario["order"].status is OrderStatus.CANCELLED


def test_backwards_and_terminal_moves_are_rejected(session, scenario):
    admin = admin_principal()
    delivery_id = scenario["delivery"].id
    update_delivery_status(session, delivery_id, DeliveryStatus.IN_TRANSIT, admin)

    with pytest.raises(Conflict) as backwards:
        update_delivery_status(session, delivery_id, DeliveryStatus.PICKED_UP, admin)
    assert backwards.value.code == "INVALID_TRANSITION"

    update_delivery_status(session, delivery_id, DeliveryStatus.DELIVERED, admin)
    with pytest.raises(Conflict) as terminal:
        update_delivery_status(session, delivery_id, DeliveryStatus.FAILED, admin)
    assert terminal.value.code == "INVALID_TRANSITION"
    session.refresh(scenario["order"])
    assert scenario["order"].status is OrderStatus.DELIVERED


def test_only_assigned_rider_or_admin_may_update(session, scenario):
    other_rider = add_rider(session, scenario["zone"])
    delivery_id = scenario["delivery"].id

    with pytest.raises(Forbidden):
        update_delivery_status(session, delivery_id, DeliveryStatus.PICKED_UP, principal_for(other_rider.user))
    with pytest.raises(Forbidden):
        update_delivery_status(session, delivery_id, DeliveryStatus.PICKED_UP, principal_for(scenario["customer"]))

    result = update_delivery_status(session, delivery_id, DeliveryStatus.PICKED_UP, admin_principal())
    assert result.status is DeliveryStatus.PICKED_UP


def test_missing_delivery_is_hidden_from_non_admins(session, scenario):
    rider_principal = principal_for(scenario["rider"].user)

    with pytest.raises(Forbidden):
        update_delivery_status(session, "missing", DeliveryStatus.PICKED_UP, rider_principal)
    with pytest.raises(NotFound) as excinfo:
        update_delivery_status(session, "missing", DeliveryStatus.PICKED_UP, admin_principal())
    assert excinfo.value.code == "DELIVERY_NOT_FOUND"


def test_stale_version_is_rejected(session, scenario):
    with pytest.raises(Conflict) as excinfo:
        update_delivery_status(
            session, scenario["delivery"].id, DeliveryStatus.PICKED_UP, admin_principal(), expected_version=99
        )
    assert excinfo.value.code == "DELIVERY_CHANGED"


def test_concurrent_writer_wins_and_late_write_is_rejected(session_factory, scenario):
    delivery_id = scenario["delivery"].id
    rider_principal = Principal(user_id=scenario["rider"].user_id, role=UserRole.RIDER)

    slow = session_factory()
    fast = session_factory()
    try:
        # The slow caller has read the row before the fast one commits
        slow_view = slow.get(type(scenario["delivery"]), delivery_id)
        assert slow_view.status is DeliveryStatus.ASSIGNED

        update_delivery_status(fast, delivery_id, DeliveryStatus.PICKED_UP, rider_principal)

        with pytest.raises(Conflict) as excinfo:
            update_delivery_status(slow, delivery_id, DeliveryStatus.FAILED, rider_principal)
        assert excinfo.value.code == "DELIVERY_CHANGED"
    finally:
        slow.close()
        fast.close()

    with session_factory() as check:
        assert check.get(type(scenario["delivery"]), delivery_id).status is DeliveryStatus.PICKED_UP


def test_rider_lists_own_deliveries(session, scenario):
    rider = scenario["rider"]
    other = add_rider(session, scenario["zone"])
    second_order = add_order(session, scenario["customer"], "UG-MAIN")
    add_delivery(session, second_order, rider, scenario["zone"], status=DeliveryStatus.DELIVERED)

    everything = list_rider_deliveries(session, principal_for(rider.user))
    delivered = list_rider_deliveries(session, principal_for(rider.user), DeliveryStatus.DELIVERED)

    assert len(everything) == 2
    assert [delivery.order_id for delivery in delivered] == [second_order.id]
    assert list_rider_deliveries(session, principal_for(other.user)) == []
    with pytest.raises(Forbidden):
        list_rider_deliveries(session, principal_for(scenario["customer"]))
