from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from src.thrift_logistics.models.domain import OrderStatus, Payment, PaymentMethod, PaymentStatus
from src.thrift_logistics.services.errors import (
    Conflict,
    Forbidden,
    InternalFault,
    NotFound,
    UpstreamFailure,
    ValidationFailed,
)
from src.thrift_logistics.services.payments import (
    GatewayTimeout,
    apply_successful_charge,
    check_amount_invariant,
    get_payment,
    initialize_payment,
    record_failed_charge,
    split_installments,
    verify_payment,
)

from tests.factories import add_campus, add_order, add_user, add_zone, admin_principal, principal_for

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
PAYDAY = NOW + timedelta(days=14)


@pytest.fixture
def customer_order(session):
    campus = add_campus(session)
    add_zone(session, campus, "UG-MAIN")
    customer = add_user(session)
    order = add_order(session, customer, "UG-MAIN", total="100.00", status=OrderStatus.PENDING)
    return customer, order


def _start_flex(session, gateway, customer, order, payday=PAYDAY):
    return initialize_payment(
        session,
        order.id,
        principal_for(customer),
        method=PaymentMethod.INSTALLMENT,
        payday_date=payday,
        gateway=gateway,
        now=NOW,
    )


@pytest.mark.parametrize(
    "amount, first, second",
    [
        ("100.00", "50.00", "50.00"),
        ("99.99", "50.00", "49.99"),
        ("0.01", "0.01", "0.00"),
        ("250.55", "125.28", "125.27"),
    ],
)
def test_split_installments_sums_to_total(amount, first, second):
    head, tail = split_installments(Decimal(amount))

    assert (head, tail) == (Decimal(first), Decimal(second))
    assert head + tail == Decimal(amount)


def test_invariant_check_rejects_inconsistent_amounts():
    payment = Payment(amount=Decimal("100.00"), paid_amount=Decimal("60.00"), remaining_amount=Decimal("50.00"))

    with pytest.raises(InternalFault):
        check_amount_invariant(payment)


def test_initialize_installment_charges_first_half(session, gateway, customer_order):
    customer, order = customer_order

    result = _start_flex(session, gateway, customer, order)

    assert result.charge_reference.startswith("THB-PAY-")
    assert result.charge_reference.endswith(order.id[:8])
    assert result.first_amount == Decimal("50.00")
    assert result.authorization_url.endswith(result.charge_reference)
    [call] = gateway.initialized
    assert call["amount"] == Decimal("50.00")
    assert call["email"] == customer.email
    assert call["metadata"]["paymentType"] == "INSTALLMENT_FIRST"

    payment = result.payment
    assert payment.status is PaymentStatus.PENDING
    assert payment.installment_plan is True
    assert payment.paid_amount == Decimal("0.00")
    assert payment.remaining_amount == payment.amount == Decimal("100.00")
    assert payment.payday_date == PAYDAY


@pytest.mark.parametrize("days", [3, 6, 31, 60])
def test_payday_must_fall_inside_window(session, gateway, customer_order, days):
    customer, order = customer_order

    with pytest.raises(ValidationFailed) as excinfo:
        _start_flex(session, gateway, customer, order, payday=NOW + timedelta(days=days))

    assert excinfo.value.details[0]["field"] == "paydayDate"
    assert gateway.initialized == []


def test_installment_requires_payday(session, gateway, customer_order):
    customer, order = customer_order

    with pytest.raises(ValidationFailed):
        _start_flex(session, gateway, customer, order, payday=None)


def test_initialize_guards(session, gateway, customer_order):
    customer, order = customer_order
    stranger = add_user(session)

    with pytest.raises(NotFound) as missing:
        initialize_payment(session, "missing", principal_for(customer), payday_date=PAYDAY, gateway=gateway, now=NOW)
    assert missing.value.code == "ORDER_NOT_FOUND"

    with pytest.raises(Forbidden):
        _start_flex(session, gateway, stranger, order)

    _start_flex(session, gateway, customer, order)
    with pytest.raises(Conflict) as duplicate:
        _start_flex(session, gateway, customer, order)
    assert duplicate.value.code == "PAYMENT_EXISTS"


def test_first_verification_moves_to_partial(session, gateway, notifier, customer_order):
    customer, order = customer_order
    started = _start_flex(session, gateway, customer, order)
    gateway.succeed(started.charge_reference, Decimal("50.00"), authorization_code="AUTH_flex")

    result = verify_payment(session, started.charge_reference, principal_for(customer), gateway=gateway, notifier=notifier)

    assert result.status is PaymentStatus.PARTIAL
    assert result.paid_amount == Decimal("50.00")
    assert result.remaining_amount == Decimal("50.00")
    assert result.order_status is OrderStatus.PROCESSING
    assert result.already_processed is False

    payment = session.get(Payment, started.payment_id)
    assert payment.authorization_code == "AUTH_flex"
    assert payment.paid_amount + payment.remaining_amount == payment.amount
    [(_, order_number, amount, fully_paid)] = notifier.named("payment_confirmation")
    assert (order_number, amount, fully_paid) == (order.order_number, Decimal("50.00"), False)


def test_verify_is_idempotent(session, gateway, notifier, customer_order):
    customer, order = customer_order
    started = _start_flex(session, gateway, customer, order)
    gateway.succeed(started.charge_reference, Decimal("50.00"))

    first = verify_payment(session, started.charge_reference, gateway=gateway, notifier=notifier)
    second = verify_payment(session, started.charge_reference, gateway=gateway, notifier=notifier)

    assert first.status is second.status is PaymentStatus.PARTIAL
    assert second.already_processed is True
    assert second.paid_amount == Decimal("50.00")
    assert gateway.verified == [started.charge_reference]
    assert len(notifier.named("payment_confirmation")) == 1


def test_duplicate_callback_racing_a_committed_one_changes_nothing(session_factory, gateway, notifier, customer_order):
    customer, order = customer_order
    with session_factory() as setup:
        started = _start_flex(setup, gateway, customer, order)
    gateway.succeed(started.charge_reference, Decimal("50.00"))
    charge = gateway.verify_transaction(started.charge_reference)

    late = session_factory()
    early = session_factory()
    try:
        # The late caller read the payment while it was still PENDING
        assert late.get(Payment, started.payment_id).status is PaymentStatus.PENDING
        apply_successful_charge(early, started.charge_reference, charge, notifier=notifier)

        result = apply_successful_charge(late, started.charge_reference, charge, notifier=notifier)
    finally:
        late.close()
        early.close()

    assert result.already_processed is True
    assert result.paid_amount == Decimal("50.00")
    assert len(notifier.named("payment_confirmation")) == 1


def test_card_payment_completes_in_full(session, gateway, notifier, customer_order):
    customer, order = customer_order
    started = initialize_payment(
        session, order.id, principal_for(customer), method=PaymentMethod.CARD, gateway=gateway, now=NOW
    )
    assert started.first_amount == Decimal("100.00")
    assert started.payday_date is None
    assert started.charge_reference.startswith("THB-CARD-")
    gateway.succeed(started.charge_reference, Decimal("100.00"))

    result = verify_payment(session, started.charge_reference, gateway=gateway, notifier=notifier)

    assert result.status is PaymentStatus.COMPLETED
    assert result.paid_amount == Decimal("100.00")
    assert result.remaining_amount == Decimal("0.00")
    assert result.order_status is OrderStatus.PROCESSING
    assert verify_payment(session, started.charge_reference, gateway=gateway).already_processed is True


def test_mobile_money_uses_mobile_money_channel(session, gateway, customer_order):
    customer, order = customer_order

    started = initialize_payment(
        session, order.id, principal_for(customer), method=PaymentMethod.MOBILE_MONEY, gateway=gateway, now=NOW
    )

    assert started.charge_reference.startswith("THB-MM-")
    assert gateway.initialized[0]["channels"] == ("mobile_money",)


def test_declined_verification_reports_gateway_reason(session, gateway, customer_order):
    customer, order = customer_order
    started = _start_flex(session, gateway, customer, order)
    gateway.decline(started.charge_reference, "Insufficient funds")

    with pytest.raises(ValidationFailed) as excinfo:
        verify_payment(session, started.charge_reference, gateway=gateway)

    assert excinfo.value.code == "VERIFICATION_FAILED"
    assert excinfo.value.message == "Insufficient funds"
    assert session.get(Payment, started.payment_id).status is PaymentStatus.PENDING


def test_short_charge_is_not_accepted(session, gateway, customer_order):
    customer, order = customer_order
    started = _start_flex(session, gateway, customer, order)
    gateway.succeed(started.charge_reference, Decimal("10.00"))

    with pytest.raises(ValidationFailed) as excinfo:
        verify_payment(session, started.charge_reference, gateway=gateway)

    assert excinfo.value.code == "VERIFICATION_FAILED"
    assert session.get(Payment, started.payment_id).status is PaymentStatus.PENDING


def test_gateway_timeout_is_an_unknown_outcome(session, gateway, customer_order):
    customer, order = customer_order
    started = _start_flex(session, gateway, customer, order)
    gateway.verify_error = GatewayTimeout("timed out")

    with pytest.raises(UpstreamFailure) as excinfo:
        verify_payment(session, started.charge_reference, gateway=gateway)

    assert excinfo.value.code == "CHARGE_OUTCOME_UNKNOWN"
    assert session.get(Payment, started.payment_id).status is PaymentStatus.PENDING


def test_verify_checks_ownership_and_reference(session, gateway, customer_order):
    customer, order = customer_order
    started = _start_flex(session, gateway, customer, order)

    with pytest.raises(Forbidden):
        verify_payment(session, started.charge_reference, principal_for(add_user(session)), gateway=gateway)
    with pytest.raises(NotFound):
        verify_payment(session, "THB-PAY-0-unknown", gateway=gateway)
    with pytest.raises(ValidationFailed):
        verify_payment(session, "  ", gateway=gateway)


def test_failed_charge_marks_payment_failed_once(session, gateway, notifier, customer_order):
    customer, order = customer_order
    started = _start_flex(session, gateway, customer, order)

    payment = record_failed_charge(session, started.charge_reference, "Card expired", notifier=notifier)
    again = record_failed_charge(session, started.charge_reference, "Card expired", notifier=notifier)

    assert payment.status is again.status is PaymentStatus.FAILED
    assert payment.failure_reason == "Card expired"
    assert payment.paid_amount + payment.remaining_amount == payment.amount
    assert len(notifier.named("payment_failure")) == 1
    assert record_failed_charge(session, "THB-PAY-0-unknown", None, notifier=notifier) is None


def test_get_payment_views(session, gateway, customer_order):
    customer, order = customer_order
    pending_order = add_order(session, customer, "UG-MAIN")
    _start_flex(session, gateway, customer, order)

    view = get_payment(session, order.id, principal_for(customer))
    assert view.payment.order_id == order.id
    assert view.order.order_number == order.order_number
    assert get_payment(session, order.id, admin_principal()).payment.id == view.payment.id

    with pytest.raises(Forbidden):
        get_payment(session, order.id, principal_for(add_user(session)))
    with pytest.raises(Forbidden):
        get_payment(session, "missing", principal_for(customer))
    with pytest.raises(NotFound) as excinfo:
        get_payment(session, pending_order.id, principal_for(customer))
    assert excinfo.value.code == "PAYMENT_NOT_FOUND"
