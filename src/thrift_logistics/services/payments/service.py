"""Payment initialisation, verification and the Payday Flex installment plan."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ...config import settings
from ...db.base import utcnow
from ...models.domain import Order, OrderStatus, Payment, PaymentMethod, PaymentStatus
from ...persistence import orders as order_store
from ...persistence import payments as payment_store
from ..errors import Conflict, Forbidden, InternalFault, NotFound, UpstreamFailure, ValidationFailed
from ..notifications import EmailNotifier, get_notifier
from ..security import Principal
from .gateway import ChargeGateway, ChargeResult, GatewayError, GatewayTimeout, get_gateway

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# Order statuses that a confirmed payment moves forward to PROCESSING
_PAYABLE_ORDER_STATES = {OrderStatus.PENDING, OrderStatus.CONFIRMED}

_REFERENCE_PREFIX = {
    PaymentMethod.INSTALLMENT: "PAY",
    PaymentMethod.MOBILE_MONEY: "MM",
    PaymentMethod.CARD: "CARD",
}


def split_installments(amount: Decimal, share: Decimal | None = None) -> tuple[Decimal, Decimal]:
    """Split ``amount`` into (first, second) so that first + second == amount exactly."""
    total = Decimal(amount).quantize(CENT)
    first = (total * (share if share is not None else settings.installment_first_share)).quantize(
        CENT, rounding=ROUND_HALF_UP
    )
    return first, total - first


def make_reference(prefix: str, entity_id: str, now: datetime | None = None) -> str:
    moment = now or utcnow()
    return f"THB-{prefix}-{int(moment.timestamp() * 1000)}-{entity_id[:8]}"


def check_amount_invariant(payment: Payment) -> None:
    if payment.paid_amount + payment.remaining_amount != payment.amount:
        logger.error(
            f"Payment {payment.id} broke its amount invariant: paid={payment.paid_amount} "
            f"remaining={payment.remaining_amount} amount={payment.amount}"
        )
        raise InternalFault()


def _cascade_paid(order: Order) -> None:
    if order.status in _PAYABLE_ORDER_STATES:
        order.status = OrderStatus.PROCESSING


def mark_partial(payment: Payment, first_amount: Decimal, authorization_code: str | None) -> None:
    payment.status = PaymentStatus.PARTIAL
    payment.paid_amount = first_amount
    payment.remaining_amount = payment.amount - first_amount
    if authorization_code:
        payment.authorization_code = authorization_code
    payment.failure_reason = None
    check_amount_invariant(payment)


def mark_completed(payment: Payment) -> None:
    payment.status = PaymentStatus.COMPLETED
    payment.paid_amount = payment.amount
    payment.remaining_amount = Decimal("0.00")
    payment.failure_reason = None
    check_amount_invariant(payment)


def mark_failed(payment: Payment, reason: str | None) -> None:
    payment.status = PaymentStatus.FAILED
    payment.failure_reason = (reason or "Payment declined")[:255]
    check_amount_invariant(payment)


def mark_overdue(payment: Payment) -> None:
    payment.status = PaymentStatus.OVERDUE
    check_amount_invariant(payment)


@dataclass(slots=True)
class InitializedPayment:
    payment_id: str
    order_id: str
    method: PaymentMethod
    charge_reference: str
    amount: Decimal
    first_amount: Decimal
    remaining_amount: Decimal
    payday_date: datetime | None
    authorization_url: str | None
    access_code: str | None
    payment: Payment


@dataclass(slots=True)
class VerificationResult:
    payment_id: str
    reference: str
    status: PaymentStatus
    amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    order_id: str
    order_number: str
    order_status: OrderStatus
    already_processed: bool


def _validate_payday(payday_date: datetime | None, now: datetime) -> datetime:
    field = "paydayDate"
    if payday_date is None:
        raise ValidationFailed(details=[{"field": field, "message": "Payday date is required for installments"}])
    if payday_date.tzinfo is None:
        raise ValidationFailed(details=[{"field": field, "message": "Payday date must include a timezone"}])
    earliest = now + timedelta(days=settings.payday_min_days)
    latest = now + timedelta(days=settings.payday_max_days)
    if not earliest <= payday_date <= latest:
        raise ValidationFailed(
            details=[
                {
                    "field": field,
                    "message": (
                        f"Payday date must be between {settings.payday_min_days} and "
                        f"{settings.payday_max_days} days from now"
                    ),
                }
            ]
        )
    return payday_date


def initialize_payment(
    session: Session,
    order_id: str,
    principal: Principal,
    *,
    method: PaymentMethod = PaymentMethod.INSTALLMENT,
    payday_date: datetime | None = None,
    gateway: ChargeGateway | None = None,
    now: datetime | None = None,
) -> InitializedPayment:
    """Create the order's Payment in PENDING and open the first gateway charge.

    Installment plans charge the first half now; other methods charge in full.
    """
    now = now or utcnow()
    order = order_store.get_order(session, order_id)
    if order is None:
        raise NotFound("Order not found", code="ORDER_NOT_FOUND")
    if order.user_id != principal.user_id:
        raise Forbidden("Access denied to this order")
    if payment_store.get_payment_for_order(session, order.id) is not None:
        raise Conflict("Payment already exists for this order", code="PAYMENT_EXISTS")
    if order.status is OrderStatus.CANCELLED:
        raise Conflict("Order has been cancelled", code="ORDER_NOT_PAYABLE")

    installment = method is PaymentMethod.INSTALLMENT
    amount = Decimal(order.total_amount).quantize(CENT)
    if installment:
        payday_date = _validate_payday(payday_date, now)
        first_amount, _ = split_installments(amount)
    else:
        payday_date = None
        first_amount = amount

    reference = make_reference(_REFERENCE_PREFIX[method], order.id, now)
    channels = ("mobile_money",) if method is PaymentMethod.MOBILE_MONEY else None
    try:
        init = (gateway or get_gateway()).initialize_transaction(
            order.user.email,
            first_amount,
            reference,
            metadata={
                "orderId": order.id,
                "orderNumber": order.order_number,
                "paymentType": "INSTALLMENT_FIRST" if installment else method.value,
                "userId": order.user_id,
            },
            channels=channels,
        )
    except GatewayError as exc:
        logger.warning(f"Gateway initialisation failed for order {order.order_number}: {exc}")
        raise UpstreamFailure("Failed to initialize payment, please retry", code="PAYMENT_INITIALIZATION_FAILED") from exc

    payment = Payment(
        order_id=order.id,
        amount=amount,
        method=method,
        status=PaymentStatus.PENDING,
        installment_plan=installment,
        paid_amount=Decimal("0.00"),
        remaining_amount=amount,
        payday_date=payday_date,
        transaction_ref=reference,
    )
    check_amount_invariant(payment)
    session.add(payment)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise Conflict("Payment already exists for this order", code="PAYMENT_EXISTS") from exc

    logger.info(
        f"Initialised {method.value} payment {payment.id} for order {order.order_number}: "
        f"first charge {first_amount} of {amount} (ref {reference})"
    )
    return InitializedPayment(
        payment_id=payment.id,
        order_id=order.id,
        method=method,
        charge_reference=reference,
        amount=amount,
        first_amount=first_amount,
        remaining_amount=payment.remaining_amount,
        payday_date=payday_date,
        authorization_url=init.authorization_url,
        access_code=init.access_code,
        payment=payment,
    )


def _first_half_settled(payment: Payment, reference: str) -> bool:
    """True once the first installment charge behind ``reference`` has been recorded.

    Holds whatever the later status is, so a declined second charge (FAILED) or
    an overdue plan never lets the first charge be applied or failed again.
    """
    return bool(
        payment.installment_plan
        and reference == payment.transaction_ref
        and payment.paid_amount is not None
        and payment.paid_amount > 0
    )


def _already_applied(payment: Payment, reference: str) -> bool:
    if payment.status is PaymentStatus.COMPLETED:
        return True
    return _first_half_settled(payment, reference)


def _result(payment: Payment, reference: str, already_processed: bool) -> VerificationResult:
    return VerificationResult(
        payment_id=payment.id,
        reference=reference,
        status=payment.status,
        amount=payment.amount,
        paid_amount=payment.paid_amount,
        remaining_amount=payment.remaining_amount,
        order_id=payment.order_id,
        order_number=payment.order.order_number,
        order_status=payment.order.status,
        already_processed=already_processed,
    )


def apply_successful_charge(
    session: Session,
    reference: str,
    charge: ChargeResult,
    *,
    notifier: EmailNotifier | None = None,
) -> VerificationResult:
    """Record a gateway-confirmed charge exactly once.

    The payment row is re-read under lock and written with a version check, so
    duplicate callbacks racing each other produce a single transition.
    """
    payment = payment_store.get_payment_by_reference(session, reference, lock=True)
    if payment is None:
        raise NotFound("Payment record not found", code="PAYMENT_NOT_FOUND")
    if _already_applied(payment, reference):
        session.rollback()
        return _result(payment, reference, True)

    is_second_charge = payment.installment_plan and reference == payment.second_charge_ref
    if not payment.installment_plan or is_second_charge:
        expected = payment.remaining_amount if is_second_charge else payment.amount
    else:
        expected, _ = split_installments(payment.amount)
    if charge.amount is not None and charge.amount < expected:
        session.rollback()
        raise ValidationFailed(
            f"Charged amount {charge.amount} is less than the expected {expected}",
            code="VERIFICATION_FAILED",
        )

    if is_second_charge or not payment.installment_plan:
        mark_completed(payment)
    else:
        mark_partial(payment, expected, charge.authorization_code)
    _cascade_paid(payment.order)

    try:
        session.commit()
    except StaleDataError:
        session.rollback()
        payment = payment_store.get_payment_by_reference(session, reference)
        if payment is not None and _already_applied(payment, reference):
            return _result(payment, reference, True)
        raise Conflict("Payment was updated concurrently, please retry", code="PAYMENT_CHANGED")

    order = payment.order
    logger.info(
        f"Payment {payment.id} for order {order.order_number} is {payment.status.value} "
        f"(paid {payment.paid_amount} of {payment.amount}, ref {reference})"
    )
    (notifier or get_notifier()).payment_confirmation(
        order.user.email, order.order_number, expected, payment.status is PaymentStatus.COMPLETED
    )
    return _result(payment, reference, False)


def verify_payment(
    session: Session,
    reference: str,
    principal: Principal | None = None,
    *,
    gateway: ChargeGateway | None = None,
    notifier: EmailNotifier | None = None,
) -> VerificationResult:
    """Confirm a charge with the gateway and apply it; repeat calls are no-ops."""
    if not reference or not reference.strip():
        raise ValidationFailed(details=[{"field": "reference", "message": "Payment reference is required"}])

    payment = payment_store.get_payment_by_reference(session, reference)
    if payment is None:
        raise NotFound("Payment record not found", code="PAYMENT_NOT_FOUND")
    if principal is not None and not principal.is_admin and payment.order.user_id != principal.user_id:
        raise Forbidden("Access denied to this payment")
    if _already_applied(payment, reference):
        return _result(payment, reference, True)

    try:
        charge = (gateway or get_gateway()).verify_transaction(reference)
    except GatewayTimeout as exc:
        raise UpstreamFailure(
            "Could not confirm the payment yet, please retry shortly", code="CHARGE_OUTCOME_UNKNOWN"
        ) from exc
    except GatewayError as exc:
        raise UpstreamFailure("Payment verification is unavailable, please retry") from exc

    if not charge.succeeded:
        reason = charge.gateway_response or f"Payment {charge.status.value}"
        logger.info(f"Verification of {reference} did not succeed: {reason}")
        raise ValidationFailed(reason, code="VERIFICATION_FAILED")

    return apply_successful_charge(session, reference, charge, notifier=notifier)


def record_failed_charge(
    session: Session,
    reference: str,
    reason: str | None,
    *,
    notifier: EmailNotifier | None = None,
) -> Payment | None:
    """Mark the payment behind a declined charge as FAILED; unknown references are ignored."""
    payment = payment_store.get_payment_by_reference(session, reference, lock=True)
    if payment is None:
        logger.warning(f"Declined charge for unknown reference {reference}")
        return None
    if payment.status in (PaymentStatus.COMPLETED, PaymentStatus.FAILED):
        session.rollback()
        return payment
    if _first_half_settled(payment, reference):
        # A late failure notice for the first charge cannot undo a confirmed half
        session.rollback()
        return payment

    mark_failed(payment, reason)
    try:
        session.commit()
    except StaleDataError as exc:
        session.rollback()
        raise Conflict("Payment was updated concurrently, please retry", code="PAYMENT_CHANGED") from exc

    order = payment.order
    logger.warning(f"Payment {payment.id} for order {order.order_number} failed: {payment.failure_reason}")
    (notifier or get_notifier()).payment_failure(
        order.user.email, order.order_number, payment.remaining_amount, payment.failure_reason or "Payment declined"
    )
    return payment


@dataclass(slots=True)
class PaymentView:
    payment: Payment
    order: Order


def get_payment(session: Session, order_id: str, principal: Principal) -> PaymentView:
    order = order_store.get_order(session, order_id)
    if order is None or (not principal.is_admin and order.user_id != principal.user_id):
        raise Forbidden("Access denied to this payment")
    payment = payment_store.get_payment_for_order(session, order.id)
    if payment is None:
        raise NotFound("Payment not found", code="PAYMENT_NOT_FOUND")
    return PaymentView(payment=payment, order=order)
