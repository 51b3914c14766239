"""Second-installment sweep for Payday Flex plans.

Each run charges the saved authorization for every installment whose payday
has arrived, marks plans past the grace window as overdue and sends the
pre-payday reminders. A charge whose outcome is unknown keeps its reference
and is re-verified on the next run instead of being charged again.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy.orm import Session, sessionmaker

from ...config import settings
from ...db.base import utcnow
from ...db.session import session_scope
from ...models.domain import Payment, PaymentStatus
from ...persistence import payments as payment_store
from ..notifications import EmailNotifier, get_notifier
from .gateway import ChargeGateway, ChargeResult, ChargeStatus, GatewayError, get_gateway
from .service import apply_successful_charge, make_reference, mark_overdue, record_failed_charge

logger = logging.getLogger(__name__)


class ChargeOutcome(str, enum.Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    UNKNOWN = "unknown"
    SKIPPED = "skipped"


@dataclass(slots=True)
class SweepReport:
    total: int = 0
    completed: int = 0
    failed: int = 0
    overdue: int = 0
    unknown: int = 0
    reminders: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "completed": self.completed,
            "failed": self.failed,
            "overdue": self.overdue,
            "unknown": self.unknown,
            "reminders": self.reminders,
            "errors": list(self.errors),
        }


class InstallmentSweeper:
    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        gateway: ChargeGateway | None = None,
        notifier: EmailNotifier | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._gateway = gateway
        self._notifier = notifier

    @property
    def gateway(self) -> ChargeGateway:
        if self._gateway is None:
            self._gateway = get_gateway()
        return self._gateway

    @property
    def notifier(self) -> EmailNotifier:
        return self._notifier or get_notifier()

    def due_for_second_charge(self, now: datetime | None = None) -> list[str]:
        """Ids of PARTIAL installment payments whose payday has arrived."""
        with session_scope(self._session_factory) as session:
            return [payment.id for payment in payment_store.select_due_for_second_charge(session, now or utcnow())]

    def _settle(self, session: Session, reference: str, charge: ChargeResult) -> ChargeOutcome:
        if charge.succeeded:
            apply_successful_charge(session, reference, charge, notifier=self.notifier)
            return ChargeOutcome.COMPLETED
        if charge.status is ChargeStatus.DECLINED:
            record_failed_charge(session, reference, charge.gateway_response, notifier=self.notifier)
            return ChargeOutcome.FAILED
        logger.info(f"Second charge {reference} is still pending at the gateway")
        return ChargeOutcome.UNKNOWN

    def attempt_charge(self, session: Session, payment: Payment, now: datetime | None = None) -> ChargeOutcome:
        """Charge the second half of ``payment`` once, or settle an earlier attempt."""
        now = now or utcnow()
        pending_ref = payment.second_charge_ref
        if pending_ref:
            try:
                charge = self.gateway.verify_transaction(pending_ref)
            except GatewayError as exc:
                logger.warning(f"Could not re-verify second charge {pending_ref}: {exc}")
                return ChargeOutcome.UNKNOWN
            if charge.status is not ChargeStatus.NOT_FOUND:
                return self._settle(session, pending_ref, charge)
            # The gateway never saw the earlier request, so a fresh charge is safe
            logger.info(f"Second charge {pending_ref} never reached the gateway, charging again")
            payment.second_charge_ref = None

        if not payment.authorization_code:
            logger.warning(f"Payment {payment.id} has no saved authorization, skipping second charge")
            session.commit()
            return ChargeOutcome.SKIPPED

        reference = make_reference("PAY2", payment.order_id, now)
        payment.second_charge_ref = reference
        session.commit()

        order = payment.order
        try:
            charge = self.gateway.charge_authorization(
                payment.authorization_code, order.user.email, payment.remaining_amount, reference
            )
        except GatewayError as exc:
            logger.warning(f"Second charge {reference} for order {order.order_number} has unknown outcome: {exc}")
            return ChargeOutcome.UNKNOWN
        return self._settle(session, reference, charge)

    def _is_past_grace(self, payment: Payment, now: datetime) -> bool:
        return payment.payday_date + timedelta(hours=settings.overdue_grace_hours) <= now

    def mark_overdue(self, session: Session, payment: Payment) -> bool:
        session.refresh(payment)
        if payment.status is not PaymentStatus.PARTIAL:
            return False
        mark_overdue(payment)
        session.commit()
        order = payment.order
        logger.warning(f"Installment for order {order.order_number} is overdue (payment {payment.id})")
        self.notifier.installment_overdue(order.user.email, order.order_number, payment.remaining_amount)
        return True

    def send_reminders(self, now: datetime | None = None) -> int:
        """Send at most one reminder per payment per run for each lead time reached."""
        now = now or utcnow()
        leads = settings.reminder_lead_hours
        if not leads:
            return 0
        horizon = now + timedelta(hours=max(leads))
        sent = 0
        with session_scope(self._session_factory) as session:
            for payment in payment_store.select_upcoming_installments(session, now, horizon):
                hours_left = (payment.payday_date - now).total_seconds() / 3600
                reached = sum(1 for lead in leads if hours_left <= lead)
                if reached <= payment.reminders_sent:
                    continue
                payment.reminders_sent = reached
                session.commit()
                order = payment.order
                self.notifier.payday_reminder(
                    order.user.email, order.order_number, payment.remaining_amount, payment.payday_date
                )
                sent += 1
        return sent

    def run_once(self, now: datetime | None = None) -> SweepReport:
        now = now or utcnow()
        report = SweepReport()
        payment_ids = self.due_for_second_charge(now)
        report.total = len(payment_ids)

        for payment_id in payment_ids:
            try:
                with session_scope(self._session_factory) as session:
                    payment = payment_store.get_payment(session, payment_id)
                    if payment is None or payment.status is not PaymentStatus.PARTIAL:
                        continue
                    outcome = self.attempt_charge(session, payment, now)
                    if outcome is ChargeOutcome.COMPLETED:
                        report.completed += 1
                    elif outcome is ChargeOutcome.FAILED:
                        report.failed += 1
                    elif self._is_past_grace(payment, now) and self.mark_overdue(session, payment):
                        report.overdue += 1
                    elif outcome is ChargeOutcome.UNKNOWN:
                        report.unknown += 1
            except Exception as exc:
                logger.exception(f"Second-installment sweep failed for payment {payment_id}")
                report.errors.append(f"{payment_id}: {exc}")

        try:
            report.reminders = self.send_reminders(now)
        except Exception as exc:
            logger.exception("Sending payday reminders failed")
            report.errors.append(f"reminders: {exc}")

        logger.info(
            f"Installment sweep: {report.total} due, {report.completed} completed, {report.failed} failed, "
            f"{report.overdue} overdue, {report.unknown} unknown, {report.reminders} reminders, "
            f"{len(report.errors)} errors"
        )
        return report
