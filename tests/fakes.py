"""Stand-ins for the payment gateway and the email sink."""

from __future__ import annotations

from decimal import Decimal

from src.thrift_logistics.services.payments.gateway import ChargeResult, ChargeStatus, TransactionInit


class FakeGateway:
    def __init__(self) -> None:
        self.initialized: list[dict] = []
        self.verified: list[str] = []
        self.charged: list[dict] = []
        self.verify_results: dict[str, ChargeResult] = {}
        self.verify_error: Exception | None = None
        self.charge_status = ChargeStatus.SUCCESS
        self.charge_error: Exception | None = None
        self.charge_message: str | None = None

    def initialize_transaction(self, email, amount, reference, metadata=None, channels=None):
        self.initialized.append(
            {"email": email, "amount": amount, "reference": reference, "metadata": metadata, "channels": channels}
        )
        return TransactionInit(
            reference=reference,
            authorization_url=f"https://checkout.example.test/{reference}",
            access_code=f"access_{reference[-8:]}",
        )

    def succeed(self, reference: str, amount: Decimal, authorization_code: str = "AUTH_test") -> None:
        self.verify_results[reference] = ChargeResult(
            reference=reference,
            status=ChargeStatus.SUCCESS,
            amount=Decimal(amount),
            authorization_code=authorization_code,
            reusable=True,
            gateway_response="Approved",
        )

    def decline(self, reference: str, message: str = "Insufficient funds") -> None:
        self.verify_results[reference] = ChargeResult(
            reference=reference, status=ChargeStatus.DECLINED, gateway_response=message
        )

    def verify_transaction(self, reference):
        self.verified.append(reference)
        if self.verify_error is not None:
            raise self.verify_error
        return self.verify_results.get(reference, ChargeResult(reference=reference, status=ChargeStatus.NOT_FOUND))

    def charge_authorization(self, authorization_code, email, amount, reference):
        self.charged.append(
            {"authorization_code": authorization_code, "email": email, "amount": amount, "reference": reference}
        )
        if self.charge_error is not None:
            raise self.charge_error
        return ChargeResult(
            reference=reference,
            status=self.charge_status,
            amount=Decimal(amount) if self.charge_status is ChargeStatus.SUCCESS else None,
            authorization_code=authorization_code,
            gateway_response=self.charge_message,
        )


class FakeNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[str, tuple]] = []

    def _record(self, name: str, *args) -> bool:
        self.sent.append((name, args))
        return True

    def named(self, name: str) -> list[tuple]:
        return [args for sent_name, args in self.sent if sent_name == name]

    def rider_assigned(self, to, rider_name, order_number, address):
        return self._record("rider_assigned", to, rider_name, order_number, address)

    def payment_confirmation(self, to, order_number, amount, fully_paid):
        return self._record("payment_confirmation", to, order_number, amount, fully_paid)

    def payment_failure(self, to, order_number, amount, reason):
        return self._record("payment_failure", to, order_number, amount, reason)

    def payday_reminder(self, to, order_number, amount, payday):
        return self._record("payday_reminder", to, order_number, amount, payday)

    def installment_overdue(self, to, order_number, amount):
        return self._record("installment_overdue", to, order_number, amount)
