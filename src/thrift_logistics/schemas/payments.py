"""Request/response models for payment endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..models.domain import Order, OrderStatus, Payment, PaymentMethod, PaymentStatus
from ..services.payments import InitializedPayment, SweepReport, VerificationResult


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class InitializePaymentRequest(BaseModel):
    orderId: str = Field(..., min_length=1)
    method: PaymentMethod = PaymentMethod.INSTALLMENT
    paydayDate: Optional[datetime] = Field(
        default=None, description="Date of the second charge (installment plans only)."
    )

    @field_validator("paydayDate")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)


class PaydayFlexRequest(BaseModel):
    orderId: str = Field(..., min_length=1)
    paydayDate: datetime

    @field_validator("paydayDate")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class PaymentModel(BaseModel):
    id: str
    orderId: str
    amount: float
    method: PaymentMethod
    status: PaymentStatus
    installmentPlan: bool
    paidAmount: float
    remainingAmount: float
    paydayDate: Optional[datetime] = None
    transactionRef: str
    failureReason: Optional[str] = None
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_payment(cls, payment: Payment) -> "PaymentModel":
        return cls(
            id=payment.id,
            orderId=payment.order_id,
            amount=float(payment.amount),
            method=payment.method,
            status=payment.status,
            installmentPlan=payment.installment_plan,
            paidAmount=float(payment.paid_amount),
            remainingAmount=float(payment.remaining_amount),
            paydayDate=payment.payday_date,
            transactionRef=payment.transaction_ref,
            failureReason=payment.failure_reason,
            createdAt=payment.created_at,
            updatedAt=payment.updated_at,
        )


class InitializePaymentResponse(BaseModel):
    chargeReference: str
    firstAmount: float
    remainingAmount: float
    paydayDate: Optional[datetime] = None
    authorizationUrl: Optional[str] = None
    accessCode: Optional[str] = None
    payment: PaymentModel

    @classmethod
    def from_result(cls, result: InitializedPayment) -> "InitializePaymentResponse":
        return cls(
            chargeReference=result.charge_reference,
            firstAmount=float(result.first_amount),
            remainingAmount=float(result.amount - result.first_amount),
            paydayDate=result.payday_date,
            authorizationUrl=result.authorization_url,
            accessCode=result.access_code,
            payment=PaymentModel.from_payment(result.payment),
        )


class VerificationResponse(BaseModel):
    paymentId: str
    reference: str
    status: PaymentStatus
    amount: float
    paidAmount: float
    remainingAmount: float
    orderId: str
    orderNumber: str
    orderStatus: OrderStatus
    alreadyProcessed: bool

    @classmethod
    def from_result(cls, result: VerificationResult) -> "VerificationResponse":
        return cls(
            paymentId=result.payment_id,
            reference=result.reference,
            status=result.status,
            amount=float(result.amount),
            paidAmount=float(result.paid_amount),
            remainingAmount=float(result.remaining_amount),
            orderId=result.order_id,
            orderNumber=result.order_number,
            orderStatus=result.order_status,
            alreadyProcessed=result.already_processed,
        )


class PaymentOrderModel(BaseModel):
    id: str
    orderNumber: str
    totalAmount: float
    status: OrderStatus


class PaymentCustomerModel(BaseModel):
    id: str
    name: str
    email: str


class PaymentDetailsResponse(BaseModel):
    payment: PaymentModel
    order: PaymentOrderModel
    customer: PaymentCustomerModel

    @classmethod
    def from_models(cls, payment: Payment, order: Order) -> "PaymentDetailsResponse":
        return cls(
            payment=PaymentModel.from_payment(payment),
            order=PaymentOrderModel(
                id=order.id,
                orderNumber=order.order_number,
                totalAmount=float(order.total_amount),
                status=order.status,
            ),
            customer=PaymentCustomerModel(id=order.user.id, name=order.user.full_name, email=order.user.email),
        )


class SweepReportResponse(BaseModel):
    total: int
    completed: int
    failed: int
    overdue: int
    unknown: int
    reminders: int
    errors: list[str]

    @classmethod
    def from_report(cls, report: SweepReport) -> "SweepReportResponse":
        return cls(**report.to_dict())
