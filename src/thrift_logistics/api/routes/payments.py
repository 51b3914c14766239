"""Payment endpoints: checkout, verification and the Payday Flex plan."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...db.session import get_session
from ...models.domain import PaymentMethod
from ...schemas.payments import (
    InitializePaymentRequest,
    InitializePaymentResponse,
    PaydayFlexRequest,
    PaymentDetailsResponse,
    SweepReportResponse,
    VerificationResponse,
)
from ...services.errors import ServiceError
from ...services.payments import InstallmentSweeper, get_payment, initialize_payment, verify_payment
from ...services.security import Principal
from ..dependencies import get_principal, require_internal_key, to_http_exception
from ..errors import internal_error

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/initialize", response_model=InitializePaymentResponse, status_code=status.HTTP_201_CREATED)
def initialize(
    payload: InitializePaymentRequest,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
) -> InitializePaymentResponse:
    try:
        result = initialize_payment(
            session, payload.orderId, principal, method=payload.method, payday_date=payload.paydayDate
        )
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:
        raise internal_error("initialize a payment") from exc
    return InitializePaymentResponse.from_result(result)


@router.post(
    "/payday-flex/initialize", response_model=InitializePaymentResponse, status_code=status.HTTP_201_CREATED
)
def initialize_payday_flex(
    payload: PaydayFlexRequest,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
) -> InitializePaymentResponse:
    """Start a Payday Flex plan: half now, half on the chosen payday."""
    try:
        result = initialize_payment(
            session,
            payload.orderId,
            principal,
            method=PaymentMethod.INSTALLMENT,
            payday_date=payload.paydayDate,
        )
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:
        raise internal_error("initialize a Payday Flex payment") from exc
    return InitializePaymentResponse.from_result(result)


@router.post(
    "/payday-flex/charge-second",
    response_model=SweepReportResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_internal_key)],
)
def charge_second_installments() -> SweepReportResponse:
    """Run one second-installment sweep (for an external scheduler)."""
    try:
        report = InstallmentSweeper().run_once()
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:
        raise internal_error("run the installment sweep") from exc
    return SweepReportResponse.from_report(report)


@router.get("/verify", response_model=VerificationResponse, status_code=status.HTTP_200_OK)
def verify(
    reference: str = Query(..., description="Charge reference returned by initialize"),
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
) -> VerificationResponse:
    try:
        result = verify_payment(session, reference, principal)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:
        raise internal_error("verify a payment") from exc
    return VerificationResponse.from_result(result)


@router.get("/{order_id}", response_model=PaymentDetailsResponse, status_code=status.HTTP_200_OK)
def get_order_payment(
    order_id: str,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
) -> PaymentDetailsResponse:
    try:
        view = get_payment(session, order_id, principal)
        return PaymentDetailsResponse.from_models(view.payment, view.order)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:
        raise internal_error("load a payment") from exc
