"""Payment engine exports."""

from .gateway import ChargeGateway, ChargeResult, ChargeStatus, GatewayError, GatewayTimeout, get_gateway
from .installments import ChargeOutcome, InstallmentSweeper, SweepReport
from .service import (
    InitializedPayment,
    PaymentView,
    VerificationResult,
    apply_successful_charge,
    check_amount_invariant,
    get_payment,
    initialize_payment,
    record_failed_charge,
    split_installments,
    verify_payment,
)

__all__ = [
    "ChargeGateway",
    "ChargeOutcome",
    "ChargeResult",
    "ChargeStatus",
    "GatewayError",
    "GatewayTimeout",
    "InitializedPayment",
    "InstallmentSweeper",
    "PaymentView",
    "SweepReport",
    "VerificationResult",
    "apply_successful_charge",
    "check_amount_invariant",
    "get_payment",
    "get_gateway",
    "initialize_payment",
    "record_failed_charge",
    "split_installments",
    "verify_payment",
]
