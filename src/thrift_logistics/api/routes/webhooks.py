"""Payment gateway webhook receiver."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ...db.session import get_session
from ...services.errors import NotFound, ServiceError
from ...services.payments import apply_successful_charge, record_failed_charge
from ...services.payments.gateway import parse_charge, verify_webhook_signature
from ..dependencies import to_http_exception
from ..errors import internal_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _handle_event(session: Session, event: dict[str, Any]) -> bool:
    """Apply a signed gateway event; returns False when it was ignored."""
    name = event.get("event")
    data = event.get("data") or {}
    reference = data.get("reference")
    if not reference:
        logger.warning(f"Webhook event {name} carries no reference")
        return False

    if name == "charge.success":
        charge = parse_charge(reference, data)
        if not charge.succeeded:
            logger.warning(f"charge.success for {reference} reports status {data.get('status')}")
            return False
        apply_successful_charge(session, reference, charge)
        return True
    if name == "charge.failed":
        reason = data.get("gateway_response") or data.get("message")
        return record_failed_charge(session, reference, reason) is not None

    logger.info(f"Unhandled webhook event: {name}")
    return False


@router.post("/paystack", status_code=status.HTTP_200_OK)
async def paystack_webhook(request: Request, session: Session = Depends(get_session)) -> dict:
    body = await request.body()
    signature = request.headers.get("x-paystack-signature")
    if not signature:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST, detail={"code": "MISSING_SIGNATURE", "message": "Missing signature"}
        )
    if not verify_webhook_signature(body, signature):
        raise HTTPException(
            status.HTTP_401_UNAUTHORIZED, detail={"code": "INVALID_SIGNATURE", "message": "Invalid signature"}
        )
    try:
        event = json.loads(body)
    except ValueError as exc:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST, detail={"code": "VALIDATION_ERROR", "message": "Malformed webhook body"}
        ) from exc

    try:
        processed = await run_in_threadpool(_handle_event, session, event)
    except NotFound:
        # Unknown references are acknowledged so the gateway stops redelivering
        logger.warning(f"Webhook for unknown payment reference: {event.get('data', {}).get('reference')}")
        processed = False
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:
        raise internal_error("process a gateway webhook") from exc
    return {"received": True, "processed": processed}
