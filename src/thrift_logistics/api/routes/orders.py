"""Order endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...db.session import get_session
from ...schemas.orders import OrderCancellationResponse
from ...services.errors import ServiceError
from ...services.orders import cancel_order
from ...services.security import Principal
from ..dependencies import get_principal, to_http_exception
from ..errors import internal_error

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/{order_id}/cancel", response_model=OrderCancellationResponse, status_code=status.HTTP_200_OK)
def cancel(
    order_id: str,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
) -> OrderCancellationResponse:
    try:
        result = cancel_order(session, order_id, principal)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:
        raise internal_error("cancel an order") from exc
    return OrderCancellationResponse.from_result(result)
