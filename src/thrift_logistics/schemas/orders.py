"""Order schemas."""

from __future__ import annotations

from pydantic import BaseModel

from ..models.domain import DeliveryStatus, OrderStatus
from ..services.orders import CancellationResult


class OrderCancellationResponse(BaseModel):
    orderId: str
    orderNumber: str
    status: OrderStatus
    deliveryStatus: DeliveryStatus | None = None

    @classmethod
    def from_result(cls, result: CancellationResult) -> "OrderCancellationResponse":
        return cls(
            orderId=result.order_id,
            orderNumber=result.order_number,
            status=result.order_status,
            deliveryStatus=result.delivery_status,
        )
