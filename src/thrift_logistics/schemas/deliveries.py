"""Request/response models for delivery endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..models.domain import Delivery, DeliveryStatus, OrderStatus
from ..services.deliveries import StatusUpdateResult, TrackingView
from ..services.dispatch import AssignmentResult


class AssignDeliveryRequest(BaseModel):
    orderId: str = Field(..., min_length=1, description="Order to create the delivery for.")


class AssignedRiderModel(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    zoneCode: str
    zoneName: str


class AssignmentResponse(BaseModel):
    deliveryId: str
    orderId: str
    orderNumber: str
    status: DeliveryStatus
    deliveryAddress: str
    zoneCode: str
    assignedAt: datetime
    usedNeighbourZone: bool
    rider: AssignedRiderModel

    @classmethod
    def from_result(cls, result: AssignmentResult) -> "AssignmentResponse":
        return cls(
            deliveryId=result.delivery_id,
            orderId=result.order_id,
            orderNumber=result.order_number,
            status=result.status,
            deliveryAddress=result.delivery_address,
            zoneCode=result.zone_code,
            assignedAt=result.assigned_at,
            usedNeighbourZone=result.used_fallback,
            rider=AssignedRiderModel(
                id=result.rider_id,
                name=result.rider_name,
                email=result.rider_email,
                phone=result.rider_phone,
                zoneCode=result.rider_zone_code,
                zoneName=result.rider_zone_name,
            ),
        )


class StatusUpdateRequest(BaseModel):
    status: DeliveryStatus
    version: Optional[int] = Field(
        default=None, ge=1, description="Version last read by the caller; stale writes are rejected."
    )


class StatusUpdateResponse(BaseModel):
    deliveryId: str
    orderId: str
    orderNumber: str
    status: DeliveryStatus
    previousStatus: DeliveryStatus
    orderStatus: OrderStatus
    deliveryAddress: str
    riderId: Optional[str] = None
    riderName: Optional[str] = None
    assignedAt: Optional[datetime] = None
    deliveredAt: Optional[datetime] = None
    updatedAt: datetime

    @classmethod
    def from_result(cls, result: StatusUpdateResult) -> "StatusUpdateResponse":
        return cls(
            deliveryId=result.delivery_id,
            orderId=result.order_id,
            orderNumber=result.order_number,
            status=result.status,
            previousStatus=result.previous_status,
            orderStatus=result.order_status,
            deliveryAddress=result.delivery_address,
            riderId=result.rider_id,
            riderName=result.rider_name,
            assignedAt=result.assigned_at,
            deliveredAt=result.delivered_at,
            updatedAt=result.updated_at,
        )


class RiderContactModel(BaseModel):
    id: str
    name: str
    phone: Optional[str] = None
    zoneCode: str
    zoneName: str


class TimelineModel(BaseModel):
    assigned: Optional[datetime] = None
    pickedUp: Optional[datetime] = None
    inTransit: Optional[datetime] = None
    delivered: Optional[datetime] = None


class TrackingResponse(BaseModel):
    deliveryId: str
    orderId: str
    orderNumber: str
    status: DeliveryStatus
    deliveryAddress: str
    rider: Optional[RiderContactModel] = None
    timeline: TimelineModel
    estimatedArrival: Optional[datetime] = None
    orderTotal: float
    orderStatus: OrderStatus

    @classmethod
    def from_view(cls, view: TrackingView) -> "TrackingResponse":
        rider = None
        if view.rider is not None:
            rider = RiderContactModel(
                id=view.rider.id,
                name=view.rider.name,
                phone=view.rider.phone,
                zoneCode=view.rider.zone_code,
                zoneName=view.rider.zone_name,
            )
        return cls(
            deliveryId=view.delivery_id,
            orderId=view.order_id,
            orderNumber=view.order_number,
            status=view.status,
            deliveryAddress=view.delivery_address,
            rider=rider,
            timeline=TimelineModel(
                assigned=view.timeline.assigned,
                pickedUp=view.timeline.picked_up,
                inTransit=view.timeline.in_transit,
                delivered=view.timeline.delivered,
            ),
            estimatedArrival=view.estimated_arrival,
            orderTotal=float(view.order_total),
            orderStatus=view.order_status,
        )


class RiderDeliveryModel(BaseModel):
    id: str
    orderId: str
    orderNumber: str
    status: DeliveryStatus
    deliveryAddress: str
    version: int
    assignedAt: Optional[datetime] = None
    deliveredAt: Optional[datetime] = None

    @classmethod
    def from_delivery(cls, delivery: Delivery) -> "RiderDeliveryModel":
        return cls(
            id=delivery.id,
            orderId=delivery.order_id,
            orderNumber=delivery.order.order_number,
            status=delivery.status,
            deliveryAddress=delivery.delivery_address,
            version=delivery.version,
            assignedAt=delivery.assigned_at,
            deliveredAt=delivery.delivered_at,
        )
