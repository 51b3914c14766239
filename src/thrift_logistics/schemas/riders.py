"""Rider directory schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field

from ..models.domain import Rider


class RiderAvailabilityRequest(BaseModel):
    isAvailable: bool


class RiderRegistrationRequest(BaseModel):
    userId: str = Field(..., min_length=1)
    zoneCode: str = Field(..., min_length=1)


class RiderModel(BaseModel):
    id: str
    userId: str
    name: str
    zoneCode: str
    zoneName: str
    isAvailable: bool
    totalDeliveries: int

    @classmethod
    def from_rider(cls, rider: Rider) -> "RiderModel":
        return cls(
            id=rider.id,
            userId=rider.user_id,
            name=rider.user.full_name,
            zoneCode=rider.zone.code,
            zoneName=rider.zone.name,
            isAvailable=rider.is_available,
            totalDeliveries=rider.total_deliveries,
        )
