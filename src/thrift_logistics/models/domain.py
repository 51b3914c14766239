"""Domain models for campuses, riders, deliveries, orders and payments."""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.base import Base, UTCDateTime, generate_id, utcnow


class UserRole(str, enum.Enum):
    CUSTOMER = "CUSTOMER"
    RIDER = "RIDER"
    ADMIN = "ADMIN"


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class DeliveryStatus(str, enum.Enum):
    ASSIGNED = "ASSIGNED"
    PICKED_UP = "PICKED_UP"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"


class PaymentMethod(str, enum.Enum):
    CARD = "CARD"
    MOBILE_MONEY = "MOBILE_MONEY"
    INSTALLMENT = "INSTALLMENT"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    COMPLETED = "COMPLETED"
    OVERDUE = "OVERDUE"
    FAILED = "FAILED"


def _enum(enum_cls: type[enum.Enum]) -> Enum:
    return Enum(enum_cls, native_enum=False, length=20, validate_strings=True)


class Campus(Base):
    __tablename__ = "campuses"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    zones: Mapped[list["Zone"]] = relationship(back_populates="campus", order_by="Zone.code")


class Zone(Base):
    """Administratively defined delivery area within a campus."""

    __tablename__ = "zones"
    __table_args__ = (UniqueConstraint("campus_id", "code", name="uq_zones_campus_code"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    campus_id: Mapped[str] = mapped_column(ForeignKey("campuses.id", ondelete="CASCADE"), index=True)
    # Orders reference zones by code alone, so codes are unique across campuses too
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    delivery_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))

    campus: Mapped[Campus] = relationship(back_populates="zones")


class ZoneAdjacency(Base):
    """Directed storage row for a symmetric neighbouring relation."""

    __tablename__ = "zone_adjacency"
    __table_args__ = (UniqueConstraint("zone_id", "adjacent_zone_id", name="uq_zone_adjacency_pair"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    zone_id: Mapped[str] = mapped_column(ForeignKey("zones.id", ondelete="CASCADE"), index=True)
    adjacent_zone_id: Mapped[str] = mapped_column(ForeignKey("zones.id", ondelete="CASCADE"), index=True)


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    phone: Mapped[Optional[str]] = mapped_column(String(32))
    role: Mapped[UserRole] = mapped_column(_enum(UserRole), nullable=False, default=UserRole.CUSTOMER)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Rider(Base):
    __tablename__ = "riders"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), unique=True, nullable=False)
    zone_id: Mapped[str] = mapped_column(ForeignKey("zones.id", ondelete="RESTRICT"), index=True)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    total_deliveries: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    user: Mapped[User] = relationship()
    zone: Mapped[Zone] = relationship()


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_id)
    order_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    delivery_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    campus_zone: Mapped[str] = mapped_column(String(32), nullable=False)
    delivery_address: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[OrderStatus] = mapped_column(_enum(OrderStatus), nullable=False, default=OrderStatus.PENDING)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user: Mapped[User] = relationship()
    delivery: Mapped[Optional["Delivery"]] = relationship(back_populates="order", uselist=False)
    payment: Mapped[Optional["Payment"]] = relationship(back_populates="order", uselist=False)


class Delivery(Base):
    __tablename__ = "deliveries"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    order_id: Mapped[str] = mapped_column(ForeignKey("orders.id"), unique=True, nullable=False)
    rider_id: Mapped[Optional[str]] = mapped_column(ForeignKey("riders.id"), index=True)
    zone_id: Mapped[str] = mapped_column(ForeignKey("zones.id", ondelete="RESTRICT"), index=True)
    status: Mapped[DeliveryStatus] = mapped_column(_enum(DeliveryStatus), nullable=False)
    delivery_address: Mapped[str] = mapped_column(Text, nullable=False, default="")
    failure_reason: Mapped[Optional[str]] = mapped_column(String(200))
    assigned_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime)
    picked_up_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime)
    in_transit_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    order: Mapped[Order] = relationship(back_populates="delivery")
    rider: Mapped[Optional[Rider]] = relationship()
    zone: Mapped[Zone] = relationship()

    __mapper_args__ = {"version_id_col": version}


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    order_id: Mapped[str] = mapped_column(ForeignKey("orders.id"), unique=True, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    method: Mapped[PaymentMethod] = mapped_column(_enum(PaymentMethod), nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(_enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    installment_plan: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    paid_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    remaining_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    payday_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, index=True)
    transaction_ref: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    second_charge_ref: Mapped[Optional[str]] = mapped_column(String(100), unique=True)
    authorization_code: Mapped[Optional[str]] = mapped_column(String(100))
    reminders_sent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failure_reason: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    order: Mapped[Order] = relationship(back_populates="payment")

    __mapper_args__ = {"version_id_col": version}
