"""Domain models."""

from .domain import (
    Campus,
    Delivery,
    DeliveryStatus,
    Order,
    OrderStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Rider,
    User,
    UserRole,
    Zone,
    ZoneAdjacency,
)

__all__ = [
    "Campus",
    "Delivery",
    "DeliveryStatus",
    "Order",
    "OrderStatus",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "Rider",
    "User",
    "UserRole",
    "Zone",
    "ZoneAdjacency",
]
