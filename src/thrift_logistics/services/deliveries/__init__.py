"""Delivery lifecycle, listing and tracking exports."""

from .lifecycle import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATES,
    StatusUpdateResult,
    is_allowed_transition,
    transition_delivery,
    update_delivery_status,
)
from .listing import list_rider_deliveries
from .tracking import TrackingView, estimate_arrival, track_delivery

__all__ = [
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATES",
    "StatusUpdateResult",
    "TrackingView",
    "estimate_arrival",
    "is_allowed_transition",
    "list_rider_deliveries",
    "track_delivery",
    "transition_delivery",
    "update_delivery_status",
]
