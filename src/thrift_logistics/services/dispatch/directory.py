"""Per-zone rider pool with availability and workload."""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy.orm import Session

from ...models.domain import Rider, User, UserRole
from ...persistence import riders as rider_store
from ...persistence import zones as zone_store
from ..errors import Conflict, Forbidden, NotFound, ValidationFailed
from ..security import Principal

logger = logging.getLogger(__name__)


class RiderDirectory:
    def __init__(self, session: Session) -> None:
        self.session = session

    def available_riders(self, zone_ids: Iterable[str], *, lock: bool = False) -> list[Rider]:
        """Available riders ordered by ``total_deliveries`` then rider id."""
        return rider_store.select_available_riders(self.session, zone_ids, lock=lock)

    def increment_workload(self, rider_id: str) -> None:
        if rider_store.increment_workload(self.session, rider_id) != 1:
            raise NotFound(f"Rider {rider_id} not found", code="RIDER_NOT_FOUND")


def set_availability(session: Session, rider_id: str, is_available: bool, principal: Principal) -> Rider:
    """Toggle availability; allowed for the rider themself or an admin."""
    rider = rider_store.get_rider(session, rider_id)
    if rider is None:
        if principal.is_admin:
            raise NotFound("Rider not found", code="RIDER_NOT_FOUND")
        raise Forbidden()
    if not principal.is_admin and rider.user_id != principal.user_id:
        raise Forbidden()

    rider.is_available = is_available
    session.commit()
    logger.info(f"Rider {rider.id} availability set to {is_available} by {principal.user_id}")
    return rider


def register_rider(session: Session, user_id: str, zone_code: str, principal: Principal) -> Rider:
    if not principal.is_admin:
        raise Forbidden()
    user = session.get(User, user_id)
    if user is None:
        raise NotFound("User not found", code="USER_NOT_FOUND")
    zone = zone_store.get_zone_by_code(session, zone_code)
    if zone is None:
        raise ValidationFailed(
            "Unknown zone",
            details=[{"field": "zoneCode", "message": f"Zone '{zone_code}' does not exist"}],
        )
    if rider_store.get_rider_by_user(session, user_id) is not None:
        raise Conflict("User is already registered as a rider", code="RIDER_EXISTS")

    rider = Rider(user_id=user.id, zone_id=zone.id, is_available=True, total_deliveries=0)
    user.role = UserRole.RIDER
    session.add(rider)
    session.commit()
    logger.info(f"Registered rider {rider.id} for user {user.id} in zone {zone.code}")
    return rider
