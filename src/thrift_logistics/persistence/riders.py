"""Database access for the rider pool."""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session, joinedload

from ..models.domain import Rider


def get_rider(session: Session, rider_id: str) -> Rider | None:
    return session.get(Rider, rider_id)


def get_rider_by_user(session: Session, user_id: str) -> Rider | None:
    return session.scalars(select(Rider).where(Rider.user_id == user_id)).first()


def select_available_riders(
    session: Session,
    zone_ids: Iterable[str],
    *,
    lock: bool = False,
) -> list[Rider]:
    """Available riders in ``zone_ids``, lowest workload first, rider id breaking ties.

    With ``lock`` the candidate rows are read ``FOR UPDATE`` so concurrent
    assignments serialise on the same riders (no-op on SQLite).
    """
    ids = sorted(set(zone_ids))
    if not ids:
        return []
    stmt = (
        select(Rider)
        .where(Rider.zone_id.in_(ids), Rider.is_available.is_(True))
        .order_by(Rider.total_deliveries.asc(), Rider.id.asc())
    )
    if lock:
        stmt = stmt.with_for_update()
    else:
        stmt = stmt.options(joinedload(Rider.user), joinedload(Rider.zone))
    return list(session.scalars(stmt).unique())


def increment_workload(session: Session, rider_id: str) -> int:
    """Atomically add one to the rider's workload counter; returns rows touched."""
    stmt = (
        update(Rider)
        .where(Rider.id == rider_id)
        .values(total_deliveries=Rider.total_deliveries + 1)
        .execution_options(synchronize_session="evaluate")
    )
    return session.execute(stmt).rowcount
