"""Database access for campuses, zones and zone adjacency."""

from __future__ import annotations

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ..models.domain import Campus, Zone, ZoneAdjacency


def get_zone(session: Session, zone_id: str) -> Zone | None:
    return session.get(Zone, zone_id)


def get_zone_by_code(session: Session, code: str) -> Zone | None:
    return session.scalars(select(Zone).where(Zone.code == code)).first()


def get_campus_by_name(session: Session, name: str) -> Campus | None:
    stmt = select(Campus).where(func.lower(Campus.name) == name.strip().lower())
    return session.scalars(stmt).first()


def get_campus_by_code(session: Session, code: str) -> Campus | None:
    return session.scalars(select(Campus).where(Campus.code == code)).first()


def get_adjacency_rows(session: Session, zone_id: str) -> list[tuple[str, str]]:
    """Return every stored edge touching ``zone_id``, in either direction."""
    stmt = select(ZoneAdjacency.zone_id, ZoneAdjacency.adjacent_zone_id).where(
        or_(ZoneAdjacency.zone_id == zone_id, ZoneAdjacency.adjacent_zone_id == zone_id)
    )
    return [(row[0], row[1]) for row in session.execute(stmt)]


def adjacency_exists(session: Session, zone_id: str, adjacent_zone_id: str) -> bool:
    stmt = select(ZoneAdjacency.id).where(
        ZoneAdjacency.zone_id == zone_id,
        ZoneAdjacency.adjacent_zone_id == adjacent_zone_id,
    )
    return session.scalars(stmt).first() is not None
