"""Zone adjacency graph used as the assignment fallback."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from ...persistence import zones as zone_store


class ZoneGraph:
    """Read-only view of zone adjacency.

    Adjacency is persisted as directed rows but is symmetric as a relation, so
    every query unions both directions: a row ``(A, B)`` makes B a neighbour of
    A and A a neighbour of B.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def neighbors(self, zone_id: str) -> set[str]:
        result: set[str] = set()
        for source, target in zone_store.get_adjacency_rows(self.session, zone_id):
            result.add(target if source == zone_id else source)
        result.discard(zone_id)
        return result


@dataclass(slots=True)
class ZoneListing:
    code: str
    name: str
    description: str | None
    delivery_fee: float


def list_zones(session: Session, campus_name: str | None) -> list[ZoneListing]:
    """Zones for a campus matched case-insensitively by name; unknown campus gives []."""
    if not campus_name or not campus_name.strip():
        return []
    campus = zone_store.get_campus_by_name(session, campus_name)
    if campus is None:
        return []
    return [
        ZoneListing(
            code=zone.code,
            name=zone.name,
            description=zone.description,
            delivery_fee=float(zone.delivery_fee),
        )
        for zone in campus.zones
    ]
