"""Campus reference data loader: JSON seed file synced into the database."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

from sqlalchemy.orm import Session

from ..config import settings
from ..models.domain import Campus, Zone, ZoneAdjacency
from ..persistence import zones as zone_store

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ZoneSeed:
    code: str
    name: str
    description: str | None
    delivery_fee: Decimal


@dataclass(frozen=True, slots=True)
class CampusSeed:
    code: str
    name: str
    zones: tuple[ZoneSeed, ...]
    adjacency: tuple[tuple[str, str], ...]


@dataclass(slots=True)
class SyncSummary:
    campuses: int = 0
    zones: int = 0
    adjacency: int = 0


def _normalize_code(code: str) -> str:
    return code.strip().upper()


def load_campuses_from_file(source: Path | None = None) -> tuple[CampusSeed, ...]:
    """Read campuses, zones and adjacency pairs from the seed file."""
    seed_path = source or settings.campus_seed_file
    if not seed_path.exists():
        raise FileNotFoundError(f"Campus seed file not found: {seed_path}")

    with seed_path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)

    campuses: list[CampusSeed] = []
    for entry in payload.get("campuses", []):
        try:
            zones = tuple(
                ZoneSeed(
                    code=_normalize_code(str(zone["code"])),
                    name=str(zone["name"]).strip(),
                    description=zone.get("description"),
                    delivery_fee=Decimal(str(zone.get("deliveryFee", 0))).quantize(Decimal("0.01")),
                )
                for zone in entry.get("zones", [])
            )
            adjacency = tuple(
                (_normalize_code(str(pair[0])), _normalize_code(str(pair[1])))
                for pair in entry.get("adjacency", [])
            )
            campuses.append(
                CampusSeed(
                    code=_normalize_code(str(entry["code"])),
                    name=str(entry["name"]).strip(),
                    zones=zones,
                    adjacency=adjacency,
                )
            )
        except (KeyError, IndexError, TypeError, ArithmeticError) as exc:
            logger.warning(f"Skipping invalid campus entry in {seed_path}: {exc}")
            continue
    return tuple(campuses)


def sync_campuses_to_database(session: Session, campuses: tuple[CampusSeed, ...]) -> SyncSummary:
    """Insert campuses, zones and adjacency rows that are not in the database yet.

    Existing rows are left untouched so fees or names edited in the database
    survive a restart.
    """
    summary = SyncSummary()
    for seed in campuses:
        campus = zone_store.get_campus_by_code(session, seed.code)
        if campus is None:
            campus = Campus(code=seed.code, name=seed.name, is_active=True)
            session.add(campus)
            session.flush()
            summary.campuses += 1

        for zone_seed in seed.zones:
            if zone_store.get_zone_by_code(session, zone_seed.code) is not None:
                continue
            session.add(
                Zone(
                    campus_id=campus.id,
                    code=zone_seed.code,
                    name=zone_seed.name,
                    description=zone_seed.description,
                    delivery_fee=zone_seed.delivery_fee,
                )
            )
            summary.zones += 1
        session.flush()

        for source_code, target_code in seed.adjacency:
            source = zone_store.get_zone_by_code(session, source_code)
            target = zone_store.get_zone_by_code(session, target_code)
            if source is None or target is None:
                logger.warning(f"Skipping adjacency {source_code} <-> {target_code}: unknown zone")
                continue
            # Either direction already present means the pair is known
            if zone_store.adjacency_exists(session, source.id, target.id) or zone_store.adjacency_exists(
                session, target.id, source.id
            ):
                continue
            session.add(ZoneAdjacency(zone_id=source.id, adjacent_zone_id=target.id))
            summary.adjacency += 1
            session.flush()

    session.commit()
    if summary.campuses or summary.zones or summary.adjacency:
        logger.info(
            f"Seeded {summary.campuses} campuses, {summary.zones} zones and "
            f"{summary.adjacency} adjacency rows"
        )
    return summary


def seed_reference_data(session: Session, source: Path | None = None) -> SyncSummary:
    return sync_campuses_to_database(session, load_campuses_from_file(source))
