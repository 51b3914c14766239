import json
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import func, select

from src.thrift_logistics.data.campus_repository import (
    load_campuses_from_file,
    seed_reference_data,
    sync_campuses_to_database,
)
from src.thrift_logistics.models.domain import Campus, Zone, ZoneAdjacency
from src.thrift_logistics.persistence import zones as zone_store
from src.thrift_logistics.services.zoning import ZoneGraph, list_zones

SEED_FILE = Path(__file__).resolve().parents[1] / "data" / "campuses.json"


def _count(session, model) -> int:
    return session.scalar(select(func.count()).select_from(model))


def test_load_seed_file():
    campuses = load_campuses_from_file(SEED_FILE)

    assert [campus.code for campus in campuses] == ["UG", "ASHESI", "UPSA", "CENTRAL", "ACU", "GIJ"]
    ug = campuses[0]
    fees = {zone.code: zone.delivery_fee for zone in ug.zones}
    assert fees["UG-EAST"] == Decimal("8.00")
    assert ("UG-EAST", "UG-MAIN") in ug.adjacency


def test_seed_inserts_everything_once(session):
    first = seed_reference_data(session, SEED_FILE)

    assert (first.campuses, first.zones, first.adjacency) == (6, 18, 15)
    assert _count(session, Campus) == 6
    assert _count(session, Zone) == 18
    assert _count(session, ZoneAdjacency) == 15

    second = seed_reference_data(session, SEED_FILE)
    assert (second.campuses, second.zones, second.adjacency) == (0, 0, 0)
    assert _count(session, ZoneAdjacency) == 15


def test_seeded_graph_and_listing(session):
    seed_reference_data(session, SEED_FILE)

    zones = list_zones(session, "university of ghana, legon")
    assert [zone.code for zone in zones] == ["UG-EAST", "UG-MAIN", "UG-RES1", "UG-RES2"]
    assert zones[0].delivery_fee == 8.0

    graph = ZoneGraph(session)
    code_of = {zone.id: zone.code for zone in session.scalars(select(Zone))}
    east = zone_store.get_zone_by_code(session, "UG-EAST")
    main = zone_store.get_zone_by_code(session, "UG-MAIN")
    assert {code_of[zone_id] for zone_id in graph.neighbors(east.id)} == {"UG-MAIN"}
    assert {code_of[zone_id] for zone_id in graph.neighbors(main.id)} == {"UG-RES1", "UG-RES2", "UG-EAST"}


def test_existing_rows_are_left_untouched(session):
    seed_reference_data(session, SEED_FILE)
    zone = zone_store.get_zone_by_code(session, "UG-MAIN")
    zone.delivery_fee = Decimal("6.50")
    session.commit()

    seed_reference_data(session, SEED_FILE)

    assert zone_store.get_zone_by_code(session, "UG-MAIN").delivery_fee == Decimal("6.50")


def test_reverse_pair_counts_as_existing(session, tmp_path):
    seed = tmp_path / "campuses.json"
    seed.write_text(
        json.dumps(
            {
                "campuses": [
                    {
                        "code": "x",
                        "name": "Campus X",
                        "zones": [
                            {"code": "x-a", "name": "A", "deliveryFee": 4},
                            {"code": "x-b", "name": "B", "deliveryFee": "4.5"},
                        ],
                        "adjacency": [["X-A", "X-B"], ["X-B", "X-A"], ["X-A", "X-NOWHERE"]],
                    },
                    {"name": "Missing code"},
                ]
            }
        ),
        encoding="utf-8",
    )

    campuses = load_campuses_from_file(seed)
    summary = sync_campuses_to_database(session, campuses)

    assert len(campuses) == 1
    assert campuses[0].zones[1].delivery_fee == Decimal("4.50")
    assert (summary.campuses, summary.zones, summary.adjacency) == (1, 2, 1)


def test_missing_seed_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_campuses_from_file(tmp_path / "absent.json")
