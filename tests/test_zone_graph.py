from src.thrift_logistics.services.zoning import ZoneGraph, list_zones

from tests.factories import add_campus, add_zone, link


def test_neighbors_union_both_directions(session):
    campus = add_campus(session)
    main = add_zone(session, campus, "UG-MAIN")
    res1 = add_zone(session, campus, "UG-RES1")
    east = add_zone(session, campus, "UG-EAST")
    add_zone(session, campus, "UG-RES2")

    link(session, main, res1)
    link(session, east, main)

    graph = ZoneGraph(session)
    assert graph.neighbors(main.id) == {res1.id, east.id}
    # Only the (UG-EAST, UG-MAIN) row exists, yet the relation is symmetric
    assert graph.neighbors(east.id) == {main.id}
    assert graph.neighbors(res1.id) == {main.id}


def test_neighbors_ignore_self_loops_and_duplicates(session):
    campus = add_campus(session)
    main = add_zone(session, campus, "UG-MAIN")
    res1 = add_zone(session, campus, "UG-RES1")
    link(session, main, res1)
    link(session, res1, main)
    link(session, main, main)

    assert ZoneGraph(session).neighbors(main.id) == {res1.id}


def test_isolated_zone_has_no_neighbors(session):
    campus = add_campus(session)
    lonely = add_zone(session, campus, "UG-LONE")

    assert ZoneGraph(session).neighbors(lonely.id) == set()


def test_list_zones_matches_campus_name_case_insensitively(session):
    campus = add_campus(session, code="ASHESI", name="Ashesi University")
    add_zone(session, campus, "ASH-RES-E", fee="5.00", name="Residential East")
    add_zone(session, campus, "ASH-ACAD", fee="6.50", name="Academic Complex")

    zones = list_zones(session, "  ashesi UNIVERSITY ")

    assert [zone.code for zone in zones] == ["ASH-ACAD", "ASH-RES-E"]
    assert zones[0].name == "Academic Complex"
    assert zones[0].delivery_fee == 6.5


def test_list_zones_unknown_or_blank_campus_is_empty(session):
    campus = add_campus(session)
    add_zone(session, campus, "UG-MAIN")

    assert list_zones(session, "Unknown University") == []
    assert list_zones(session, "") == []
    assert list_zones(session, None) == []
