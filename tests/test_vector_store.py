import pytest

from airfieldwatch.geodesy import GeoPoint
from airfieldwatch.models import BoundingBox, ElementCategory
from airfieldwatch.models.events import VectorLoadErrorEvent
from airfieldwatch.services.event_bus import EventBus
from airfieldwatch.services.vector_store import (
    SpatialVectorStore,
    VectorDataUnavailable,
    dump_rings,
    parse_coordinate_line,
)

BUILDINGS = """{ header line
$ comment
55.51330+-4.59330
55.51340+-4.59340
55.51350+-4.59320
-1
not a coordinate

55.60000+-4.60000
55.60010+-4.60010
-1
"""


def _write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_coordinate_line_negates_longitude():
    point = parse_coordinate_line("55.51330+-4.59330")

    assert point == GeoPoint(55.5133, -4.5933)
    assert parse_coordinate_line("55.5+4.5") is None
    assert parse_coordinate_line("55+-4.5") is None


def test_parse_lines_splits_rings_and_counts_errors():
    store = SpatialVectorStore()

    elements = store.parse_lines(BUILDINGS.splitlines(), ElementCategory.BUILDING)

    assert [e.id for e in elements] == ["building_1", "building_2"]
    assert len(elements[0].ring) == 3
    assert all(p.lon < 0 for e in elements for p in e.ring)
    assert store.stats.parse_errors == 1
    assert elements[0].bounds == BoundingBox(55.5133, 55.5135, -4.5934, -4.5932)


def test_trailing_ring_without_terminator_is_kept():
    store = SpatialVectorStore()

    elements = store.parse_lines(["55.10000+-4.10000", "55.20000+-4.20000"], ElementCategory.MARKING)

    assert len(elements) == 1
    assert elements[0].id == "marking_1"


def test_dump_rings_round_trips_source_text():
    store = SpatialVectorStore()
    source = "55.51330+-4.59330\n55.51340+-4.59340\n-1\n55.60000+-4.60000\n-1\n"

    elements = store.parse_lines(source.splitlines(), ElementCategory.LAYOUT)

    assert dump_rings(elements) == source
    reparsed = store.parse_lines(dump_rings(elements).splitlines(), ElementCategory.LAYOUT)
    assert [e.ring for e in reparsed] == [e.ring for e in elements]


def test_load_replaces_category_and_indexes_elements(tmp_path):
    store = SpatialVectorStore()
    path = _write(tmp_path, "AFB.out", BUILDINGS)

    store.load(path, ElementCategory.BUILDING)
    store.load(path, ElementCategory.BUILDING)

    assert store.stats.buildings == 2
    assert store.get_element("building_2").ring[0] == GeoPoint(55.6, -4.6)
    assert store.get_element("building_3") is None
    assert store.get_stats()["sources"]["buildings"] == str(path)


def test_query_bounds_is_edge_inclusive():
    store = SpatialVectorStore()
    store._replace(
        ElementCategory.BUILDING,
        store.parse_lines(BUILDINGS.splitlines(), ElementCategory.BUILDING),
    )

    touching = BoundingBox(55.5135, 55.56, -4.60, -4.50)
    disjoint = BoundingBox(55.52, 55.56, -4.60, -4.50)

    assert [e.id for e in store.query_bounds(touching)] == ["building_1"]
    assert store.query_bounds(disjoint) == []


def test_query_radius_uses_bounding_box_centre(tmp_path):
    store = SpatialVectorStore()
    store.load(_write(tmp_path, "AFB.out", BUILDINGS), ElementCategory.BUILDING)

    near = store.query_radius(GeoPoint(55.5134, -4.5933), 1.0)
    both = store.query_radius(GeoPoint(55.5134, -4.5933), 20.0)

    assert [e.id for e in near] == ["building_1"]
    assert len(both) == 2
    assert store.query_radius(GeoPoint(55.5134, -4.5933), 20.0, [ElementCategory.MARKING]) == []


def test_missing_source_publishes_load_error(tmp_path):
    bus = EventBus()
    received = []
    bus.subscribe(VectorLoadErrorEvent, received.append)
    store = SpatialVectorStore(bus)

    stats = store.load_all(
        {
            ElementCategory.BUILDING: _write(tmp_path, "AFB.out", BUILDINGS),
            ElementCategory.MARKING: tmp_path / "missing.out",
        }
    )

    assert stats.buildings == 2
    assert stats.markings == 0
    assert stats.load_errors == 1
    assert len(received) == 1
    assert received[0].category == "marking"


def test_all_sources_missing_raises(tmp_path):
    store = SpatialVectorStore()

    with pytest.raises(VectorDataUnavailable):
        store.load_all({ElementCategory.LAYOUT: tmp_path / "nope.out"})


def test_reload_rereads_sources(tmp_path):
    store = SpatialVectorStore()
    path = _write(tmp_path, "AFP.out", "55.10000+-4.10000\n-1\n")
    store.load_all({ElementCategory.LAYOUT: path})

    path.write_text("55.10000+-4.10000\n-1\n55.20000+-4.20000\n-1\n", encoding="utf-8")
    store.reload()

    assert store.stats.layout == 2
    assert store.airport_bounds() == BoundingBox(55.1, 55.2, -4.2, -4.1)
