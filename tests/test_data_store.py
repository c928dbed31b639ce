from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_sample

from airfieldwatch import db_models
from airfieldwatch.db import RegistryBase, create_db_engine, create_session_factory
from airfieldwatch.domain import ErrorKind
from airfieldwatch.models import RegistrySearch
from airfieldwatch.services.data_store import AircraftDataStore, StoreConfig


def _registry_db(path, rows):
    engine = create_db_engine(f"sqlite:///{path}")
    RegistryBase.metadata.create_all(bind=engine)
    session = create_session_factory(engine)()
    try:
        session.add_all(
            db_models.RegistryAircraft(
                ModeS=mode_s,
                Registration=registration,
                Manufacturer=manufacturer,
                Type=type_,
                ICAOTypeCode=icao_type,
                Country=country,
            )
            for mode_s, registration, manufacturer, type_, icao_type, country in rows
        )
        session.commit()
    finally:
        session.close()
    return engine


REGISTRY_ROWS = [
    ("4CA1B2", "EI-DVM", "Boeing", "737-8AS", "B738", "Ireland"),
    ("400A0B", "G-EZAA", "Airbus", "A319-111", "A319", "United Kingdom"),
    ("400A0C", "G-EZAB", "Airbus", "A319-111", "A319", "United Kingdom"),
    ("400F00", "G-BOAC", "Aerospatiale", "Concorde", "CONC", "United Kingdom"),
]


@pytest.fixture
def store(tmp_path):
    _registry_db(tmp_path / "basestation.sqb", REGISTRY_ROWS)
    data_store = AircraftDataStore(
        StoreConfig(
            tracking_url=f"sqlite:///{tmp_path / 'tracking.db'}",
            registry_url=f"sqlite:///{tmp_path / 'basestation.sqb'}",
            retention_days=30,
            flight_timeout_minutes=30,
            search_limit=2,
        )
    )
    assert data_store.initialize().ok
    yield data_store
    data_store.close()


def test_record_position_opens_and_extends_one_flight(store):
    store.record_position(make_sample(km_north=10, altitude=3000, speed=200), distance_m=10_000, phase="approach")
    store.record_position(make_sample(km_north=5, altitude=1500, speed=160), distance_m=5_000, phase="approach")

    flights = store.get_flights().unwrap_or([])

    assert len(flights) == 1
    flight = flights[0]
    assert flight.status == db_models.FLIGHT_ACTIVE
    assert flight.max_altitude == 3000
    assert flight.max_speed == 200
    assert flight.total_distance_m == pytest.approx(5_000, rel=0.01)
    assert flight.callsign == "TEST123"


def test_store_position_does_not_touch_flights(store):
    assert store.store_position(make_sample()).ok

    assert store.get_flights().value == []
    assert len(store.get_history().value) == 1


def test_history_is_newest_first_and_filterable(store):
    now = datetime.now(tz=timezone.utc)
    store.record_position(make_sample(timestamp=now - timedelta(minutes=10)))
    store.record_position(make_sample(timestamp=now - timedelta(minutes=5)))
    store.record_position(make_sample("ABCDEF", timestamp=now))
    store.record_position(make_sample(timestamp=now - timedelta(hours=30)))

    history = store.get_history(hours_back=24).value
    mine = store.get_history("4ca1b2", hours_back=24).value

    assert [entry.icao24 for entry in history] == ["ABCDEF", "4CA1B2", "4CA1B2"]
    assert len(mine) == 2
    assert history[0].timestamp.tzinfo is not None


def test_events_round_trip(store):
    store.store_event("4CA1B2", "landing", {"runway": "12"})
    store.store_event("4CA1B2", "notice_alert", {"notice": "RWY"})

    everything = store.get_recent_events(hours_back=1).value
    landings = store.get_recent_events(hours_back=1, event_type="landing").value

    assert len(everything) == 2
    assert [event.event_data for event in landings] == [{"runway": "12"}]
    assert store.store_event("", "landing").error is ErrorKind.INVALID


def test_airport_events_are_stored_without_an_icao24(store):
    assert store.store_event(None, "notice_new", {"notice": "AS1"}, source="notices", subject="EGPK").ok

    event = store.get_recent_events(hours_back=1).value[0]

    assert event.icao24 is None
    assert event.subject == "EGPK"
    assert store.store_event(None, "notice_new").error is ErrorKind.INVALID


def test_registry_is_bulk_loaded(store):
    registration = store.get_registration("4ca1b2").value

    assert registration.registration == "EI-DVM"
    assert registration.icao_type_code == "B738"
    assert store.get_stats().registry_size == 4


def test_registry_miss_falls_back_to_store_and_caches(store, tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'basestation.sqb'}")
    session = create_session_factory(engine)()
    session.add(db_models.RegistryAircraft(ModeS="3C6444", Registration="D-AIBD", Country="Germany"))
    session.commit()
    session.close()
    engine.dispose()

    assert store.get_registration("3C6444").value.registration == "D-AIBD"
    assert store.get_stats().registry_size == 5
    assert store.get_registration("000000").value is None


def test_search_registry_is_substring_and_capped(store):
    airbus = store.search_registry(RegistrySearch(manufacturer="airb")).value
    uk = store.search_registry(RegistrySearch(country="Kingdom", limit=50)).value
    concorde = store.search_registry(RegistrySearch(type="conc")).value

    assert [r.registration for r in airbus] == ["G-EZAA", "G-EZAB"]
    assert len(uk) == 2
    assert [r.registration for r in concorde] == ["G-BOAC"]


def test_retention_sweep_deletes_old_rows_and_closes_idle_flights(store):
    old = datetime.now(tz=timezone.utc) - timedelta(days=40)
    store.store_position(make_sample(timestamp=old))
    store.store_event("4CA1B2", "landing", timestamp=old)
    store.record_position(make_sample("ABCDEF", timestamp=datetime.now(tz=timezone.utc) - timedelta(hours=2)))
    store.record_position(make_sample("FEDCBA"))

    counts = store.run_retention_sweep().value

    assert counts == {"positions": 1, "events": 1, "flights_completed": 1}
    statuses = {f.icao24: f.status for f in store.get_flights(hours_back=24).value}
    assert statuses == {"ABCDEF": db_models.FLIGHT_COMPLETED, "FEDCBA": db_models.FLIGHT_ACTIVE}
    assert store.get_stats().active_flights == 1


def test_unavailable_store_degrades():
    store = AircraftDataStore(StoreConfig(tracking_url=None, registry_url=None))

    assert store.initialize().error is ErrorKind.UNAVAILABLE
    assert store.record_position(make_sample()).error is ErrorKind.UNAVAILABLE
    assert store.get_history().unwrap_or([]) == []
    assert store.get_registration("4CA1B2").error is ErrorKind.UNAVAILABLE
    assert store.search_registry(RegistrySearch()).error is ErrorKind.UNAVAILABLE
    assert store.run_retention_sweep().unwrap_or({}) == {}

    stats = store.get_stats()
    assert not stats.available
    assert stats.cached_positions == 1
    assert store.cached_position("4ca1b2") is not None
