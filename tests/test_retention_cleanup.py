from datetime import datetime, timedelta, timezone

from airfieldwatch import db_models as models
from airfieldwatch.db import cleanup_old_records, create_db_engine, create_session_factory, init_db, utcnow


def _session(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path}/retention.db")
    init_db(engine)
    return create_session_factory(engine)()


def _flight(icao24, end_time):
    return models.FlightRecord(
        icao24=icao24,
        start_time=end_time - timedelta(minutes=20),
        end_time=end_time,
        status=models.FLIGHT_ACTIVE,
    )


def test_cleanup_deletes_only_old_records(tmp_path):
    session = _session(tmp_path)
    try:
        now = utcnow()
        old = now - timedelta(days=5)

        session.add_all(
            [
                models.PositionRecord(icao24="OLD001", lat=55.5, lon=-4.6, timestamp=old),
                models.PositionRecord(icao24="NEW001", lat=55.5, lon=-4.6, timestamp=now),
                models.AircraftEventRecord(icao24="OLD001", event_type="landing", timestamp=old),
                models.AircraftEventRecord(icao24="NEW001", event_type="landing", timestamp=now),
                _flight("OLD001", old),
                _flight("NEW001", now),
            ]
        )
        session.commit()

        counts = cleanup_old_records(session, retention_days=3, now=now)

        assert counts == {"positions": 1, "events": 1, "flights_completed": 1}
        assert [p.icao24 for p in session.query(models.PositionRecord).all()] == ["NEW001"]
        assert [e.icao24 for e in session.query(models.AircraftEventRecord).all()] == ["NEW001"]
        statuses = {f.icao24: f.status for f in session.query(models.FlightRecord).all()}
        assert statuses == {"OLD001": models.FLIGHT_COMPLETED, "NEW001": models.FLIGHT_ACTIVE}
    finally:
        session.close()


def test_flight_timeout_closes_idle_flights(tmp_path):
    session = _session(tmp_path)
    try:
        now = utcnow()
        session.add_all([_flight("IDLE01", now - timedelta(minutes=45)), _flight("LIVE01", now)])
        session.commit()

        without_timeout = cleanup_old_records(session, retention_days=30, now=now)
        with_timeout = cleanup_old_records(session, retention_days=30, flight_timeout_minutes=30, now=now)

        assert without_timeout["flights_completed"] == 0
        assert with_timeout["flights_completed"] == 1
    finally:
        session.close()


def test_utcnow_is_naive_utc():
    now = utcnow()
    aware = datetime.now(timezone.utc)

    assert now.tzinfo is None
    assert abs(aware.replace(tzinfo=None) - now) < timedelta(seconds=5)
