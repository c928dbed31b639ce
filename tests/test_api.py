import pytest
from fastapi.testclient import TestClient

from conftest import AIRPORT_LAT, AIRPORT_LON, KM_LAT

from airfieldwatch.main import app
from airfieldwatch.services.engine import TrackingEngine
from airfieldwatch.services.tracker import AirportConfig


@pytest.fixture
def client():
    app.state.engine = TrackingEngine(AirportConfig())
    # No context manager: the lifespan would build an engine from settings.
    yield TestClient(app)
    app.state.engine = None


def _position(km_north, altitude, icao24="4CA1B2"):
    return {
        "icao24": icao24,
        "callsign": "TEST123 ",
        "latitude": AIRPORT_LAT + km_north * KM_LAT,
        "longitude": AIRPORT_LON,
        "altitude": altitude,
        "speed": 150,
        "track": 120,
    }


def test_health_check(client):
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_ingest_and_list_aircraft(client):
    first = client.post("/api/v1/positions", json=_position(20, 4000))
    second = client.post("/api/v1/positions", json=_position(10, 2000))

    assert first.status_code == 202
    assert first.json()["phase"] == "en_route"
    assert first.json()["transition_id"] is None
    assert second.json()["phase"] == "approach"
    assert second.json()["transition_id"]

    aircraft = client.get("/api/v1/aircraft").json()
    assert len(aircraft) == 1
    assert aircraft[0]["icao24"] == "4CA1B2"
    assert aircraft[0]["sample"]["callsign"] == "TEST123"
    assert aircraft[0]["runway"]["runway_id"] == "12"

    history = client.get("/api/v1/aircraft/history", params={"icao24": "4ca1b2"}).json()
    assert [entry["phase"] for entry in history] == ["approach", "en_route"]

    stats = client.get("/api/v1/stats").json()
    assert stats["tracker"]["phase_counts"]["approach"] == 1
    assert stats["store"] is None


def test_invalid_position_is_rejected(client):
    response = client.post("/api/v1/positions", json={"icao24": "4CA1B2", "altitude": 1000})

    assert response.status_code == 400
    assert client.get("/api/v1/stats").json()["tracker"]["rejected_samples"] == 1


def test_runways(client):
    runways = client.get("/api/v1/runways").json()
    best = client.get("/api/v1/runways/determine", params={"lat": 55.52, "lon": -4.5867}).json()

    assert [r["id"] for r in runways] == ["12", "30"]
    assert best["runway_id"] == "12"


def test_radar_payload_with_aircraft(client):
    client.post("/api/v1/positions", json=_position(5, 1500))

    payload = client.get("/api/v1/radar/payload", params={"range_nm": 5}).json()

    assert payload["range_nm"] == 5
    assert payload["center_lat"] == pytest.approx(AIRPORT_LAT)
    assert payload["polygons"] == []
    assert [blip["icao24"] for blip in payload["aircraft"]] == ["4CA1B2"]


def test_store_backed_endpoints_need_a_store(client):
    assert client.get("/api/v1/aircraft/4CA1B2/registration").status_code == 503
    assert client.get("/api/v1/registry/search", params={"country": "Ireland"}).status_code == 503
    assert client.get("/api/v1/events/recent").status_code == 503


def test_engine_not_running():
    app.state.engine = None
    response = TestClient(app).get("/api/v1/aircraft")

    assert response.status_code == 503
