from datetime import datetime, timezone

import httpx
import pytest

import airfieldwatch.ingestors.adsb as adsb
from airfieldwatch.geodesy import GeoPoint
from airfieldwatch.ingestors.adsb import ADSBIngestor

STATE = [
    "4ca1b2",  # icao24
    "TEST123 ",  # callsign with trailing space
    "Ireland",
    1714765198,  # time_position
    1714765200,  # last_contact
    -4.60,  # longitude
    55.52,  # latitude
    3657.6,  # baro_altitude meters
    False,  # on_ground
    164.6,  # velocity m/s
    120.0,  # true_track
    -2.0,  # vertical_rate m/s
    None,  # sensors
    3700.0,  # geo_altitude meters
    "7000",  # squawk
    False,  # spi
    0,  # position_source
]


def _ingestor(handler, **kwargs):
    return ADSBIngestor(
        base_url="https://example.test", transport=httpx.MockTransport(handler), username="", **kwargs
    )


@pytest.mark.anyio
async def test_adsb_ingestor_normalizes_states():
    def handler(request: httpx.Request):
        assert "lamin" in request.url.params
        assert "authorization" not in request.headers
        return httpx.Response(
            200, json={"time": 1714765200, "states": [STATE, ["bad"], [None] * 17]}
        )

    samples = await _ingestor(handler).get_positions(55.5094, -4.5867, radius_nm=30.0)

    assert len(samples) == 1
    sample = samples[0]
    assert sample.icao24 == "4CA1B2"
    assert sample.callsign == "TEST123"
    assert sample.altitude_ft == pytest.approx(3700.0 * 3.28084)
    assert sample.speed_kt == pytest.approx(164.6 * 1.94384)
    assert sample.heading_deg == 120
    assert sample.squawk == "7000"
    assert sample.timestamp == datetime(2024, 5, 3, 19, 40, tzinfo=timezone.utc)


@pytest.mark.anyio
async def test_adsb_ingestor_handles_rate_limit():
    def handler(request: httpx.Request):
        return httpx.Response(429, text="rate limited")

    ingestor = _ingestor(handler)

    assert await ingestor.get_positions(0.0, 0.0, radius_nm=10.0) == []
    assert ingestor.failed_polls == 1


@pytest.mark.anyio
async def test_adsb_ingestor_handles_error_response():
    def handler(request: httpx.Request):
        return httpx.Response(503, text="unavailable")

    assert await _ingestor(handler).get_positions(0.0, 0.0) == []


@pytest.mark.anyio
async def test_adsb_ingestor_uses_basic_auth(monkeypatch):
    monkeypatch.setattr(adsb, "get_adsb_password", lambda name: "s3cret")
    seen = []

    def handler(request: httpx.Request):
        seen.append(request.headers.get("authorization"))
        return httpx.Response(200, json={"states": []})

    ingestor = ADSBIngestor(
        base_url="https://example.test",
        transport=httpx.MockTransport(handler),
        username="watcher",
    )

    await ingestor.get_positions(55.5, -4.6)

    assert seen[0].startswith("Basic ")


@pytest.mark.anyio
async def test_adsb_ingestor_falls_back_to_anonymous(monkeypatch):
    def missing(name):
        raise RuntimeError("ADS-B password not configured in SSM")

    monkeypatch.setattr(adsb, "get_adsb_password", missing)
    seen = []

    def handler(request: httpx.Request):
        seen.append(request.headers.get("authorization"))
        return httpx.Response(200, json={"states": [STATE]})

    ingestor = ADSBIngestor(
        base_url="https://example.test",
        transport=httpx.MockTransport(handler),
        username="watcher",
    )

    assert len(await ingestor.get_positions(55.5, -4.6)) == 1
    assert seen == [None]


class _Stop(Exception):
    pass


@pytest.mark.anyio
async def test_run_pushes_samples_into_sink():
    received = []

    async def sink(sample):
        received.append(sample)
        raise _Stop

    def handler(request: httpx.Request):
        return httpx.Response(200, json={"states": [STATE]})

    with pytest.raises(_Stop):
        await _ingestor(handler).run(sink, GeoPoint(55.5094, -4.5867), interval=0.01)

    assert [s.icao24 for s in received] == ["4CA1B2"]
