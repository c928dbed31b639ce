from datetime import datetime, timezone

import pytest

from airfieldwatch.models import PositionSample
from airfieldwatch.services.tracker import AirportConfig

AIRPORT_LAT = 55.5094
AIRPORT_LON = -4.5867
# Roughly one kilometre of latitude.
KM_LAT = 1 / 111.195


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def airport() -> AirportConfig:
    return AirportConfig()


def make_sample(
    icao24: str = "4CA1B2",
    *,
    km_north: float = 0.0,
    altitude: float | None = 2000,
    speed: float | None = 150,
    heading: float | None = 120,
    squawk: str | None = None,
    callsign: str | None = "TEST123",
    timestamp: datetime | None = None,
) -> PositionSample:
    """Position sample ``km_north`` kilometres due north of the airport."""

    return PositionSample(
        icao24=icao24,
        callsign=callsign,
        lat=AIRPORT_LAT + km_north * KM_LAT,
        lon=AIRPORT_LON,
        altitude_ft=altitude,
        speed_kt=speed,
        heading_deg=heading,
        squawk=squawk,
        timestamp=timestamp or datetime.now(tz=timezone.utc),
    )
