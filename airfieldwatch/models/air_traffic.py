"""Models for aircraft positions, runways and tracked aircraft."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from airfieldwatch.domain import FlightPhase


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class PositionSample(BaseModel):
    """One already-parsed position report for an aircraft."""

    icao24: str = Field(..., min_length=1, description="ICAO 24-bit address (hex)")
    callsign: Optional[str] = Field(default=None, description="Aircraft callsign")
    registration: Optional[str] = Field(default=None, description="Tail registration")
    lat: float = Field(
        ...,
        ge=-90.0,
        le=90.0,
        allow_inf_nan=False,
        validation_alias=AliasChoices("lat", "latitude"),
        description="Latitude in decimal degrees",
    )
    lon: float = Field(
        ...,
        ge=-180.0,
        le=180.0,
        allow_inf_nan=False,
        validation_alias=AliasChoices("lon", "longitude"),
        description="Longitude in decimal degrees",
    )
    altitude_ft: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("altitude_ft", "altitude"),
        description="Altitude in feet",
    )
    speed_kt: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("speed_kt", "speed", "ground_speed"),
        description="Ground speed in knots",
    )
    heading_deg: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("heading_deg", "heading", "track"),
        description="Track heading in degrees",
    )
    squawk: Optional[str] = Field(default=None, description="Transponder code")
    timestamp: datetime = Field(default_factory=_utcnow, description="Report time (UTC)")

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("icao24")
    @classmethod
    def _normalize_icao(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("callsign")
    @classmethod
    def _strip_callsign(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("squawk", mode="before")
    @classmethod
    def _squawk_text(cls, value):
        if value is None or value == "":
            return None
        return str(value).zfill(4)

    @field_validator("timestamp")
    @classmethod
    def _aware_timestamp(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class Runway(BaseModel):
    """Static runway reference data."""

    id: str
    name: str
    heading: float = Field(..., ge=0.0, le=360.0)
    threshold_lat: float
    threshold_lon: float
    length_m: float

    model_config = ConfigDict(frozen=True)

    @property
    def lat(self) -> float:
        return self.threshold_lat

    @property
    def lon(self) -> float:
        return self.threshold_lon


class RunwayAssignment(BaseModel):
    """Best-scoring runway for an aircraft position and heading."""

    runway_id: str
    runway_name: str
    distance_m: float
    bearing_deg: float
    heading_diff_deg: float
    score: float

    model_config = ConfigDict(frozen=True)


class AirportReference(BaseModel):
    """Descriptor of the reference point events are measured against."""

    code: str
    name: str
    lat: float
    lon: float

    model_config = ConfigDict(frozen=True)


class TrackedAircraft(BaseModel):
    """Current tracking state of one aircraft inside the approach radius."""

    icao24: str
    sample: PositionSample
    distance_m: float
    runway: Optional[RunwayAssignment] = None
    phase: FlightPhase = FlightPhase.UNKNOWN
    emergency: Optional[str] = None
    last_update: datetime

    model_config = ConfigDict(frozen=True)


__all__ = [
    "AirportReference",
    "PositionSample",
    "Runway",
    "RunwayAssignment",
    "TrackedAircraft",
]
