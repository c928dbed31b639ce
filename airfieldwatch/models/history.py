"""Read models returned by the aircraft data store and engine queries."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive values; they are stored as UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class PositionHistoryEntry(BaseModel):
    """A persisted (or in-memory) classified position sample."""

    icao24: str
    callsign: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    altitude: Optional[float] = Field(default=None, description="Altitude in feet")
    speed: Optional[float] = Field(default=None, description="Ground speed in knots")
    heading: Optional[float] = None
    squawk: Optional[str] = None
    distance_m: Optional[float] = None
    phase: Optional[str] = None
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("timestamp")
    @classmethod
    def _aware_timestamp(cls, value: datetime) -> datetime:
        return _as_utc(value)


class FlightSummary(BaseModel):
    """One continuous tracked session of an aircraft."""

    id: int
    icao24: str
    callsign: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    start_lat: Optional[float] = None
    start_lon: Optional[float] = None
    end_lat: Optional[float] = None
    end_lon: Optional[float] = None
    max_altitude: Optional[float] = None
    max_speed: Optional[float] = None
    total_distance_m: float = 0.0
    status: str

    model_config = ConfigDict(from_attributes=True)

    @field_validator("start_time", "end_time")
    @classmethod
    def _aware_times(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)


class StoredEvent(BaseModel):
    icao24: Optional[str] = None
    subject: Optional[str] = None
    event_type: str
    event_data: Optional[dict[str, Any]] = None
    timestamp: datetime
    source: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("timestamp")
    @classmethod
    def _aware_timestamp(cls, value: datetime) -> datetime:
        return _as_utc(value)


class AircraftRegistration(BaseModel):
    """Registry reference data for one airframe."""

    icao24: str
    registration: Optional[str] = None
    icao_type_code: Optional[str] = None
    type: Optional[str] = None
    manufacturer: Optional[str] = None
    operator_flag_code: Optional[str] = None
    serial_no: Optional[str] = None
    year_built: Optional[str] = None
    owner: Optional[str] = None
    country: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class RegistrySearch(BaseModel):
    """Substring filters for registry searches."""

    registration: Optional[str] = None
    manufacturer: Optional[str] = None
    type: Optional[str] = None
    icao_type_code: Optional[str] = None
    country: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=1)


class TrackerStats(BaseModel):
    phase_counts: dict[str, int] = Field(default_factory=dict)
    notam_queries: int = 0
    notam_alerts: int = 0
    tracked_aircraft: int = 0
    rejected_samples: int = 0
    last_update: Optional[datetime] = None


class StoreStats(BaseModel):
    available: bool = False
    registry_available: bool = False
    registry_size: int = 0
    cached_positions: int = 0
    stored_positions: int = 0
    stored_events: int = 0
    positions_last_hour: int = 0
    events_last_hour: int = 0
    active_flights: int = 0
    last_update: Optional[datetime] = None


__all__ = [
    "AircraftRegistration",
    "FlightSummary",
    "PositionHistoryEntry",
    "RegistrySearch",
    "StoreStats",
    "StoredEvent",
    "TrackerStats",
]
