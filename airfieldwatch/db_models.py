"""SQLAlchemy ORM models for the tracking and registry stores."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from airfieldwatch.db import Base, RegistryBase, utcnow

FLIGHT_ACTIVE = "active"
FLIGHT_COMPLETED = "completed"


class PositionRecord(Base):
    """Persisted position sample."""

    __tablename__ = "aircraft_positions"
    __table_args__ = (
        Index("ix_aircraft_positions_icao24_timestamp", "icao24", "timestamp"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    icao24 = Column(String(6), nullable=False)
    callsign = Column(String(16), nullable=True)
    lat = Column(Float, nullable=True)
    lon = Column(Float, nullable=True)
    altitude = Column(Float, nullable=True)
    speed = Column(Float, nullable=True)
    heading = Column(Float, nullable=True)
    squawk = Column(String(4), nullable=True)
    distance_m = Column(Float, nullable=True)
    phase = Column(String(16), nullable=True)
    timestamp = Column(DateTime, default=utcnow, index=True, nullable=False)
    source = Column(String(32), default="adsb")


class FlightRecord(Base):
    """One continuous tracked session of an aircraft."""

    __tablename__ = "aircraft_flights"
    __table_args__ = (
        Index("ix_aircraft_flights_icao24_status", "icao24", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    icao24: Mapped[str] = mapped_column(String(6), nullable=False)
    callsign: Mapped[str | None] = mapped_column(String(16), nullable=True)
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    start_lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    start_lon: Mapped[float | None] = mapped_column(Float, nullable=True)
    end_lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    end_lon: Mapped[float | None] = mapped_column(Float, nullable=True)
    max_altitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    max_speed: Mapped[float | None] = mapped_column(Float, nullable=True)
    total_distance_m: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=FLIGHT_ACTIVE)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class AircraftEventRecord(Base):
    """Append-only phase transition / alert record."""

    __tablename__ = "aircraft_events"
    __table_args__ = (
        Index("ix_aircraft_events_icao24_type_timestamp", "icao24", "event_type", "timestamp"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    icao24 = Column(String(6), nullable=True)
    subject = Column(String(16), nullable=True)
    event_type = Column(String(32), nullable=False, index=True)
    event_data = Column(JSON, nullable=True)
    timestamp = Column(DateTime, default=utcnow, index=True, nullable=False)
    source = Column(String(32), default="adsb")


class RegistryAircraft(RegistryBase):
    """BaseStation ``Aircraft`` table; reference data, never written here."""

    __tablename__ = "Aircraft"

    AircraftID = Column(Integer, primary_key=True)
    ModeS = Column(String(6), nullable=True)
    Registration = Column(String(20), nullable=True)
    ICAOTypeCode = Column(String(10), nullable=True)
    Type = Column(String(60), nullable=True)
    Manufacturer = Column(String(60), nullable=True)
    OperatorFlagCode = Column(String(20), nullable=True)
    SerialNo = Column(String(30), nullable=True)
    YearBuilt = Column(String(4), nullable=True)
    RegisteredOwners = Column(Text, nullable=True)
    Country = Column(String(24), nullable=True)
