"""Aircraft registry lookups and tracking persistence.

Two stores are used: a read-only registry (BaseStation-style ``Aircraft``
table, bulk loaded into memory at startup) and a read-write tracking store
holding positions, flights and events. Every operation returns a
:class:`~airfieldwatch.domain.Result`; database failures degrade to
``Result.unavailable`` and are logged rather than raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Any, Callable, Optional

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from airfieldwatch import db_models
from airfieldwatch.db import (
    cleanup_old_records,
    create_db_engine,
    create_session_factory,
    init_db,
    utcnow,
)
from airfieldwatch.domain import Result
from airfieldwatch.geodesy import GeoPoint, distance_meters
from airfieldwatch.models.air_traffic import PositionSample
from airfieldwatch.models.history import (
    AircraftRegistration,
    FlightSummary,
    PositionHistoryEntry,
    RegistrySearch,
    StoreStats,
    StoredEvent,
)

logger = logging.getLogger("airfieldwatch.data_store")

TRACKING_UNAVAILABLE = "tracking store not available"
REGISTRY_UNAVAILABLE = "registry store not available"


@dataclass
class StoreConfig:
    """Runtime configuration for the aircraft data store."""

    tracking_url: Optional[str] = "sqlite:///./airfieldwatch.db"
    registry_url: Optional[str] = None
    retention_days: int = 30
    cleanup_interval_s: float = 3600.0
    flight_timeout_minutes: int = 30
    search_limit: int = 100


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _max(current: Optional[float], value: Optional[float]) -> Optional[float]:
    if value is None:
        return current
    if current is None:
        return value
    return max(current, value)


def _registration_from_row(row: db_models.RegistryAircraft) -> AircraftRegistration:
    return AircraftRegistration(
        icao24=row.ModeS.strip().upper(),
        registration=row.Registration or None,
        icao_type_code=row.ICAOTypeCode or None,
        type=row.Type or None,
        manufacturer=row.Manufacturer or None,
        operator_flag_code=row.OperatorFlagCode or None,
        serial_no=row.SerialNo or None,
        year_built=row.YearBuilt or None,
        owner=row.RegisteredOwners or None,
        country=row.Country or None,
    )


class AircraftDataStore:
    """Persist tracking data and serve registry reference data."""

    def __init__(
        self,
        config: StoreConfig | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.config = config or StoreConfig()
        self.clock = clock
        self._tracking_engine: Optional[Engine] = None
        self._tracking_sessions: Optional[sessionmaker] = None
        self._registry_engine: Optional[Engine] = None
        self._registry_sessions: Optional[sessionmaker] = None
        self._cache_lock = Lock()
        self._registry: dict[str, AircraftRegistration] = {}
        self._positions: dict[str, PositionSample] = {}
        self._stored_positions = 0
        self._stored_events = 0
        self._last_update: Optional[datetime] = None

    # ---------------------------------------------------------------- lifecycle

    @property
    def available(self) -> bool:
        return self._tracking_sessions is not None

    @property
    def registry_available(self) -> bool:
        return self._registry_sessions is not None

    def initialize(self) -> Result[None]:
        """Open both stores; either may fail independently."""

        if self.config.tracking_url:
            try:
                engine = create_db_engine(self.config.tracking_url)
                init_db(engine)
                self._tracking_engine = engine
                self._tracking_sessions = create_session_factory(engine)
                logger.info("Connected to tracking store")
            except SQLAlchemyError as exc:
                logger.error("Failed to initialize tracking store: %s", exc)

        if self.config.registry_url:
            try:
                self._registry_engine = create_db_engine(self.config.registry_url)
                self._registry_sessions = create_session_factory(self._registry_engine)
                self.load_registry()
            except SQLAlchemyError as exc:
                logger.warning("Failed to connect to registry store: %s", exc)
                self._registry_sessions = None

        if not self.available:
            return Result.unavailable(TRACKING_UNAVAILABLE)
        return Result.success()

    def load_registry(self) -> int:
        """Bulk load the registry into memory, replacing the cache."""

        if self._registry_sessions is None:
            return 0
        db = self._registry_sessions()
        try:
            rows = (
                db.query(db_models.RegistryAircraft)
                .filter(
                    db_models.RegistryAircraft.ModeS.isnot(None),
                    db_models.RegistryAircraft.ModeS != "",
                )
                .all()
            )
            entries = {entry.icao24: entry for entry in map(_registration_from_row, rows)}
        finally:
            db.close()

        with self._cache_lock:
            self._registry = entries
        logger.info("Aircraft registry loaded: %s entries", len(entries))
        return len(entries)

    def close(self) -> None:
        for engine in (self._tracking_engine, self._registry_engine):
            if engine is not None:
                engine.dispose()
        self._tracking_sessions = None
        self._registry_sessions = None
        logger.info("Aircraft data store closed")

    # ---------------------------------------------------------------- writes

    def store_position(
        self,
        sample: PositionSample,
        *,
        distance_m: Optional[float] = None,
        phase: Optional[str] = None,
    ) -> Result[int]:
        """Insert a position row only."""

        return self._write_position(sample, distance_m, phase, track_flight=False)

    def record_position(
        self,
        sample: PositionSample,
        *,
        distance_m: Optional[float] = None,
        phase: Optional[str] = None,
    ) -> Result[int]:
        """Insert a position row and open or extend the aircraft's active flight."""

        return self._write_position(sample, distance_m, phase, track_flight=True)

    def _write_position(
        self,
        sample: PositionSample,
        distance_m: Optional[float],
        phase: Optional[str],
        *,
        track_flight: bool,
    ) -> Result[int]:
        with self._cache_lock:
            self._positions[sample.icao24] = sample
        if self._tracking_sessions is None:
            return Result.unavailable(TRACKING_UNAVAILABLE)

        timestamp = _naive_utc(sample.timestamp)
        db = self._tracking_sessions()
        try:
            record = db_models.PositionRecord(
                icao24=sample.icao24,
                callsign=sample.callsign,
                lat=sample.lat,
                lon=sample.lon,
                altitude=sample.altitude_ft,
                speed=sample.speed_kt,
                heading=sample.heading_deg,
                squawk=sample.squawk,
                distance_m=distance_m,
                phase=phase,
                timestamp=timestamp,
            )
            db.add(record)
            if track_flight:
                self._update_flight(db, sample, timestamp)
            db.commit()
            record_id = record.id
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("Failed to store position for %s: %s", sample.icao24, exc)
            return Result.unavailable(str(exc))
        finally:
            db.close()

        self._stored_positions += 1
        self._last_update = self.clock()
        return Result.success(record_id)

    def _update_flight(self, db, sample: PositionSample, timestamp: datetime) -> None:
        flight = (
            db.query(db_models.FlightRecord)
            .filter(
                db_models.FlightRecord.icao24 == sample.icao24,
                db_models.FlightRecord.status == db_models.FLIGHT_ACTIVE,
            )
            .order_by(db_models.FlightRecord.start_time.desc())
            .first()
        )
        if flight is None:
            db.add(
                db_models.FlightRecord(
                    icao24=sample.icao24,
                    callsign=sample.callsign,
                    start_time=timestamp,
                    end_time=timestamp,
                    start_lat=sample.lat,
                    start_lon=sample.lon,
                    end_lat=sample.lat,
                    end_lon=sample.lon,
                    max_altitude=sample.altitude_ft,
                    max_speed=sample.speed_kt,
                    total_distance_m=0.0,
                    status=db_models.FLIGHT_ACTIVE,
                )
            )
            logger.debug("Opened flight for %s", sample.icao24)
            return

        if flight.end_lat is not None and flight.end_lon is not None:
            flight.total_distance_m = (flight.total_distance_m or 0.0) + distance_meters(
                GeoPoint(flight.end_lat, flight.end_lon), GeoPoint(sample.lat, sample.lon)
            )
        flight.end_time = timestamp
        flight.end_lat = sample.lat
        flight.end_lon = sample.lon
        flight.max_altitude = _max(flight.max_altitude, sample.altitude_ft)
        flight.max_speed = _max(flight.max_speed, sample.speed_kt)
        if sample.callsign and not flight.callsign:
            flight.callsign = sample.callsign

    def store_event(
        self,
        icao24: Optional[str],
        event_type: str,
        event_data: dict[str, Any] | None = None,
        *,
        timestamp: Optional[datetime] = None,
        source: str = "adsb",
        subject: Optional[str] = None,
    ) -> Result[int]:
        """Append an event for an aircraft, or for ``subject`` when not aircraft-bound."""

        if not event_type or not (icao24 or subject):
            return Result.invalid("event_type and one of icao24 or subject are required")
        if self._tracking_sessions is None:
            return Result.unavailable(TRACKING_UNAVAILABLE)

        db = self._tracking_sessions()
        try:
            record = db_models.AircraftEventRecord(
                icao24=icao24.upper() if icao24 else None,
                subject=subject,
                event_type=event_type,
                event_data=event_data,
                timestamp=_naive_utc(timestamp) if timestamp else self.clock(),
                source=source,
            )
            db.add(record)
            db.commit()
            record_id = record.id
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("Failed to store %s event for %s: %s", event_type, icao24 or subject, exc)
            return Result.unavailable(str(exc))
        finally:
            db.close()

        self._stored_events += 1
        return Result.success(record_id)

    # ---------------------------------------------------------------- registry

    def get_registration(self, icao24: str) -> Result[Optional[AircraftRegistration]]:
        """Cache first, then the registry store; hits are cached."""

        if not icao24:
            return Result.invalid("icao24 is required")
        key = icao24.strip().upper()
        with self._cache_lock:
            cached = self._registry.get(key)
        if cached is not None:
            return Result.success(cached)
        if self._registry_sessions is None:
            return Result.unavailable(REGISTRY_UNAVAILABLE)

        db = self._registry_sessions()
        try:
            row = (
                db.query(db_models.RegistryAircraft)
                .filter(func.upper(db_models.RegistryAircraft.ModeS) == key)
                .first()
            )
            entry = _registration_from_row(row) if row is not None else None
        except SQLAlchemyError as exc:
            logger.error("Failed to query registration for %s: %s", key, exc)
            return Result.unavailable(str(exc))
        finally:
            db.close()

        if entry is not None:
            with self._cache_lock:
                self._registry[key] = entry
        return Result.success(entry)

    def search_registry(self, filters: RegistrySearch) -> Result[list[AircraftRegistration]]:
        if self._registry_sessions is None:
            return Result.unavailable(REGISTRY_UNAVAILABLE)

        model = db_models.RegistryAircraft
        columns = {
            "registration": model.Registration,
            "manufacturer": model.Manufacturer,
            "type": model.Type,
            "icao_type_code": model.ICAOTypeCode,
            "country": model.Country,
        }
        limit = min(filters.limit or self.config.search_limit, self.config.search_limit)

        db = self._registry_sessions()
        try:
            query = db.query(model).filter(model.ModeS.isnot(None), model.ModeS != "")
            for name, column in columns.items():
                value = getattr(filters, name)
                if value:
                    query = query.filter(column.ilike(f"%{value}%"))
            rows = query.order_by(model.Registration).limit(limit).all()
            return Result.success([_registration_from_row(row) for row in rows])
        except SQLAlchemyError as exc:
            logger.error("Failed to search registry: %s", exc)
            return Result.unavailable(str(exc))
        finally:
            db.close()

    # ---------------------------------------------------------------- reads

    def cached_position(self, icao24: str) -> Optional[PositionSample]:
        with self._cache_lock:
            return self._positions.get(icao24.upper())

    def get_history(
        self, icao24: Optional[str] = None, hours_back: float = 24
    ) -> Result[list[PositionHistoryEntry]]:
        """Positions newer than ``hours_back``, most recent first."""

        if self._tracking_sessions is None:
            return Result.unavailable(TRACKING_UNAVAILABLE)

        cutoff = self.clock() - timedelta(hours=hours_back)
        db = self._tracking_sessions()
        try:
            query = db.query(db_models.PositionRecord).filter(
                db_models.PositionRecord.timestamp >= cutoff
            )
            if icao24:
                query = query.filter(db_models.PositionRecord.icao24 == icao24.upper())
            rows = query.order_by(db_models.PositionRecord.timestamp.desc()).all()
            return Result.success([PositionHistoryEntry.model_validate(row) for row in rows])
        except SQLAlchemyError as exc:
            logger.error("Failed to get aircraft history: %s", exc)
            return Result.unavailable(str(exc))
        finally:
            db.close()

    def get_flights(
        self,
        icao24: Optional[str] = None,
        hours_back: float = 24,
        status: Optional[str] = None,
    ) -> Result[list[FlightSummary]]:
        if self._tracking_sessions is None:
            return Result.unavailable(TRACKING_UNAVAILABLE)

        cutoff = self.clock() - timedelta(hours=hours_back)
        model = db_models.FlightRecord
        db = self._tracking_sessions()
        try:
            query = db.query(model).filter(model.start_time >= cutoff)
            if icao24:
                query = query.filter(model.icao24 == icao24.upper())
            if status:
                query = query.filter(model.status == status)
            rows = query.order_by(model.start_time.desc()).all()
            return Result.success([FlightSummary.model_validate(row) for row in rows])
        except SQLAlchemyError as exc:
            logger.error("Failed to get flights: %s", exc)
            return Result.unavailable(str(exc))
        finally:
            db.close()

    def get_recent_events(
        self, hours_back: float = 24, event_type: Optional[str] = None
    ) -> Result[list[StoredEvent]]:
        if self._tracking_sessions is None:
            return Result.unavailable(TRACKING_UNAVAILABLE)

        cutoff = self.clock() - timedelta(hours=hours_back)
        model = db_models.AircraftEventRecord
        db = self._tracking_sessions()
        try:
            query = db.query(model).filter(model.timestamp >= cutoff)
            if event_type:
                query = query.filter(model.event_type == event_type)
            rows = query.order_by(model.timestamp.desc()).all()
            return Result.success([StoredEvent.model_validate(row) for row in rows])
        except SQLAlchemyError as exc:
            logger.error("Failed to get recent events: %s", exc)
            return Result.unavailable(str(exc))
        finally:
            db.close()

    def get_stats(self) -> StoreStats:
        with self._cache_lock:
            stats = StoreStats(
                available=self.available,
                registry_available=self.registry_available,
                registry_size=len(self._registry),
                cached_positions=len(self._positions),
                stored_positions=self._stored_positions,
                stored_events=self._stored_events,
                last_update=self._last_update,
            )
        if self._tracking_sessions is None:
            return stats

        hour_ago = self.clock() - timedelta(hours=1)
        db = self._tracking_sessions()
        try:
            stats.positions_last_hour = (
                db.query(func.count(db_models.PositionRecord.id))
                .filter(db_models.PositionRecord.timestamp >= hour_ago)
                .scalar()
                or 0
            )
            stats.events_last_hour = (
                db.query(func.count(db_models.AircraftEventRecord.id))
                .filter(db_models.AircraftEventRecord.timestamp >= hour_ago)
                .scalar()
                or 0
            )
            stats.active_flights = (
                db.query(func.count(db_models.FlightRecord.id))
                .filter(db_models.FlightRecord.status == db_models.FLIGHT_ACTIVE)
                .scalar()
                or 0
            )
        except SQLAlchemyError as exc:
            logger.error("Failed to get store statistics: %s", exc)
        finally:
            db.close()
        return stats

    # ---------------------------------------------------------------- retention

    def run_retention_sweep(self) -> Result[dict[str, int]]:
        if self._tracking_sessions is None:
            return Result.unavailable(TRACKING_UNAVAILABLE)

        db = self._tracking_sessions()
        try:
            counts = cleanup_old_records(
                db,
                retention_days=self.config.retention_days,
                flight_timeout_minutes=self.config.flight_timeout_minutes,
                now=self.clock(),
            )
        finally:
            db.close()
        return Result.success(counts)


__all__ = ["AircraftDataStore", "StoreConfig"]
