"""Per-aircraft tracking, phase classification and transition events."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional, Sequence

from pydantic import ValidationError

from airfieldwatch.domain import FlightPhase, Result
from airfieldwatch.geodesy import GeoPoint, distance_meters
from airfieldwatch.models.air_traffic import (
    AirportReference,
    PositionSample,
    Runway,
    RunwayAssignment,
    TrackedAircraft,
)
from airfieldwatch.models.events import (
    NoticeAlertEvent,
    PhaseTransitionEvent,
    TransitionSnapshot,
)
from airfieldwatch.models.history import PositionHistoryEntry, TrackerStats
from airfieldwatch.services.event_bus import EventBus
from airfieldwatch.services.notices import NoticeCorrelator
from airfieldwatch.services.phases import PhaseThresholds, classify_phase, emergency_label
from airfieldwatch.services.runways import determine_runway

logger = logging.getLogger("airfieldwatch.tracker")


@dataclass
class AirportConfig:
    """Reference point and radii the tracker classifies against."""

    code: str = "EGPK"
    name: str = "Prestwick Airport"
    lat: float = 55.5094
    lon: float = -4.5867
    approach_radius_m: float = 50_000.0
    runway_threshold_m: float = 5_000.0

    @property
    def reference(self) -> AirportReference:
        return AirportReference(code=self.code, name=self.name, lat=self.lat, lon=self.lon)

    @property
    def thresholds(self) -> PhaseThresholds:
        return PhaseThresholds(
            approach_radius_m=self.approach_radius_m,
            runway_threshold_m=self.runway_threshold_m,
        )


@dataclass
class TrackingUpdate:
    """Outcome of applying one position sample."""

    sample: PositionSample
    aircraft: Optional[TrackedAircraft] = None
    evicted: bool = False
    first_seen: bool = False
    transition: Optional[PhaseTransitionEvent] = None
    alerts: list[NoticeAlertEvent] = field(default_factory=list)

    @property
    def tracked(self) -> bool:
        return self.aircraft is not None


def parse_position_sample(raw: PositionSample | Mapping[str, Any]) -> Result[PositionSample]:
    """Validate an inbound sample; missing or bad coordinates are rejected."""

    if isinstance(raw, PositionSample):
        return Result.success(raw)
    try:
        return Result.success(PositionSample.model_validate(raw))
    except ValidationError as exc:
        return Result.invalid(f"{exc.error_count()} validation error(s): {exc.errors()[0]['msg']}")


class AirportTracker:
    """Maintain tracked aircraft near one airport and emit phase changes.

    Updates for the same ``icao24`` are serialized with a per-key lock so
    that state read, classification, state write and event emission for
    one sample finish before the next sample for that aircraft starts.
    Different aircraft are independent. Stored aircraft records are
    immutable and replaced wholesale, so readers always see a complete
    snapshot.
    """

    def __init__(
        self,
        airport: AirportConfig,
        runways: Sequence[Runway],
        bus: EventBus,
        *,
        notices: NoticeCorrelator | None = None,
        history_size: int = 1000,
    ) -> None:
        self.airport = airport
        self.runways = tuple(runways)
        self.bus = bus
        self.notices = notices
        self._aircraft: dict[str, TrackedAircraft] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._history: deque[PositionHistoryEntry] = deque(maxlen=history_size)
        self._phase_counts: dict[FlightPhase, int] = {phase: 0 for phase in FlightPhase}
        self._rejected = 0
        self._last_update: Optional[datetime] = None

    # ------------------------------------------------------------------ queries

    def list_tracked(self) -> list[TrackedAircraft]:
        return list(self._aircraft.values())

    def get_tracked(self, icao24: str) -> Optional[TrackedAircraft]:
        return self._aircraft.get(icao24.upper())

    def determine_runway(
        self, lat: float, lon: float, heading: Optional[float]
    ) -> Optional[RunwayAssignment]:
        return determine_runway(lat, lon, heading, self.runways, self.airport.approach_radius_m)

    def recent_history(
        self, icao24: Optional[str] = None, hours: float = 24, limit: Optional[int] = None
    ) -> list[PositionHistoryEntry]:
        """Most recent in-memory samples first."""

        cutoff = datetime.now(tz=timezone.utc) - timedelta(hours=hours)
        wanted = icao24.upper() if icao24 else None
        entries = [
            entry
            for entry in reversed(self._history)
            if entry.timestamp >= cutoff and (wanted is None or entry.icao24 == wanted)
        ]
        return entries[:limit] if limit else entries

    def get_stats(self) -> TrackerStats:
        return TrackerStats(
            phase_counts={phase.value: count for phase, count in self._phase_counts.items()},
            notam_queries=self.notices.queries if self.notices else 0,
            notam_alerts=self.notices.alerts if self.notices else 0,
            tracked_aircraft=len(self._aircraft),
            rejected_samples=self._rejected,
            last_update=self._last_update,
        )

    def reset_stats(self) -> None:
        self._phase_counts = {phase: 0 for phase in FlightPhase}
        self._rejected = 0
        self._last_update = None
        if self.notices:
            self.notices.queries = 0
            self.notices.alerts = 0

    def clear_history(self) -> None:
        self._history.clear()

    # ------------------------------------------------------------------ updates

    def reject(self, detail: str) -> None:
        self._rejected += 1
        logger.debug("Rejected position sample: %s", detail)

    async def process_update(self, sample: PositionSample) -> TrackingUpdate:
        """Apply one sample, then correlate notices for any transition."""

        lock = self._locks.setdefault(sample.icao24, asyncio.Lock())
        async with lock:
            update = self.apply(sample)
            if update.transition is not None and self.notices is not None:
                update.alerts = await self.notices.alerts_for_transition(update.transition)
                for alert in update.alerts:
                    self.bus.publish(alert)
        return update

    def apply(self, sample: PositionSample) -> TrackingUpdate:
        """Classify ``sample`` against in-memory state; never suspends."""

        icao24 = sample.icao24
        reference = GeoPoint(self.airport.lat, self.airport.lon)
        distance = distance_meters(GeoPoint(sample.lat, sample.lon), reference)

        if not distance <= self.airport.approach_radius_m:
            evicted = self._aircraft.pop(icao24, None) is not None
            if evicted:
                logger.info("Aircraft %s left the approach radius (%.0f m)", icao24, distance)
            return TrackingUpdate(sample=sample, evicted=evicted)

        runway = self.determine_runway(sample.lat, sample.lon, sample.heading_deg)
        phase = classify_phase(
            sample.altitude_ft, sample.speed_kt, distance, self.airport.thresholds
        )
        previous = self._aircraft.get(icao24)
        now = datetime.now(tz=timezone.utc)

        aircraft = TrackedAircraft(
            icao24=icao24,
            sample=sample,
            distance_m=distance,
            runway=runway,
            phase=phase,
            emergency=emergency_label(sample.squawk),
            last_update=sample.timestamp,
        )
        self._aircraft[icao24] = aircraft
        self._history.append(
            PositionHistoryEntry(
                icao24=icao24,
                callsign=sample.callsign,
                lat=sample.lat,
                lon=sample.lon,
                altitude=sample.altitude_ft,
                speed=sample.speed_kt,
                heading=sample.heading_deg,
                squawk=sample.squawk,
                distance_m=distance,
                phase=phase.value,
                timestamp=sample.timestamp,
            )
        )

        update = TrackingUpdate(sample=sample, aircraft=aircraft, first_seen=previous is None)
        if previous is not None and previous.phase != phase:
            update.transition = self._emit_transition(previous.phase, aircraft, now)
        return update

    def _emit_transition(
        self, previous_phase: FlightPhase, aircraft: TrackedAircraft, now: datetime
    ) -> PhaseTransitionEvent:
        sample = aircraft.sample
        event = PhaseTransitionEvent(
            icao24=aircraft.icao24,
            event_type=aircraft.phase,
            timestamp=now,
            snapshot=TransitionSnapshot(
                icao24=aircraft.icao24,
                callsign=sample.callsign,
                registration=sample.registration,
                previous_phase=previous_phase,
                new_phase=aircraft.phase,
                runway_id=aircraft.runway.runway_id if aircraft.runway else None,
                runway_name=aircraft.runway.runway_name if aircraft.runway else None,
                lat=sample.lat,
                lon=sample.lon,
                altitude_ft=sample.altitude_ft,
                speed_kt=sample.speed_kt,
                heading_deg=sample.heading_deg,
                squawk=sample.squawk,
                emergency=aircraft.emergency,
                distance_m=aircraft.distance_m,
                airport=self.airport.reference,
            ),
        )
        self._phase_counts[aircraft.phase] += 1
        self._last_update = now
        logger.info(
            "Aircraft %s %s -> %s (runway=%s alt=%s speed=%s)",
            aircraft.icao24,
            previous_phase.value,
            aircraft.phase.value,
            event.snapshot.runway_id,
            sample.altitude_ft,
            sample.speed_kt,
        )
        self.bus.publish(event)
        return event


__all__ = [
    "AirportConfig",
    "AirportTracker",
    "TrackingUpdate",
    "parse_position_sample",
]
