"""Tracking engine facade.

Owns every component for one airport and exposes the read-only query
interface plus event subscription. Classification runs synchronously
from in-memory state; persistence is scheduled afterwards on worker
threads and never blocks or fails an update.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Sequence

from airfieldwatch.config import Settings
from airfieldwatch.domain import Result
from airfieldwatch.geodesy import GeoPoint, to_radar_position
from airfieldwatch.models.air_traffic import PositionSample, Runway, RunwayAssignment, TrackedAircraft
from airfieldwatch.models.events import NewNoticeEvent
from airfieldwatch.models.history import PositionHistoryEntry, StoreStats, TrackerStats
from airfieldwatch.models.vectors import ElementCategory, RadarBlip, RenderPayload, Viewport
from airfieldwatch.services.data_store import AircraftDataStore, StoreConfig
from airfieldwatch.services.event_bus import EventBus
from airfieldwatch.services.notices import (
    HttpNoticeSource,
    NoticeConfig,
    NoticeCorrelator,
    NoticeSource,
    StaticNoticeSource,
)
from airfieldwatch.services.runways import DEFAULT_RUNWAYS, load_runways
from airfieldwatch.services.scheduler import PeriodicTask
from airfieldwatch.services.tracker import (
    AirportConfig,
    AirportTracker,
    TrackingUpdate,
    parse_position_sample,
)
from airfieldwatch.services.vector_optimizer import OptimizeOptions, OptimizerConfig, VectorOptimizer
from airfieldwatch.services.vector_store import SpatialVectorStore, VectorDataUnavailable

logger = logging.getLogger("airfieldwatch.engine")


class TrackingEngine:
    """Single-airport tracking engine."""

    def __init__(
        self,
        airport: AirportConfig,
        runways: Sequence[Runway] = DEFAULT_RUNWAYS,
        *,
        bus: EventBus | None = None,
        store: AircraftDataStore | None = None,
        notices: NoticeCorrelator | None = None,
        vector_store: SpatialVectorStore | None = None,
        optimizer: VectorOptimizer | None = None,
        vector_sources: Mapping[ElementCategory, str | Path] | None = None,
        history_size: int = 1000,
        radar_range_nm: float = 10.0,
        cleanup_interval_s: float = 3600.0,
    ) -> None:
        self.airport = airport
        self.bus = bus or EventBus()
        self.store = store
        self.notices = notices
        self.tracker = AirportTracker(
            airport, runways, self.bus, notices=notices, history_size=history_size
        )
        self.vector_store = vector_store or SpatialVectorStore(self.bus)
        self.optimizer = optimizer or VectorOptimizer()
        self.vector_sources = dict(vector_sources or {})
        self.radar_range_nm = radar_range_nm

        self.timers: list[PeriodicTask] = []
        if notices is not None and notices.config.enabled:
            self.timers.append(
                PeriodicTask("notice-sweep", notices.config.sweep_interval_s, self.sweep_notices)
            )
        if store is not None:
            self.timers.append(PeriodicTask("retention", cleanup_interval_s, self.run_retention))

        self._pending: set[asyncio.Task] = set()
        self._chains: dict[Optional[str], asyncio.Task] = {}
        self.persistence_failures = 0
        self.vectors_loaded = False

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    # ---------------------------------------------------------------- lifecycle

    async def start(self) -> None:
        """Load vectors, open the store and start the background timers."""

        if self.vector_sources:
            try:
                await asyncio.to_thread(self.vector_store.load_all, self.vector_sources)
                self.vectors_loaded = True
            except VectorDataUnavailable as exc:
                logger.error("Continuing without airport vectors: %s", exc)

        if self.store is not None:
            result = await asyncio.to_thread(self.store.initialize)
            if not result.ok:
                logger.warning("Aircraft data store degraded: %s", result.detail)

        for timer in self.timers:
            timer.start()
        logger.info(
            "Tracking engine started for %s (%s runways)", self.airport.code, len(self.tracker.runways)
        )

    async def stop(self) -> None:
        for timer in self.timers:
            await timer.stop()
        await self.drain()
        if self.store is not None:
            await asyncio.to_thread(self.store.close)
        logger.info("Tracking engine stopped")

    async def drain(self) -> None:
        """Wait for scheduled persistence writes to finish."""

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ---------------------------------------------------------------- updates

    async def ingest(self, raw: PositionSample | Mapping[str, Any]) -> Result[TrackingUpdate]:
        """Validate and apply one position sample.

        Invalid samples are counted and rejected without touching any
        aircraft state.
        """

        parsed = parse_position_sample(raw)
        if not parsed.ok:
            self.tracker.reject(parsed.detail or "invalid sample")
            return Result.invalid(parsed.detail or "invalid sample")

        update = await self.tracker.process_update(parsed.value)
        if self.store is not None:
            self._persist_update(update)
        return Result.success(update)

    def _persist_update(self, update: TrackingUpdate) -> None:
        store = self.store
        key = update.sample.icao24
        if update.aircraft is not None:
            self._schedule(
                key,
                store.record_position,
                update.sample,
                distance_m=update.aircraft.distance_m,
                phase=update.aircraft.phase.value,
            )
        if update.transition is not None:
            transition = update.transition
            self._schedule(
                key,
                store.store_event,
                transition.icao24,
                transition.event_type.value,
                transition.model_dump(mode="json"),
                timestamp=transition.timestamp,
            )
        for alert in update.alerts:
            self._schedule(
                key,
                store.store_event,
                alert.icao24,
                alert.kind,
                alert.model_dump(mode="json"),
                timestamp=alert.timestamp,
            )

    def _schedule(
        self, key: Optional[str], func: Callable[..., Result], *args: Any, **kwargs: Any
    ) -> None:
        """Queue a store write behind the previous pending write for ``key``.

        Writes for one aircraft run one at a time in arrival order; writes
        for different aircraft run concurrently.
        """

        task = asyncio.create_task(self._write_after(self._chains.get(key), func, args, kwargs))
        self._chains[key] = task
        self._pending.add(task)
        task.add_done_callback(functools.partial(self._persist_done, key))

    @staticmethod
    async def _write_after(
        previous: Optional[asyncio.Task],
        func: Callable[..., Result],
        args: tuple,
        kwargs: dict,
    ) -> Result:
        if previous is not None:
            await asyncio.wait({previous})
        return await asyncio.to_thread(func, *args, **kwargs)

    def _persist_done(self, key: Optional[str], task: asyncio.Task) -> None:
        self._pending.discard(task)
        if self._chains.get(key) is task:
            del self._chains[key]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.persistence_failures += 1
            logger.warning("Persistence write failed: %s", exc)
            return
        result = task.result()
        if isinstance(result, Result) and not result.ok:
            self.persistence_failures += 1
            logger.debug("Persistence write degraded: %s", result.detail)

    # ---------------------------------------------------------------- timers

    async def sweep_notices(self) -> list[NewNoticeEvent]:
        if self.notices is None:
            return []
        events = await self.notices.sweep_new_notices()
        for event in events:
            self.bus.publish(event)
            if self.store is not None:
                self._schedule(
                    None,
                    self.store.store_event,
                    None,
                    event.kind,
                    event.model_dump(mode="json"),
                    timestamp=event.timestamp,
                    source="notices",
                    subject=self.airport.code,
                )
        return events

    async def run_retention(self) -> dict[str, int]:
        if self.store is None:
            return {}
        result = await asyncio.to_thread(self.store.run_retention_sweep)
        return result.unwrap_or({})

    # ---------------------------------------------------------------- queries

    def subscribe(self, event_type, callback) -> Callable[[], None]:
        return self.bus.subscribe(event_type, callback)

    def list_tracked_aircraft(self) -> list[TrackedAircraft]:
        return self.tracker.list_tracked()

    def get_runways(self) -> list[Runway]:
        return list(self.tracker.runways)

    def determine_runway(
        self, lat: float, lon: float, heading: Optional[float] = None
    ) -> Optional[RunwayAssignment]:
        return self.tracker.determine_runway(lat, lon, heading)

    def get_aircraft_history(
        self, icao24: Optional[str] = None, hours: float = 24
    ) -> list[PositionHistoryEntry]:
        """Stored history, falling back to the in-memory buffer."""

        if self.store is not None:
            result = self.store.get_history(icao24, hours)
            if result.ok:
                return result.value
            logger.debug("History falling back to memory: %s", result.detail)
        return self.tracker.recent_history(icao24, hours)

    def get_stats(self) -> TrackerStats:
        return self.tracker.get_stats()

    def get_store_stats(self) -> Optional[StoreStats]:
        return self.store.get_stats() if self.store is not None else None

    def get_render_payload(
        self, viewport: Viewport, options: OptimizeOptions | None = None
    ) -> RenderPayload:
        """Optimized airport polygons plus aircraft blips for ``viewport``."""

        polygons, stats = self.optimizer.optimize_for_viewport(
            self.vector_store.elements(), viewport, options
        )
        blips: list[RadarBlip] = []
        for aircraft in self.tracker.list_tracked():
            position = to_radar_position(aircraft.sample, viewport.center, viewport.range_nm)
            if not position.in_range:
                continue
            blips.append(
                RadarBlip(
                    icao24=aircraft.icao24,
                    callsign=aircraft.sample.callsign,
                    phase=aircraft.phase.value,
                    x=position.x,
                    y=position.y,
                    distance_nm=position.distance_nm,
                    bearing_deg=position.bearing_deg,
                    altitude_ft=aircraft.sample.altitude_ft,
                )
            )
        return RenderPayload(
            center_lat=viewport.center.lat,
            center_lon=viewport.center.lon,
            range_nm=viewport.range_nm,
            polygons=polygons,
            stats=stats,
            aircraft=blips,
        )

    def default_viewport(self) -> Viewport:
        return Viewport(center=GeoPoint(self.airport.lat, self.airport.lon), range_nm=self.radar_range_nm)


def _notice_source(config: Settings) -> NoticeSource:
    if config.notice_source_url:
        return HttpNoticeSource(config.notice_source_url, timeout=config.notice_timeout)
    return StaticNoticeSource()


def build_engine(config: Settings) -> TrackingEngine:
    """Assemble an engine from settings."""

    airport = AirportConfig(
        code=config.airport_code,
        name=config.airport_name,
        lat=config.airport_lat,
        lon=config.airport_lon,
        approach_radius_m=config.approach_radius_m,
        runway_threshold_m=config.runway_threshold_m,
    )
    runways = load_runways(config.runways_file) if config.runways_file else DEFAULT_RUNWAYS

    notices = NoticeCorrelator(
        _notice_source(config),
        airport.reference,
        NoticeConfig(
            search_radius_km=config.notice_search_radius_km,
            airport_radius_km=config.notice_airport_radius_km,
            priority_threshold=config.notice_priority_threshold,
            sweep_interval_s=config.notice_sweep_interval_s,
            check_on_approach=config.notice_check_on_approach,
            check_on_landing=config.notice_check_on_landing,
            check_on_takeoff=config.notice_check_on_takeoff,
        ),
    )
    store = AircraftDataStore(
        StoreConfig(
            tracking_url=config.tracking_db_url,
            registry_url=config.registry_db_url,
            retention_days=config.retention_days,
            cleanup_interval_s=config.cleanup_interval_s,
            flight_timeout_minutes=config.flight_timeout_minutes,
            search_limit=config.registry_search_limit,
        )
    )
    optimizer = VectorOptimizer(
        OptimizerConfig(
            simplification_tolerance=config.simplification_tolerance,
            max_polygon_points=config.max_polygon_points,
            enable_caching=config.vector_cache_enabled,
            cache_ttl_s=config.vector_cache_ttl_s,
        )
    )
    data_dir = Path(config.vector_data_path)
    vector_sources = {
        ElementCategory.BUILDING: data_dir / config.buildings_file,
        ElementCategory.MARKING: data_dir / config.markings_file,
        ElementCategory.LAYOUT: data_dir / config.layout_file,
    }

    return TrackingEngine(
        airport,
        runways,
        store=store,
        notices=notices,
        optimizer=optimizer,
        vector_sources=vector_sources,
        history_size=config.history_size,
        radar_range_nm=config.radar_default_range_nm,
        cleanup_interval_s=config.cleanup_interval_s,
    )


__all__ = ["TrackingEngine", "build_engine"]
