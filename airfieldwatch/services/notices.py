"""Airspace notice sources and correlation with aircraft operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, Protocol

import httpx
from pydantic import ValidationError

from airfieldwatch.domain import FlightPhase
from airfieldwatch.geodesy import GeoPoint, HasLatLon, distance_km
from airfieldwatch.models.air_traffic import AirportReference
from airfieldwatch.models.events import (
    NewNoticeEvent,
    NoticeAlertEvent,
    PhaseTransitionEvent,
)
from airfieldwatch.models.notices import Notice, priority_rank

logger = logging.getLogger("airfieldwatch.notices")

APPROACH_CATEGORIES = frozenset({"runway", "approach", "landing", "airport", "navigation"})
TAKEOFF_CATEGORIES = frozenset({"runway", "takeoff", "airport", "navigation"})
AIRPORT_SWEEP_CATEGORIES = frozenset(
    {"runway", "approach", "landing", "takeoff", "airport", "navigation", "airspace"}
)


class NoticeSource(Protocol):
    """Anything that can list the currently published notices."""

    async def get_active(self) -> list[Notice]:
        ...


class StaticNoticeSource:
    """In-memory notice source, replaced wholesale by its owner."""

    def __init__(self, notices: Iterable[Notice] = ()) -> None:
        self._notices = list(notices)

    def replace(self, notices: Iterable[Notice]) -> None:
        self._notices = list(notices)

    async def get_active(self) -> list[Notice]:
        return list(self._notices)


class HttpNoticeSource:
    """Fetch already-parsed notices as a JSON list from an HTTP endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.transport = transport

    async def get_active(self) -> list[Notice]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(self.base_url)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning("Notice source returned HTTP %s: %s", exc.response.status_code, exc)
            return []
        except httpx.RequestError as exc:
            logger.warning("Notice source request failed: %s", exc)
            return []
        except ValueError as exc:
            logger.warning("Failed to parse notice source JSON: %s", exc)
            return []

        if isinstance(payload, dict):
            payload = payload.get("notices", []) or []

        notices: list[Notice] = []
        for entry in payload if isinstance(payload, list) else []:
            try:
                notices.append(Notice.model_validate(entry))
            except ValidationError as exc:
                logger.debug("Skipping malformed notice %r: %s", entry, exc)
        return notices


@dataclass
class NoticeConfig:
    """Runtime configuration for notice correlation."""

    enabled: bool = True
    search_radius_km: float = 50.0
    airport_radius_km: float = 50.0
    priority_threshold: str = "medium"
    sweep_interval_s: float = 300.0
    check_on_approach: bool = True
    check_on_landing: bool = True
    check_on_takeoff: bool = True


def relevant_categories(operation: FlightPhase) -> frozenset[str]:
    if operation in (FlightPhase.APPROACH, FlightPhase.LANDING):
        return APPROACH_CATEGORIES
    if operation == FlightPhase.TAKEOFF:
        return TAKEOFF_CATEGORIES
    return frozenset()


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class NoticeCorrelator:
    """Match airspace notices to phase transitions and sweep for new ones."""

    def __init__(
        self,
        source: NoticeSource,
        airport: AirportReference,
        config: NoticeConfig | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.source = source
        self.airport = airport
        self.config = config or NoticeConfig()
        self.clock = clock
        self.seen_ids: set[str] = set()
        self.queries = 0
        self.alerts = 0

    def should_check(self, operation: FlightPhase) -> bool:
        if not self.config.enabled:
            return False
        return {
            FlightPhase.APPROACH: self.config.check_on_approach,
            FlightPhase.LANDING: self.config.check_on_landing,
            FlightPhase.TAKEOFF: self.config.check_on_takeoff,
        }.get(operation, False)

    async def query_notices(
        self,
        radius_km: float,
        *,
        category: Optional[str] = None,
        min_priority: Optional[str] = None,
        position: Optional[HasLatLon] = None,
    ) -> list[tuple[Notice, float]]:
        """Return ``(notice, distance_km)`` pairs sorted by distance.

        Notices without a position are never returned. Source failures
        yield an empty list.
        """

        self.queries += 1
        center = position or GeoPoint(self.airport.lat, self.airport.lon)
        try:
            notices = await self.source.get_active()
        except Exception as exc:
            logger.warning("Notice source unavailable: %s", exc)
            return []

        threshold = priority_rank(min_priority) if min_priority else None
        matches: list[tuple[Notice, float]] = []
        for notice in notices:
            if notice.position is None:
                continue
            distance = distance_km(center, notice.position)
            if not distance <= radius_km:
                continue
            if category and category != "all" and notice.category != category:
                continue
            if threshold is not None and priority_rank(notice.priority) < threshold:
                continue
            matches.append((notice, distance))

        matches.sort(key=lambda item: item[1])
        logger.debug("Found %s notices within %.1f km", len(matches), radius_km)
        return matches

    async def alerts_for_transition(self, event: PhaseTransitionEvent) -> list[NoticeAlertEvent]:
        """Build one alert per relevant active notice near the aircraft."""

        operation = event.event_type
        if not self.should_check(operation):
            return []

        snapshot = event.snapshot
        nearby = await self.query_notices(
            self.config.search_radius_km,
            min_priority=self.config.priority_threshold,
            position=GeoPoint(snapshot.lat, snapshot.lon),
        )
        now = self.clock()
        categories = relevant_categories(operation)
        alerts = [
            NoticeAlertEvent(
                icao24=event.icao24,
                transition_id=event.id,
                operation=operation,
                notice=notice,
                distance_km=distance,
            )
            for notice, distance in nearby
            if notice.is_active(now) and notice.category in categories
        ]

        if alerts:
            self.alerts += 1
            logger.info(
                "Found %s relevant notices for %s %s", len(alerts), event.icao24, operation.value
            )
        return alerts

    def _mentions_airport(self, notice: Notice) -> bool:
        text = f"{notice.title or ''} {notice.description or ''}".lower()
        return self.airport.code.lower() in text or self.airport.name.lower() in text

    async def sweep_new_notices(self) -> list[NewNoticeEvent]:
        """Report active notices around the airport not seen on earlier sweeps."""

        if not self.config.enabled:
            return []

        nearby = await self.query_notices(
            self.config.airport_radius_km, min_priority=self.config.priority_threshold
        )
        now = self.clock()
        fresh: list[NewNoticeEvent] = []
        for notice, distance in nearby:
            if not notice.is_active(now):
                continue
            if notice.category not in AIRPORT_SWEEP_CATEGORIES and not self._mentions_airport(notice):
                continue
            if notice.id in self.seen_ids:
                continue
            self.seen_ids.add(notice.id)
            fresh.append(NewNoticeEvent(notice=notice, distance_km=distance, airport=self.airport))

        if fresh:
            logger.info("Found %s new notices affecting %s", len(fresh), self.airport.code)
        return fresh


__all__ = [
    "APPROACH_CATEGORIES",
    "HttpNoticeSource",
    "NoticeConfig",
    "NoticeCorrelator",
    "NoticeSource",
    "StaticNoticeSource",
    "TAKEOFF_CATEGORIES",
    "relevant_categories",
]
