"""Tracked aircraft, history, events and position ingestion endpoints."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from airfieldwatch.api.deps import get_engine, raise_for_result
from airfieldwatch.models import (
    AircraftRegistration,
    EngineStatsResponse,
    IngestResponse,
    PositionHistoryEntry,
    StoredEvent,
    TrackedAircraft,
)
from airfieldwatch.services.engine import TrackingEngine

router = APIRouter(prefix="/api/v1", tags=["aircraft"])

logger = logging.getLogger("airfieldwatch.api.aircraft")


@router.get(
    "/aircraft",
    response_model=list[TrackedAircraft],
    summary="List aircraft tracked inside the approach radius",
)
def list_aircraft(engine: TrackingEngine = Depends(get_engine)) -> list[TrackedAircraft]:
    return engine.list_tracked_aircraft()


@router.get(
    "/aircraft/history",
    response_model=list[PositionHistoryEntry],
    summary="Recent classified positions",
)
def aircraft_history(
    icao24: Optional[str] = Query(default=None, description="Filter to one aircraft"),
    hours: float = Query(default=24, gt=0, le=24 * 30, description="Hours to look back"),
    engine: TrackingEngine = Depends(get_engine),
) -> list[PositionHistoryEntry]:
    return engine.get_aircraft_history(icao24, hours)


@router.get(
    "/aircraft/{icao24}/registration",
    response_model=AircraftRegistration,
    summary="Registry data for one airframe",
)
def aircraft_registration(
    icao24: str, engine: TrackingEngine = Depends(get_engine)
) -> AircraftRegistration:
    if engine.store is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="No data store")
    result = engine.store.get_registration(icao24)
    raise_for_result(result)
    if result.value is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Aircraft not registered")
    return result.value


@router.get(
    "/events/recent",
    response_model=list[StoredEvent],
    summary="Persisted transition and notice events",
)
def recent_events(
    hours: float = Query(default=24, gt=0, le=24 * 30),
    event_type: Optional[str] = Query(default=None),
    engine: TrackingEngine = Depends(get_engine),
) -> list[StoredEvent]:
    if engine.store is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="No data store")
    result = engine.store.get_recent_events(hours, event_type)
    raise_for_result(result)
    return result.value


@router.get("/stats", response_model=EngineStatsResponse, summary="Engine statistics")
def engine_stats(engine: TrackingEngine = Depends(get_engine)) -> EngineStatsResponse:
    return EngineStatsResponse(
        tracker=engine.get_stats(),
        store=engine.get_store_stats(),
        vectors=engine.vector_store.get_stats(),
        optimizer_cache=engine.optimizer.cache_stats(),
        pending_writes=engine.pending_writes,
        persistence_failures=engine.persistence_failures,
    )


@router.post(
    "/positions",
    response_model=IngestResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit one position sample",
)
async def ingest_position(
    payload: dict[str, Any] = Body(...),
    engine: TrackingEngine = Depends(get_engine),
) -> IngestResponse:
    result = await engine.ingest(payload)
    raise_for_result(result)
    update = result.value

    logger.debug("Accepted position for %s (tracked=%s)", update.sample.icao24, update.tracked)
    return IngestResponse(
        icao24=update.sample.icao24,
        tracked=update.tracked,
        evicted=update.evicted,
        phase=update.aircraft.phase.value if update.aircraft else None,
        transition_id=update.transition.id if update.transition else None,
        alerts=len(update.alerts),
    )
