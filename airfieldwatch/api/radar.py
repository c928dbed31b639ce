"""Runway and radar rendering endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from airfieldwatch.api.deps import get_engine
from airfieldwatch.geodesy import GeoPoint
from airfieldwatch.models import RenderPayload, Runway, RunwayAssignment, Viewport
from airfieldwatch.services.engine import TrackingEngine
from airfieldwatch.services.vector_optimizer import OptimizeOptions

router = APIRouter(prefix="/api/v1", tags=["radar"])


@router.get("/runways", response_model=list[Runway], summary="Configured runways")
def list_runways(engine: TrackingEngine = Depends(get_engine)) -> list[Runway]:
    return engine.get_runways()


@router.get(
    "/runways/determine",
    response_model=Optional[RunwayAssignment],
    summary="Best runway for a position and heading",
)
def determine_runway(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    heading: Optional[float] = Query(default=None, ge=0, le=360),
    engine: TrackingEngine = Depends(get_engine),
) -> Optional[RunwayAssignment]:
    return engine.determine_runway(lat, lon, heading)


@router.get(
    "/radar/payload",
    response_model=RenderPayload,
    summary="Optimized airport geometry and aircraft for a viewport",
)
def radar_payload(
    lat: Optional[float] = Query(default=None, ge=-90, le=90),
    lon: Optional[float] = Query(default=None, ge=-180, le=180),
    range_nm: Optional[float] = Query(default=None, gt=0, le=250),
    tolerance: Optional[float] = Query(default=None, ge=0),
    max_points: Optional[int] = Query(default=None, ge=3),
    engine: TrackingEngine = Depends(get_engine),
) -> RenderPayload:
    viewport = engine.default_viewport()
    if lat is not None and lon is not None:
        viewport = Viewport(center=GeoPoint(lat, lon), range_nm=viewport.range_nm)
    if range_nm is not None:
        viewport = Viewport(center=viewport.center, range_nm=range_nm)

    return engine.get_render_payload(
        viewport, OptimizeOptions(tolerance=tolerance, max_points=max_points)
    )
