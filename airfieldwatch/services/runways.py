"""Runway reference data and runway assignment scoring."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Optional, Sequence

from airfieldwatch.geodesy import GeoPoint, bearing_degrees, distance_meters
from airfieldwatch.models.air_traffic import Runway, RunwayAssignment

logger = logging.getLogger("airfieldwatch.runways")

DISTANCE_WEIGHT = 0.7
HEADING_WEIGHT = 0.3
HEADING_TOLERANCE_DEG = 45.0

DEFAULT_RUNWAYS: tuple[Runway, ...] = (
    Runway(
        id="12",
        name="Runway 12",
        heading=120,
        threshold_lat=55.5094,
        threshold_lon=-4.5867,
        length_m=2987,
    ),
    Runway(
        id="30",
        name="Runway 30",
        heading=300,
        threshold_lat=55.5094,
        threshold_lon=-4.5867,
        length_m=2987,
    ),
)


def load_runways(path: str | Path) -> list[Runway]:
    """Load runways from a JSON list, preserving file order.

    Each entry is ``{id, name, heading, threshold: {lat, lon}, length_m}``.
    """

    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    runways: list[Runway] = []
    for entry in raw:
        threshold = entry.get("threshold") or {}
        runways.append(
            Runway(
                id=str(entry["id"]),
                name=entry.get("name") or f"Runway {entry['id']}",
                heading=float(entry["heading"]),
                threshold_lat=float(threshold.get("lat", entry.get("threshold_lat"))),
                threshold_lon=float(threshold.get("lon", entry.get("threshold_lon"))),
                length_m=float(entry.get("length_m", 0.0)),
            )
        )
    logger.info("Loaded %s runways from %s", len(runways), path)
    return runways


def heading_difference(heading: float, bearing: float) -> float:
    """Smallest angle between two directions, in ``[0, 180]``."""

    diff = abs(heading - bearing) % 360.0
    return min(diff, 360.0 - diff)


def runway_score(distance_m: float, heading_diff: Optional[float], approach_radius_m: float) -> float:
    """Weighted alignment score; 1.0 is a perfect match.

    An unknown heading contributes nothing to the heading term.
    """

    distance_score = max(0.0, 1.0 - distance_m / approach_radius_m)
    heading_score = 0.0
    if heading_diff is not None:
        heading_score = max(0.0, 1.0 - heading_diff / HEADING_TOLERANCE_DEG)
    return DISTANCE_WEIGHT * distance_score + HEADING_WEIGHT * heading_score


def score_runways(
    lat: float,
    lon: float,
    heading: Optional[float],
    runways: Iterable[Runway],
    approach_radius_m: float,
) -> list[RunwayAssignment]:
    """Score every runway for the given position, in configuration order."""

    position = GeoPoint(lat, lon)
    scored: list[RunwayAssignment] = []
    for runway in runways:
        distance = distance_meters(position, runway)
        bearing = bearing_degrees(position, runway)
        diff = heading_difference(heading, bearing) if heading is not None else None
        scored.append(
            RunwayAssignment(
                runway_id=runway.id,
                runway_name=runway.name,
                distance_m=distance,
                bearing_deg=bearing,
                heading_diff_deg=diff if diff is not None else 180.0,
                score=runway_score(distance, diff, approach_radius_m),
            )
        )
    return scored


def determine_runway(
    lat: float,
    lon: float,
    heading: Optional[float],
    runways: Sequence[Runway],
    approach_radius_m: float,
) -> Optional[RunwayAssignment]:
    """Pick the highest-scoring runway; ties keep the first configured one."""

    best: Optional[RunwayAssignment] = None
    for candidate in score_runways(lat, lon, heading, runways, approach_radius_m):
        if candidate.score > (best.score if best else 0.0):
            best = candidate
    return best


__all__ = [
    "DEFAULT_RUNWAYS",
    "determine_runway",
    "heading_difference",
    "load_runways",
    "runway_score",
    "score_runways",
]
