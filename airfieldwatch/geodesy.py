"""Great-circle helpers shared by tracking, vector and radar code.

All functions are pure. Coordinates outside ``[-90, 90]`` / ``[-180, 180]``
or NaN inputs produce NaN outputs; callers validate before invoking.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Protocol

EARTH_RADIUS_M = 6_371_000.0
KM_PER_NM = 1.852


class HasLatLon(Protocol):
    lat: float
    lon: float


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float


@dataclass(frozen=True)
class RadarPosition:
    """Normalized display coordinate on a square ``[0, 100]`` radar viewport."""

    x: float
    y: float
    distance_nm: float
    bearing_deg: float

    @property
    def in_range(self) -> bool:
        return 0.0 <= self.x <= 100.0 and 0.0 <= self.y <= 100.0


def _valid(point: HasLatLon) -> bool:
    # NaN fails both comparisons.
    return -90.0 <= point.lat <= 90.0 and -180.0 <= point.lon <= 180.0


def distance_meters(p1: HasLatLon, p2: HasLatLon) -> float:
    """Haversine distance in meters using the mean Earth radius."""

    if not (_valid(p1) and _valid(p2)):
        return math.nan

    lat1_r, lat2_r = math.radians(p1.lat), math.radians(p2.lat)
    dlat = lat2_r - lat1_r
    dlon = math.radians(p2.lon - p1.lon)

    a = math.sin(dlat / 2.0) ** 2 + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlon / 2.0) ** 2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def distance_km(p1: HasLatLon, p2: HasLatLon) -> float:
    return distance_meters(p1, p2) / 1000.0


def bearing_degrees(p1: HasLatLon, p2: HasLatLon) -> float:
    """Initial bearing from ``p1`` to ``p2`` normalized to ``[0, 360)``."""

    if not (_valid(p1) and _valid(p2)):
        return math.nan

    lat1_r, lat2_r = math.radians(p1.lat), math.radians(p2.lat)
    dlon = math.radians(p2.lon - p1.lon)

    y = math.sin(dlon) * math.cos(lat2_r)
    x = math.cos(lat1_r) * math.sin(lat2_r) - math.sin(lat1_r) * math.cos(lat2_r) * math.cos(dlon)
    bearing = math.degrees(math.atan2(y, x)) % 360.0
    # -0.0 % 360 and tiny negatives can round up to exactly 360.0
    return 0.0 if bearing >= 360.0 else bearing


def to_radar_position(point: HasLatLon, center: HasLatLon, range_nm: float) -> RadarPosition:
    """Project ``point`` onto a square radar display centred on ``center``.

    The display spans ``[0, 100]`` on both axes with ``range_nm`` at the
    edge. Bearing 0 is drawn at the top of the display.
    """

    distance_nm = distance_meters(center, point) / 1000.0 / KM_PER_NM
    bearing = bearing_degrees(center, point)
    angle = math.radians(bearing - 90.0)
    radius = (distance_nm / range_nm) * 50.0 if range_nm > 0 else math.nan

    return RadarPosition(
        x=50.0 + radius * math.cos(angle),
        y=50.0 + radius * math.sin(angle),
        distance_nm=distance_nm,
        bearing_deg=bearing,
    )


__all__ = [
    "EARTH_RADIUS_M",
    "KM_PER_NM",
    "GeoPoint",
    "HasLatLon",
    "RadarPosition",
    "bearing_degrees",
    "distance_km",
    "distance_meters",
    "to_radar_position",
]
