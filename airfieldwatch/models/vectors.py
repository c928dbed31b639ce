"""Geometry types for airport vector data and radar render payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Sequence

from pydantic import BaseModel, Field

from airfieldwatch.geodesy import GeoPoint, HasLatLon


class ElementCategory(str, Enum):
    """Independent collections of airport vector elements."""

    BUILDING = "building"
    MARKING = "marking"
    LAYOUT = "layout"

    @property
    def collection(self) -> str:
        return {"building": "buildings", "marking": "markings", "layout": "layout"}[self.value]


@dataclass(frozen=True)
class BoundingBox:
    """Closed latitude/longitude rectangle."""

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    @classmethod
    def from_points(cls, points: Iterable[HasLatLon]) -> Optional["BoundingBox"]:
        points = list(points)
        if not points:
            return None
        lats = [p.lat for p in points]
        lons = [p.lon for p in points]
        return cls(min(lats), max(lats), min(lons), max(lons))

    @classmethod
    def around(cls, center: HasLatLon, half_size_deg: float) -> "BoundingBox":
        return cls(
            center.lat - half_size_deg,
            center.lat + half_size_deg,
            center.lon - half_size_deg,
            center.lon + half_size_deg,
        )

    @property
    def center(self) -> GeoPoint:
        return GeoPoint((self.min_lat + self.max_lat) / 2, (self.min_lon + self.max_lon) / 2)

    @property
    def width(self) -> float:
        return self.max_lon - self.min_lon

    @property
    def height(self) -> float:
        return self.max_lat - self.min_lat

    def intersects(self, other: "BoundingBox") -> bool:
        """Inclusive overlap test; touching edges count as intersecting."""

        return not (
            self.max_lat < other.min_lat
            or self.min_lat > other.max_lat
            or self.max_lon < other.min_lon
            or self.min_lon > other.max_lon
        )

    def union(self, other: "BoundingBox") -> "BoundingBox":
        return BoundingBox(
            min(self.min_lat, other.min_lat),
            max(self.max_lat, other.max_lat),
            min(self.min_lon, other.min_lon),
            max(self.max_lon, other.max_lon),
        )


@dataclass(frozen=True)
class SpatialElement:
    """One parsed airport polygon."""

    id: str
    category: ElementCategory
    ring: tuple[GeoPoint, ...]
    bounds: BoundingBox

    @classmethod
    def build(
        cls, element_id: str, category: ElementCategory, ring: Sequence[GeoPoint]
    ) -> "SpatialElement":
        ring = tuple(ring)
        bounds = BoundingBox.from_points(ring)
        if bounds is None:
            raise ValueError("Spatial elements need at least one point")
        return cls(id=element_id, category=category, ring=ring, bounds=bounds)


@dataclass(frozen=True)
class OptimizedPolygon:
    """Render-ready ring with reduction statistics."""

    points: tuple[GeoPoint, ...]
    bounds: Optional[BoundingBox]
    center: Optional[GeoPoint]
    original_point_count: int
    optimized_point_count: int
    reduction: str = "0.0%"


def reduction_percent(original: int, optimized: int) -> str:
    """Human-readable share of points removed, e.g. ``"42.0%"``."""

    if original <= 0:
        return "0.0%"
    return f"{(original - optimized) / original * 100:.1f}%"


@dataclass(frozen=True)
class RenderPolygon:
    id: str
    category: str
    color: str
    opacity: float
    polygon: OptimizedPolygon


@dataclass(frozen=True)
class RenderStats:
    total: int = 0
    optimized: int = 0
    filtered: int = 0


@dataclass(frozen=True)
class Viewport:
    """Radar view: centre point plus range to the display edge."""

    center: GeoPoint
    range_nm: float


@dataclass
class VectorStoreStats:
    buildings: int = 0
    markings: int = 0
    layout: int = 0
    parse_errors: int = 0
    load_errors: int = 0
    last_update: Optional[str] = None
    sources: dict[str, str] = field(default_factory=dict)

    @property
    def total_elements(self) -> int:
        return self.buildings + self.markings + self.layout


class RadarBlip(BaseModel):
    """Tracked aircraft projected onto the radar display."""

    icao24: str
    callsign: Optional[str] = None
    phase: str
    x: float
    y: float
    distance_nm: float
    bearing_deg: float
    altitude_ft: Optional[float] = None


class RenderPayload(BaseModel):
    """Optimized airport geometry and aircraft blips for one viewport."""

    center_lat: float
    center_lon: float
    range_nm: float
    polygons: list[RenderPolygon] = Field(default_factory=list)
    stats: RenderStats = Field(default_factory=RenderStats)
    aircraft: list[RadarBlip] = Field(default_factory=list)


__all__ = [
    "BoundingBox",
    "ElementCategory",
    "OptimizedPolygon",
    "RadarBlip",
    "RenderPayload",
    "RenderPolygon",
    "RenderStats",
    "SpatialElement",
    "VectorStoreStats",
    "Viewport",
    "reduction_percent",
]
