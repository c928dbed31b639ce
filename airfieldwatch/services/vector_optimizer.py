"""Polygon simplification and viewport culling for radar rendering."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Hashable, Iterable, Optional, Sequence, Union

from airfieldwatch.geodesy import GeoPoint, HasLatLon
from airfieldwatch.models.vectors import (
    BoundingBox,
    OptimizedPolygon,
    RenderPolygon,
    RenderStats,
    SpatialElement,
    Viewport,
    reduction_percent,
)

logger = logging.getLogger("airfieldwatch.vector_optimizer")

NM_PER_DEGREE = 60.0

CATEGORY_COLORS: dict[str, str] = {
    "building": "#808080",
    "marking": "#FFFFFF",
    "layout": "#00FF00",
}
DEFAULT_COLOR = "#808080"
DEFAULT_OPACITY = 0.2


@dataclass
class OptimizerConfig:
    """Runtime configuration for the optimizer."""

    simplification_tolerance: float = 0.0001  # degrees
    max_polygon_points: int = 100
    enable_caching: bool = True
    cache_ttl_s: float = 300.0


@dataclass(frozen=True)
class OptimizeOptions:
    tolerance: Optional[float] = None
    max_points: Optional[int] = None


def perpendicular_distance(point: HasLatLon, start: HasLatLon, end: HasLatLon) -> float:
    """Planar distance in degrees from ``point`` to the segment ``start``-``end``."""

    a = point.lat - start.lat
    b = point.lon - start.lon
    c = end.lat - start.lat
    d = end.lon - start.lon

    length_sq = c * c + d * d
    if length_sq == 0:
        return math.sqrt(a * a + b * b)

    param = (a * c + b * d) / length_sq
    if param < 0:
        nearest_lat, nearest_lon = start.lat, start.lon
    elif param > 1:
        nearest_lat, nearest_lon = end.lat, end.lon
    else:
        nearest_lat, nearest_lon = start.lat + param * c, start.lon + param * d

    dx = point.lat - nearest_lat
    dy = point.lon - nearest_lon
    return math.sqrt(dx * dx + dy * dy)


def simplify(ring: Sequence[GeoPoint], tolerance: float) -> list[GeoPoint]:
    """Douglas-Peucker simplification.

    The farthest point from the chord splits the ring while it lies more than
    ``tolerance`` away; otherwise the span collapses to its endpoints. Rings of
    two points or fewer, and a non-positive tolerance, are returned unchanged.
    An explicit stack replaces recursion so long rings cannot exhaust it.
    """

    points = list(ring)
    if len(points) <= 2 or tolerance <= 0:
        return points

    keep = [False] * len(points)
    keep[0] = keep[-1] = True
    stack = [(0, len(points) - 1)]
    while stack:
        first, last = stack.pop()
        max_distance = 0.0
        index = first
        for i in range(first + 1, last):
            distance = perpendicular_distance(points[i], points[first], points[last])
            if distance > max_distance:
                max_distance = distance
                index = i
        if max_distance > tolerance:
            keep[index] = True
            stack.append((first, index))
            stack.append((index, last))

    return [point for point, kept in zip(points, keep) if kept]


def centroid(points: Sequence[HasLatLon]) -> Optional[GeoPoint]:
    if not points:
        return None
    return GeoPoint(
        sum(p.lat for p in points) / len(points),
        sum(p.lon for p in points) / len(points),
    )


def viewport_bounds(viewport: Viewport) -> BoundingBox:
    """Square degree box approximating the viewport (1 degree ~ 60 nm)."""

    return BoundingBox.around(viewport.center, viewport.range_nm / NM_PER_DEGREE)


def is_in_view(ring: Sequence[HasLatLon], viewport: Viewport) -> bool:
    """Bounding-box overlap with the viewport square; over-approximates."""

    bounds = BoundingBox.from_points(ring)
    if bounds is None:
        return False
    return bounds.intersects(viewport_bounds(viewport))


PolygonInput = Union[SpatialElement, Sequence[GeoPoint]]


class VectorOptimizer:
    """Simplify, cull and cache polygons for radar display."""

    def __init__(
        self,
        config: OptimizerConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or OptimizerConfig()
        self.clock = clock
        self._cache: dict[Hashable, tuple[float, OptimizedPolygon]] = {}
        self.cache_hits = 0
        self.cache_misses = 0
        logger.info(
            "Vector optimizer initialized (tolerance=%s, max_points=%s, caching=%s)",
            self.config.simplification_tolerance,
            self.config.max_polygon_points,
            self.config.enable_caching,
        )

    def _cache_key(
        self, ring: Sequence[GeoPoint], identity: Optional[str], tolerance: float, max_points: int
    ) -> Hashable:
        # The point count alone would collide for distinct rings of equal size.
        return (identity or hash(tuple(ring)), len(ring), tolerance, max_points)

    def optimize(
        self,
        ring: Sequence[GeoPoint],
        options: OptimizeOptions | None = None,
        *,
        identity: Optional[str] = None,
    ) -> OptimizedPolygon:
        """Simplify ``ring`` when it exceeds the point budget and describe it."""

        options = options or OptimizeOptions()
        tolerance = (
            options.tolerance
            if options.tolerance is not None
            else self.config.simplification_tolerance
        )
        max_points = options.max_points or self.config.max_polygon_points
        ring = tuple(ring)

        key = None
        if self.config.enable_caching:
            key = self._cache_key(ring, identity, tolerance, max_points)
            cached = self._cache.get(key)
            if cached is not None and self.clock() - cached[0] < self.config.cache_ttl_s:
                self.cache_hits += 1
                return cached[1]
            self.cache_misses += 1

        points = simplify(ring, tolerance) if len(ring) > max_points else list(ring)
        result = OptimizedPolygon(
            points=tuple(points),
            bounds=BoundingBox.from_points(points),
            center=centroid(points),
            original_point_count=len(ring),
            optimized_point_count=len(points),
            reduction=reduction_percent(len(ring), len(points)),
        )

        if key is not None:
            self._cache[key] = (self.clock(), result)
        return result

    def optimize_for_viewport(
        self,
        polygons: Iterable[PolygonInput],
        viewport: Viewport,
        options: OptimizeOptions | None = None,
    ) -> tuple[list[RenderPolygon], RenderStats]:
        """Cull polygons outside ``viewport`` and optimize the rest."""

        rendered: list[RenderPolygon] = []
        total = filtered = 0
        for index, polygon in enumerate(polygons):
            total += 1
            if isinstance(polygon, SpatialElement):
                ring, element_id, category = polygon.ring, polygon.id, polygon.category.value
            else:
                ring, element_id, category = tuple(polygon), f"polygon_{index + 1}", "unknown"

            if not is_in_view(ring, viewport):
                filtered += 1
                continue

            rendered.append(
                RenderPolygon(
                    id=element_id,
                    category=category,
                    color=CATEGORY_COLORS.get(category, DEFAULT_COLOR),
                    opacity=DEFAULT_OPACITY,
                    polygon=self.optimize(
                        ring,
                        options,
                        identity=element_id if isinstance(polygon, SpatialElement) else None,
                    ),
                )
            )

        stats = RenderStats(total=total, optimized=len(rendered), filtered=filtered)
        logger.debug(
            "Polygons optimized for viewport: total=%s optimized=%s filtered=%s range=%s",
            stats.total,
            stats.optimized,
            stats.filtered,
            viewport.range_nm,
        )
        return rendered, stats

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("Vector cache cleared")

    def cache_stats(self) -> dict:
        stamps = [stamp for stamp, _ in self._cache.values()]
        return {
            "size": len(self._cache),
            "hits": self.cache_hits,
            "misses": self.cache_misses,
            "oldest_entry": min(stamps) if stamps else None,
            "newest_entry": max(stamps) if stamps else None,
        }


__all__ = [
    "OptimizeOptions",
    "OptimizerConfig",
    "VectorOptimizer",
    "centroid",
    "is_in_view",
    "perpendicular_distance",
    "simplify",
    "viewport_bounds",
]
