"""Airport vector data parsing and spatial queries.

Sources are plain text files holding one coordinate pair per line in the
form ``55.51330+-4.59330``. The longitude is written as its magnitude and
is always west, so it is negated on parse. A line holding ``-1`` closes the
current polygon; blank lines and lines starting with ``{`` or ``$`` are
ignored.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Mapping, Optional

from airfieldwatch.geodesy import GeoPoint, HasLatLon, distance_km
from airfieldwatch.models.events import VectorLoadErrorEvent
from airfieldwatch.models.vectors import (
    BoundingBox,
    ElementCategory,
    SpatialElement,
    VectorStoreStats,
)
from airfieldwatch.services.event_bus import EventBus

logger = logging.getLogger("airfieldwatch.vector_store")

POLYGON_TERMINATOR = "-1"
_COORDINATE_RE = re.compile(r"^(?P<lat>\d+\.\d+)\+-(?P<lon>\d+\.\d+)$")

ALL_CATEGORIES: tuple[ElementCategory, ...] = tuple(ElementCategory)


class VectorDataUnavailable(RuntimeError):
    """Raised when none of the configured vector sources could be read."""


def parse_coordinate_line(line: str) -> Optional[GeoPoint]:
    match = _COORDINATE_RE.match(line)
    if not match:
        return None
    return GeoPoint(float(match.group("lat")), -float(match.group("lon")))


def format_coordinate(point: HasLatLon, precision: int = 5) -> str:
    """Inverse of :func:`parse_coordinate_line` for western longitudes."""

    return f"{point.lat:.{precision}f}+-{abs(point.lon):.{precision}f}"


def dump_rings(elements: Iterable[SpatialElement], precision: int = 5) -> str:
    """Serialize elements back to the source text format."""

    lines: list[str] = []
    for element in elements:
        lines.extend(format_coordinate(point, precision) for point in element.ring)
        lines.append(POLYGON_TERMINATOR)
    return "\n".join(lines) + ("\n" if lines else "")


class SpatialVectorStore:
    """Hold buildings, markings and layout polygons for one airport."""

    def __init__(self, bus: EventBus | None = None) -> None:
        self.bus = bus
        self._collections: dict[ElementCategory, list[SpatialElement]] = {
            category: [] for category in ALL_CATEGORIES
        }
        self._index: dict[str, SpatialElement] = {}
        self._sources: dict[ElementCategory, Path] = {}
        self.stats = VectorStoreStats()

    # ---------------------------------------------------------------- parsing

    def parse_lines(self, lines: Iterable[str], category: ElementCategory) -> list[SpatialElement]:
        """Accumulate ring points until each terminator; empty rings are dropped."""

        elements: list[SpatialElement] = []
        ring: list[GeoPoint] = []
        prefix = category.value

        def close_ring() -> None:
            if ring:
                elements.append(
                    SpatialElement.build(f"{prefix}_{len(elements) + 1}", category, ring)
                )
                ring.clear()

        for line in lines:
            trimmed = line.strip()
            if not trimmed or trimmed.startswith("{") or trimmed.startswith("$"):
                continue
            if trimmed == POLYGON_TERMINATOR:
                close_ring()
                continue

            point = parse_coordinate_line(trimmed)
            if point is None:
                self.stats.parse_errors += 1
                logger.debug("Skipping malformed coordinate line: %r", trimmed)
                continue
            ring.append(point)

        close_ring()
        return elements

    def load(self, source: str | Path, category: ElementCategory) -> list[SpatialElement]:
        """Load one source file, replacing that category's collection.

        Raises ``OSError`` when the file cannot be read; the previous
        collection for the category is kept in that case.
        """

        path = Path(source)
        with path.open("r", encoding="utf-8") as handle:
            elements = self.parse_lines(handle, category)

        self._replace(category, elements)
        self._sources[category] = path
        self.stats.sources[category.collection] = str(path)
        self.stats.last_update = datetime.now(tz=timezone.utc).isoformat()
        logger.info("Loaded %s %s from %s", len(elements), category.collection, path)
        return elements

    def load_all(self, sources: Mapping[ElementCategory, str | Path]) -> VectorStoreStats:
        """Load every configured source, tolerating individual failures.

        A source that cannot be read publishes a load error event. If no
        source loads at all, :class:`VectorDataUnavailable` is raised.
        """

        loaded = 0
        for category, source in sources.items():
            try:
                self.load(source, category)
                loaded += 1
            except (OSError, UnicodeDecodeError) as exc:
                self.stats.load_errors += 1
                logger.error("Failed to load %s vectors from %s: %s", category.collection, source, exc)
                if self.bus is not None:
                    self.bus.publish(
                        VectorLoadErrorEvent(
                            source=str(source), category=category.value, error=str(exc)
                        )
                    )

        if sources and loaded == 0:
            raise VectorDataUnavailable("No airport vector sources could be loaded")

        logger.info(
            "Airport vector data loaded: buildings=%s markings=%s layout=%s",
            self.stats.buildings,
            self.stats.markings,
            self.stats.layout,
        )
        return self.stats

    def reload(self) -> VectorStoreStats:
        logger.info("Reloading airport vector data")
        return self.load_all(dict(self._sources))

    def _replace(self, category: ElementCategory, elements: list[SpatialElement]) -> None:
        for old in self._collections[category]:
            self._index.pop(old.id, None)
        for element in elements:
            self._index[element.id] = element
        # Readers iterate whichever list object they fetched.
        self._collections[category] = elements
        setattr(self.stats, category.collection, len(elements))

    # ---------------------------------------------------------------- queries

    def elements(self, categories: Iterable[ElementCategory] = ALL_CATEGORIES) -> list[SpatialElement]:
        result: list[SpatialElement] = []
        for category in categories:
            result.extend(self._collections[category])
        return result

    def get_element(self, element_id: str) -> Optional[SpatialElement]:
        return self._index.get(element_id)

    def query_bounds(
        self, box: BoundingBox, categories: Iterable[ElementCategory] = ALL_CATEGORIES
    ) -> list[SpatialElement]:
        """Elements whose bounding box overlaps ``box`` (edges inclusive)."""

        return [element for element in self.elements(categories) if element.bounds.intersects(box)]

    def query_radius(
        self,
        center: HasLatLon,
        radius_km: float,
        categories: Iterable[ElementCategory] = ALL_CATEGORIES,
    ) -> list[SpatialElement]:
        """Elements whose bounding-box centre lies within ``radius_km``."""

        return [
            element
            for element in self.elements(categories)
            if distance_km(center, element.bounds.center) <= radius_km
        ]

    def airport_bounds(self) -> Optional[BoundingBox]:
        bounds: Optional[BoundingBox] = None
        for element in self.elements():
            bounds = element.bounds if bounds is None else bounds.union(element.bounds)
        return bounds

    def get_stats(self) -> dict:
        bounds = self.airport_bounds()
        return {
            "buildings": self.stats.buildings,
            "markings": self.stats.markings,
            "layout": self.stats.layout,
            "total_elements": self.stats.total_elements,
            "parse_errors": self.stats.parse_errors,
            "load_errors": self.stats.load_errors,
            "last_update": self.stats.last_update,
            "sources": dict(self.stats.sources),
            "index_size": len(self._index),
            "airport_bounds": None
            if bounds is None
            else {
                "min_lat": bounds.min_lat,
                "max_lat": bounds.max_lat,
                "min_lon": bounds.min_lon,
                "max_lon": bounds.max_lon,
            },
        }


__all__ = [
    "ALL_CATEGORIES",
    "SpatialVectorStore",
    "VectorDataUnavailable",
    "dump_rings",
    "format_coordinate",
    "parse_coordinate_line",
]
