"""Pydantic models and geometry types for airfieldwatch."""

from .air_traffic import (
    AirportReference,
    PositionSample,
    Runway,
    RunwayAssignment,
    TrackedAircraft,
)
from .api import EngineStatsResponse, IngestResponse
from .events import (
    EngineEvent,
    NewNoticeEvent,
    NoticeAlertEvent,
    PhaseTransitionEvent,
    TransitionSnapshot,
    VectorLoadErrorEvent,
)
from .history import (
    AircraftRegistration,
    FlightSummary,
    PositionHistoryEntry,
    RegistrySearch,
    StoreStats,
    StoredEvent,
    TrackerStats,
)
from .notices import Notice, NoticePosition
from .vectors import (
    BoundingBox,
    ElementCategory,
    OptimizedPolygon,
    RenderPayload,
    SpatialElement,
    Viewport,
)

__all__ = [
    "AircraftRegistration",
    "AirportReference",
    "BoundingBox",
    "ElementCategory",
    "EngineEvent",
    "EngineStatsResponse",
    "FlightSummary",
    "IngestResponse",
    "NewNoticeEvent",
    "Notice",
    "NoticeAlertEvent",
    "NoticePosition",
    "OptimizedPolygon",
    "PhaseTransitionEvent",
    "PositionHistoryEntry",
    "PositionSample",
    "RegistrySearch",
    "RenderPayload",
    "Runway",
    "RunwayAssignment",
    "SpatialElement",
    "StoreStats",
    "StoredEvent",
    "TrackedAircraft",
    "TrackerStats",
    "TransitionSnapshot",
    "VectorLoadErrorEvent",
    "Viewport",
]
