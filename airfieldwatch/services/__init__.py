"""Service layer for airfieldwatch."""

from .data_store import AircraftDataStore, StoreConfig
from .engine import TrackingEngine, build_engine
from .event_bus import EventBus
from .notices import (
    HttpNoticeSource,
    NoticeConfig,
    NoticeCorrelator,
    NoticeSource,
    StaticNoticeSource,
)
from .phases import PhaseThresholds, classify_phase, emergency_label
from .runways import DEFAULT_RUNWAYS, determine_runway, load_runways, runway_score
from .scheduler import PeriodicTask
from .tracker import AirportConfig, AirportTracker, TrackingUpdate, parse_position_sample
from .vector_optimizer import OptimizeOptions, OptimizerConfig, VectorOptimizer, simplify
from .vector_store import SpatialVectorStore, VectorDataUnavailable

__all__ = [
    "AircraftDataStore",
    "AirportConfig",
    "AirportTracker",
    "DEFAULT_RUNWAYS",
    "EventBus",
    "HttpNoticeSource",
    "NoticeConfig",
    "NoticeCorrelator",
    "NoticeSource",
    "OptimizeOptions",
    "OptimizerConfig",
    "PeriodicTask",
    "PhaseThresholds",
    "SpatialVectorStore",
    "StaticNoticeSource",
    "StoreConfig",
    "TrackingEngine",
    "TrackingUpdate",
    "VectorDataUnavailable",
    "VectorOptimizer",
    "build_engine",
    "classify_phase",
    "determine_runway",
    "emergency_label",
    "load_runways",
    "parse_position_sample",
    "runway_score",
    "simplify",
]
