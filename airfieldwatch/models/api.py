"""Response models for the HTTP binding."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from .history import StoreStats, TrackerStats


class IngestResponse(BaseModel):
    icao24: str
    tracked: bool
    evicted: bool = False
    phase: Optional[str] = None
    transition_id: Optional[str] = None
    alerts: int = 0


class EngineStatsResponse(BaseModel):
    """Combined tracker, store and vector statistics."""

    tracker: TrackerStats
    store: Optional[StoreStats] = None
    vectors: dict[str, Any] = Field(default_factory=dict)
    optimizer_cache: dict[str, Any] = Field(default_factory=dict)
    pending_writes: int = 0
    persistence_failures: int = 0


__all__ = ["EngineStatsResponse", "IngestResponse"]
