"""Flight phase definitions used by the classification engine."""

from __future__ import annotations

from enum import Enum


class FlightPhase(str, Enum):
    """Closed set of flight phases an aircraft near the airport can be in."""

    UNKNOWN = "unknown"
    EN_ROUTE = "en_route"
    APPROACH = "approach"
    LANDING = "landing"
    TAKEOFF = "takeoff"
    DEPARTURE = "departure"


# Phases that can trigger airspace notice correlation.
NOTICE_PHASES: frozenset[FlightPhase] = frozenset(
    {FlightPhase.APPROACH, FlightPhase.LANDING, FlightPhase.TAKEOFF}
)

__all__ = ["FlightPhase", "NOTICE_PHASES"]
