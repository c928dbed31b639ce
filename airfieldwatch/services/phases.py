"""Pure flight phase classification."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from airfieldwatch.domain import FlightPhase

EN_ROUTE_FLOOR_FT = 3000.0
LANDING_CEILING_FT = 500.0
TAKEOFF_CEILING_FT = 1000.0
APPROACH_MIN_SPEED_KT = 50.0
CLIMB_MIN_SPEED_KT = 100.0

EMERGENCY_SQUAWKS: dict[str, str] = {
    "7500": "hijack",
    "7600": "radio_failure",
    "7700": "emergency",
}


@dataclass(frozen=True)
class PhaseThresholds:
    """Airport-specific radii used by the classifier, in meters."""

    approach_radius_m: float = 50_000.0
    runway_threshold_m: float = 5_000.0


def classify_phase(
    altitude_ft: Optional[float],
    speed_kt: Optional[float],
    distance_m: float,
    thresholds: PhaseThresholds = PhaseThresholds(),
) -> FlightPhase:
    """Classify a single position report.

    Rules are evaluated in order and the first match wins: en route,
    approach, landing, takeoff, departure, otherwise unknown. A missing
    altitude cannot be classified; a missing speed counts as zero.
    """

    if altitude_ft is None:
        return FlightPhase.UNKNOWN
    speed = speed_kt or 0.0

    if altitude_ft > EN_ROUTE_FLOOR_FT:
        return FlightPhase.EN_ROUTE

    if (
        LANDING_CEILING_FT < altitude_ft <= EN_ROUTE_FLOOR_FT
        and distance_m <= thresholds.approach_radius_m
        and speed > APPROACH_MIN_SPEED_KT
    ):
        return FlightPhase.APPROACH

    if altitude_ft < LANDING_CEILING_FT and distance_m < thresholds.runway_threshold_m:
        return FlightPhase.LANDING

    if (
        altitude_ft < TAKEOFF_CEILING_FT
        and distance_m < thresholds.runway_threshold_m
        and speed > CLIMB_MIN_SPEED_KT
    ):
        return FlightPhase.TAKEOFF

    if (
        TAKEOFF_CEILING_FT < altitude_ft <= EN_ROUTE_FLOOR_FT
        and distance_m > thresholds.runway_threshold_m
        and speed > CLIMB_MIN_SPEED_KT
    ):
        return FlightPhase.DEPARTURE

    return FlightPhase.UNKNOWN


def emergency_label(squawk: Optional[str]) -> Optional[str]:
    """Return the emergency meaning of a transponder code, if any."""

    if not squawk:
        return None
    return EMERGENCY_SQUAWKS.get(squawk.strip())


__all__ = [
    "EMERGENCY_SQUAWKS",
    "PhaseThresholds",
    "classify_phase",
    "emergency_label",
]
