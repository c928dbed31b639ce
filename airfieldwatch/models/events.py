"""Typed events published by the tracking engine."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from airfieldwatch.domain import FlightPhase
from airfieldwatch.models.air_traffic import AirportReference
from airfieldwatch.models.notices import Notice


def _event_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class TransitionSnapshot(BaseModel):
    """Aircraft state captured at the moment of a phase change."""

    icao24: str
    callsign: Optional[str] = None
    registration: Optional[str] = None
    previous_phase: FlightPhase
    new_phase: FlightPhase
    runway_id: Optional[str] = None
    runway_name: Optional[str] = None
    lat: float
    lon: float
    altitude_ft: Optional[float] = None
    speed_kt: Optional[float] = None
    heading_deg: Optional[float] = None
    squawk: Optional[str] = None
    emergency: Optional[str] = None
    distance_m: float
    airport: AirportReference

    model_config = ConfigDict(frozen=True)


class PhaseTransitionEvent(BaseModel):
    """Raised once per phase change of a tracked aircraft."""

    kind: Literal["phase_transition"] = "phase_transition"
    id: str = Field(default_factory=_event_id)
    icao24: str
    event_type: FlightPhase = Field(..., description="The phase entered")
    timestamp: datetime = Field(default_factory=_utcnow)
    snapshot: TransitionSnapshot

    model_config = ConfigDict(frozen=True)


class NoticeAlertEvent(BaseModel):
    """A relevant airspace notice matched against a phase transition."""

    kind: Literal["notice_alert"] = "notice_alert"
    id: str = Field(default_factory=_event_id)
    icao24: str
    transition_id: str = Field(..., description="Id of the triggering transition event")
    operation: FlightPhase
    notice: Notice
    distance_km: float
    timestamp: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(frozen=True)


class NewNoticeEvent(BaseModel):
    """A notice affecting the airport seen for the first time by the sweep."""

    kind: Literal["notice_new"] = "notice_new"
    id: str = Field(default_factory=_event_id)
    notice: Notice
    distance_km: float
    airport: AirportReference
    timestamp: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(frozen=True)


class VectorLoadErrorEvent(BaseModel):
    """A vector data source could not be read."""

    kind: Literal["vector_load_error"] = "vector_load_error"
    id: str = Field(default_factory=_event_id)
    source: str
    category: str
    error: str
    timestamp: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(frozen=True)


EngineEvent = Annotated[
    Union[PhaseTransitionEvent, NoticeAlertEvent, NewNoticeEvent, VectorLoadErrorEvent],
    Field(discriminator="kind"),
]

__all__ = [
    "EngineEvent",
    "NewNoticeEvent",
    "NoticeAlertEvent",
    "PhaseTransitionEvent",
    "TransitionSnapshot",
    "VectorLoadErrorEvent",
]
