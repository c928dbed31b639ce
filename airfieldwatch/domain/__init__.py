"""Domain enumerations and result types."""

from .phases import NOTICE_PHASES, FlightPhase
from .results import ErrorKind, Result

__all__ = ["ErrorKind", "FlightPhase", "NOTICE_PHASES", "Result"]
