"""Airspace notice (NOTAM) records as delivered by a notice source."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Ordered lowest to highest; unknown priorities rank with "low".
PRIORITY_ORDER: dict[str, int] = {"low": 0, "medium": 1, "high": 2, "critical": 3}


def priority_rank(priority: Optional[str]) -> int:
    if not priority:
        return 0
    return PRIORITY_ORDER.get(priority.lower(), 0)


class NoticePosition(BaseModel):
    lat: float
    lon: float

    model_config = ConfigDict(frozen=True)


class Notice(BaseModel):
    """An already-parsed, time-bounded airspace advisory."""

    id: str
    number: Optional[str] = Field(default=None, description="Published notice number")
    title: Optional[str] = None
    category: str = Field(default="other", description="runway, approach, weather, ...")
    priority: str = Field(default="low", description="low, medium, high or critical")
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    position: Optional[NoticePosition] = None
    description: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("category", "priority")
    @classmethod
    def _lowercase(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("start_time", "end_time")
    @classmethod
    def _aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def is_active(self, now: datetime) -> bool:
        """Return True when ``now`` falls inside the validity window."""

        if self.start_time is not None and now < self.start_time:
            return False
        if self.end_time is not None and now > self.end_time:
            return False
        return True


__all__ = ["Notice", "NoticePosition", "PRIORITY_ORDER", "priority_rank"]
