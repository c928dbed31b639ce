"""Database configuration and helpers for the airfieldwatch stores."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

# Tracking store: positions, flights, events. Registry store: read-only
# BaseStation-style aircraft reference data.
Base = declarative_base()
RegistryBase = declarative_base()

logger = logging.getLogger("airfieldwatch.db")


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the storage convention for SQLite."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def create_db_engine(url: str) -> Engine:
    """Create a SQLAlchemy engine, allowing SQLite use across threads."""

    return create_engine(
        url,
        connect_args={"check_same_thread": False} if url.startswith("sqlite") else {},
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create tracking tables if they do not exist."""

    import airfieldwatch.db_models  # noqa: F401 - models are imported for side effects

    Base.metadata.create_all(bind=engine)


def cleanup_old_records(
    db: Session,
    *,
    retention_days: int,
    flight_timeout_minutes: int | None = None,
    now: datetime | None = None,
) -> dict[str, int]:
    """
    Delete old tracking rows and close stale flights.

    - Delete positions and events older than the retention window.
    - Mark ``active`` flights whose end time is before the window ``completed``.
    - Mark ``active`` flights idle longer than the flight timeout ``completed``.
    - Fail-soft: roll back and log on error, never raise to the caller.
    """

    import airfieldwatch.db_models as models

    now = now or utcnow()
    cutoff = now - timedelta(days=max(retention_days, 1))
    counts = {"positions": 0, "events": 0, "flights_completed": 0}

    try:
        counts["positions"] = (
            db.query(models.PositionRecord)
            .filter(models.PositionRecord.timestamp < cutoff)
            .delete(synchronize_session=False)
        )
        counts["events"] = (
            db.query(models.AircraftEventRecord)
            .filter(models.AircraftEventRecord.timestamp < cutoff)
            .delete(synchronize_session=False)
        )

        flight_cutoff = cutoff
        if flight_timeout_minutes:
            flight_cutoff = max(cutoff, now - timedelta(minutes=flight_timeout_minutes))
        counts["flights_completed"] = (
            db.query(models.FlightRecord)
            .filter(
                models.FlightRecord.status == models.FLIGHT_ACTIVE,
                models.FlightRecord.end_time < flight_cutoff,
            )
            .update({models.FlightRecord.status: models.FLIGHT_COMPLETED}, synchronize_session=False)
        )

        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Retention cleanup failed: %s", exc)
        return {"positions": 0, "events": 0, "flights_completed": 0}

    logger.info(
        "Retention cleanup removed %s positions, %s events; completed %s flights (cutoff %s)",
        counts["positions"],
        counts["events"],
        counts["flights_completed"],
        cutoff.isoformat(),
    )
    return counts


__all__ = [
    "Base",
    "RegistryBase",
    "cleanup_old_records",
    "create_db_engine",
    "create_session_factory",
    "init_db",
    "utcnow",
]
