"""Shared router dependencies."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from airfieldwatch.domain import ErrorKind, Result
from airfieldwatch.services.engine import TrackingEngine


def get_engine(request: Request) -> TrackingEngine:
    """Return the engine started by the application lifespan."""

    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Tracking engine is not running",
        )
    return engine


def raise_for_result(result: Result) -> None:
    if result.error == ErrorKind.INVALID:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.detail)
    if result.error == ErrorKind.UNAVAILABLE:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=result.detail)


__all__ = ["get_engine", "raise_for_result"]
