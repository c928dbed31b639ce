"""Aircraft registry search endpoint."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from airfieldwatch.api.deps import get_engine, raise_for_result
from airfieldwatch.models import AircraftRegistration, RegistrySearch
from airfieldwatch.services.engine import TrackingEngine

router = APIRouter(prefix="/api/v1", tags=["registry"])


@router.get(
    "/registry/search",
    response_model=list[AircraftRegistration],
    summary="Substring search over the aircraft registry",
)
def search_registry(
    registration: Optional[str] = Query(default=None),
    manufacturer: Optional[str] = Query(default=None),
    type: Optional[str] = Query(default=None),
    icao_type_code: Optional[str] = Query(default=None),
    country: Optional[str] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=1),
    engine: TrackingEngine = Depends(get_engine),
) -> list[AircraftRegistration]:
    if engine.store is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="No data store")

    result = engine.store.search_registry(
        RegistrySearch(
            registration=registration,
            manufacturer=manufacturer,
            type=type,
            icao_type_code=icao_type_code,
            country=country,
            limit=limit,
        )
    )
    raise_for_result(result)
    return result.value
