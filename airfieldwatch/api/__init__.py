"""API routers for airfieldwatch."""

from fastapi import APIRouter

from .aircraft import router as aircraft_router
from .health import router as health_router
from .radar import router as radar_router
from .registry import router as registry_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(aircraft_router)
api_router.include_router(registry_router)
api_router.include_router(radar_router)

__all__ = ["api_router"]
