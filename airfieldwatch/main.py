from __future__ import annotations

import asyncio
import contextlib
import logging
import time

from fastapi import FastAPI, Request

from airfieldwatch.api import api_router
from airfieldwatch.config import settings
from airfieldwatch.geodesy import GeoPoint
from airfieldwatch.ingestors import ADSBIngestor
from airfieldwatch.services.engine import build_engine

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger("airfieldwatch")


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the tracking engine and optional ADS-B feed; stop them on shutdown."""

    engine = build_engine(settings)
    await engine.start()
    app.state.engine = engine

    if settings.enable_adsb_ingestor:
        ingestor = ADSBIngestor()
        app.state.adsb_task = asyncio.create_task(
            ingestor.run(
                engine.ingest,
                GeoPoint(settings.airport_lat, settings.airport_lon),
                settings.adsb_poll_interval_s,
            )
        )
        logger.info("ADS-B ingestor started")

    try:
        yield
    finally:
        task = getattr(app.state, "adsb_task", None)
        if task:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        await engine.stop()
        app.state.engine = None


app = FastAPI(title="airfieldwatch", lifespan=lifespan)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log basic request information for observability."""

    start_time = time.time()
    response = await call_next(request)
    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        "HTTP %s %s -> %s (%.2f ms)",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    return response


app.include_router(api_router)


@app.get("/", summary="Root")
def read_root() -> dict[str, str]:
    """Basic root endpoint for quick verification."""

    return {"message": f"airfieldwatch tracking {settings.airport_code}"}
