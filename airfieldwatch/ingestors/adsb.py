"""ADS-B feed ingestor polling an OpenSky-compatible REST API."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import logging
import math
from typing import Any, Awaitable, Callable, Optional

import httpx
from pydantic import ValidationError

from airfieldwatch.config import get_adsb_password, settings
from airfieldwatch.geodesy import HasLatLon
from airfieldwatch.models.air_traffic import PositionSample

logger = logging.getLogger("airfieldwatch.ingestors.adsb")

FEET_PER_METER = 3.28084
KNOTS_PER_MS = 1.94384


def _parse_timestamp(raw_ts: Any) -> datetime | None:
    if raw_ts is None:
        return None
    if isinstance(raw_ts, (int, float)):
        # OpenSky returns seconds since epoch
        return datetime.fromtimestamp(raw_ts, tz=timezone.utc)
    if isinstance(raw_ts, str):
        try:
            return datetime.fromisoformat(raw_ts.replace("Z", "+00:00"))
        except ValueError:
            logger.debug("Failed to parse ADS-B timestamp: %s", raw_ts)
    return None


def _m_to_feet(value_m: Any) -> float | None:
    if value_m is None:
        return None
    try:
        return float(value_m) * FEET_PER_METER
    except (TypeError, ValueError):
        return None


def _ms_to_knots(value_ms: Any) -> float | None:
    if value_ms is None:
        return None
    try:
        return float(value_ms) * KNOTS_PER_MS
    except (TypeError, ValueError):
        return None


class ADSBIngestor:
    """Fetch aircraft state vectors around the airport as position samples."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        default_radius_nm: float | None = None,
        username: str | None = None,
        password_parameter: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or settings.adsb_base_url
        self.timeout = timeout or settings.adsb_timeout
        self.default_radius_nm = default_radius_nm or settings.adsb_radius_nm
        self.username = username if username is not None else settings.adsb_username
        self.password_parameter = password_parameter or settings.adsb_password_parameter
        self.transport = transport
        self.polls = 0
        self.failed_polls = 0

    def _auth(self) -> httpx.BasicAuth | None:
        if not self.username:
            return None
        try:
            return httpx.BasicAuth(self.username, get_adsb_password(self.password_parameter))
        except RuntimeError as exc:
            logger.warning("ADS-B credentials unavailable, polling anonymously: %s", exc)
            return None

    async def get_positions(
        self, lat: float, lon: float, radius_nm: float | None = None
    ) -> list[PositionSample]:
        radius = radius_nm or self.default_radius_nm
        lat_delta = radius / 60.0
        lon_delta = radius / max(60.0 * math.cos(math.radians(lat)), 0.0001)
        params = {
            "lamin": lat - lat_delta,
            "lomin": lon - lon_delta,
            "lamax": lat + lat_delta,
            "lomax": lon + lon_delta,
        }

        self.polls += 1
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport, auth=self._auth()
            ) as client:
                response = await client.get(self.base_url, params=params)
        except httpx.TimeoutException as exc:
            self.failed_polls += 1
            logger.warning("ADSB request timed out: %s", exc)
            return []
        except httpx.RequestError as exc:
            self.failed_polls += 1
            logger.warning("ADSB request failed: %s", exc)
            return []

        if response.status_code == 429:
            self.failed_polls += 1
            logger.warning("ADSB provider rate limit encountered: %s", response.text)
            return []
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self.failed_polls += 1
            logger.warning("ADSB provider returned HTTP %s: %s", exc.response.status_code, exc)
            return []

        try:
            payload = response.json()
        except ValueError as exc:
            self.failed_polls += 1
            logger.warning("Failed to parse ADSB JSON response: %s", exc)
            return []

        raw_states = []
        if isinstance(payload, dict):
            raw_states = payload.get("states", []) or []

        samples: list[PositionSample] = []
        for entry in raw_states:
            sample = self._normalize_state(entry)
            if sample:
                samples.append(sample)

        logger.debug("Ingested %s position samples", len(samples))
        return samples

    def _normalize_state(self, entry: Any) -> Optional[PositionSample]:
        if not isinstance(entry, (list, tuple)) or len(entry) < 7:
            return None

        lon = entry[5]
        lat = entry[6]
        if not entry[0] or lat is None or lon is None:
            return None

        # Prefer geometric altitude, fall back to barometric.
        altitude_m = entry[7] if len(entry) > 7 else None
        if len(entry) > 13 and entry[13] is not None:
            altitude_m = entry[13]
        velocity_ms = entry[9] if len(entry) > 9 else None
        track = entry[10] if len(entry) > 10 else None
        squawk = entry[14] if len(entry) > 14 else None
        last_seen = entry[4] if len(entry) > 4 and entry[4] is not None else entry[3]

        fields: dict[str, Any] = {
            "icao24": entry[0],
            "callsign": entry[1] or None,
            "lat": lat,
            "lon": lon,
            "altitude": _m_to_feet(altitude_m),
            "speed": _ms_to_knots(velocity_ms),
            "track": track,
            "squawk": squawk,
        }
        timestamp = _parse_timestamp(last_seen)
        if timestamp is not None:
            fields["timestamp"] = timestamp

        try:
            return PositionSample.model_validate(fields)
        except ValidationError as exc:
            logger.debug("Dropping invalid ADS-B state for %s: %s", entry[0], exc)
            return None

    async def run(
        self,
        sink: Callable[[PositionSample], Awaitable[Any]],
        center: HasLatLon,
        interval: float | None = None,
    ) -> None:
        """Poll forever, pushing each sample into ``sink`` in arrival order."""

        interval = interval or settings.adsb_poll_interval_s
        logger.info("ADS-B ingestor polling every %.0f s", interval)
        while True:
            for sample in await self.get_positions(center.lat, center.lon):
                await sink(sample)
            await asyncio.sleep(interval)


__all__ = ["ADSBIngestor"]
