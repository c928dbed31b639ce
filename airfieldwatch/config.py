"""Configuration settings for the airfieldwatch engine."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger("airfieldwatch.config")

# Shared SSM client for secret reads. Default to a region so imports do not
# fail in environments without AWS configuration (e.g. CI test runners).
_ssm_client = boto3.client(
    "ssm",
    region_name=os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or "us-east-1",
)


def _get_bool(env_var: str, default: bool = False) -> bool:
    """Parse an environment variable into a boolean with a default."""

    value = os.getenv(env_var)
    if value is None:
        return default

    return value.lower() in {"1", "true", "yes", "on"}


def _get_optional(env_var: str) -> str | None:
    value = os.getenv(env_var)
    return value if value else None


@lru_cache(maxsize=1)
def get_adsb_password(parameter_name: str) -> str:
    """Fetch the ADS-B provider password from AWS SSM Parameter Store.

    The value is cached in-memory to avoid repeated SSM calls. Any failure to
    retrieve it raises a runtime error; callers fall back to anonymous access.
    """

    try:
        response = _ssm_client.get_parameter(Name=parameter_name, WithDecryption=True)
        value = response.get("Parameter", {}).get("Value")
    except (ClientError, BotoCoreError) as exc:
        logger.error("Failed to load ADS-B password from SSM: %s", exc)
        raise RuntimeError("Unable to load ADS-B password from SSM") from exc

    if not value:
        logger.error("Received empty ADS-B password from SSM")
        raise RuntimeError("ADS-B password not configured in SSM")

    return value


@dataclass
class Settings:
    """Engine configuration loaded from environment variables."""

    env: str = os.getenv("AIRFIELDWATCH_ENV", "local")
    log_level: str = os.getenv("AIRFIELDWATCH_LOG_LEVEL", "INFO")

    # Airport reference point and tracking radii
    airport_code: str = os.getenv("AIRFIELDWATCH_AIRPORT_CODE", "EGPK")
    airport_name: str = os.getenv("AIRFIELDWATCH_AIRPORT_NAME", "Prestwick Airport")
    airport_lat: float = float(os.getenv("AIRFIELDWATCH_AIRPORT_LAT", "55.5094"))
    airport_lon: float = float(os.getenv("AIRFIELDWATCH_AIRPORT_LON", "-4.5867"))
    approach_radius_m: float = float(os.getenv("AIRFIELDWATCH_APPROACH_RADIUS_M", "50000"))
    runway_threshold_m: float = float(os.getenv("AIRFIELDWATCH_RUNWAY_THRESHOLD_M", "5000"))
    runways_file: str | None = _get_optional("AIRFIELDWATCH_RUNWAYS_FILE")
    history_size: int = int(os.getenv("AIRFIELDWATCH_HISTORY_SIZE", "1000"))

    # Persistence
    tracking_db_url: str = os.getenv("AIRFIELDWATCH_DB_URL", "sqlite:///./airfieldwatch.db")
    registry_db_url: str | None = _get_optional("AIRFIELDWATCH_REGISTRY_DB_URL")
    retention_days: int = int(os.getenv("AIRFIELDWATCH_RETENTION_DAYS", "30"))
    cleanup_interval_s: float = float(os.getenv("AIRFIELDWATCH_CLEANUP_INTERVAL_S", "3600"))
    flight_timeout_minutes: int = int(os.getenv("AIRFIELDWATCH_FLIGHT_TIMEOUT_MINUTES", "30"))
    registry_search_limit: int = int(os.getenv("AIRFIELDWATCH_REGISTRY_SEARCH_LIMIT", "100"))

    # Airport vector data
    vector_data_path: str = os.getenv("AIRFIELDWATCH_VECTOR_DATA_PATH", "./data/vectors")
    buildings_file: str = os.getenv("AIRFIELDWATCH_BUILDINGS_FILE", "AFB_Prestwick_EGPK.out")
    markings_file: str = os.getenv("AIRFIELDWATCH_MARKINGS_FILE", "AFM_Prestwick_EGPK.out")
    layout_file: str = os.getenv("AIRFIELDWATCH_LAYOUT_FILE", "AFP_Prestwick_EGPK_2.out")
    simplification_tolerance: float = float(
        os.getenv("AIRFIELDWATCH_SIMPLIFICATION_TOLERANCE", "0.0001")
    )
    max_polygon_points: int = int(os.getenv("AIRFIELDWATCH_MAX_POLYGON_POINTS", "100"))
    vector_cache_enabled: bool = _get_bool("AIRFIELDWATCH_VECTOR_CACHE_ENABLED", default=True)
    vector_cache_ttl_s: float = float(os.getenv("AIRFIELDWATCH_VECTOR_CACHE_TTL_S", "300"))
    radar_default_range_nm: float = float(os.getenv("AIRFIELDWATCH_RADAR_RANGE_NM", "10"))

    # Airspace notices
    notice_source_url: str | None = _get_optional("AIRFIELDWATCH_NOTICE_SOURCE_URL")
    notice_timeout: float = float(os.getenv("AIRFIELDWATCH_NOTICE_TIMEOUT", "10.0"))
    notice_search_radius_km: float = float(os.getenv("AIRFIELDWATCH_NOTICE_RADIUS_KM", "50"))
    notice_airport_radius_km: float = float(
        os.getenv("AIRFIELDWATCH_NOTICE_AIRPORT_RADIUS_KM", "50")
    )
    notice_priority_threshold: str = os.getenv("AIRFIELDWATCH_NOTICE_MIN_PRIORITY", "medium")
    notice_sweep_interval_s: float = float(os.getenv("AIRFIELDWATCH_NOTICE_SWEEP_S", "300"))
    notice_check_on_approach: bool = _get_bool("AIRFIELDWATCH_NOTICE_ON_APPROACH", default=True)
    notice_check_on_landing: bool = _get_bool("AIRFIELDWATCH_NOTICE_ON_LANDING", default=True)
    notice_check_on_takeoff: bool = _get_bool("AIRFIELDWATCH_NOTICE_ON_TAKEOFF", default=True)

    # ADS-B feed
    enable_adsb_ingestor: bool = _get_bool("AIRFIELDWATCH_ENABLE_ADSB_INGESTOR")
    adsb_base_url: str = os.getenv(
        "AIRFIELDWATCH_ADSB_BASE_URL",
        "https://opensky-network.org/api/states/all",
    )
    adsb_timeout: float = float(os.getenv("AIRFIELDWATCH_ADSB_TIMEOUT", "10.0"))
    adsb_radius_nm: float = float(os.getenv("AIRFIELDWATCH_ADSB_RADIUS_NM", "30.0"))
    adsb_poll_interval_s: float = float(os.getenv("AIRFIELDWATCH_ADSB_POLL_S", "10.0"))
    adsb_username: str | None = _get_optional("AIRFIELDWATCH_ADSB_USERNAME")
    adsb_password_parameter: str = os.getenv(
        "AIRFIELDWATCH_ADSB_PASSWORD_PARAMETER", "/airfieldwatch/adsb/password"
    )


settings = Settings()

__all__ = ["settings", "Settings", "get_adsb_password"]
