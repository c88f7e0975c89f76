"""
===============================================================================
SETTINGS — ROUTING API LOCATION, TIMEOUTS, MAP DEFAULTS
===============================================================================

Purpose:
    Resolves runtime settings for the route map page.

Sourcing precedence (first hit wins, per key):
    1) .env file (python-dotenv), when the file exists
    2) Streamlit secrets (passed in as a mapping by init_session)
    3) Process environment
    4) Built-in defaults

Keys:
    QUIET_ROUTE_API_URL        base URL of the routing API
    QUIET_ROUTE_SNAP_PATH      nearest-road endpoint path
    QUIET_ROUTE_ROUTE_PATH     route endpoint path
    QUIET_ROUTE_SNAP_TIMEOUT   seconds before a snap falls back to "no snap"
    QUIET_ROUTE_ROUTE_TIMEOUT  seconds before a route request fails
    QUIET_ROUTE_MAP_CENTER     "lat,lon"
    QUIET_ROUTE_MAP_ZOOM       initial zoom level

===============================================================================
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from dotenv import dotenv_values


DEFAULTS = {
    "QUIET_ROUTE_API_URL": "http://localhost:3000",
    "QUIET_ROUTE_SNAP_PATH": "/nearestRoad",
    "QUIET_ROUTE_ROUTE_PATH": "/route",
    "QUIET_ROUTE_SNAP_TIMEOUT": "5",
    "QUIET_ROUTE_ROUTE_TIMEOUT": "30",
    "QUIET_ROUTE_MAP_CENTER": "51.5074,-0.1278",
    "QUIET_ROUTE_MAP_ZOOM": "13",
}


@dataclass(frozen=True)
class Settings:
    api_base_url: str
    snap_path: str
    route_path: str
    snap_timeout_s: float
    route_timeout_s: float
    map_center: Tuple[float, float]
    map_zoom: int


def load_settings(env_file: str = ".env", secrets: Optional[Mapping] = None, environ: Optional[Mapping] = None):
    """
    Build Settings from .env / secrets / environment / defaults.

    Raises:
        ValueError: a numeric or center value cannot be parsed.
    """
    sources = []
    if env_file and os.path.exists(env_file):
        sources.append(dotenv_values(env_file))
    if secrets:
        sources.append(secrets)
    sources.append(os.environ if environ is None else environ)

    def get(key):
        for source in sources:
            value = source.get(key)
            if value not in (None, ""):
                return str(value).strip()
        return DEFAULTS[key]

    return Settings(
        api_base_url=get("QUIET_ROUTE_API_URL").rstrip("/"),
        snap_path=get("QUIET_ROUTE_SNAP_PATH"),
        route_path=get("QUIET_ROUTE_ROUTE_PATH"),
        snap_timeout_s=_parse_float("QUIET_ROUTE_SNAP_TIMEOUT", get("QUIET_ROUTE_SNAP_TIMEOUT")),
        route_timeout_s=_parse_float("QUIET_ROUTE_ROUTE_TIMEOUT", get("QUIET_ROUTE_ROUTE_TIMEOUT")),
        map_center=_parse_center(get("QUIET_ROUTE_MAP_CENTER")),
        map_zoom=int(_parse_float("QUIET_ROUTE_MAP_ZOOM", get("QUIET_ROUTE_MAP_ZOOM"))),
    )


def _parse_float(key, value):
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {value!r}")


def _parse_center(value):
    parts = [p.strip() for p in value.split(",")]
    if len(parts) != 2:
        raise ValueError(f"QUIET_ROUTE_MAP_CENTER must be 'lat,lon', got {value!r}")
    return (
        _parse_float("QUIET_ROUTE_MAP_CENTER", parts[0]),
        _parse_float("QUIET_ROUTE_MAP_CENTER", parts[1]),
    )
