"""
===============================================================================
NEAREST-ROAD SNAPPING — BEST-EFFORT RELOCATION OF MAP CLICKS
===============================================================================

Purpose:
    Wraps the routing API's POST /nearestRoad endpoint. Given a raw click
    coordinate it returns the coordinate of the nearest routable road (when the
    service finds one within its own tolerance) or None.

Key behaviors:
    - Exactly one request per snap() call: no retry, no cache, no dedup.
    - Successful snap:
        * returns a SnappedCoordinate
        * fires notify() with the distance (one decimal) and the API message,
          unless the caller reports the click was superseded (still_current)
    - Failure (network error, timeout, non-2xx, bad JSON, malformed coord):
        * logged, never shown to the user
        * treated exactly like "no road nearby" (returns None)
    - The blocking requests call runs in a worker thread so awaiting snap()
      never blocks the event loop.

Request / response contract:
    POST {base_url}/nearestRoad   body: {"lat": float, "lon": float}
    200 -> {"coord": {"lat", "lon", "distanceMeters"} | null, "message": str}

===============================================================================
"""

import asyncio
import logging
from typing import Callable, Optional

import requests

from route_map.coordinates import Coordinate, SnappedCoordinate


def format_snap_notice(snapped: SnappedCoordinate) -> str:
    """User-facing relocation message."""
    return (
        "📍 Relocating to nearest road\n\n"
        f"Distance: {snapped.distance_meters:.1f}m\n\n"
        f"{snapped.message}"
    )


# =============================================================================
# SNAP CLIENT
# =============================================================================
# RoadSnapClient:
#   - snap(): async entry point used by MarkerLifecycle
#   - lookup(): synchronous request + response parsing (runs in a thread)
# =============================================================================
class RoadSnapClient:
    def __init__(
        self,
        base_url: str,
        notify: Callable[[str], None],
        path: str = "/nearestRoad",
        timeout: Optional[float] = 5.0,
    ):
        self.url = base_url.rstrip("/") + "/" + path.lstrip("/")
        self.notify = notify
        self.timeout = timeout

        logging.basicConfig(level=logging.INFO)
        self.logger = logging.getLogger("RoadSnapClient")

    async def snap(
        self,
        coordinate: Coordinate,
        still_current: Optional[Callable[[], bool]] = None,
    ) -> Optional[SnappedCoordinate]:
        """
        Ask the service for the nearest road to `coordinate`.

        Parameters:
            still_current: checked once the response arrives; when it returns
                False the result is dropped without notifying (the click was
                superseded while the request was in flight).

        Returns:
            SnappedCoordinate when a road was found, otherwise None.
        """
        snapped = await asyncio.to_thread(self.lookup, coordinate)
        if still_current is not None and not still_current():
            return None
        if snapped is not None:
            self.notify(format_snap_notice(snapped))
        return snapped

    def lookup(self, coordinate: Coordinate) -> Optional[SnappedCoordinate]:
        try:
            resp = requests.post(
                self.url,
                json=coordinate.as_payload(),
                timeout=self.timeout,
            )
            if not resp.ok:
                self.logger.warning("Failed to check nearest road: %s", resp.status_code)
                return None
            data = resp.json()
        except (requests.exceptions.RequestException, ValueError):
            self.logger.exception("Error checking nearest road")
            return None

        return self._parse(data)

    def _parse(self, data) -> Optional[SnappedCoordinate]:
        if not isinstance(data, dict):
            self.logger.warning("Unexpected nearest road response: %r", data)
            return None

        coord = data.get("coord")
        if not coord:
            return None

        try:
            snapped = SnappedCoordinate(
                coordinate=Coordinate(coord["lat"], coord["lon"]),
                distance_meters=float(coord["distanceMeters"]),
                message=str(data.get("message") or ""),
            )
        except (KeyError, TypeError, ValueError):
            self.logger.warning("Malformed nearest road coord: %r", coord)
            return None

        self.logger.info(
            "Snapped to road at (%.6f, %.6f), %.1fm away",
            snapped.coordinate.lat,
            snapped.coordinate.lon,
            snapped.distance_meters,
        )
        return snapped
