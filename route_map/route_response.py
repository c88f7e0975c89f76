"""
===============================================================================
ROUTE RESPONSES — PARSING + REQUEST WRAPPER FOR THE ROUTE ENDPOINT
===============================================================================

Purpose:
    The route itself is computed server-side. This module only:
      - requests a route between the committed start and end markers
      - parses the response into typed values
      - converts GeoJSON [lon, lat] pairs to Folium [lat, lon]
      - formats a short summary for the page

Response shape:
    {
      "geojson": {
        "type": "Feature",
        "geometry": {"type": "LineString", "coordinates": [[lon, lat], ...]},
        "properties": {...}
      },
      "metadata": {
        "totalDistanceMeters", "averageSafetyScore", "safetyPercentage",
        "litSegmentsCount", "totalSegments", "litPercentage",
        "nearestPoliceStartMeters", "nearestPoliceEndMeters",
        "nearestLightStartMeters", "nearestLightEndMeters", "safetyRating"
      },
      "message": str
    }

Notes:
    - Metadata fields are optional; missing ones are None.
    - Errors are raised as RouteRequestError for the page to display.

===============================================================================
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import requests

from route_map.coordinates import Coordinate


class RouteRequestError(Exception):
    pass


# camelCase API key -> dataclass attribute
METADATA_FIELDS = {
    "totalDistanceMeters": "total_distance_meters",
    "averageSafetyScore": "average_safety_score",
    "safetyPercentage": "safety_percentage",
    "litSegmentsCount": "lit_segments_count",
    "totalSegments": "total_segments",
    "litPercentage": "lit_percentage",
    "nearestPoliceStartMeters": "nearest_police_start_meters",
    "nearestPoliceEndMeters": "nearest_police_end_meters",
    "nearestLightStartMeters": "nearest_light_start_meters",
    "nearestLightEndMeters": "nearest_light_end_meters",
    "safetyRating": "safety_rating",
}


@dataclass(frozen=True)
class RouteMetadata:
    total_distance_meters: Optional[float] = None
    average_safety_score: Optional[float] = None
    safety_percentage: Optional[float] = None
    lit_segments_count: Optional[int] = None
    total_segments: Optional[int] = None
    lit_percentage: Optional[float] = None
    nearest_police_start_meters: Optional[float] = None
    nearest_police_end_meters: Optional[float] = None
    nearest_light_start_meters: Optional[float] = None
    nearest_light_end_meters: Optional[float] = None
    safety_rating: Optional[str] = None

    @classmethod
    def from_json(cls, data):
        data = data or {}
        return cls(**{attr: data.get(key) for key, attr in METADATA_FIELDS.items()})


@dataclass(frozen=True)
class RouteGeometry:
    type: str
    coordinates: List[List[float]]

    def to_latlngs(self):
        """GeoJSON [lon, lat] -> Folium [lat, lon]."""
        return [[float(pt[1]), float(pt[0])] for pt in self.coordinates if len(pt) >= 2]


@dataclass(frozen=True)
class RouteResponse:
    geometry: RouteGeometry
    metadata: RouteMetadata
    message: str = ""
    properties: dict = field(default_factory=dict)

    @classmethod
    def from_json(cls, data):
        """
        Parse a route endpoint response.

        Raises:
            ValueError: geojson geometry missing or malformed.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Route response must be an object, got {type(data).__name__}")

        geojson = data.get("geojson") or {}
        geometry = geojson.get("geometry")
        if not isinstance(geometry, dict) or not isinstance(geometry.get("coordinates"), list):
            raise ValueError("Route response has no geometry coordinates.")

        return cls(
            geometry=RouteGeometry(
                type=str(geometry.get("type", "LineString")),
                coordinates=geometry["coordinates"],
            ),
            metadata=RouteMetadata.from_json(data.get("metadata")),
            message=str(data.get("message") or ""),
            properties=dict(geojson.get("properties") or {}),
        )

    def summary(self):
        """Short human-readable lines for the page."""
        meta = self.metadata
        lines = []
        if meta.total_distance_meters is not None:
            lines.append(f"Distance: {float(meta.total_distance_meters) / 1000:.2f} km")
        if meta.safety_rating:
            lines.append(f"Safety rating: {meta.safety_rating}")
        if meta.safety_percentage is not None:
            lines.append(f"Safety: {float(meta.safety_percentage):.0f}%")
        if meta.lit_segments_count is not None and meta.total_segments:
            lines.append(f"Lit segments: {meta.lit_segments_count}/{meta.total_segments}")
        if self.message:
            lines.append(self.message)
        return lines


# =============================================================================
# ROUTE CLIENT
# =============================================================================
class RouteClient:
    def __init__(self, base_url: str, path: str = "/route", timeout: Optional[float] = 30.0):
        self.url = base_url.rstrip("/") + "/" + path.lstrip("/")
        self.timeout = timeout

        logging.basicConfig(level=logging.INFO)
        self.logger = logging.getLogger("RouteClient")

    def fetch_route(self, start: Coordinate, end: Coordinate) -> RouteResponse:
        """
        Request a route between two committed points.

        Raises:
            RouteRequestError: network failure, non-2xx status or bad response.
        """
        self.logger.info("Requesting route %s -> %s", start, end)
        try:
            resp = requests.post(
                self.url,
                json={"start": start.as_payload(), "end": end.as_payload()},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise RouteRequestError(f"Failed to reach the route service: {e}")

        if not resp.ok:
            raise RouteRequestError(f"Route request failed with status code {resp.status_code}: {resp.text}")

        try:
            return RouteResponse.from_json(resp.json())
        except ValueError as e:
            raise RouteRequestError(f"Unexpected route response: {e}")
