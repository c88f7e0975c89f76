"""
Coordinate value types shared by the click handler, the snap client and the
Folium marker layer.

Coordinates are always [lat, lon] ordered and validated to be finite numbers.
No bounds clamping is done here; Leaflet already wraps/clamps clicks.
"""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lon: float

    def __post_init__(self):
        # Validate numeric + finite (NaN / inf never reach the map or the API)
        for name in ("lat", "lon"):
            value = getattr(self, name)
            if isinstance(value, bool):
                raise ValueError(f"{name} must be a number, got {value!r}")
            try:
                value = float(value)
            except (TypeError, ValueError):
                raise ValueError(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise ValueError(f"{name} must be finite, got {value!r}")
            object.__setattr__(self, name, value)

    @classmethod
    def from_click(cls, payload):
        """
        Build a Coordinate from a Leaflet / streamlit-folium click payload.

        Accepts {"lat": .., "lng": ..} (Leaflet LatLng) or {"lat": .., "lon": ..}.

        Raises:
            ValueError: payload missing or not a valid coordinate.
        """
        if not isinstance(payload, dict) or "lat" not in payload:
            raise ValueError(f"Not a click payload: {payload!r}")
        lon = payload.get("lng", payload.get("lon"))
        return cls(payload["lat"], lon)

    def as_latlng(self):
        """Return [lat, lon] (Folium location order)."""
        return [self.lat, self.lon]

    def as_payload(self):
        """Return the JSON body shape used by the routing API."""
        return {"lat": self.lat, "lon": self.lon}


@dataclass(frozen=True)
class SnappedCoordinate:
    """A click relocated onto the nearest routable road."""

    coordinate: Coordinate
    distance_meters: float
    message: str = ""
