"""
Folium implementation of the map capability used by MarkerLifecycle.

Streamlit reruns the whole script on every interaction, so markers cannot live
inside a single folium.Map. FoliumMarkerLayer keeps the live markers keyed by
an integer handle and re-adds them to each freshly built map. Marker clicks
come back from streamlit-folium as `last_object_clicked` ({"lat", "lng"}) and
are routed to the handler bound to the marker at that location.
"""

import itertools
import logging

import folium

from route_map.coordinates import Coordinate


# Clicked object positions come back as floats from JS; compare with tolerance
CLICK_TOLERANCE_DEG = 1e-7

MARKER_COLORS = {
    "Start": "green",
    "Destination": "red",
}


class MarkerClickEvent:
    """Click on a marker. Handlers call stop_propagation() to keep it off the map."""

    def __init__(self, handle, coordinate: Coordinate):
        self.handle = handle
        self.coordinate = coordinate
        self.propagation_stopped = False

    def stop_propagation(self):
        self.propagation_stopped = True


class FoliumMarkerLayer:
    def __init__(self, name: str = "route_markers"):
        self.name = name
        self._handles = itertools.count(1)
        self._markers = {}   # handle -> (Coordinate, label)
        self._handlers = {}  # handle -> callback(event)

        self.logger = logging.getLogger("FoliumMarkerLayer")

    # ------------------------- CAPABILITY ---------------------------
    def create_marker(self, coordinate: Coordinate, label: str):
        handle = next(self._handles)
        self._markers[handle] = (coordinate, label)
        return handle

    def on_marker_click(self, handle, callback):
        if handle not in self._markers:
            raise KeyError(f"Unknown marker handle: {handle}")
        self._handlers[handle] = callback

    def remove_marker(self, handle):
        if self._markers.pop(handle, None) is None:
            self.logger.warning("Marker %s already removed", handle)
        self._handlers.pop(handle, None)

    def to_coordinate(self, lat, lon) -> Coordinate:
        return Coordinate(lat, lon)

    # ---------------------------- HOST ------------------------------
    def __contains__(self, handle):
        return handle in self._markers

    def __len__(self):
        return len(self._markers)

    def render(self, fmap: folium.Map) -> folium.FeatureGroup:
        """Add every live marker to `fmap` inside a single FeatureGroup."""
        group = folium.FeatureGroup(name=self.name).add_to(fmap)
        for coordinate, label in self._markers.values():
            color = MARKER_COLORS.get(label.split(" ", 1)[0], "blue")
            folium.Marker(
                location=coordinate.as_latlng(),
                popup=label,
                tooltip=label,
                icon=folium.Icon(color=color),
            ).add_to(group)
        return group

    def dispatch_click(self, payload):
        """
        Route a streamlit-folium `last_object_clicked` payload to its marker.

        Returns:
            The MarkerClickEvent delivered, or None if no live marker is there.
        """
        try:
            clicked = Coordinate.from_click(payload)
        except ValueError:
            return None

        # Newest first: Leaflet draws later markers on top of earlier ones
        for handle, (coordinate, _label) in reversed(list(self._markers.items())):
            if (
                abs(coordinate.lat - clicked.lat) <= CLICK_TOLERANCE_DEG
                and abs(coordinate.lon - clicked.lon) <= CLICK_TOLERANCE_DEG
            ):
                event = MarkerClickEvent(handle, coordinate)
                callback = self._handlers.get(handle)
                if callback is not None:
                    callback(event)
                return event
        return None
