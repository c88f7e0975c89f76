"""
===============================================================================
MAP UTILITIES (STREAMLIT + FOLIUM) — ROUTE MAP BUILD, STATUS BAR, ROUTE VIEW
===============================================================================

Purpose:
    Helpers for building the Folium map shown on the route planner page.

Key behaviors:
    - UI controls:
        * add_small_geocoder(): compact, collapsed geocoder search box.
        * add_status_bar(): persistent guidance text at the bottom of the map.
    - Route overlay:
        * add_route_line(): draws the computed route polyline.
        * route_bounds(): bounds of any nested [lat, lon] structure.
        * route_center() / route_zoom(): view parameters from bounds.

Input conventions:
    - Coordinates are [lat, lon]. Bounds are [[min_lat, min_lon], [max_lat, max_lon]].

===============================================================================
"""

import html
import math

import folium
from folium.plugins import Geocoder


# =============================================================================
# MAP BUILD
# =============================================================================
def build_route_map(center, zoom: int) -> folium.Map:
    """Base map for the route planner (OSM tiles + small geocoder)."""
    m = folium.Map(location=list(center), zoom_start=zoom, control_scale=True)
    add_small_geocoder(m)
    return m


def add_small_geocoder(fmap, position: str = "topright", width_px: int = 140, font_px: int = 12):
    """
    Add a small, collapsed geocoder search box to a Folium map.

    Parameters
    ----------
    fmap : folium.Map
        The Folium map object to modify.
    position : str, default "topright"
        Where the geocoder control appears on the map.
    width_px : int, default 140
        Width of the input box in pixels.
    font_px : int, default 12
        Font size of the input text in pixels.

    Notes
    -----
    The geocoder only pans the map (add_marker=False); a search result must
    never look like a start or destination marker.
    """
    # Add geocoder control (collapsed, no marker on search result)
    Geocoder(collapsed=True, position=position, add_marker=False).add_to(fmap)

    fmap.get_root().html.add_child(folium.Element(f"""
    <style>
      .leaflet-control-geocoder-form input {{
          width: {width_px}px !important;
          font-size: {font_px}px !important;
      }}
    </style>
    """))


def add_status_bar(m, status_text: str):
    """
    Add a persistent status bar to the bottom of a Folium map.

    Parameters
    ----------
    m : folium.Map
        The map object to add the status bar to.
    status_text : str
        Guidance text from InteractionState.status_text. It is HTML-escaped
        before being injected.
    """
    message_html = f"""
    <div style="
        position: fixed;
        bottom: 20px;
        left: 50%;
        transform: translateX(-50%);
        background-color: rgba(0,0,0,0.7);
        color: white;
        padding: 8px 16px;
        border-radius: 6px;
        font-size: 14px;
        z-index:9999;">
        {html.escape(status_text)}
    </div>
    """
    m.get_root().html.add_child(folium.Element(message_html))


# =============================================================================
# ROUTE OVERLAY + VIEW
# =============================================================================
def add_route_line(m, latlngs, color: str = "#2563eb", tooltip: str = "Route"):
    """
    Draw the computed route and fit the map view to it.

    Parameters
    ----------
    m : folium.Map
        The map object to draw on.
    latlngs : list
        Route vertices as [[lat, lon], ...] (see RouteGeometry.to_latlngs()).
    color : str, default "#2563eb"
        Polyline stroke color.
    tooltip : str, default "Route"
        Hover text for the line.

    Returns:
        folium.PolyLine
    """
    line = folium.PolyLine(latlngs, color=color, weight=5, opacity=0.85, tooltip=tooltip).add_to(m)
    m.fit_bounds(route_bounds(latlngs))
    return line


def route_bounds(route):
    """
    Bounds for a route, a list of routes, or any nested [lat, lon] structure.

    Raises:
        ValueError: no usable coordinate pair found.
    """
    lats, lons = [], []

    def walk(obj):
        if not isinstance(obj, (list, tuple)):
            return
        if len(obj) == 2 and all(isinstance(x, (int, float)) and not isinstance(x, bool) for x in obj):
            lat, lon = float(obj[0]), float(obj[1])
            if math.isfinite(lat) and math.isfinite(lon):
                lats.append(lat)
                lons.append(lon)
            return
        for item in obj:
            walk(item)

    if not route:
        raise ValueError("Empty route input.")

    walk(route)

    if not lats:
        raise ValueError("No valid coordinate data found.")

    return [[min(lats), min(lons)], [max(lats), max(lons)]]


def route_center(bounds):
    """[center_lat, center_lon] of [[min_lat, min_lon], [max_lat, max_lon]]."""
    if not bounds or len(bounds) != 2:
        raise ValueError("Bounds must be [[min_lat, min_lon], [max_lat, max_lon]].")

    (min_lat, min_lon), (max_lat, max_lon) = bounds
    return [(min_lat + max_lat) / 2, (min_lon + max_lon) / 2]


def route_zoom(bounds, max_zoom: int = 18):
    """Approximate zoom from the longitude span (capped at max_zoom)."""
    (_, min_lon), (_, max_lon) = bounds

    delta_lon = abs(max_lon - min_lon)
    if delta_lon == 0:
        return max_zoom

    zoom = int(math.log(360 / delta_lon, 2) - 1)
    return max(0, min(zoom, max_zoom))
