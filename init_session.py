"""
===============================================================================
SESSION INITIALIZATION (STREAMLIT) — SETTINGS, CONTROLLER, MARKER LIFECYCLE
===============================================================================

Purpose:
    Seeds Streamlit session_state with one route-map widget per browser
    session:
      - 'settings'          resolved Settings (.env / st.secrets / environment)
      - 'map_controller'    MapStateController (the single InteractionState)
      - 'marker_layer'      FoliumMarkerLayer (live markers across reruns)
      - 'marker_lifecycle'  MarkerLifecycle wired to the two above + snap client
      - 'route_client'      RouteClient
      - 'route'             last RouteResponse (cleared whenever markers change)
      - 'notifications'     pending notify() messages, shown on next render
      - 'last_map_click' / 'last_object_click'
                            last handled streamlit-folium payloads (reruns
                            return the same payload again; it must not be
                            handled twice)

Key behaviors:
    - Idempotent: existing keys are never overwritten, so reruns keep the
      user's markers.

===============================================================================
"""

import logging

import streamlit as st
from streamlit.errors import StreamlitAPIException

from route_map.config import load_settings
from route_map.folium_map import FoliumMarkerLayer
from route_map.markers import MarkerLifecycle
from route_map.road_snap import RoadSnapClient
from route_map.route_response import RouteClient
from route_map.state import MapStateController


def _streamlit_secrets():
    # st.secrets raises when no secrets.toml exists
    try:
        return dict(st.secrets)
    except (FileNotFoundError, StreamlitAPIException):
        return {}


def queue_notification(message: str):
    """notify() capability: fire-and-forget, rendered as a toast on next run."""
    st.session_state.setdefault("notifications", []).append(message)


def init_session_state():
    """Initialize all session state values."""
    logging.basicConfig(level=logging.INFO)

    if "settings" not in st.session_state:
        st.session_state["settings"] = load_settings(secrets=_streamlit_secrets())
    settings = st.session_state["settings"]

    defaults = {
        "notifications": [],
        "route": None,
        "last_map_click": None,
        "last_object_click": None,
    }
    for key, val in defaults.items():
        st.session_state.setdefault(key, val)

    if "map_controller" not in st.session_state:
        controller = MapStateController()
        # Any marker change invalidates a previously computed route
        controller.subscribe(lambda _state: st.session_state.update(route=None))
        st.session_state["map_controller"] = controller

    st.session_state.setdefault("marker_layer", FoliumMarkerLayer())

    if "marker_lifecycle" not in st.session_state:
        snap_client = RoadSnapClient(
            base_url=settings.api_base_url,
            notify=queue_notification,
            path=settings.snap_path,
            timeout=settings.snap_timeout_s,
        )
        st.session_state["marker_lifecycle"] = MarkerLifecycle(
            controller=st.session_state["map_controller"],
            map_layer=st.session_state["marker_layer"],
            snap_client=snap_client,
        )

    if "route_client" not in st.session_state:
        st.session_state["route_client"] = RouteClient(
            base_url=settings.api_base_url,
            path=settings.route_path,
            timeout=settings.route_timeout_s,
        )
