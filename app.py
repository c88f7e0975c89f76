# =============================================================================
# Quiet Route Map (Streamlit App)
# =============================================================================
# PURPOSE:
#   Route planner page. Users:
#     1) Click the map to set a start point (snapped to the nearest road)
#     2) Click again to set a destination
#     3) Click a marker to remove it, or RESET to start over
#     4) FIND ROUTE once both points are set
#
# IMPORTANT NOTES:
#   - All marker/state logic lives in route_map.markers.MarkerLifecycle; this
#     page only renders and forwards streamlit-folium click payloads.
#   - Marker clicks are dispatched BEFORE map clicks; a marker click that
#     stopped propagation never places a new marker.
# =============================================================================

import asyncio
import logging

import streamlit as st
from streamlit_folium import st_folium

from init_session import init_session_state
from map_util import add_route_line, add_status_bar, build_route_map, route_bounds, route_center, route_zoom
from route_map.coordinates import Coordinate
from route_map.route_response import RouteRequestError

logger = logging.getLogger("QuietRouteApp")


st.set_page_config(page_title="Quiet Route Map", page_icon="🗺️", layout="centered")

# -----------------------------------------------------------------------------
# Initialize Session State (settings, controller, marker layer, lifecycle)
# -----------------------------------------------------------------------------
init_session_state()
st.session_state.setdefault("map_reset_counter", 0)

controller = st.session_state["map_controller"]
layer = st.session_state["marker_layer"]
lifecycle = st.session_state["marker_lifecycle"]
settings = st.session_state["settings"]


def rerender_map():
    # New st_folium key -> fresh widget without stale click payloads
    st.session_state.map_reset_counter += 1
    st.session_state.last_map_click = None
    st.session_state.last_object_click = None


def reset_markers():
    lifecycle.reset_map()
    rerender_map()


def handle_map_output(output):
    """Forward new streamlit-folium clicks. Returns True when state changed."""
    if not output:
        return False

    object_click = output.get("last_object_clicked")
    if object_click and object_click != st.session_state.last_object_click:
        st.session_state.last_object_click = object_click
        event = layer.dispatch_click(object_click)
        if event is not None:
            if event.propagation_stopped:
                rerender_map()
            return True

    map_click = output.get("last_clicked")
    if map_click and map_click != st.session_state.last_map_click:
        st.session_state.last_map_click = map_click
        try:
            coordinate = Coordinate.from_click(map_click)
        except ValueError:
            logger.warning("Ignoring invalid map click: %r", map_click)
            return False
        asyncio.run(lifecycle.handle_map_click(coordinate))
        return True

    return False


# -----------------------------------------------------------------------------
# Notifications queued by the snap client (fire-and-forget)
# -----------------------------------------------------------------------------
for message in st.session_state.notifications:
    st.toast(message)
st.session_state.notifications = []


# -----------------------------------------------------------------------------
# Header + controls
# -----------------------------------------------------------------------------
st.title("🗺️ QUIET ROUTE PLANNER")
st.markdown("##### PICK A START AND A DESTINATION ON THE MAP")

state = controller.state
st.info(state.status_text)

col1, col2 = st.columns([1, 1])
with col1:
    st.button("RESET", use_container_width=True, on_click=reset_markers)
with col2:
    find_clicked = st.button("FIND ROUTE", use_container_width=True, disabled=not state.route_ready)

if find_clicked and state.route_ready:
    with st.spinner("Computing route..."):
        try:
            st.session_state.route = st.session_state["route_client"].fetch_route(
                state.start_marker.coordinate,
                state.end_marker.coordinate,
            )
        except RouteRequestError as e:
            st.error(str(e))


# -----------------------------------------------------------------------------
# Map
# -----------------------------------------------------------------------------
route = st.session_state.route
route_latlngs = route.geometry.to_latlngs() if route else []

if route_latlngs:
    bounds = route_bounds(route_latlngs)
    m = build_route_map(route_center(bounds), route_zoom(bounds))
    add_route_line(m, route_latlngs)
else:
    m = build_route_map(settings.map_center, settings.map_zoom)

layer.render(m)
add_status_bar(m, state.status_text)

output = st_folium(
    m,
    width=700,
    height=500,
    key=f"route_map_{st.session_state.map_reset_counter}",
    returned_objects=["last_clicked", "last_object_clicked"],
)

if handle_map_output(output):
    st.rerun()

if route:
    with st.expander("ROUTE DETAILS", expanded=True):
        for line in route.summary():
            st.write(line)
