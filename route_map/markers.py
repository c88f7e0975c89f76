"""
===============================================================================
MARKER LIFECYCLE — CLICK-TO-PLACE, CLICK-TO-REMOVE, RESET
===============================================================================

Purpose:
    Turns map clicks into a start/end marker pair and keeps the markers on the
    map consistent with MapStateController's state.

State machine (phase derived from InteractionState):
    EMPTY      + click         -> snap, place START              -> START_SET
    START_SET  + click         -> snap, place END                -> BOTH_SET
    END_ONLY   + click         -> snap, place START              -> BOTH_SET
    BOTH_SET   + click         -> ignored (no request)           -> BOTH_SET
    *          + remove-start  -> delete START, keep END
    *          + remove-end    -> delete END, keep START
    *          + reset         -> delete both                    -> EMPTY

Key behaviors:
    - Every created marker gets a click handler that stops propagation to the
      map (otherwise removing a marker would also place a new one) and removes
      that marker.
    - Overlapping clicks: each click takes a ticket. If a newer click (or a
      reset) happened while the snap was in flight, the older result is
      discarded instead of being applied to the newer state.
    - Impossible transitions (remove with nothing to remove, handler of a
      marker that was already replaced) are logged and ignored.

Map capability (any object providing):
    create_marker(coordinate, label) -> handle
    on_marker_click(handle, callback)      callback(event), event.stop_propagation()
    remove_marker(handle)
    to_coordinate(lat, lon) -> Coordinate

===============================================================================
"""

import itertools
import logging
from typing import Any, Callable, Optional, Protocol

from route_map.coordinates import Coordinate
from route_map.state import INITIAL_STATUS, MapStateController, MarkerPhase, MarkerRole, PlacedMarker


START_LABEL = "Start (click to remove)"
END_LABEL = "Destination (click to remove)"

STATUS_START_SET = "Start set! Click again for destination."
STATUS_BOTH_SET = "Both markers set!"
STATUS_START_REMOVED = "Start marker removed. Click the map to set a new start."
STATUS_END_REMOVED = "End marker removed. Click the map for destination."


class MapCapability(Protocol):
    def create_marker(self, coordinate: Coordinate, label: str) -> Any: ...

    def on_marker_click(self, handle: Any, callback: Callable[[Any], None]) -> None: ...

    def remove_marker(self, handle: Any) -> None: ...

    def to_coordinate(self, lat: float, lon: float) -> Coordinate: ...


class MarkerLifecycle:
    def __init__(self, controller: MapStateController, map_layer: MapCapability, snap_client):
        self.controller = controller
        self.map = map_layer
        self.snap_client = snap_client
        self._tickets = itertools.count(1)
        self._latest_ticket = 0

        self.logger = logging.getLogger("MarkerLifecycle")

    # ----------------------------- CLICK ----------------------------
    async def handle_map_click(self, coordinate: Coordinate) -> Optional[PlacedMarker]:
        """
        Place the next marker for a map click.

        Returns:
            The PlacedMarker created, or None when the click was ignored
            (both markers already set, or superseded while snapping).
        """
        if self.controller.state.phase is MarkerPhase.BOTH_SET:
            self.logger.debug("Both markers set; ignoring click at %s", coordinate)
            return None

        ticket = self._take_ticket()
        snapped = await self.snap_client.snap(
            coordinate,
            still_current=lambda: ticket == self._latest_ticket,
        )

        if ticket != self._latest_ticket:
            self.logger.info("Discarding stale click at %s (ticket %s)", coordinate, ticket)
            return None

        effective = coordinate
        if snapped is not None:
            effective = self.map.to_coordinate(snapped.coordinate.lat, snapped.coordinate.lon)

        # Phase is re-read here: state may have changed while awaiting the snap
        phase = self.controller.state.phase
        if phase in (MarkerPhase.EMPTY, MarkerPhase.END_ONLY):
            return self._place(MarkerRole.START, effective)
        if phase is MarkerPhase.START_SET:
            return self._place(MarkerRole.END, effective)

        self.logger.debug("Both markers set after snap; ignoring click at %s", coordinate)
        return None

    def _take_ticket(self):
        self._latest_ticket = next(self._tickets)
        return self._latest_ticket

    def _place(self, role: MarkerRole, coordinate: Coordinate) -> PlacedMarker:
        if role is MarkerRole.START:
            handle = self.map.create_marker(coordinate, START_LABEL)
            marker = PlacedMarker(handle=handle, coordinate=coordinate, role=role)
            self.map.on_marker_click(handle, self._remove_handler(marker))
            end = self.controller.state.end_marker
            self.controller.update_state(
                start_marker=marker,
                status_text=STATUS_BOTH_SET if end is not None else STATUS_START_SET,
            )
        else:
            handle = self.map.create_marker(coordinate, END_LABEL)
            marker = PlacedMarker(handle=handle, coordinate=coordinate, role=role)
            self.map.on_marker_click(handle, self._remove_handler(marker))
            self.controller.update_state(end_marker=marker, status_text=STATUS_BOTH_SET)

        self.logger.info("Placed %s marker at (%.6f, %.6f)", role.value, coordinate.lat, coordinate.lon)
        return marker

    def _remove_handler(self, marker: PlacedMarker):
        def on_click(event):
            event.stop_propagation()
            if marker.role is MarkerRole.START:
                self.remove_start_marker(marker.handle)
            else:
                self.remove_end_marker(marker.handle)

        return on_click

    # ---------------------------- REMOVAL ---------------------------
    def remove_start_marker(self, handle=None) -> bool:
        """
        Delete the start marker from the map and clear it from state.

        `handle` (optional) must match the current start marker; a handler
        bound to an already-replaced marker is ignored.
        """
        current = self.controller.state.start_marker
        if current is None or (handle is not None and handle != current.handle):
            self.logger.debug("No matching start marker to remove")
            return False

        self.map.remove_marker(current.handle)
        self.controller.update_state(start_marker=None, status_text=STATUS_START_REMOVED)
        return True

    def remove_end_marker(self, handle=None) -> bool:
        """Delete the end marker from the map and clear it from state."""
        current = self.controller.state.end_marker
        if current is None or (handle is not None and handle != current.handle):
            self.logger.debug("No matching end marker to remove")
            return False

        self.map.remove_marker(current.handle)
        self.controller.update_state(end_marker=None, status_text=STATUS_END_REMOVED)
        return True

    def reset_map(self):
        """Remove every present marker once and return to the initial prompt."""
        # Clicks still waiting on a snap must not land after the reset
        self._take_ticket()

        state = self.controller.state
        for marker in (state.start_marker, state.end_marker):
            if marker is not None:
                self.map.remove_marker(marker.handle)

        self.controller.update_state(
            start_marker=None,
            end_marker=None,
            status_text=INITIAL_STATUS,
        )
