"""
===============================================================================
MAP INTERACTION STATE — SINGLE SOURCE OF TRUTH FOR START / END MARKERS
===============================================================================

Purpose:
    Holds the canonical interaction state of one route-planning map widget:
      - status_text:  guidance shown to the user (never empty)
      - start_marker: committed start point (or None)
      - end_marker:   committed end point (or None)

Key behaviors:
    - InteractionState is an immutable value; every change produces a new one.
    - MapStateController.update_state() is the ONLY mutation path. It merges
      the given fields and leaves the rest untouched (no invariant checks;
      callers keep start/end consistent).
    - Subscribers are notified after every update so the host UI can re-render.

Notes:
    - Marker presence is exposed as a typed MarkerPhase instead of truthiness
      checks on library handles.

===============================================================================
"""

import dataclasses
import enum
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from route_map.coordinates import Coordinate


INITIAL_STATUS = "Click the map to set markers."


class MarkerRole(enum.Enum):
    START = "start"
    END = "end"


class MarkerPhase(enum.Enum):
    EMPTY = "empty"
    START_SET = "start_set"
    END_ONLY = "end_only"
    BOTH_SET = "both_set"


@dataclass(frozen=True)
class PlacedMarker:
    """Reference to a marker owned by the map layer (never owned here)."""

    handle: Any
    coordinate: Coordinate
    role: MarkerRole


@dataclass(frozen=True)
class InteractionState:
    status_text: str = INITIAL_STATUS
    start_marker: Optional[PlacedMarker] = None
    end_marker: Optional[PlacedMarker] = None

    @property
    def phase(self) -> MarkerPhase:
        if self.start_marker is None and self.end_marker is None:
            return MarkerPhase.EMPTY
        if self.end_marker is None:
            return MarkerPhase.START_SET
        if self.start_marker is None:
            return MarkerPhase.END_ONLY
        return MarkerPhase.BOTH_SET

    @property
    def route_ready(self) -> bool:
        return self.phase is MarkerPhase.BOTH_SET


class MapStateController:
    def __init__(self, state: Optional[InteractionState] = None):
        self._state = state or InteractionState()
        self._listeners: List[Callable[[InteractionState], None]] = []

    @property
    def state(self) -> InteractionState:
        return self._state

    def update_state(self, **changes) -> InteractionState:
        """
        Merge the given fields into the state.

        Unknown field names raise TypeError (dataclasses.replace).
        """
        self._state = dataclasses.replace(self._state, **changes)
        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    def subscribe(self, listener: Callable[[InteractionState], None]):
        """Register a callback run with the new state after every update."""
        self._listeners.append(listener)
        return listener
