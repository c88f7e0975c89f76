import asyncio

import pytest

from route_map.coordinates import Coordinate
from route_map.markers import MarkerLifecycle
from route_map.state import MapStateController


class FakeClickEvent:
    def __init__(self):
        self.propagation_stopped = False

    def stop_propagation(self):
        self.propagation_stopped = True


class FakeMap:
    """Records every call the lifecycle makes on the map capability."""

    def __init__(self):
        self.created = []   # (handle, coordinate, label)
        self.removed = []   # handles, in order
        self.handlers = {}
        self._next = 0

    def create_marker(self, coordinate, label):
        self._next += 1
        handle = f"marker-{self._next}"
        self.created.append((handle, coordinate, label))
        return handle

    def on_marker_click(self, handle, callback):
        self.handlers[handle] = callback

    def remove_marker(self, handle):
        self.removed.append(handle)

    def to_coordinate(self, lat, lon):
        return Coordinate(lat, lon)

    def click(self, handle):
        event = FakeClickEvent()
        self.handlers[handle](event)
        return event

    @property
    def live(self):
        return [h for h, _, _ in self.created if h not in self.removed]


class FakeSnapClient:
    """Returns queued results; a result may be an asyncio.Event-gated future."""

    def __init__(self, results=None):
        self.results = list(results or [])
        self.calls = []

    async def snap(self, coordinate, still_current=None):
        self.calls.append(coordinate)
        result = self.results.pop(0) if self.results else None
        if isinstance(result, asyncio.Event):
            await result.wait()
            result = None
        elif isinstance(result, asyncio.Future):
            result = await result
        return result


@pytest.fixture
def fake_map():
    return FakeMap()


@pytest.fixture
def snap_client():
    return FakeSnapClient()


@pytest.fixture
def controller():
    return MapStateController()


@pytest.fixture
def lifecycle(controller, fake_map, snap_client):
    return MarkerLifecycle(controller, fake_map, snap_client)


@pytest.fixture
def click(lifecycle):
    def _click(lat, lon):
        return asyncio.run(lifecycle.handle_map_click(Coordinate(lat, lon)))
    return _click
