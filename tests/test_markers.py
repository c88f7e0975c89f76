import asyncio

from conftest import FakeSnapClient
from route_map.coordinates import Coordinate, SnappedCoordinate
from route_map.markers import (
    END_LABEL,
    START_LABEL,
    STATUS_BOTH_SET,
    STATUS_END_REMOVED,
    STATUS_START_REMOVED,
    STATUS_START_SET,
    MarkerLifecycle,
)
from route_map.state import INITIAL_STATUS, MarkerPhase, MarkerRole


def test_first_click_sets_start(controller, fake_map, click):
    marker = click(51.5, -0.1)

    state = controller.state
    assert state.phase is MarkerPhase.START_SET
    assert state.start_marker == marker
    assert state.end_marker is None
    assert state.status_text == STATUS_START_SET
    assert marker.role is MarkerRole.START
    assert fake_map.created == [(marker.handle, Coordinate(51.5, -0.1), START_LABEL)]


def test_second_click_sets_end(controller, fake_map, click):
    start = click(51.5, -0.1)
    end = click(51.51, -0.12)

    state = controller.state
    assert state.phase is MarkerPhase.BOTH_SET
    assert state.start_marker == start
    assert state.end_marker == end
    assert state.status_text == STATUS_BOTH_SET
    assert fake_map.created[1][2] == END_LABEL


def test_third_click_is_ignored_without_lookup(controller, fake_map, snap_client, click):
    click(51.5, -0.1)
    click(51.51, -0.12)
    before = controller.state

    assert click(51.52, -0.13) is None

    assert controller.state == before
    assert len(fake_map.created) == 2
    assert len(snap_client.calls) == 2


def test_unsnapped_click_keeps_raw_coordinate(controller, click):
    marker = click(51.5, -0.1)
    assert marker.coordinate == Coordinate(51.5, -0.1)
    assert controller.state.start_marker.coordinate == Coordinate(51.5, -0.1)


def test_snapped_click_uses_road_coordinate(controller, fake_map):
    snapped = SnappedCoordinate(Coordinate(51.5007, -0.1002), 12.3, "Moved onto road")
    lifecycle = MarkerLifecycle(controller, fake_map, FakeSnapClient([snapped]))

    marker = asyncio.run(lifecycle.handle_map_click(Coordinate(51.5, -0.1)))

    assert marker.coordinate == Coordinate(51.5007, -0.1002)
    assert fake_map.created[0][1] == Coordinate(51.5007, -0.1002)
    assert controller.state.phase is MarkerPhase.START_SET


def test_marker_click_removes_start_and_stops_propagation(controller, fake_map, click):
    start = click(51.5, -0.1)

    event = fake_map.click(start.handle)

    assert event.propagation_stopped
    assert fake_map.removed == [start.handle]
    assert controller.state.phase is MarkerPhase.EMPTY
    assert controller.state.status_text == STATUS_START_REMOVED


def test_removing_start_while_both_set_keeps_end(controller, fake_map, click):
    start = click(51.5, -0.1)
    end = click(51.51, -0.12)

    fake_map.click(start.handle)

    state = controller.state
    assert state.start_marker is None
    assert state.end_marker == end
    assert state.phase is MarkerPhase.END_ONLY
    assert fake_map.removed == [start.handle]


def test_click_after_start_removed_refills_start(controller, click, fake_map):
    start = click(51.5, -0.1)
    end = click(51.51, -0.12)
    fake_map.click(start.handle)

    new_start = click(51.49, -0.11)

    state = controller.state
    assert state.start_marker == new_start
    assert state.end_marker == end
    assert state.status_text == STATUS_BOTH_SET


def test_removing_end_returns_to_start_set(controller, fake_map, click):
    start = click(51.5, -0.1)
    end = click(51.51, -0.12)

    event = fake_map.click(end.handle)

    assert event.propagation_stopped
    assert controller.state.phase is MarkerPhase.START_SET
    assert controller.state.start_marker == start
    assert controller.state.status_text == STATUS_END_REMOVED


def test_remove_start_then_end_empties_map_in_order(controller, fake_map, click):
    start = click(51.5, -0.1)
    end = click(51.51, -0.12)

    fake_map.click(start.handle)
    fake_map.click(end.handle)

    assert controller.state.phase is MarkerPhase.EMPTY
    assert fake_map.removed == [start.handle, end.handle]
    assert fake_map.live == []


def test_remove_without_marker_is_a_no_op(controller, fake_map, lifecycle):
    assert lifecycle.remove_start_marker() is False
    assert lifecycle.remove_end_marker() is False
    assert fake_map.removed == []
    assert controller.state.status_text == INITIAL_STATUS


def test_handler_of_replaced_marker_is_ignored(controller, fake_map, lifecycle, click):
    old = click(51.5, -0.1)
    lifecycle.remove_start_marker()
    new = click(51.6, -0.2)

    assert lifecycle.remove_start_marker(old.handle) is False
    assert controller.state.start_marker == new
    assert fake_map.removed == [old.handle]


def test_reset_from_each_phase_removes_every_marker_once(controller, fake_map, lifecycle, click):
    lifecycle.reset_map()
    assert fake_map.removed == []
    assert controller.state.phase is MarkerPhase.EMPTY

    click(51.5, -0.1)
    lifecycle.reset_map()
    assert fake_map.live == []

    click(51.5, -0.1)
    click(51.51, -0.12)
    lifecycle.reset_map()

    assert fake_map.live == []
    assert len(fake_map.removed) == len(set(fake_map.removed)) == 3
    state = controller.state
    assert state.start_marker is None and state.end_marker is None
    assert state.status_text == INITIAL_STATUS


def test_stale_snap_response_is_discarded(controller, fake_map):
    async def scenario():
        first = asyncio.get_running_loop().create_future()
        lifecycle = MarkerLifecycle(controller, fake_map, FakeSnapClient([first, None]))

        pending = asyncio.create_task(lifecycle.handle_map_click(Coordinate(1.0, 1.0)))
        await asyncio.sleep(0)
        latest = await lifecycle.handle_map_click(Coordinate(2.0, 2.0))

        first.set_result(SnappedCoordinate(Coordinate(1.5, 1.5), 4.0))
        return latest, await pending

    latest, stale = asyncio.run(scenario())

    assert stale is None
    assert latest.coordinate == Coordinate(2.0, 2.0)
    assert controller.state.phase is MarkerPhase.START_SET
    assert len(fake_map.created) == 1


def test_reset_discards_click_in_flight(controller, fake_map):
    async def scenario():
        gate = asyncio.Event()
        lifecycle = MarkerLifecycle(controller, fake_map, FakeSnapClient([gate]))

        pending = asyncio.create_task(lifecycle.handle_map_click(Coordinate(1.0, 1.0)))
        await asyncio.sleep(0)
        lifecycle.reset_map()
        gate.set()
        return await pending

    assert asyncio.run(scenario()) is None
    assert controller.state.phase is MarkerPhase.EMPTY
    assert fake_map.created == []
