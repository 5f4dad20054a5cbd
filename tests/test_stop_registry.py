import itertools

import pytest

from courier.models.domain import Stop
from courier.services.mapping.canvas import MapCanvas
from courier.services.stops import StopRegistry


def _stop(stop_id: str, coordinates=(29.07, 80.10), amount: float = 120.0) -> Stop:
    return Stop(
        id=stop_id,
        display_name=f"Customer {stop_id}",
        phone_number=stop_id,
        address=f"House {stop_id}",
        coordinates=coordinates,
        order_summary="2x milk",
        amount_due=amount,
    )


def _assert_consistent(registry: StopRegistry, canvas: MapCanvas) -> None:
    with_coordinates = {stop.id for stop in registry.all() if stop.coordinates is not None}
    assert registry.marker_ids() == with_coordinates
    assert registry.waypoint_ids() == with_coordinates
    assert {marker.stop_id for marker in canvas.markers} == with_coordinates
    assert len(canvas.markers) == len(with_coordinates)


@pytest.fixture
def canvas() -> MapCanvas:
    return MapCanvas(center=(29.0723, 80.1035), zoom=13)


def test_stop_without_coordinates_has_no_marker_or_waypoint(canvas):
    registry = StopRegistry(canvas)
    registry.add_stops([_stop("A", (29.01, 80.01)), _stop("B", None), _stop("C", (29.03, 80.03))])

    assert len(registry) == 3
    assert registry.waypoints() == [(29.01, 80.01), (29.03, 80.03)]
    _assert_consistent(registry, canvas)


def test_removing_stop_without_coordinates_leaves_waypoints_untouched(canvas):
    registry = StopRegistry(canvas)
    registry.add_stops([_stop("A", (29.01, 80.01)), _stop("B", None), _stop("C", (29.03, 80.03))])
    handles_before = {marker.stop_id: marker.handle for marker in canvas.markers}

    removed = registry.remove("B")

    assert removed.id == "B"
    assert registry.waypoints() == [(29.01, 80.01), (29.03, 80.03)]
    assert {marker.stop_id: marker.handle for marker in canvas.markers} == handles_before


def test_removing_stop_removes_its_own_marker(canvas):
    registry = StopRegistry(canvas)
    registry.add_stops([_stop("A", (29.01, 80.01)), _stop("B", (29.02, 80.02)), _stop("C", (29.03, 80.03))])

    registry.remove("A")

    assert [marker.stop_id for marker in canvas.markers] == ["B", "C"]
    assert registry.waypoints() == [(29.02, 80.02), (29.03, 80.03)]


def test_consistency_holds_for_every_removal_order():
    stops = [
        _stop("A", (29.01, 80.01)),
        _stop("B", None),
        _stop("C", (29.03, 80.03)),
        _stop("D", None),
    ]
    for order in itertools.permutations([stop.id for stop in stops]):
        canvas = MapCanvas(center=(0.0, 0.0), zoom=13)
        registry = StopRegistry(canvas)
        registry.add_stops(stops)
        _assert_consistent(registry, canvas)
        for stop_id in order:
            registry.remove(stop_id)
            _assert_consistent(registry, canvas)
        assert len(registry) == 0


def test_duplicate_ids_are_dropped(canvas):
    registry = StopRegistry(canvas)
    registry.add_stops([_stop("A"), _stop("B")])

    added = registry.add_stops([_stop("B", (1.0, 1.0)), _stop("C")])

    assert [stop.id for stop in added] == ["C"]
    assert [stop.id for stop in registry.all()] == ["A", "B", "C"]
    assert registry.get("B").coordinates == (29.07, 80.10)
    _assert_consistent(registry, canvas)


def test_changes_published_only_when_something_changed(canvas):
    registry = StopRegistry(canvas)
    changes = []
    registry.changes.subscribe(changes.append)

    registry.clear()
    registry.add_stops([_stop("A")])
    registry.add_stops([_stop("A")])
    assert registry.remove("missing") is None
    registry.remove("A")

    assert [(change.kind, change.stop_ids) for change in changes] == [("added", ("A",)), ("removed", ("A",))]


def test_clear_releases_all_markers(canvas):
    registry = StopRegistry(canvas)
    changes = []
    registry.changes.subscribe(changes.append)
    registry.add_stops([_stop("A", (29.01, 80.01)), _stop("B", None)])

    registry.clear()

    assert len(registry) == 0
    assert canvas.markers == []
    assert registry.waypoints() == []
    assert changes[-1].kind == "cleared"
    assert changes[-1].stop_ids == ("A", "B")


def test_iteration_is_restartable(canvas):
    registry = StopRegistry(canvas)
    registry.add_stops([_stop("A"), _stop("B")])

    assert [stop.id for stop in registry] == ["A", "B"]
    assert [stop.id for stop in registry] == ["A", "B"]
    assert "A" in registry
    assert "Z" not in registry


def test_marker_label_carries_name_address_and_amount(canvas):
    registry = StopRegistry(canvas)
    registry.add_stops([_stop("A", amount=250.0)])

    label = canvas.markers[0].label
    assert "Customer A" in label
    assert "House A" in label
    assert "₹250" in label
