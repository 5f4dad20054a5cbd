import asyncio

from courier.models.domain import FilteredPosition, Stop
from courier.services.advisories import AdvisoryBoard
from courier.services.mapping.canvas import MapCanvas
from courier.services.routing.coordinator import RouteCoordinator
from courier.services.routing.models import RoutePath, RouteState
from courier.services.stops import StopRegistry


def _stop(stop_id: str, coordinates=(29.08, 80.11)) -> Stop:
    return Stop(
        id=stop_id,
        display_name=f"Customer {stop_id}",
        phone_number=stop_id,
        address=None,
        coordinates=coordinates,
        order_summary=None,
        amount_due=0.0,
    )


def _path(waypoints) -> RoutePath:
    return RoutePath(
        waypoints=list(waypoints),
        geometry=list(waypoints),
        distance_m=100.0 * len(waypoints),
        duration_s=60.0,
    )


class FakeRouter:
    """Records every request; in manual mode each result waits on a future."""

    def __init__(self, manual: bool = False) -> None:
        self.manual = manual
        self.calls = []
        self.pending = []
        self.fail = False

    async def compute_route(self, waypoints):
        self.calls.append(list(waypoints))
        if self.manual:
            future = asyncio.get_running_loop().create_future()
            self.pending.append(future)
            return await future
        if self.fail:
            raise ConnectionError("routing service unreachable")
        return _path(waypoints)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


async def _drain() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def _setup(router=None, clock=None, advisories=None, **throttle):
    canvas = MapCanvas(center=(29.0723, 80.1035), zoom=13)
    registry = StopRegistry(canvas)
    router = router or FakeRouter()
    coordinator = RouteCoordinator(
        registry,
        router,
        canvas,
        advisories=advisories,
        clock=clock or FakeClock(),
        **throttle,
    )
    return canvas, registry, router, coordinator


def test_origin_arriving_after_stops_issues_single_request():
    async def scenario():
        canvas, registry, router, coordinator = _setup()
        registry.add_stops([_stop("1", (29.08, 80.11)), _stop("2", (29.09, 80.12))])
        assert coordinator.state is RouteState.IDLE
        assert coordinator.requests_issued == 0

        coordinator.update_origin(FilteredPosition(29.07, 80.10))
        await coordinator.wait_for_pending()

        assert router.calls == [[(29.07, 80.10), (29.08, 80.11), (29.09, 80.12)]]
        assert coordinator.state is RouteState.ROUTING
        assert canvas.route.waypoints == router.calls[0]

    asyncio.run(scenario())


def test_only_latest_request_is_rendered():
    async def scenario():
        canvas, registry, router, coordinator = _setup(router=FakeRouter(manual=True))
        coordinator.update_origin(FilteredPosition(29.07, 80.10))

        registry.add_stops([_stop("A", (29.08, 80.11))])
        await _drain()
        registry.add_stops([_stop("B", (29.09, 80.12))])
        await _drain()
        assert len(router.pending) == 2

        router.pending[1].set_result(_path(router.calls[1]))
        await _drain()
        assert canvas.route.waypoints == [(29.07, 80.10), (29.08, 80.11), (29.09, 80.12)]

        router.pending[0].set_result(_path(router.calls[0]))
        await _drain()
        assert canvas.route.waypoints == [(29.07, 80.10), (29.08, 80.11), (29.09, 80.12)]
        assert canvas.routes_rendered == 1

    asyncio.run(scenario())


def test_idle_without_origin_or_waypoints():
    async def scenario():
        canvas, registry, router, coordinator = _setup()

        coordinator.update_origin(FilteredPosition(29.07, 80.10))
        assert coordinator.state is RouteState.IDLE

        registry.add_stops([_stop("nocoords", None)])
        assert coordinator.state is RouteState.IDLE
        assert coordinator.requests_issued == 0

        registry.add_stops([_stop("A")])
        await coordinator.wait_for_pending()
        assert coordinator.state is RouteState.ROUTING
        assert canvas.route is not None

        registry.remove("A")
        assert coordinator.state is RouteState.IDLE
        assert canvas.route is None
        assert coordinator.requests_issued == 1

        await coordinator.wait_for_pending()
        assert router.calls == [[(29.07, 80.10), (29.08, 80.11)]]

    asyncio.run(scenario())


def test_losing_origin_clears_route():
    async def scenario():
        canvas, registry, router, coordinator = _setup()
        coordinator.update_origin(FilteredPosition(29.07, 80.10))
        registry.add_stops([_stop("A")])
        await coordinator.wait_for_pending()
        assert canvas.route is not None

        coordinator.update_origin(None)

        assert coordinator.state is RouteState.IDLE
        assert coordinator.origin is None
        assert canvas.route is None

    asyncio.run(scenario())


def test_position_updates_are_throttled_but_registry_changes_are_not():
    async def scenario():
        clock = FakeClock()
        canvas, registry, router, coordinator = _setup(clock=clock)

        coordinator.update_origin(FilteredPosition(29.0, 80.0))
        registry.add_stops([_stop("A", (29.01, 80.01))])
        assert coordinator.requests_issued == 1

        # Moved ~100 m but only one second later
        clock.now = 1.0
        coordinator.update_origin(FilteredPosition(29.0009, 80.0))
        assert coordinator.requests_issued == 1

        # Long enough, but only ~4 m from the last request origin
        clock.now = 5.0
        coordinator.update_origin(FilteredPosition(29.00004, 80.0))
        assert coordinator.requests_issued == 1

        clock.now = 6.0
        coordinator.update_origin(FilteredPosition(29.0005, 80.0))
        assert coordinator.requests_issued == 2
        assert coordinator.last_request[0] == (29.0005, 80.0)

        clock.now = 6.1
        registry.add_stops([_stop("B", (29.02, 80.02))])
        assert coordinator.requests_issued == 3
        assert coordinator.last_request == [(29.0005, 80.0), (29.01, 80.01), (29.02, 80.02)]

        await coordinator.wait_for_pending()
        assert len(router.calls) == 3

    asyncio.run(scenario())


def test_failed_request_keeps_previous_route_and_posts_advisory():
    async def scenario():
        board = AdvisoryBoard()
        canvas, registry, router, coordinator = _setup(advisories=board)
        coordinator.update_origin(FilteredPosition(29.07, 80.10))
        registry.add_stops([_stop("A")])
        await coordinator.wait_for_pending()
        previous = canvas.route

        router.fail = True
        registry.add_stops([_stop("B", (29.09, 80.12))])
        await coordinator.wait_for_pending()

        assert canvas.route is previous
        assert coordinator.state is RouteState.ROUTING
        assert [advisory.source for advisory in board.recent()] == ["routing"]

    asyncio.run(scenario())


def test_result_arriving_after_idle_is_discarded():
    async def scenario():
        canvas, registry, router, coordinator = _setup(router=FakeRouter(manual=True))
        coordinator.update_origin(FilteredPosition(29.07, 80.10))
        registry.add_stops([_stop("A")])
        await _drain()

        registry.clear()
        router.pending[0].set_result(_path(router.calls[0]))
        await _drain()

        assert coordinator.state is RouteState.IDLE
        assert canvas.route is None
        assert canvas.routes_rendered == 0

    asyncio.run(scenario())


def test_close_unsubscribes_and_clears_route():
    async def scenario():
        canvas, registry, router, coordinator = _setup()
        coordinator.update_origin(FilteredPosition(29.07, 80.10))
        registry.add_stops([_stop("A")])
        await coordinator.wait_for_pending()

        coordinator.close()
        assert canvas.route is None
        assert registry.changes.subscriber_count == 0

        registry.add_stops([_stop("B")])
        assert coordinator.requests_issued == 1

    asyncio.run(scenario())


def test_move_inside_interval_is_routed_when_interval_elapses():
    async def scenario():
        clock = FakeClock()
        canvas, registry, router, coordinator = _setup(clock=clock, min_interval_s=0.05)
        coordinator.update_origin(FilteredPosition(29.0, 80.0))
        registry.add_stops([_stop("A", (29.01, 80.01))])
        assert coordinator.requests_issued == 1

        # ~550 m away, but inside the interval; no further samples follow
        clock.now = 0.01
        coordinator.update_origin(FilteredPosition(29.005, 80.0))
        assert coordinator.requests_issued == 1

        await asyncio.sleep(0.2)
        assert coordinator.requests_issued == 2
        assert coordinator.last_request[0] == (29.005, 80.0)

        await coordinator.wait_for_pending()
        assert router.calls[-1][0] == (29.005, 80.0)

    asyncio.run(scenario())


def test_small_move_inside_interval_is_not_deferred():
    async def scenario():
        clock = FakeClock()
        canvas, registry, router, coordinator = _setup(clock=clock, min_interval_s=0.05)
        coordinator.update_origin(FilteredPosition(29.0, 80.0))
        registry.add_stops([_stop("A", (29.01, 80.01))])

        clock.now = 0.01
        coordinator.update_origin(FilteredPosition(29.00004, 80.0))
        await asyncio.sleep(0.2)

        assert coordinator.requests_issued == 1

    asyncio.run(scenario())


def test_going_idle_cancels_deferred_recompute():
    async def scenario():
        clock = FakeClock()
        canvas, registry, router, coordinator = _setup(clock=clock, min_interval_s=0.05)
        coordinator.update_origin(FilteredPosition(29.0, 80.0))
        registry.add_stops([_stop("A", (29.01, 80.01))])

        clock.now = 0.01
        coordinator.update_origin(FilteredPosition(29.005, 80.0))
        registry.clear()
        await asyncio.sleep(0.2)

        assert coordinator.state is RouteState.IDLE
        assert coordinator.requests_issued == 1

    asyncio.run(scenario())


def test_registry_change_without_event_loop_leaves_state_unchanged():
    board = AdvisoryBoard()
    canvas, registry, router, coordinator = _setup(advisories=board)
    coordinator.update_origin(FilteredPosition(29.07, 80.10))

    registry.add_stops([_stop("A")])

    assert coordinator.state is RouteState.IDLE
    assert coordinator.requests_issued == 0
    assert coordinator.last_request is None
    assert [advisory.source for advisory in board.recent()] == ["routing"]

    async def next_fix():
        coordinator.update_origin(FilteredPosition(29.07, 80.10))
        await coordinator.wait_for_pending()

    asyncio.run(next_fix())
    assert coordinator.requests_issued == 1
    assert canvas.route is not None


def test_close_cancels_in_flight_requests():
    async def scenario():
        canvas, registry, router, coordinator = _setup(router=FakeRouter(manual=True))
        coordinator.update_origin(FilteredPosition(29.07, 80.10))
        registry.add_stops([_stop("A")])
        await _drain()

        coordinator.close()
        await coordinator.wait_for_pending()

        assert router.pending[0].cancelled()
        assert canvas.route is None

    asyncio.run(scenario())
