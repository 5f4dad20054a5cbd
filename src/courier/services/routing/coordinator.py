"""Live route coordination between the operator position and pending stops.

The coordinator is ``idle`` while it lacks either an origin or at least one
coordinate-bearing stop, and ``routing`` otherwise. Every route request is
the full list ``[origin, *waypoints]``; results are tagged with a generation
number and only the latest generation is ever rendered.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, List, Optional, Set

from ...models.domain import AdvisoryLevel, FilteredPosition, LatLon
from ..advisories import AdvisoryBoard
from ..events import Subscription
from ..geospatial import distance_m
from ..mapping.canvas import MapSink
from ..stops.registry import RegistryChange, StopRegistry
from .models import RoutePath, RouteService, RouteState

logger = logging.getLogger(__name__)


class RouteCoordinator:
    def __init__(
        self,
        registry: StopRegistry,
        router: RouteService,
        map_sink: MapSink,
        *,
        min_interval_s: float = 4.0,
        min_displacement_m: float = 15.0,
        advisories: AdvisoryBoard | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._registry = registry
        self._router = router
        self._map = map_sink
        self.min_interval_s = min_interval_s
        self.min_displacement_m = min_displacement_m
        self.advisories = advisories
        self._clock = clock

        self._state = RouteState.IDLE
        self._origin: Optional[FilteredPosition] = None
        self._active_route: Optional[RoutePath] = None
        self._generation = 0
        self._last_request: Optional[List[LatLon]] = None
        self._last_request_origin: Optional[LatLon] = None
        self._last_request_at: Optional[float] = None
        self._pending: Set[asyncio.Task] = set()
        self._deferred: Optional[asyncio.TimerHandle] = None
        self.requests_issued = 0

        self._subscription: Optional[Subscription] = registry.changes.subscribe(self._on_registry_change)

    # ------------------------------------------------------------------
    # Read model
    # ------------------------------------------------------------------
    @property
    def state(self) -> RouteState:
        return self._state

    @property
    def origin(self) -> Optional[FilteredPosition]:
        return self._origin

    @property
    def active_route(self) -> Optional[RoutePath]:
        return self._active_route

    @property
    def last_request(self) -> Optional[List[LatLon]]:
        return list(self._last_request) if self._last_request is not None else None

    def waypoints(self) -> list[LatLon]:
        return self._registry.waypoints()

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------
    def update_origin(self, position: Optional[FilteredPosition]) -> None:
        """Record a new origin (or loss of origin) and recompute if warranted."""
        self._origin = position
        if position is None:
            self._go_idle("origin lost")
            return

        if not self._registry.waypoints():
            return

        if self._state is RouteState.IDLE or self._origin_moved_enough(position):
            self._issue()
        elif self._moved_far_enough(position):
            self._schedule_deferred()

    def _on_registry_change(self, change: RegistryChange) -> None:
        logger.debug(f"Registry {change.kind}: {', '.join(change.stop_ids)}")
        if self._origin is None or not self._registry.waypoints():
            self._go_idle(f"registry {change.kind}")
            return
        self._issue()

    def _origin_moved_enough(self, position: FilteredPosition) -> bool:
        if self._last_request_at is None or self._last_request_origin is None:
            return True
        if self._clock() - self._last_request_at < self.min_interval_s:
            return False
        return self._moved_far_enough(position)

    def _moved_far_enough(self, position: FilteredPosition) -> bool:
        if self._last_request_origin is None:
            return True
        return distance_m(self._last_request_origin, position.coordinates) >= self.min_displacement_m

    def _schedule_deferred(self) -> None:
        """Recompute once the interval elapses, even if no further sample arrives."""
        if self._deferred is not None or self._last_request_at is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; deferred route recompute skipped")
            return
        delay = max(0.0, self.min_interval_s - (self._clock() - self._last_request_at))
        self._deferred = loop.call_later(delay, self._run_deferred)

    def _cancel_deferred(self) -> None:
        if self._deferred is not None:
            self._deferred.cancel()
            self._deferred = None

    def _run_deferred(self) -> None:
        self._deferred = None
        if self._state is not RouteState.ROUTING or self._origin is None:
            return
        if self._moved_far_enough(self._origin):
            self._issue()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def _go_idle(self, reason: str) -> None:
        self._cancel_deferred()
        # Bumping the generation invalidates any in-flight request
        self._generation += 1
        if self._active_route is not None:
            self._map.clear_route()
            self._active_route = None
        if self._state is not RouteState.IDLE:
            logger.info(f"Route coordinator idle ({reason})")
        self._state = RouteState.IDLE

    def _issue(self) -> None:
        if self._origin is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; route request not issued")
            if self.advisories is not None:
                self.advisories.post("routing", "Route could not be requested right now.", AdvisoryLevel.WARNING)
            return

        self._cancel_deferred()
        waypoints = [self._origin.coordinates, *self._registry.waypoints()]
        self._generation += 1
        generation = self._generation
        self._state = RouteState.ROUTING
        self._last_request = waypoints
        self._last_request_origin = self._origin.coordinates
        self._last_request_at = self._clock()
        self.requests_issued += 1
        logger.debug(f"Issuing route request #{generation} through {len(waypoints) - 1} stop(s)")

        task = loop.create_task(self._request(generation, waypoints))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _request(self, generation: int, waypoints: List[LatLon]) -> None:
        try:
            path = await self._router.compute_route(waypoints)
        except Exception as exc:
            logger.warning(f"Route request #{generation} failed: {exc}")
            if generation == self._generation and self.advisories is not None:
                self.advisories.post(
                    "routing",
                    "Could not update the route; showing the last known path.",
                    AdvisoryLevel.WARNING,
                )
            return

        if generation != self._generation or self._state is not RouteState.ROUTING:
            logger.debug(f"Discarding superseded route result #{generation} (latest #{self._generation})")
            return

        if self._active_route is not None:
            self._map.clear_route()
            self._active_route = None
        self._map.render_route(path)
        self._active_route = path

    async def wait_for_pending(self) -> None:
        """Wait until every in-flight route request has settled."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        self._go_idle("closed")
        for task in list(self._pending):
            task.cancel()
