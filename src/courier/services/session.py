"""Per-operator delivery session wiring tracking, stops, routing and payments."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

from ..config import Settings, settings
from ..data.customers_repository import CustomerLookup, get_customer_lookup
from ..models.domain import (
    AdvisoryLevel,
    FilteredPosition,
    HeadingSample,
    LatLon,
    PositionError,
    PositionErrorKind,
    PositionSample,
    Stop,
)
from .advisories import AdvisoryBoard
from .events import EventSource, Subscription
from .mapping.canvas import MapCanvas
from .payments.upi import PaymentCodeBoard, PaymentCodeSink, payment_target
from .routing.coordinator import RouteCoordinator
from .routing.models import RouteService
from .routing.osrm_client import OSRMClient
from .search.resolver import SearchResolver, SearchResult
from .stops.registry import StopRegistry
from .tracking import OrientationAdapter, PositionFilter

logger = logging.getLogger(__name__)


def directions_url(coordinates: LatLon) -> str:
    lat, lon = coordinates
    return f"https://www.google.com/maps/dir/?api=1&destination={lat},{lon}"


class DeliverySession:
    """Owns every piece of live dispatch state for one operator.

    Device feeds arrive through the ``positions``, ``position_errors`` and
    ``headings`` event sources. Handlers run on the event loop, one at a time.
    """

    def __init__(
        self,
        lookup: CustomerLookup,
        router: RouteService,
        *,
        config: Settings = settings,
        payments: PaymentCodeSink | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.advisories = AdvisoryBoard(history=config.advisory_history)
        self.map = MapCanvas(center=config.map_default_center, zoom=config.map_default_zoom)
        self.payments: PaymentCodeSink = (
            payments if payments is not None else PaymentCodeBoard(currency=config.payee_currency)
        )
        self.registry = StopRegistry(self.map)
        self.position_filter = PositionFilter(
            window=config.position_window,
            reject_accuracy_m=config.position_reject_accuracy_m,
            advisory_accuracy_m=config.position_advisory_accuracy_m,
            advisories=self.advisories,
            on_acquired=self._on_position_acquired,
        )
        self.orientation = OrientationAdapter(
            window=config.heading_window,
            min_interval_ms=config.heading_min_interval_ms,
            declination_deg=config.magnetic_declination_deg,
            advisories=self.advisories,
            clock=clock,
        )
        self.coordinator = RouteCoordinator(
            self.registry,
            router,
            self.map,
            min_interval_s=config.route_min_interval_seconds,
            min_displacement_m=config.route_min_displacement_m,
            advisories=self.advisories,
            clock=clock,
        )
        self.resolver = SearchResolver(lookup, batch_size=config.lookup_batch_size)

        self.positions: EventSource[PositionSample] = EventSource("positions")
        self.position_errors: EventSource[PositionError] = EventSource("position-errors")
        self.headings: EventSource[Optional[HeadingSample]] = EventSource("headings")
        self._subscriptions: list[Subscription] = [
            self.positions.subscribe(self._on_position),
            self.position_errors.subscribe(self._on_position_error),
            self.headings.subscribe(self._on_heading),
        ]
        self.closed = False

    # ------------------------------------------------------------------
    # Device feeds
    # ------------------------------------------------------------------
    def _on_position(self, sample: PositionSample) -> None:
        position = self.position_filter.accept(sample)
        if position is None:
            return
        self.map.move_operator(position.coordinates)
        self.coordinator.update_origin(position)

    def _on_position_acquired(self, position: FilteredPosition) -> None:
        self.map.set_view(position.coordinates, self.config.map_tracking_zoom)

    def _on_position_error(self, error: PositionError) -> None:
        if error.kind is PositionErrorKind.PERMISSION_DENIED:
            self.advisories.post("position", "Location access denied; live route is paused.", AdvisoryLevel.ERROR)
            self.position_filter.reset()
            self.map.move_operator(None)
            self.coordinator.update_origin(None)
            return
        detail = f" ({error.message})" if error.message else ""
        self.advisories.post("position", f"Location temporarily unavailable: {error.kind.value}{detail}.")

    def _on_heading(self, sample: Optional[HeadingSample]) -> None:
        heading = self.orientation.accept(sample)
        if heading is not None:
            self.map.set_heading(heading.degrees)

    # ------------------------------------------------------------------
    # Operator actions
    # ------------------------------------------------------------------
    async def search(self, raw_text: str, *, replace: bool = True) -> SearchResult:
        """Resolve phone numbers off the loop, then apply the result on it."""
        result = await asyncio.to_thread(self.resolver.resolve, raw_text)
        self.apply_search(result, replace=replace)
        return result

    def apply_search(self, result: SearchResult, *, replace: bool = True) -> list[Stop]:
        if replace:
            self.registry.clear()
            self.payments.clear()

        added = self.registry.add_stops(result.stops)
        for stop in added:
            self._render_payment_code(stop)

        if any(error.kind == "lookup_failed" for error in result.errors):
            self.advisories.post("search", "Customer lookup is unavailable; some numbers were not searched.")
        if not result.stops:
            self.advisories.post("search", "No customer found.", AdvisoryLevel.INFO)
        return added

    def _render_payment_code(self, stop: Stop) -> None:
        try:
            self.payments.render_payment_code(
                self.config.payee_upi_id,
                stop.amount_due,
                stop.display_name,
                payment_target(stop.id),
            )
        except Exception as exc:
            logger.error(f"Payment code for {stop.id} could not be rendered: {exc}")

    def mark_delivered(self, stop_id: str) -> Optional[Stop]:
        stop = self.registry.remove(stop_id)
        if stop is None:
            return None
        self.payments.discard(payment_target(stop_id))
        logger.info(f"Delivered to {stop.display_name} ({stop_id})")
        if not len(self.registry):
            self.advisories.post("stops", "All deliveries completed!", AdvisoryLevel.INFO)
        return stop

    def payment_uri(self, stop_id: str) -> Optional[str]:
        return self.payments.get(payment_target(stop_id))

    async def settle(self) -> None:
        await self.coordinator.wait_for_pending()

    def close(self) -> None:
        if self.closed:
            return
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()
        self.coordinator.close()
        self.closed = True


def build_session(
    lookup: CustomerLookup | None = None,
    router: RouteService | None = None,
    config: Settings = settings,
) -> DeliverySession:
    return DeliverySession(
        lookup=lookup or get_customer_lookup(),
        router=router or OSRMClient(),
        config=config,
    )
