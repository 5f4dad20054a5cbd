"""Map-rendering sink.

The browser client draws whatever this canvas holds: stop markers, the view,
the operator marker with its heading, and at most one route.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

from ...models.domain import LatLon
from ..routing.models import RoutePath

MarkerHandle = int


class MapSink(Protocol):
    def add_marker(self, coords: LatLon, label: str = "", stop_id: str | None = None) -> MarkerHandle:
        ...

    def remove_marker(self, handle: MarkerHandle) -> None:
        ...

    def set_view(self, coords: LatLon, zoom: int) -> None:
        ...

    def render_route(self, path: RoutePath) -> None:
        ...

    def clear_route(self) -> None:
        ...


@dataclass(slots=True)
class MapMarker:
    handle: MarkerHandle
    latitude: float
    longitude: float
    label: str
    stop_id: Optional[str] = None


@dataclass(slots=True)
class MapView:
    center: LatLon
    zoom: int


class MapCanvas:
    """In-memory map state consumed by the HTTP read model."""

    def __init__(self, center: LatLon, zoom: int) -> None:
        self.view = MapView(center=center, zoom=zoom)
        self._markers: Dict[MarkerHandle, MapMarker] = {}
        self._handles = itertools.count(1)
        self.route: Optional[RoutePath] = None
        self.operator: Optional[LatLon] = None
        self.heading: Optional[int] = None
        self.routes_rendered = 0

    def add_marker(self, coords: LatLon, label: str = "", stop_id: str | None = None) -> MarkerHandle:
        handle = next(self._handles)
        self._markers[handle] = MapMarker(
            handle=handle,
            latitude=coords[0],
            longitude=coords[1],
            label=label,
            stop_id=stop_id,
        )
        return handle

    def remove_marker(self, handle: MarkerHandle) -> None:
        if self._markers.pop(handle, None) is None:
            raise KeyError(f"Unknown marker handle {handle}")

    def set_view(self, coords: LatLon, zoom: int) -> None:
        self.view = MapView(center=coords, zoom=zoom)

    def render_route(self, path: RoutePath) -> None:
        if self.route is not None:
            raise RuntimeError("A route is already rendered; clear it first.")
        self.route = path
        self.routes_rendered += 1

    def clear_route(self) -> None:
        self.route = None

    def move_operator(self, coords: LatLon | None) -> None:
        self.operator = coords

    def set_heading(self, degrees: int) -> None:
        self.heading = degrees

    @property
    def markers(self) -> list[MapMarker]:
        return list(self._markers.values())

    def snapshot(self) -> dict:
        return {
            "center": list(self.view.center),
            "zoom": self.view.zoom,
            "operator": list(self.operator) if self.operator else None,
            "heading": self.heading,
            "markers": [
                {
                    "handle": marker.handle,
                    "stop_id": marker.stop_id,
                    "latitude": marker.latitude,
                    "longitude": marker.longitude,
                    "label": marker.label,
                }
                for marker in self._markers.values()
            ],
            "route": (
                {
                    "geometry": [list(point) for point in self.route.geometry],
                    "waypoints": [list(point) for point in self.route.waypoints],
                    "distance_m": self.route.distance_m,
                    "duration_s": self.route.duration_s,
                }
                if self.route
                else None
            ),
        }
