"""Ordered registry of pending delivery stops and their map markers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Optional, Tuple

from ...models.domain import LatLon, Stop
from ..events import EventSource
from ..mapping.canvas import MapSink, MarkerHandle

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RegistryChange:
    kind: str  # "added" | "removed" | "cleared"
    stop_ids: Tuple[str, ...]


def marker_label(stop: Stop) -> str:
    return f"{stop.display_name}\n{stop.address or ''}\n₹{stop.amount_due:g}"


class StopRegistry:
    """Stops, markers and waypoints kept in 1:1 correspondence by stop id.

    Every stop with coordinates owns exactly one marker and one waypoint;
    stops without coordinates own neither. All three are added and removed
    together, always looked up by id, never by position.
    """

    def __init__(self, map_sink: MapSink) -> None:
        self._map = map_sink
        self._stops: Dict[str, Stop] = {}
        self._markers: Dict[str, MarkerHandle] = {}
        self._waypoints: Dict[str, LatLon] = {}
        self.changes: EventSource[RegistryChange] = EventSource("stop-registry")

    def add_stops(self, candidates: Iterable[Stop]) -> list[Stop]:
        """Append stops whose id is not already registered; duplicates are dropped."""
        added: list[Stop] = []
        for stop in candidates:
            if stop.id in self._stops:
                continue
            if stop.coordinates is not None:
                handle = self._map.add_marker(stop.coordinates, marker_label(stop), stop_id=stop.id)
                self._markers[stop.id] = handle
                self._waypoints[stop.id] = stop.coordinates
            self._stops[stop.id] = stop
            added.append(stop)

        if added:
            logger.debug(f"Registered {len(added)} stop(s)")
            self.changes.publish(RegistryChange("added", tuple(stop.id for stop in added)))
        return added

    def remove(self, stop_id: str) -> Optional[Stop]:
        stop = self._stops.get(stop_id)
        if stop is None:
            return None
        self._release(stop_id)
        del self._stops[stop_id]
        self.changes.publish(RegistryChange("removed", (stop_id,)))
        return stop

    def clear(self) -> None:
        if not self._stops:
            return
        stop_ids = tuple(self._stops)
        for stop_id in stop_ids:
            self._release(stop_id)
        self._stops.clear()
        self.changes.publish(RegistryChange("cleared", stop_ids))

    def _release(self, stop_id: str) -> None:
        handle = self._markers.get(stop_id)
        if handle is not None:
            self._map.remove_marker(handle)
        self._markers.pop(stop_id, None)
        self._waypoints.pop(stop_id, None)

    def all(self) -> Tuple[Stop, ...]:
        return tuple(self._stops.values())

    def get(self, stop_id: str) -> Optional[Stop]:
        return self._stops.get(stop_id)

    def waypoints(self) -> list[LatLon]:
        """Coordinates of coordinate-bearing stops, in registry order."""
        return [self._waypoints[stop_id] for stop_id in self._stops if stop_id in self._waypoints]

    def marker_ids(self) -> set[str]:
        return set(self._markers)

    def waypoint_ids(self) -> set[str]:
        return set(self._waypoints)

    def __len__(self) -> int:
        return len(self._stops)

    def __contains__(self, stop_id: object) -> bool:
        return stop_id in self._stops

    def __iter__(self) -> Iterator[Stop]:
        return iter(self.all())
