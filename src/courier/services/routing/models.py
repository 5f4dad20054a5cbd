"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Protocol, Sequence

from ...models.domain import LatLon


@dataclass(slots=True)
class RoutePath:
    """Handle for a computed route, as rendered on the map."""

    waypoints: List[LatLon]
    geometry: List[LatLon]
    distance_m: float
    duration_s: float
    metadata: dict = field(default_factory=dict)


class RouteState(str, Enum):
    IDLE = "idle"
    ROUTING = "routing"


class RouteService(Protocol):
    async def compute_route(self, waypoints: Sequence[LatLon]) -> RoutePath:
        ...
