"""HTTP client for interacting with OSRM services."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

import httpx

from ...config import settings
from ...models.domain import LatLon
from .models import RoutePath

logger = logging.getLogger(__name__)


class OSRMClient:
    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.osrm_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.profile = profile or settings.osrm_profile
        self.timeout = timeout if timeout is not None else settings.osrm_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.osrm_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.osrm_backoff_seconds
        self._transport = transport

    def _get_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=5.0),
            transport=self._transport,
        )

    async def route(self, coordinates: Sequence[LatLon]) -> dict:
        """Get route geometry between coordinates using OSRM route endpoint.

        Returns the route path that follows streets, including geometry as polyline.

        Args:
            coordinates: Sequence of (lat, lon) tuples for the route waypoints

        Returns:
            The decoded OSRM response body with ``code == "Ok"``.
        """
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required for OSRM route.")

        # OSRM route endpoint expects coordinates as "lon,lat;lon,lat;..."
        coordinate_str = ";".join(f"{lon},{lat}" for lat, lon in coordinates)

        params = {
            "overview": "full",
            "geometries": "polyline",
            "steps": "false",
            "alternatives": "false",
        }
        url = f"{self.base_url}/route/v1/{self.profile}/{coordinate_str}"

        async with self._get_client() as client:
            attempt = 0
            while True:
                try:
                    response = await client.get(url, params=params)
                    response.raise_for_status()
                    data = response.json()

                    if data.get("code") != "Ok":
                        error_msg = data.get("message", "Unknown OSRM route error")
                        raise ValueError(f"OSRM route request failed: {error_msg}")

                    return data
                except httpx.HTTPStatusError:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise
                    await asyncio.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"OSRM route request timed out after {attempt} attempt(s): {e}")
                        raise
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM route timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    await asyncio.sleep(wait_time)
                except (httpx.NetworkError, OSError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ConnectionError(
                            f"Failed to connect to OSRM service at {self.base_url}: {e}"
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    await asyncio.sleep(wait_time)

    async def compute_route(self, waypoints: Sequence[LatLon]) -> RoutePath:
        """Route through ``waypoints`` in the given order and return a renderable path."""
        data = await self.route(waypoints)
        routes = data.get("routes") or []
        if not routes:
            raise ValueError("OSRM returned no routes.")
        best = routes[0]
        geometry = best.get("geometry") or ""
        return RoutePath(
            waypoints=list(waypoints),
            geometry=decode_polyline(geometry) if isinstance(geometry, str) else [],
            distance_m=float(best.get("distance", 0.0)),
            duration_s=float(best.get("duration", 0.0)),
            metadata={"legs": len(best.get("legs") or [])},
        )


def decode_polyline(polyline: str) -> list[tuple[float, float]]:
    """Decode Google polyline string to list of (lat, lon) coordinates.

    OSRM uses Google's polyline encoding format for route geometry.

    Args:
        polyline: Encoded polyline string

    Returns:
        List of (latitude, longitude) tuples
    """
    coordinates = []
    index = 0
    lat = 0
    lon = 0

    while index < len(polyline):
        # Decode latitude
        shift = 0
        result = 0
        while True:
            b = ord(polyline[index]) - 63
            index += 1
            result |= (b & 0x1f) << shift
            shift += 5
            if b < 0x20:
                break
        dlat = ~(result >> 1) if (result & 1) else (result >> 1)
        lat += dlat

        # Decode longitude
        shift = 0
        result = 0
        while True:
            b = ord(polyline[index]) - 63
            index += 1
            result |= (b & 0x1f) << shift
            shift += 5
            if b < 0x20:
                break
        dlon = ~(result >> 1) if (result & 1) else (result >> 1)
        lon += dlon

        coordinates.append((lat / 1e5, lon / 1e5))

    return coordinates


def check_health(base_url: str | None = None) -> bool:
    """Check OSRM service health by requesting a short route.

    Public OSRM endpoints may not have a /health endpoint, so we test
    connectivity with a two-point route near the store.
    """
    base = base_url or settings.osrm_base_url
    if not base:
        return False
    lat, lon = settings.map_default_center
    test_coords = f"{lon},{lat};{lon + 0.005},{lat + 0.005}"
    url = f"{base.rstrip('/')}/route/v1/{settings.osrm_profile}/{test_coords}"
    try:
        response = httpx.get(url, params={"overview": "false"}, timeout=5.0)
        response.raise_for_status()
        return response.json().get("code") == "Ok"
    except (httpx.HTTPError, ValueError):
        return False
