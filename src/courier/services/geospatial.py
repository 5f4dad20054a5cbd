"""Geospatial helper functions."""

from __future__ import annotations

import math

from ..models.domain import LatLon

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_m(a: LatLon, b: LatLon) -> float:
    return haversine_km(a[0], a[1], b[0], b[1]) * 1000.0


def is_valid_coordinate(lat: float, lon: float) -> bool:
    """Return True for finite values inside the WGS84 latitude/longitude ranges."""

    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


def parse_lat_lng(value: object) -> LatLon | None:
    """Parse a stored ``"lat,lng"`` value (or a two-item sequence) into coordinates.

    Anything that is not exactly two parseable numbers inside the valid ranges
    yields ``None`` so the caller can keep the record without a map position.
    """
    if value is None:
        return None
    if isinstance(value, str):
        parts = [part.strip() for part in value.split(",")]
    elif isinstance(value, (list, tuple)):
        parts = list(value)
    else:
        return None
    if len(parts) != 2:
        return None
    try:
        lat, lon = float(parts[0]), float(parts[1])
    except (TypeError, ValueError):
        return None
    if not is_valid_coordinate(lat, lon):
        return None
    return (lat, lon)
