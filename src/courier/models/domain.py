"""Domain models for customers, stops and device samples."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple

# Internal coordinate type: (lat, lon)
LatLon = Tuple[float, float]


@dataclass(frozen=True, slots=True)
class PositionSample:
    """A raw position report from the operator's device."""

    latitude: float
    longitude: float
    accuracy: float  # meters
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class FilteredPosition:
    latitude: float
    longitude: float

    @property
    def coordinates(self) -> LatLon:
        return (self.latitude, self.longitude)


class PositionErrorKind(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    UNAVAILABLE = "unavailable"
    TIMEOUT = "timeout"


@dataclass(frozen=True, slots=True)
class PositionError:
    kind: PositionErrorKind
    message: str = ""


class HeadingConvention(str, Enum):
    """How a raw compass reading is expressed by the device platform."""

    TRUE = "true"  # clockwise from true north
    MAGNETIC = "magnetic"  # clockwise from magnetic north
    ALPHA = "alpha"  # counter-clockwise device alpha


@dataclass(frozen=True, slots=True)
class HeadingSample:
    value: Optional[float]
    convention: HeadingConvention = HeadingConvention.TRUE
    timestamp: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class Heading:
    degrees: int  # 0-359, clockwise from true north


@dataclass(slots=True)
class CustomerRecord:
    """A customer row as returned by the lookup service."""

    mobile_number: str
    name: Optional[str]
    house_number: Optional[str]
    region: Optional[str]
    address: Optional[str]
    lat_lng: Optional[str]
    order_list: Optional[str]
    price: Optional[str]
    raw: dict


@dataclass(frozen=True, slots=True)
class Stop:
    """A pending delivery destination."""

    id: str
    display_name: str
    phone_number: str
    address: Optional[str]
    coordinates: Optional[LatLon]
    order_summary: Optional[str]
    amount_due: float

    @property
    def has_coordinates(self) -> bool:
        return self.coordinates is not None


class AdvisoryLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Advisory:
    source: str
    message: str
    level: AdvisoryLevel = AdvisoryLevel.WARNING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
