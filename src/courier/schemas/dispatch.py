"""Dispatch request/response schemas."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import HeadingConvention, PositionErrorKind


class PositionSampleModel(BaseModel):
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    accuracy: float = Field(..., ge=0.0, description="Reported accuracy radius in meters.")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PositionErrorModel(BaseModel):
    kind: PositionErrorKind
    message: str = ""


class HeadingSampleModel(BaseModel):
    value: Optional[float] = Field(
        default=None,
        description="Raw compass reading in degrees; null when the device reports no heading.",
    )
    convention: HeadingConvention = HeadingConvention.TRUE
    timestamp: Optional[datetime] = None


class SearchRequest(BaseModel):
    phone_numbers: str = Field(..., min_length=1, description="Comma-separated 10-digit phone numbers.")
    replace: bool = Field(default=True, description="Replace the current stops instead of appending.")


class SearchErrorModel(BaseModel):
    entry: str
    kind: str
    message: str


class StopModel(BaseModel):
    id: str
    display_name: str
    phone_number: str
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    order_summary: Optional[str] = None
    amount_due: float
    payment_uri: Optional[str] = None
    directions_url: Optional[str] = None


class SearchResponse(BaseModel):
    stops: List[StopModel]
    errors: List[SearchErrorModel]


class RouteStateResponse(BaseModel):
    state: str
    origin: Optional[List[float]] = None
    waypoints: List[List[float]]
    last_request: Optional[List[List[float]]] = None
    requests_issued: int
    distance_m: Optional[float] = None
    duration_s: Optional[float] = None


class PositionResponse(BaseModel):
    accepted: bool
    filtered: Optional[List[float]] = None
    route: RouteStateResponse


class DeliveredResponse(BaseModel):
    delivered: StopModel
    remaining: int
    route: RouteStateResponse


class AdvisoryModel(BaseModel):
    source: str
    message: str
    level: str
    created_at: datetime
