"""Dispatch endpoints: device feeds, search, delivery completion and read models."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from ...models.domain import HeadingSample, PositionError, PositionSample, Stop
from ...schemas.dispatch import (
    AdvisoryModel,
    DeliveredResponse,
    HeadingSampleModel,
    PositionErrorModel,
    PositionResponse,
    PositionSampleModel,
    RouteStateResponse,
    SearchErrorModel,
    SearchRequest,
    SearchResponse,
    StopModel,
)
from ...services.session import DeliverySession, directions_url


router = APIRouter(tags=["dispatch"])


def get_session(request: Request) -> DeliverySession:
    session = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Dispatch session is not running.")
    return session


def _stop_model(session: DeliverySession, stop: Stop) -> StopModel:
    lat, lon = stop.coordinates if stop.coordinates else (None, None)
    return StopModel(
        id=stop.id,
        display_name=stop.display_name,
        phone_number=stop.phone_number,
        address=stop.address,
        latitude=lat,
        longitude=lon,
        order_summary=stop.order_summary,
        amount_due=stop.amount_due,
        payment_uri=session.payment_uri(stop.id),
        directions_url=directions_url(stop.coordinates) if stop.coordinates else None,
    )


def _route_state(session: DeliverySession) -> RouteStateResponse:
    coordinator = session.coordinator
    origin = coordinator.origin
    route = coordinator.active_route
    last_request = coordinator.last_request
    return RouteStateResponse(
        state=coordinator.state.value,
        origin=list(origin.coordinates) if origin else None,
        waypoints=[list(point) for point in coordinator.waypoints()],
        last_request=[list(point) for point in last_request] if last_request else None,
        requests_issued=coordinator.requests_issued,
        distance_m=route.distance_m if route else None,
        duration_s=route.duration_s if route else None,
    )


@router.post("/position", response_model=PositionResponse, status_code=status.HTTP_200_OK)
async def post_position(payload: PositionSampleModel, session: DeliverySession = Depends(get_session)) -> PositionResponse:
    before = session.position_filter.current
    session.positions.publish(
        PositionSample(
            latitude=payload.latitude,
            longitude=payload.longitude,
            accuracy=payload.accuracy,
            timestamp=payload.timestamp,
        )
    )
    after = session.position_filter.current
    accepted = after is not None and after is not before
    return PositionResponse(
        accepted=accepted,
        filtered=list(after.coordinates) if after else None,
        route=_route_state(session),
    )


@router.post("/position/error", response_model=RouteStateResponse, status_code=status.HTTP_200_OK)
async def post_position_error(payload: PositionErrorModel, session: DeliverySession = Depends(get_session)) -> RouteStateResponse:
    session.position_errors.publish(PositionError(kind=payload.kind, message=payload.message))
    return _route_state(session)


@router.post("/heading", status_code=status.HTTP_200_OK)
async def post_heading(payload: HeadingSampleModel, session: DeliverySession = Depends(get_session)) -> dict:
    session.headings.publish(
        HeadingSample(value=payload.value, convention=payload.convention, timestamp=payload.timestamp)
    )
    current = session.orientation.current
    return {"heading": current.degrees if current else None}


@router.post("/search", response_model=SearchResponse, status_code=status.HTTP_200_OK)
async def search(payload: SearchRequest, session: DeliverySession = Depends(get_session)) -> SearchResponse:
    result = await session.search(payload.phone_numbers, replace=payload.replace)
    return SearchResponse(
        stops=[_stop_model(session, stop) for stop in session.registry.all()],
        errors=[SearchErrorModel(entry=error.entry, kind=error.kind, message=error.message) for error in result.errors],
    )


@router.post("/stops/{stop_id}/delivered", response_model=DeliveredResponse, status_code=status.HTTP_200_OK)
async def mark_delivered(stop_id: str, session: DeliverySession = Depends(get_session)) -> DeliveredResponse:
    payment_uri = session.payment_uri(stop_id)
    stop = session.mark_delivered(stop_id)
    if stop is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Stop {stop_id} is not pending.")
    delivered = _stop_model(session, stop)
    delivered.payment_uri = payment_uri
    return DeliveredResponse(delivered=delivered, remaining=len(session.registry), route=_route_state(session))


@router.get("/stops", response_model=List[StopModel], status_code=status.HTTP_200_OK)
async def list_stops(session: DeliverySession = Depends(get_session)) -> List[StopModel]:
    return [_stop_model(session, stop) for stop in session.registry.all()]


@router.get("/map", status_code=status.HTTP_200_OK)
async def get_map(session: DeliverySession = Depends(get_session)) -> dict:
    return session.map.snapshot()


@router.get("/route", response_model=RouteStateResponse, status_code=status.HTTP_200_OK)
async def get_route(session: DeliverySession = Depends(get_session)) -> RouteStateResponse:
    return _route_state(session)


@router.get("/advisories", response_model=List[AdvisoryModel], status_code=status.HTTP_200_OK)
async def list_advisories(
    limit: int | None = Query(default=None, ge=1, le=200),
    session: DeliverySession = Depends(get_session),
) -> List[AdvisoryModel]:
    return [
        AdvisoryModel(
            source=advisory.source,
            message=advisory.message,
            level=advisory.level.value,
            created_at=advisory.created_at,
        )
        for advisory in session.advisories.recent(limit)
    ]
