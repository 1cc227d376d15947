"""Proximity session and imprint endpoints.

Every route acts for the user behind the bearer token: sessions belong to the
user who opened them, and imprints are always written and read as that user.
"""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...config import settings
from ...errors import (
    LocationPermissionDenied,
    LocationTimeout,
    LocationUnavailable,
    SessionNotFoundError,
    StoreError,
    StoreNotConfigured,
)
from ...models.domain import Coordinate, PositionFix
from ...persistence.database import SupabaseStore
from ...schemas.proximity import (
    DistanceCheckResponse,
    ImprintModel,
    ImprintRequest,
    NearbyDropPointModel,
    PositionReport,
    WatchStatusResponse,
)
from ...schemas.zones import CoordinateModel
from ...services.export.geojson import drop_points_to_feature_collection
from ...services.proximity import ImprintContext, ProximitySession, SessionRegistry
from ..deps import get_caller_id, get_session_registry, get_store, location_http_error

router = APIRouter(prefix="/proximity", tags=["proximity"])

_DEVICE_ERRORS = {
    "permission_denied": LocationPermissionDenied,
    "timeout": LocationTimeout,
    "unavailable": LocationUnavailable,
}


def _open_session(session_id: str, caller_id: str, registry: SessionRegistry) -> ProximitySession:
    try:
        return registry.open(session_id, caller_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except StoreNotConfigured as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


def _existing_session(session_id: str, caller_id: str, registry: SessionRegistry) -> ProximitySession:
    try:
        return registry.get(session_id, caller_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


def _status(session: ProximitySession) -> WatchStatusResponse:
    engine = session.engine
    last = engine.last_known_position
    return WatchStatusResponse(
        session_id=session.session_id,
        state=engine.state.value,
        last_position=CoordinateModel.from_domain(last.coordinate) if last else None,
        last_error=str(engine.last_watch_error) if engine.last_watch_error else None,
    )


@router.post("/sessions/{session_id}", response_model=WatchStatusResponse, status_code=status.HTTP_200_OK)
def open_session(
    session_id: str,
    caller_id: str = Depends(get_caller_id),
    registry: SessionRegistry = Depends(get_session_registry),
) -> WatchStatusResponse:
    return _status(_open_session(session_id, caller_id, registry))


@router.get("/sessions/{session_id}", response_model=WatchStatusResponse, status_code=status.HTTP_200_OK)
def session_status(
    session_id: str,
    caller_id: str = Depends(get_caller_id),
    registry: SessionRegistry = Depends(get_session_registry),
) -> WatchStatusResponse:
    return _status(_existing_session(session_id, caller_id, registry))


@router.post("/sessions/{session_id}/positions", response_model=WatchStatusResponse, status_code=status.HTTP_200_OK)
def report_position(
    session_id: str,
    payload: PositionReport,
    caller_id: str = Depends(get_caller_id),
    registry: SessionRegistry = Depends(get_session_registry),
) -> WatchStatusResponse:
    """Feed a device fix, or a device-side location error, into the session.

    Fixes reach the engine cache while the session is watching; otherwise they
    only answer a one-shot request that is already waiting.
    """
    session = _existing_session(session_id, caller_id, registry)
    if payload.error:
        error_type = _DEVICE_ERRORS[payload.error]
        session.source.fail(error_type(payload.message or payload.error))
    else:
        session.source.push(
            PositionFix(
                coordinate=Coordinate(latitude=payload.lat, longitude=payload.lng),
                timestamp=time.time(),
                accuracy_m=payload.accuracy,
            )
        )
    return _status(session)


@router.post("/sessions/{session_id}/watch", response_model=WatchStatusResponse, status_code=status.HTTP_200_OK)
def start_watch(
    session_id: str,
    caller_id: str = Depends(get_caller_id),
    registry: SessionRegistry = Depends(get_session_registry),
) -> WatchStatusResponse:
    session = _open_session(session_id, caller_id, registry)
    session.engine.start_watching()
    return _status(session)


@router.delete("/sessions/{session_id}/watch", response_model=WatchStatusResponse, status_code=status.HTTP_200_OK)
def stop_watch(
    session_id: str,
    caller_id: str = Depends(get_caller_id),
    registry: SessionRegistry = Depends(get_session_registry),
) -> WatchStatusResponse:
    session = _existing_session(session_id, caller_id, registry)
    session.engine.stop_watching()
    return _status(session)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_200_OK)
def close_session(
    session_id: str,
    caller_id: str = Depends(get_caller_id),
    registry: SessionRegistry = Depends(get_session_registry),
) -> dict:
    if not registry.close(session_id, caller_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Session '{session_id}' not found")
    return {"success": True, "session_id": session_id}


def _find_nearby(session: ProximitySession, radius_m: float | None):
    try:
        return session.engine.find_nearby(radius_m)
    except LocationUnavailable as exc:
        raise location_http_error(exc) from exc
    except StoreError as exc:
        logging.exception(f"Nearby drop point search failed: {exc}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Nearby drop points search failed: {exc}") from exc


@router.get("/sessions/{session_id}/nearby", response_model=list[NearbyDropPointModel], status_code=status.HTTP_200_OK)
def nearby(
    session_id: str,
    radius_m: float | None = Query(default=None, gt=0.0),
    caller_id: str = Depends(get_caller_id),
    registry: SessionRegistry = Depends(get_session_registry),
) -> list[NearbyDropPointModel]:
    session = _existing_session(session_id, caller_id, registry)
    return [NearbyDropPointModel.from_domain(entry) for entry in _find_nearby(session, radius_m)]


@router.get("/sessions/{session_id}/nearby/geojson", status_code=status.HTTP_200_OK)
def nearby_geojson(
    session_id: str,
    radius_m: float | None = Query(default=None, gt=0.0),
    caller_id: str = Depends(get_caller_id),
    registry: SessionRegistry = Depends(get_session_registry),
) -> dict:
    session = _existing_session(session_id, caller_id, registry)
    return drop_points_to_feature_collection(_find_nearby(session, radius_m))


@router.get("/sessions/{session_id}/distance", response_model=DistanceCheckResponse, status_code=status.HTTP_200_OK)
def distance_check(
    session_id: str,
    lat: float = Query(..., ge=-90.0, le=90.0),
    lng: float = Query(..., ge=-180.0, le=180.0),
    radius_m: float = Query(..., gt=0.0),
    caller_id: str = Depends(get_caller_id),
    registry: SessionRegistry = Depends(get_session_registry),
) -> DistanceCheckResponse:
    """Whether the session's current position is within ``radius_m`` of a target point."""
    engine = _existing_session(session_id, caller_id, registry).engine
    target = Coordinate(latitude=lat, longitude=lng)
    try:
        position = engine.get_current_position().coordinate
    except LocationUnavailable as exc:
        raise location_http_error(exc) from exc
    return DistanceCheckResponse(
        target=CoordinateModel.from_domain(target),
        distance_m=round(engine.distance_to(target, position), 1),
        radius_m=radius_m,
        within=engine.is_within(target, radius_m, position),
    )


@router.post("/sessions/{session_id}/imprints", response_model=ImprintModel, status_code=status.HTTP_201_CREATED)
def log_imprint(
    session_id: str,
    payload: ImprintRequest,
    caller_id: str = Depends(get_caller_id),
    registry: SessionRegistry = Depends(get_session_registry),
) -> ImprintModel:
    session = _existing_session(session_id, caller_id, registry)
    context = ImprintContext(user_id=caller_id, service_type=payload.service_type, note=payload.note)
    coordinate = payload.coordinates.to_domain() if payload.coordinates else None
    try:
        imprint = session.engine.log_imprint(payload.action_type, context, coordinate)
    except LocationUnavailable as exc:
        raise location_http_error(exc) from exc
    except StoreError as exc:
        logging.exception(f"Imprint logging failed: {exc}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Could not log location imprint: {exc}") from exc
    return ImprintModel.from_domain(imprint)


@router.get("/imprints", response_model=list[ImprintModel], status_code=status.HTTP_200_OK)
def list_imprints(
    limit: int | None = Query(default=None, ge=1, le=500),
    caller_id: str = Depends(get_caller_id),
    store: SupabaseStore = Depends(get_store),
) -> list[ImprintModel]:
    """The caller's own imprint timeline, newest first."""
    try:
        imprints = store.list_imprints(caller_id, limit or settings.imprint_history_limit)
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return [ImprintModel.from_domain(imprint) for imprint in imprints]
