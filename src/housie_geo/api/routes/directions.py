"""Directions endpoint backed by the external routing provider."""

from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, HTTPException, status

from ...schemas.routing import DirectionsRequest, DirectionsResponse
from ...services.routing.osrm_client import OSRMClient

router = APIRouter(tags=["directions"])


def _get_osrm_client() -> OSRMClient:
    return OSRMClient()


@router.post("/directions", response_model=DirectionsResponse, status_code=status.HTTP_200_OK)
def directions(payload: DirectionsRequest) -> DirectionsResponse:
    try:
        client = _get_osrm_client()
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    try:
        route = client.route([waypoint.to_domain() for waypoint in payload.waypoints])
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except (ConnectionError, httpx.HTTPError) as exc:
        logging.exception(f"Routing provider request failed: {exc}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Routing provider request failed: {exc}",
        ) from exc

    return DirectionsResponse(
        geometry=route.geometry,
        distance_m=route.distance_m,
        duration_s=route.duration_s,
        waypoint_count=route.waypoint_count,
    )
