"""Service zone and location privacy endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from ...data.zones_repository import ZoneDirectory
from ...models.domain import Coordinate
from ...schemas.zones import (
    CoordinateModel,
    FuzzRequest,
    FuzzyLocationResponse,
    ProviderLocationRequest,
    ZoneListResponse,
    ZoneModel,
    ZoneResolutionResponse,
)
from ...services.export.geojson import fuzzy_location_feature, zones_to_feature_collection
from ...services.privacy import fuzz, provider_fuzzy_location, resolve_zone
from ..deps import get_directory

router = APIRouter(tags=["zones"])


@router.get("/zones", response_model=ZoneListResponse, status_code=status.HTTP_200_OK)
def list_zones(directory: ZoneDirectory = Depends(get_directory)) -> ZoneListResponse:
    loaded = directory.load()
    return ZoneListResponse(zones=[ZoneModel.from_domain(zone) for zone in loaded.zones], degraded=loaded.degraded)


@router.get("/zones/resolve", response_model=ZoneResolutionResponse, status_code=status.HTTP_200_OK)
def resolve(
    lat: float = Query(..., ge=-90.0, le=90.0),
    lng: float = Query(..., ge=-180.0, le=180.0),
    directory: ZoneDirectory = Depends(get_directory),
) -> ZoneResolutionResponse:
    resolution = resolve_zone(Coordinate(latitude=lat, longitude=lng), directory=directory)
    return ZoneResolutionResponse.from_domain(resolution)


@router.get("/zones/geojson", status_code=status.HTTP_200_OK)
def zones_geojson(directory: ZoneDirectory = Depends(get_directory)) -> dict:
    loaded = directory.load()
    return zones_to_feature_collection(loaded.zones, degraded=loaded.degraded)


@router.post("/privacy/fuzz", response_model=FuzzyLocationResponse, status_code=status.HTTP_200_OK)
def fuzz_location(payload: FuzzRequest) -> FuzzyLocationResponse:
    location = fuzz(Coordinate(latitude=payload.lat, longitude=payload.lng), payload.radius_m)
    return FuzzyLocationResponse.from_domain(location)


@router.post("/privacy/fuzz/geojson", status_code=status.HTTP_200_OK)
def fuzz_location_geojson(payload: FuzzRequest) -> dict:
    """Fuzz a point and return the privacy circle around the fuzzy point."""
    location = fuzz(Coordinate(latitude=payload.lat, longitude=payload.lng), payload.radius_m)
    return fuzzy_location_feature(location)


@router.post("/privacy/provider-location", response_model=CoordinateModel, status_code=status.HTTP_200_OK)
def provider_location(payload: ProviderLocationRequest) -> CoordinateModel:
    return CoordinateModel.from_domain(provider_fuzzy_location(payload.model_dump(exclude_none=True)))
