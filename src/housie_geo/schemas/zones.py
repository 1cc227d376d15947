"""Pydantic request/response models for zone and privacy endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..models.domain import Coordinate, FuzzyLocation, Zone, ZoneResolution


class CoordinateModel(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)

    def to_domain(self) -> Coordinate:
        return Coordinate(latitude=self.lat, longitude=self.lng)

    @classmethod
    def from_domain(cls, coordinate: Coordinate) -> "CoordinateModel":
        return cls(lat=coordinate.latitude, lng=coordinate.longitude)


class ZoneModel(BaseModel):
    id: str
    zone_name: str
    zone_code: str
    zone_type: str
    demand_level: str
    pricing_multiplier: float
    center_coordinates: CoordinateModel
    zone_radius: float

    @classmethod
    def from_domain(cls, zone: Zone) -> "ZoneModel":
        return cls(
            id=zone.id,
            zone_name=zone.name,
            zone_code=zone.code,
            zone_type=zone.zone_type,
            demand_level=zone.demand_level,
            pricing_multiplier=zone.pricing_multiplier,
            center_coordinates=CoordinateModel.from_domain(zone.center),
            zone_radius=zone.radius_m,
        )


class ZoneListResponse(BaseModel):
    zones: list[ZoneModel]
    degraded: bool = Field(default=False, description="True when built-in fallback zones were served.")


class ZoneResolutionResponse(BaseModel):
    zone_code: str
    distance_m: Optional[float] = None
    degraded: bool = False

    @classmethod
    def from_domain(cls, resolution: ZoneResolution) -> "ZoneResolutionResponse":
        return cls(
            zone_code=resolution.zone_code,
            distance_m=round(resolution.distance_m, 1) if resolution.distance_m is not None else None,
            degraded=resolution.degraded,
        )


class FuzzRequest(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)
    radius_m: Optional[float] = Field(
        default=None,
        description="Confidentiality radius in meters. Missing or non-positive values use the configured default.",
    )


class FuzzyLocationResponse(BaseModel):
    lat: float
    lng: float
    radius: float
    last_updated: datetime

    @classmethod
    def from_domain(cls, location: FuzzyLocation) -> "FuzzyLocationResponse":
        return cls(
            lat=location.coordinate.latitude,
            lng=location.coordinate.longitude,
            radius=location.radius_m,
            last_updated=location.generated_at,
        )


class ProviderLocationRequest(BaseModel):
    """Provider record fields that decide where the provider is shown on the public map."""

    fuzzy_location: Optional[str] = Field(default=None, description="Stored PostGIS '(lng,lat)' fuzzy point.")
    lat: Optional[float] = Field(default=None, ge=-90.0, le=90.0)
    lng: Optional[float] = Field(default=None, ge=-180.0, le=180.0)
    confidentiality_radius: Optional[float] = Field(default=None, gt=0.0)
