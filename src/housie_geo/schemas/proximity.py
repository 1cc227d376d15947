"""Pydantic request/response models for proximity and imprint endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from ..models.domain import Imprint, NearbyDropPoint
from .zones import CoordinateModel


class PositionReport(BaseModel):
    """A fix (or a location error) reported by the client device."""

    lat: Optional[float] = Field(default=None, ge=-90.0, le=90.0)
    lng: Optional[float] = Field(default=None, ge=-180.0, le=180.0)
    accuracy: Optional[float] = Field(default=None, ge=0.0)
    error: Optional[Literal["permission_denied", "timeout", "unavailable"]] = None
    message: Optional[str] = None

    @model_validator(mode="after")
    def _fix_or_error(self) -> "PositionReport":
        if self.error is None and (self.lat is None or self.lng is None):
            raise ValueError("A position report needs lat and lng unless it reports an error")
        return self


class WatchStatusResponse(BaseModel):
    session_id: str
    state: str
    last_position: Optional[CoordinateModel] = None
    last_error: Optional[str] = None


class NearbyDropPointModel(BaseModel):
    drop_point_id: str
    name: str
    type: str
    distance_m: float
    bonus_stamp_id: Optional[str] = None
    coordinates: Optional[CoordinateModel] = None

    @classmethod
    def from_domain(cls, entry: NearbyDropPoint) -> "NearbyDropPointModel":
        point = entry.drop_point
        return cls(
            drop_point_id=point.id,
            name=point.name,
            type=point.type,
            distance_m=entry.distance_m,
            bonus_stamp_id=point.bonus_stamp_id,
            coordinates=CoordinateModel.from_domain(point.coordinate) if point.coordinate is not None else None,
        )


class ImprintRequest(BaseModel):
    """The imprint owner is the authenticated caller, never a body field."""

    action_type: Literal["job", "visit", "event", "rebook", "stamp_unlock"]
    service_type: Optional[str] = None
    note: Optional[str] = None
    coordinates: Optional[CoordinateModel] = Field(
        default=None,
        description="Explicit position; when omitted the session's current position is used.",
    )


class ImprintModel(BaseModel):
    id: Optional[str] = None
    user_id: str
    coordinates: CoordinateModel
    timestamp: datetime
    action_type: str
    note: Optional[str] = None
    service_type: Optional[str] = None
    drop_point_id: Optional[str] = None
    imprints_created: int = 0
    stamp_awarded: Optional[str] = None

    @classmethod
    def from_domain(cls, imprint: Imprint) -> "ImprintModel":
        return cls(
            id=imprint.id,
            user_id=imprint.user_id,
            coordinates=CoordinateModel.from_domain(imprint.coordinate),
            timestamp=imprint.timestamp,
            action_type=imprint.action_type,
            note=imprint.note,
            service_type=imprint.service_type,
            drop_point_id=imprint.drop_point_id,
            imprints_created=imprint.imprints_created,
            stamp_awarded=imprint.stamp_awarded,
        )


class DistanceCheckResponse(BaseModel):
    target: CoordinateModel
    distance_m: float
    radius_m: float
    within: bool
