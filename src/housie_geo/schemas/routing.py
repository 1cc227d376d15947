"""Directions request/response schemas."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from .zones import CoordinateModel


class DirectionsRequest(BaseModel):
    waypoints: List[CoordinateModel] = Field(..., min_length=2, description="Ordered stops, origin first.")


class DirectionsResponse(BaseModel):
    geometry: dict
    distance_m: float
    duration_s: float
    waypoint_count: int
