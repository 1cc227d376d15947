"""Routing provider models."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class RouteGeometry:
    geometry: dict
    distance_m: float
    duration_s: float
    waypoint_count: int
