"""GeoJSON export of zones, drop points and fuzzy locations for map overlays."""

from __future__ import annotations

import math
from typing import Any, Dict, List, Sequence

from shapely.geometry import Point, Polygon, mapping

from ...models.domain import Coordinate, FuzzyLocation, NearbyDropPoint, Zone
from ..geospatial import offset_coordinate

DEFAULT_CIRCLE_SEGMENTS = 64

DEMAND_COLORS = {
    "high": "#e0003e",
    "medium": "#e0af00",
    "low": "#38e000",
}


def circle_polygon(center: Coordinate, radius_m: float, segments: int = DEFAULT_CIRCLE_SEGMENTS) -> Polygon:
    """Approximate a circle on the ground as a closed polygon in (lng, lat) order."""
    if radius_m <= 0:
        raise ValueError("Circle radius must be > 0")
    if segments < 3:
        raise ValueError("A circle needs at least 3 segments")

    ring = []
    for index in range(segments):
        angle = 2 * math.pi * index / segments
        point = offset_coordinate(center, radius_m, angle)
        ring.append((point.longitude, point.latitude))
    return Polygon(ring)


def zone_feature(zone: Zone, segments: int = DEFAULT_CIRCLE_SEGMENTS) -> Dict[str, Any]:
    return {
        "type": "Feature",
        "id": zone.code,
        "geometry": mapping(circle_polygon(zone.center, zone.radius_m, segments)),
        "properties": {
            "zone_id": zone.id,
            "zone_code": zone.code,
            "zone_name": zone.name,
            "zone_type": zone.zone_type,
            "demand_level": zone.demand_level,
            "pricing_multiplier": zone.pricing_multiplier,
            "radius_m": zone.radius_m,
            "center": [zone.center.longitude, zone.center.latitude],
            "color": DEMAND_COLORS.get(zone.demand_level, "#13aae0"),
        },
    }


def zones_to_feature_collection(
    zones: Sequence[Zone],
    *,
    degraded: bool = False,
    segments: int = DEFAULT_CIRCLE_SEGMENTS,
) -> Dict[str, Any]:
    features: List[Dict[str, Any]] = [zone_feature(zone, segments) for zone in zones]
    return {"type": "FeatureCollection", "features": features, "properties": {"degraded": degraded}}


def drop_points_to_feature_collection(points: Sequence[NearbyDropPoint]) -> Dict[str, Any]:
    """Nearby drop points as GeoJSON points; entries without coordinates are skipped."""
    features: List[Dict[str, Any]] = []
    for entry in points:
        coordinate = entry.drop_point.coordinate
        if coordinate is None:
            continue
        features.append(
            {
                "type": "Feature",
                "id": entry.drop_point.id,
                "geometry": mapping(Point(coordinate.longitude, coordinate.latitude)),
                "properties": {
                    "name": entry.drop_point.name,
                    "type": entry.drop_point.type,
                    "distance_m": entry.distance_m,
                    "bonus_stamp_id": entry.drop_point.bonus_stamp_id,
                },
            }
        )
    return {"type": "FeatureCollection", "features": features}


def fuzzy_location_feature(location: FuzzyLocation, segments: int = 32) -> Dict[str, Any]:
    """Privacy circle centered on the fuzzy point, never on the true one."""
    return {
        "type": "Feature",
        "geometry": mapping(circle_polygon(location.coordinate, location.radius_m, segments)),
        "properties": {
            "center": [location.coordinate.longitude, location.coordinate.latitude],
            "radius_m": location.radius_m,
            "generated_at": location.generated_at.isoformat(),
        },
    }
