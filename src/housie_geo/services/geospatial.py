"""Geospatial helper functions.

Every distance in the service comes from :func:`haversine_m`; other modules
must not re-derive the formula.
"""

from __future__ import annotations

import math
import re
from typing import Optional

from ..models.domain import Coordinate

EARTH_RADIUS_M = 6_371_000.0
METERS_PER_DEGREE_LAT = 111_320.0

_POINT_PATTERN = re.compile(r"\(\s*([^,\s]+)\s*,\s*([^)\s]+)\s*\)")


def to_radians(degrees: float) -> float:
    return degrees * math.pi / 180.0


def haversine_m(a: Coordinate, b: Coordinate) -> float:
    """Compute great-circle distance in meters between two coordinates."""

    phi1, phi2 = to_radians(a.latitude), to_radians(b.latitude)
    d_phi = to_radians(b.latitude - a.latitude)
    d_lambda = to_radians(b.longitude - a.longitude)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_M * c


def offset_coordinate(origin: Coordinate, distance_m: float, angle_rad: float) -> Coordinate:
    """Shift ``origin`` by a polar offset using the equirectangular approximation.

    The angle is measured from north towards east. Good enough at city scale;
    it degrades near the poles where ``cos(latitude)`` approaches zero.
    """

    lat_offset = (distance_m * math.cos(angle_rad)) / METERS_PER_DEGREE_LAT
    lng_offset = (distance_m * math.sin(angle_rad)) / (
        METERS_PER_DEGREE_LAT * math.cos(to_radians(origin.latitude))
    )
    return Coordinate(latitude=origin.latitude + lat_offset, longitude=origin.longitude + lng_offset)


def parse_point(value: Optional[str]) -> Optional[Coordinate]:
    """Parse a PostGIS ``(lng,lat)`` point string. Returns None when unparseable."""

    if not value:
        return None
    match = _POINT_PATTERN.search(value)
    if not match:
        return None
    try:
        lng = float(match.group(1))
        lat = float(match.group(2))
    except ValueError:
        return None
    return Coordinate(latitude=lat, longitude=lng)


def format_point(coordinate: Coordinate) -> str:
    """Format a coordinate as the PostGIS ``(lng,lat)`` text the database expects."""

    return f"({coordinate.longitude},{coordinate.latitude})"


def coerce_coordinate(value: object) -> Optional[Coordinate]:
    """Read a coordinate from the shapes Supabase returns for point columns."""

    if value is None:
        return None
    if isinstance(value, Coordinate):
        return value
    if isinstance(value, str):
        return parse_point(value)
    if isinstance(value, dict):
        if "lat" in value and "lng" in value:
            return Coordinate(latitude=float(value["lat"]), longitude=float(value["lng"]))
        if "x" in value and "y" in value:
            return Coordinate(latitude=float(value["y"]), longitude=float(value["x"]))
        return None
    if isinstance(value, (list, tuple)) and len(value) == 2:
        # [lng, lat] like the drop point API
        return Coordinate(latitude=float(value[1]), longitude=float(value[0]))
    return None
