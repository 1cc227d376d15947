"""Location privacy: fuzzy coordinates and nearest-zone resolution.

Fuzzing is obfuscation, not encryption. The offset distance is drawn
uniformly in ``[0, radius]`` (not uniformly over the disk area), so samples
concentrate near the true point, and averaging many fuzzes of the same
coordinate approximately recovers it. Callers that publish fuzzy locations
should generate one per subject and reuse it rather than re-fuzzing on every
request.
"""

from __future__ import annotations

import logging
import math
import random
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence

from ...config import settings
from ...data.zones_repository import ZoneDirectory, get_zone_directory
from ...models.domain import UNKNOWN_ZONE, Coordinate, FuzzyLocation, Zone, ZoneResolution
from ..geospatial import coerce_coordinate, haversine_m, offset_coordinate, parse_point

logger = logging.getLogger(__name__)


def fuzz(
    coordinate: Coordinate,
    radius_m: Optional[float] = None,
    *,
    rng: Optional[random.Random] = None,
) -> FuzzyLocation:
    """Return a randomized point within ``radius_m`` meters of ``coordinate``.

    A missing or non-positive radius is treated as a configuration error and
    replaced by the default confidentiality radius.
    """

    if radius_m is None or not radius_m > 0:
        logger.warning(
            f"Invalid fuzzing radius {radius_m!r}, using default {settings.default_confidentiality_radius_m} m"
        )
        radius_m = settings.default_confidentiality_radius_m

    source = rng or random
    angle = source.random() * 2 * math.pi
    distance = source.random() * radius_m

    return FuzzyLocation(
        coordinate=offset_coordinate(coordinate, distance, angle),
        radius_m=radius_m,
        generated_at=datetime.now(timezone.utc),
    )


def nearest_zone(coordinate: Coordinate, zones: Sequence[Zone]) -> tuple[Zone, float] | None:
    """Zone whose center is closest to ``coordinate``; the first one wins on equal distance.

    The zone radius is not consulted: a point outside every circle still
    belongs to its nearest center.
    """

    best: tuple[Zone, float] | None = None
    for zone in zones:
        distance = haversine_m(coordinate, zone.center)
        if best is None or distance < best[1]:
            best = (zone, distance)
    return best


def resolve_zone(coordinate: Coordinate, *, directory: Optional[ZoneDirectory] = None) -> ZoneResolution:
    """Resolve a coordinate to the code of its nearest service zone. Never raises."""

    loaded = (directory or get_zone_directory()).load()
    match = nearest_zone(coordinate, loaded.zones)
    if match is None:
        return ZoneResolution(zone_code=UNKNOWN_ZONE, distance_m=None, degraded=loaded.degraded)
    zone, distance = match
    return ZoneResolution(zone_code=zone.code, distance_m=distance, degraded=loaded.degraded)


def provider_fuzzy_location(
    provider: Mapping[str, Any],
    *,
    rng: Optional[random.Random] = None,
) -> Coordinate:
    """Public map position for a provider record.

    Prefers the stored ``fuzzy_location``; otherwise fuzzes the provider's own
    coordinates with its confidentiality radius; otherwise fuzzes the city
    center so the provider still shows up somewhere plausible.
    """

    stored = parse_point(provider.get("fuzzy_location"))
    if stored is not None:
        return stored

    true_position = coerce_coordinate(provider.get("coordinates"))
    if true_position is None and provider.get("lat") is not None and provider.get("lng") is not None:
        true_position = Coordinate(latitude=float(provider["lat"]), longitude=float(provider["lng"]))

    if true_position is not None:
        radius = provider.get("confidentiality_radius") or settings.default_confidentiality_radius_m
        return fuzz(true_position, float(radius), rng=rng).coordinate

    city_center = Coordinate(latitude=settings.city_center_lat, longitude=settings.city_center_lng)
    return fuzz(city_center, settings.provider_fallback_radius_m, rng=rng).coordinate
