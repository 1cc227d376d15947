"""Export services."""

from .geojson import (
    circle_polygon,
    drop_points_to_feature_collection,
    fuzzy_location_feature,
    zones_to_feature_collection,
)

__all__ = [
    "circle_polygon",
    "drop_points_to_feature_collection",
    "fuzzy_location_feature",
    "zones_to_feature_collection",
]
