from datetime import datetime, timezone

import pytest
from shapely.geometry import shape

from housie_geo.data.zones_repository import FALLBACK_ZONES
from housie_geo.models.domain import Coordinate, DropPoint, FuzzyLocation, NearbyDropPoint
from housie_geo.services.export.geojson import (
    circle_polygon,
    drop_points_to_feature_collection,
    fuzzy_location_feature,
    zones_to_feature_collection,
)
from housie_geo.services.geospatial import haversine_m


def test_circle_polygon_vertices_sit_on_the_radius():
    center = Coordinate(45.5017, -73.5673)
    polygon = circle_polygon(center, 1000, segments=16)

    assert polygon.is_valid
    vertices = list(polygon.exterior.coords)[:-1]
    assert len(vertices) == 16
    for lng, lat in vertices:
        assert haversine_m(center, Coordinate(latitude=lat, longitude=lng)) == pytest.approx(1000, rel=0.01)


@pytest.mark.parametrize("radius, segments", [(0, 16), (100, 2)])
def test_circle_polygon_rejects_bad_input(radius, segments):
    with pytest.raises(ValueError):
        circle_polygon(Coordinate(45.5, -73.5), radius, segments)


def test_zone_collection_contains_each_center():
    collection = zones_to_feature_collection(FALLBACK_ZONES, degraded=True)

    assert collection["properties"]["degraded"] is True
    assert [feature["id"] for feature in collection["features"]] == ["PLATEAU", "DOWNTOWN", "WESTMOUNT"]
    for zone, feature in zip(FALLBACK_ZONES, collection["features"]):
        polygon = shape(feature["geometry"])
        assert polygon.contains(shape({"type": "Point", "coordinates": feature["properties"]["center"]}))
        assert feature["properties"]["color"] == ("#e0003e" if zone.demand_level == "high" else "#e0af00")


def test_drop_points_without_coordinates_are_skipped():
    points = [
        NearbyDropPoint(DropPoint(id="a", name="Parc", type="park", coordinate=Coordinate(45.5, -73.56)), 40),
        NearbyDropPoint(DropPoint(id="b", name="Kiosque", type="kiosk"), 90),
    ]

    collection = drop_points_to_feature_collection(points)

    assert len(collection["features"]) == 1
    feature = collection["features"][0]
    assert feature["geometry"]["coordinates"] == (-73.56, 45.5)
    assert feature["properties"]["distance_m"] == 40


def test_fuzzy_location_feature_is_centered_on_fuzzed_point():
    location = FuzzyLocation(
        coordinate=Coordinate(45.51, -73.57),
        radius_m=500,
        generated_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )

    feature = fuzzy_location_feature(location)

    assert feature["properties"]["center"] == [-73.57, 45.51]
    assert feature["properties"]["generated_at"].startswith("2026-01-01")
    assert shape(feature["geometry"]).contains(shape({"type": "Point", "coordinates": (-73.57, 45.51)}))
