import logging
import random

import pytest

from housie_geo.config import settings
from housie_geo.data.zones_repository import FALLBACK_ZONES, ZoneDirectory
from housie_geo.errors import StoreError
from housie_geo.models.domain import UNKNOWN_ZONE, Coordinate, Zone
from housie_geo.services.geospatial import haversine_m, parse_point
from housie_geo.services.privacy import fuzz, nearest_zone, provider_fuzzy_location, resolve_zone

MONTREAL = Coordinate(latitude=45.5017, longitude=-73.5673)
# equirectangular offsets run slightly short of great-circle distance
TOLERANCE = 1.001


def _zone(code: str, lat: float, lng: float, radius: float = 1000.0) -> Zone:
    return Zone(
        id=code.lower(),
        name=code.title(),
        code=code,
        zone_type="residential",
        center=Coordinate(latitude=lat, longitude=lng),
        radius_m=radius,
        demand_level="medium",
        pricing_multiplier=1.0,
    )


def test_fuzz_stays_inside_radius():
    rng = random.Random(42)
    for _ in range(500):
        result = fuzz(MONTREAL, 500, rng=rng)
        assert haversine_m(MONTREAL, result.coordinate) <= 500 * TOLERANCE
        assert result.radius_m == 500


def test_fuzz_outputs_vary_between_calls():
    rng = random.Random(7)
    first = fuzz(MONTREAL, 1000, rng=rng).coordinate
    second = fuzz(MONTREAL, 1000, rng=rng).coordinate
    assert first != second


@pytest.mark.parametrize("radius", [None, 0, -25])
def test_fuzz_invalid_radius_uses_default(radius, caplog):
    with caplog.at_level(logging.WARNING):
        result = fuzz(MONTREAL, radius, rng=random.Random(1))
    assert result.radius_m == settings.default_confidentiality_radius_m
    assert "Invalid fuzzing radius" in caplog.text
    assert haversine_m(MONTREAL, result.coordinate) <= settings.default_confidentiality_radius_m * TOLERANCE


def test_nearest_zone_ignores_zone_radius():
    near = _zone("NEAR", 45.60, -73.60, radius=10)
    far = _zone("FAR", 46.50, -73.60, radius=500_000)
    zone, distance = nearest_zone(Coordinate(45.70, -73.60), [far, near])
    assert zone.code == "NEAR"
    assert distance > near.radius_m


def test_nearest_zone_first_wins_on_equal_distance():
    a = _zone("A", 45.60, -73.60)
    b = _zone("B", 45.60, -73.60)
    zone, _ = nearest_zone(Coordinate(45.50, -73.60), [a, b])
    assert zone.code == "A"


def test_nearest_zone_empty():
    assert nearest_zone(MONTREAL, []) is None


def test_resolve_zone_uses_store_zones_and_caches_them():
    calls = []

    def loader():
        calls.append(1)
        return [_zone("ROSEMONT", 45.55, -73.57), _zone("VERDUN", 45.45, -73.57)]

    directory = ZoneDirectory(loader)
    first = resolve_zone(Coordinate(45.54, -73.57), directory=directory)
    second = resolve_zone(Coordinate(45.46, -73.57), directory=directory)

    assert first.zone_code == "ROSEMONT"
    assert second.zone_code == "VERDUN"
    assert not first.degraded
    assert len(calls) == 1


def test_resolve_zone_falls_back_when_store_fails(caplog):
    def loader():
        raise StoreError("Failed to load service zones: connection refused")

    directory = ZoneDirectory(loader)
    with caplog.at_level(logging.WARNING):
        resolution = resolve_zone(Coordinate(45.5280, -73.5790), directory=directory)

    assert resolution.zone_code == "PLATEAU"
    assert resolution.degraded is True
    assert "fallback zones" in caplog.text


def test_resolve_zone_retries_store_after_failure():
    attempts = []

    def loader():
        attempts.append(1)
        if len(attempts) == 1:
            raise StoreError("timeout")
        return [_zone("ROSEMONT", 45.55, -73.57)]

    directory = ZoneDirectory(loader)
    assert resolve_zone(MONTREAL, directory=directory).degraded is True
    recovered = resolve_zone(MONTREAL, directory=directory)
    assert recovered.zone_code == "ROSEMONT"
    assert recovered.degraded is False


def test_resolve_zone_falls_back_on_empty_table():
    directory = ZoneDirectory(lambda: [])
    resolution = resolve_zone(Coordinate(45.4870, -73.5990), directory=directory)
    assert resolution.zone_code == "WESTMOUNT"
    assert resolution.degraded is True


def test_resolve_zone_unknown_when_no_zones_at_all():
    directory = ZoneDirectory(None, fallback=())
    resolution = resolve_zone(MONTREAL, directory=directory)
    assert resolution.zone_code == UNKNOWN_ZONE
    assert resolution.distance_m is None


def test_fallback_zone_codes():
    assert [zone.code for zone in FALLBACK_ZONES] == ["PLATEAU", "DOWNTOWN", "WESTMOUNT"]


def test_directory_invalidate_reloads():
    batches = [[_zone("ONE", 45.5, -73.5)], [_zone("TWO", 45.5, -73.5)]]
    directory = ZoneDirectory(lambda: batches.pop(0))
    assert directory.load().zones[0].code == "ONE"
    directory.invalidate()
    assert directory.load().zones[0].code == "TWO"


def test_provider_fuzzy_location_prefers_stored_value():
    provider = {"fuzzy_location": "(-73.6,45.52)", "lat": 45.0, "lng": -73.0}
    assert provider_fuzzy_location(provider) == Coordinate(latitude=45.52, longitude=-73.6)


def test_provider_fuzzy_location_fuzzes_own_coordinates():
    provider = {"coordinates": "(-73.58,45.53)", "confidentiality_radius": 200}
    result = provider_fuzzy_location(provider, rng=random.Random(3))
    true_position = parse_point(provider["coordinates"])
    assert haversine_m(true_position, result) <= 200 * TOLERANCE


def test_provider_fuzzy_location_defaults_to_city_center():
    result = provider_fuzzy_location({}, rng=random.Random(5))
    center = Coordinate(latitude=settings.city_center_lat, longitude=settings.city_center_lng)
    assert haversine_m(center, result) <= settings.provider_fallback_radius_m * TOLERANCE
