import httpx
import pytest

from housie_geo.models.domain import Coordinate
from housie_geo.services.routing.osrm_client import OSRMClient, check_health

STOPS = [Coordinate(45.5017, -73.5673), Coordinate(45.5088, -73.5540), Coordinate(45.5276, -73.5794)]

ROUTE_BODY = {
    "code": "Ok",
    "routes": [
        {
            "geometry": {"type": "LineString", "coordinates": [[-73.5673, 45.5017], [-73.5794, 45.5276]]},
            "distance": 4321.5,
            "duration": 610.2,
        }
    ],
}


def _client(handler, **kwargs) -> OSRMClient:
    kwargs.setdefault("backoff_seconds", 0.0)
    return OSRMClient(base_url="http://osrm.test/", transport=httpx.MockTransport(handler), **kwargs)


def test_route_requests_geojson_geometry():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=ROUTE_BODY)

    route = _client(handler, profile="walking").route(STOPS)

    request = seen[0]
    assert request.url.path == "/route/v1/walking/-73.5673,45.5017;-73.554,45.5088;-73.5794,45.5276"
    assert request.url.params["geometries"] == "geojson"
    assert request.url.params["overview"] == "full"
    assert route.geometry["type"] == "LineString"
    assert route.distance_m == 4321.5
    assert route.waypoint_count == 3


def test_route_requires_two_waypoints():
    client = _client(lambda request: httpx.Response(200, json=ROUTE_BODY))
    with pytest.raises(ValueError):
        client.route(STOPS[:1])


def test_no_route_answer_is_a_value_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"code": "NoRoute", "message": "Impossible route between points"})

    with pytest.raises(ValueError, match="Impossible route"):
        _client(handler).route(STOPS)


def test_timeouts_are_retried():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) < 3:
            raise httpx.ReadTimeout("slow", request=request)
        return httpx.Response(200, json=ROUTE_BODY)

    route = _client(handler, max_retries=3).route(STOPS)

    assert len(attempts) == 3
    assert route.duration_s == 610.2


def test_unreachable_server_raises_connection_error():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ConnectionError):
        _client(handler, max_retries=2).route(STOPS)
    assert len(attempts) == 3


def test_server_errors_surface_after_retries():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="overloaded")

    with pytest.raises(httpx.HTTPStatusError):
        _client(handler, max_retries=1).route(STOPS)


def test_missing_base_url(monkeypatch: pytest.MonkeyPatch):
    from housie_geo.services.routing import osrm_client

    monkeypatch.setattr(osrm_client.settings, "osrm_base_url", None)
    with pytest.raises(ValueError):
        OSRMClient()


def test_check_health():
    healthy = httpx.MockTransport(lambda request: httpx.Response(200, json=ROUTE_BODY))
    down = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))

    assert check_health("http://osrm.test", transport=healthy) is True
    assert check_health("http://osrm.test", transport=down) is False
