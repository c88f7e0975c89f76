import pytest
import requests

from route_map import route_response
from route_map.coordinates import Coordinate
from route_map.route_response import RouteClient, RouteRequestError, RouteResponse


ROUTE_JSON = {
    "geojson": {
        "type": "Feature",
        "geometry": {
            "type": "LineString",
            "coordinates": [[-0.1, 51.5], [-0.105, 51.505], [-0.12, 51.51]],
        },
        "properties": {"routeType": "quiet", "waypoints": 3},
    },
    "metadata": {
        "totalDistanceMeters": 1850.4,
        "averageSafetyScore": 0.82,
        "safetyPercentage": 82.0,
        "litSegmentsCount": 14,
        "totalSegments": 17,
        "litPercentage": 82.4,
        "nearestPoliceStartMeters": 410.0,
        "nearestPoliceEndMeters": 230.0,
        "nearestLightStartMeters": 12.0,
        "nearestLightEndMeters": 8.5,
        "safetyRating": "Good",
    },
    "message": "Route found",
}


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._payload = payload
        self.text = text

    def json(self):
        return self._payload


def test_parse_route_response():
    route = RouteResponse.from_json(ROUTE_JSON)

    assert route.geometry.type == "LineString"
    assert route.geometry.to_latlngs() == [[51.5, -0.1], [51.505, -0.105], [51.51, -0.12]]
    assert route.metadata.lit_segments_count == 14
    assert route.metadata.safety_rating == "Good"
    assert route.properties["routeType"] == "quiet"
    assert route.message == "Route found"


def test_missing_metadata_fields_are_none():
    data = {"geojson": {"geometry": {"type": "LineString", "coordinates": []}}}
    route = RouteResponse.from_json(data)
    assert route.metadata.total_distance_meters is None
    assert route.summary() == []


@pytest.mark.parametrize("data", [None, [], {"geojson": {}}, {"geojson": {"geometry": {"coordinates": "x"}}}])
def test_malformed_route_response_raises(data):
    with pytest.raises(ValueError):
        RouteResponse.from_json(data)


def test_summary_lines():
    lines = RouteResponse.from_json(ROUTE_JSON).summary()
    assert lines == [
        "Distance: 1.85 km",
        "Safety rating: Good",
        "Safety: 82%",
        "Lit segments: 14/17",
        "Route found",
    ]


def test_fetch_route_posts_start_and_end(monkeypatch):
    calls = []

    def fake_post(url, json=None, timeout=None):
        calls.append((url, json, timeout))
        return FakeResponse(payload=ROUTE_JSON)

    monkeypatch.setattr(route_response.requests, "post", fake_post)
    client = RouteClient("http://api.local", path="route", timeout=9)

    route = client.fetch_route(Coordinate(51.5, -0.1), Coordinate(51.51, -0.12))

    assert calls == [(
        "http://api.local/route",
        {"start": {"lat": 51.5, "lon": -0.1}, "end": {"lat": 51.51, "lon": -0.12}},
        9,
    )]
    assert route.metadata.total_segments == 17


@pytest.mark.parametrize("outcome", [
    requests.exceptions.ConnectionError("down"),
    FakeResponse(status_code=503, text="unavailable"),
    FakeResponse(payload={"message": "no route"}),
])
def test_fetch_route_errors_raise_route_request_error(monkeypatch, outcome):
    def fake_post(url, json=None, timeout=None):
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    monkeypatch.setattr(route_response.requests, "post", fake_post)

    with pytest.raises(RouteRequestError):
        RouteClient("http://api.local").fetch_route(Coordinate(0, 0), Coordinate(1, 1))
