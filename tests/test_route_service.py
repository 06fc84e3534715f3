import pytest
import requests

from routing import osrm_client
from routing.geo import haversine_km
from routing.osrm_client import OSRMClient, UpstreamRoutingFailure
from routing.route_service import compute_route_geometry, straight_line_route

HARARE = (31.053028, -17.824858)
CHITUNGWIZA = (31.075556, -18.012778)


class FakeResponse:
    def __init__(self, payload):
        self.payload = payload

    def json(self):
        return self.payload


@pytest.fixture
def captured(monkeypatch):
    """Replaces requests.get in the OSRM client; the payload can be swapped per test."""
    calls = {"payload": None, "error": None, "requests": []}

    def fake_get(url, params=None, timeout=None):
        calls["requests"].append((url, params, timeout))
        if calls["error"] is not None:
            raise calls["error"]
        return FakeResponse(calls["payload"])

    monkeypatch.setattr(osrm_client.requests, "get", fake_get)
    return calls


def ok_payload():
    return {
        "code": "Ok",
        "routes": [{
            "geometry": {"coordinates": [list(HARARE), [31.06, -17.9], list(CHITUNGWIZA)]},
            "distance": 23500.0,
            "duration": 1800.0,
        }],
    }


def test_osrm_route_is_normalized(captured):
    captured["payload"] = ok_payload()
    client = OSRMClient(base_url="http://osrm.test", timeout=3)

    geometry = client.compute_route([HARARE, CHITUNGWIZA])

    # 1. units and shape
    assert geometry.polyline == (HARARE, (31.06, -17.9), CHITUNGWIZA)
    assert geometry.distance_km == pytest.approx(23.5)
    assert geometry.duration_min == pytest.approx(30.0)
    assert not geometry.is_fallback

    # 2. request formatting
    url, params, timeout = captured["requests"][0]
    assert url == "http://osrm.test/route/v1/driving/31.053028,-17.824858;31.075556,-18.012778"
    assert params["overview"] == "full"
    assert params["geometries"] == "geojson"
    assert timeout == 3


def test_osrm_error_code_raises(captured):
    captured["payload"] = {"code": "NoRoute", "message": "Impossible route"}
    client = OSRMClient(base_url="http://osrm.test")

    with pytest.raises(UpstreamRoutingFailure, match="Impossible route"):
        client.compute_route([HARARE, CHITUNGWIZA])


def test_unreachable_osrm_falls_back_to_straight_line(captured):
    captured["error"] = requests.ConnectionError("connection refused")
    client = OSRMClient(base_url="http://osrm.test")

    geometry = compute_route_geometry(client, [HARARE, CHITUNGWIZA])

    assert geometry.is_fallback
    assert geometry.polyline == (HARARE, CHITUNGWIZA)


def test_straight_line_route_estimates_duration():
    geometry = compute_route_geometry(None, [HARARE, CHITUNGWIZA], average_speed_kmh=60)
    expected_km = haversine_km(HARARE, CHITUNGWIZA)

    assert geometry.is_fallback
    assert geometry.distance_km == pytest.approx(expected_km)
    assert geometry.duration_min == pytest.approx(expected_km)


def test_route_needs_two_waypoints(captured):
    with pytest.raises(ValueError):
        OSRMClient(base_url="http://osrm.test").compute_route([HARARE])
    with pytest.raises(ValueError):
        straight_line_route([HARARE])
    assert captured["requests"] == []


def test_client_requires_base_url(monkeypatch):
    monkeypatch.setattr(osrm_client, "BASE_URL", None)

    with pytest.raises(ValueError):
        OSRMClient()


def test_base_url_defaults_to_environment(monkeypatch):
    monkeypatch.setattr(osrm_client, "BASE_URL", "http://osrm.env")
    assert OSRMClient().base_url == "http://osrm.env"
    assert OSRMClient(base_url=None).base_url == "http://osrm.env"

    monkeypatch.setattr(osrm_client, "BASE_URL", None)
    with pytest.raises(ValueError):
        OSRMClient()
