import asyncio
import httpx
import pytest
from taxitao.services import maps

MACHAKOS = {"lat": -1.5177, "lng": 37.2634}
NAIROBI = {"lat": -1.2921, "lng": 36.8219}


def test_distance():
    assert maps.calculate_distance(MACHAKOS, MACHAKOS) == 0
    assert 50 < maps.calculate_distance(MACHAKOS, NAIROBI) < 60


@pytest.mark.parametrize("km,text", [(0.25, "250 m"), (1, "1.0 km"), (12.34, "12.3 km")])
def test_format_distance(km, text):
    assert maps.format_distance(km) == text


@pytest.mark.parametrize("minutes,text", [(0, "Arriving now"), (1, "1 min"), (45, "45 mins"), (60, "1h"), (95, "1h 35m")])
def test_format_eta(minutes, text):
    assert maps.format_eta(minutes) == text


def _eta(body, monkeypatch, destination=NAIROBI):
    monkeypatch.setattr(maps.settings, "GOOGLE_MAPS_API_KEY", "maps-key")
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=body)

    result = asyncio.run(maps.calculate_eta(MACHAKOS, destination, transport=httpx.MockTransport(handler)))
    return result, seen


def test_calculate_eta(monkeypatch):
    body = {
        "status": "OK",
        "rows": [{"elements": [{"status": "OK", "duration": {"value": 3601}, "distance": {"text": "63.5 km"}}]}],
    }
    result, [request] = _eta(body, monkeypatch)

    assert result == {"minutes": 61, "distance": "63.5 km"}
    assert request.url.params["destinations"] == "-1.2921,36.8219"
    assert request.url.params["mode"] == "driving"


def test_calculate_eta_with_address(monkeypatch):
    body = {"status": "OK", "rows": [{"elements": [{"status": "ZERO_RESULTS"}]}]}
    result, [request] = _eta(body, monkeypatch, destination="Masii")

    assert result is None
    assert request.url.params["destinations"] == "Masii"


def test_calculate_eta_api_error(monkeypatch):
    result, _ = _eta({"status": "REQUEST_DENIED"}, monkeypatch)
    assert result is None


def test_calculate_eta_without_key():
    assert asyncio.run(maps.calculate_eta(MACHAKOS, NAIROBI)) is None
