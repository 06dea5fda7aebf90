from datetime import date
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from api.main import app
from api.routes import forecast as forecast_router
from api.routes import outfits as outfits_router
from api.routes import resolve as resolve_router
from domain.errors import NotFoundError, TransientIOError
from domain.models import Condition, DayForecast, Resolution, ResolvedPlace

client = TestClient(app)


def _place(name, lat, lon, confidence):
    return ResolvedPlace(name=name, latitude=lat, longitude=lon, confidence=confidence, country="United States")


def test_health():
    assert client.get("/health").json() == {"status": "healthy"}


@patch.object(resolve_router, "get_default_resolver")
def test_resolve_returns_place_and_candidates(mock_get_resolver):
    resolver = MagicMock()
    resolver.resolve.return_value = Resolution(
        place=_place("New York", 40.71427, -74.00597, 0.9),
        candidates=[_place("New York Mills", 46.518, -95.376, 0.6)],
    )
    mock_get_resolver.return_value = resolver

    resp = client.post("/resolve", json={"query": "the big apple"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["place"]["name"] == "New York"
    assert data["place"]["confidence"] == 0.9
    assert data["candidates"][0]["name"] == "New York Mills"
    resolver.resolve.assert_called_once_with("the big apple")


@patch.object(resolve_router, "get_default_resolver")
def test_resolve_not_found_offers_suggestions(mock_get_resolver):
    resolver = MagicMock()
    resolver.resolve.side_effect = NotFoundError("narnia", ["Narnia", "Cair Paravel"])
    mock_get_resolver.return_value = resolver

    resp = client.post("/resolve", json={"query": "narnia"})

    assert resp.status_code == 404
    data = resp.json()
    assert data["attempted_names"] == ["Narnia", "Cair Paravel"]
    assert data["suggestions"]


def test_resolve_rejects_empty_query():
    resp = client.post("/resolve", json={"query": ""})
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "Invalid request"
    assert "detail" not in body
    assert any(line.startswith("body.query:") for line in body["details"])
    assert "File " not in resp.text
    assert ".py" not in resp.text


@patch.object(forecast_router, "fetch_forecast")
def test_forecast_returns_days(mock_fetch):
    mock_fetch.return_value = [
        DayForecast(date=date(2025, 5, 10), high_temp=70, low_temp=50, precip_chance=20,
                    wind_speed=5, uv_index=6, condition=Condition.SUN)
    ]

    resp = client.post("/forecast", json={"lat": 40.7, "lon": -74.0})

    assert resp.status_code == 200
    day = resp.json()["days"][0]
    assert day["date"] == "2025-05-10"
    assert day["condition"] == "sun"
    mock_fetch.assert_called_once_with(40.7, -74.0)


@patch.object(forecast_router, "fetch_forecast")
def test_forecast_upstream_failure_is_503(mock_fetch):
    mock_fetch.side_effect = TransientIOError("Weather service unavailable (status: 502)", status_code=502)
    resp = client.post("/forecast", json={"lat": 40.7, "lon": -74.0})
    assert resp.status_code == 503
    assert resp.json() == {"error": "Failed to fetch forecast"}


def test_forecast_rejects_out_of_range_latitude():
    assert client.post("/forecast", json={"lat": 123, "lon": 0}).status_code == 400


@patch.object(outfits_router, "get_default_notes_writer", return_value=None)
def test_generate_outfits_is_deterministic(mock_writer):
    body = {
        "place": {"name": "Boston"},
        "persona": "outdoorsy",
        "days": [
            {"date": "2025-05-10", "high_temp": 78, "low_temp": 60, "precip_chance": 60,
             "wind_speed": 20, "uv_index": 8, "condition": "rain"},
        ],
    }

    first = client.post("/generate-outfits", json=body)
    second = client.post("/generate-outfits", json=body)

    assert first.status_code == 200
    assert first.json() == second.json()
    outfit = first.json()["outfits"][0]
    assert outfit["date"] == "2025-05-10"
    assert "trail shoes" in outfit["items"]
    assert "windbreaker" in outfit["items"]
    assert outfit["notes"] is None


@patch.object(outfits_router, "get_default_notes_writer", return_value=None)
def test_generate_outfits_rejects_unknown_persona(mock_writer):
    body = {"persona": "goth", "days": [{"date": "2025-05-10", "high_temp": 50, "low_temp": 40}]}
    resp = client.post("/generate-outfits", json=body)
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "Invalid request"
    assert any(line.startswith("body.persona:") for line in body["details"])
    assert "detail" not in body


def test_generate_outfits_requires_days():
    assert client.post("/generate-outfits", json={"days": []}).status_code == 400


@patch.object(resolve_router, "get_default_resolver")
def test_resolve_upstream_failure_uses_error_body(mock_get_resolver):
    resolver = MagicMock()
    resolver.resolve.side_effect = TransientIOError("geocoder down")
    mock_get_resolver.return_value = resolver

    resp = client.post("/resolve", json={"query": "paris"})

    assert resp.status_code == 503
    assert resp.json() == {"error": "Location service unavailable"}


def test_unknown_route_uses_error_body():
    resp = client.get("/no-such-route")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Not Found"}


def test_malformed_json_body_is_summarized():
    resp = client.post(
        "/forecast", content="{not json", headers={"Content-Type": "application/json"}
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid request"
    assert "File " not in resp.text
