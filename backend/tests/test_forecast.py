from datetime import date
from unittest.mock import MagicMock

import pytest

from domain.errors import TransientIOError, ValidationError
from domain.models import Condition
from services.forecast import fetch_forecast, map_weather_code, normalize_days


def _resp(payload, status=200):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = status < 400
    resp.json.return_value = payload
    return resp


def _daily(n):
    return {
        "daily": {
            "time": [f"2025-05-{10 + i:02d}" for i in range(n)],
            "temperature_2m_max": [70.4 + i for i in range(n)],
            "temperature_2m_min": [50.6 for _ in range(n)],
            "precipitation_probability_max": [35.5 for _ in range(n)],
            "wind_speed_10m_max": [12.2 for _ in range(n)],
            "uv_index_max": [6.7 for _ in range(n)],
            "weather_code": [61 for _ in range(n)],
        }
    }


def test_map_weather_code():
    assert map_weather_code(0) == Condition.SUN
    assert map_weather_code(3) == Condition.SUN
    assert map_weather_code(45) == Condition.CLOUDS
    assert map_weather_code(63) == Condition.RAIN
    assert map_weather_code(75) == Condition.SNOW
    assert map_weather_code(81) == Condition.RAIN
    assert map_weather_code(86) == Condition.SNOW
    assert map_weather_code(95) == Condition.MIXED
    assert map_weather_code(20) == Condition.CLOUDS


def test_normalize_rounds_and_caps_at_seven_days():
    days = normalize_days(_daily(10))

    assert len(days) == 7
    first = days[0]
    assert first.date == date(2025, 5, 10)
    assert first.high_temp == 70
    assert first.low_temp == 51
    assert first.precip_chance == 36
    assert first.wind_speed == 12
    assert first.uv_index == 7
    assert first.condition == Condition.RAIN


def test_normalize_defaults_missing_optional_series():
    payload = {
        "daily": {
            "time": ["2025-01-01"],
            "temperature_2m_max": [30.0],
            "temperature_2m_min": [20.0],
            "precipitation_probability_max": [None],
        }
    }
    day = normalize_days(payload)[0]
    assert day.precip_chance == 0
    assert day.wind_speed == 0
    assert day.uv_index == 0
    assert day.condition == Condition.SUN



def test_normalize_skips_days_with_bad_dates_or_temperatures():
    payload = _daily(4)
    payload["daily"]["time"][0] = "19/10/2026"
    payload["daily"]["temperature_2m_max"][1] = "n/a"
    payload["daily"]["temperature_2m_min"][2] = float("nan")

    days = normalize_days(payload)

    assert [d.date for d in days] == [date(2025, 5, 13)]
    assert days[0].high_temp == 73


def test_normalize_ignores_non_finite_and_malformed_shapes():
    payload = _daily(2)
    payload["daily"]["temperature_2m_max"][0] = float("inf")
    assert [d.date for d in normalize_days(payload)] == [date(2025, 5, 11)]

    assert normalize_days({"daily": {"time": {"0": "2025-05-10"}}}) == []
    assert normalize_days({"daily": ["2025-05-10"]}) == []
    assert normalize_days(None) == []


def test_fetch_forecast_with_bad_day_returns_remaining_days():
    payload = _daily(3)
    payload["daily"]["time"][1] = "not-a-date"
    session = MagicMock()
    session.request.return_value = _resp(payload)

    days = fetch_forecast(47.6, -122.3, session=session, sleep=lambda _: None)

    assert [d.date for d in days] == [date(2025, 5, 10), date(2025, 5, 12)]

def test_out_of_range_coordinates_rejected_before_io():
    session = MagicMock()
    with pytest.raises(ValidationError):
        fetch_forecast(91.0, 0.0, session=session)
    session.request.assert_not_called()


def test_fetch_forecast_requests_imperial_units():
    session = MagicMock()
    session.request.return_value = _resp(_daily(7))

    days = fetch_forecast(40.71, -74.01, base_url="https://wx.test/forecast", session=session)

    assert len(days) == 7
    params = session.request.call_args.kwargs["params"]
    assert params["temperature_unit"] == "fahrenheit"
    assert params["wind_speed_unit"] == "mph"
    assert "uv_index_max" in params["daily"]


def test_client_error_is_not_retried_and_raises():
    session = MagicMock()
    session.request.return_value = _resp({}, 400)

    with pytest.raises(TransientIOError):
        fetch_forecast(40.71, -74.01, session=session, sleep=lambda _: None)
    assert session.request.call_count == 1


def test_server_errors_exhaust_retries_then_raise():
    session = MagicMock()
    session.request.return_value = _resp({}, 503)

    with pytest.raises(TransientIOError) as excinfo:
        fetch_forecast(40.71, -74.01, session=session, sleep=lambda _: None)
    assert excinfo.value.status_code == 503
    assert session.request.call_count == 4
