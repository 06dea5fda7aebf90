"""
Daily forecast lookup via Open-Meteo, normalized to DayForecast records
(Fahrenheit, mph, whole numbers, at most 7 days).
"""
from __future__ import annotations

import logging
import math
import time
from datetime import date
from typing import Any, Callable, List, Optional, Sequence

import requests

from domain.errors import TransientIOError, ValidationError
from domain.models import Condition, DayForecast
from services.http_retry import RetryConfig, fetch_with_retry
from settings import settings

logger = logging.getLogger(__name__)

MAX_FORECAST_DAYS = 7
DAILY_FIELDS = (
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_probability_max",
    "wind_speed_10m_max",
    "uv_index_max",
    "weather_code",
)


def _retry_on_server_errors(response: Optional[requests.Response], error: Optional[BaseException]) -> bool:
    # 4xx other than 429 will not get better by asking again.
    if error is not None:
        return True
    return response is not None and (response.status_code >= 500 or response.status_code == 429)


FORECAST_RETRY = RetryConfig(
    max_retries=3,
    initial_delay_ms=500,
    timeout_ms=8000,
    retry_predicate=_retry_on_server_errors,
)


def map_weather_code(code: int) -> Condition:
    """WMO weather interpretation code to a coarse condition."""
    if 0 <= code <= 3:
        return Condition.SUN
    if code in (45, 48):
        return Condition.CLOUDS
    if 51 <= code <= 65:
        return Condition.RAIN
    if 71 <= code <= 77:
        return Condition.SNOW
    if 80 <= code <= 82:
        return Condition.RAIN
    if 85 <= code <= 86:
        return Condition.SNOW
    if 95 <= code <= 99:
        return Condition.MIXED
    return Condition.CLOUDS


def _number_at(series: Optional[Sequence[Any]], index: int) -> Optional[float]:
    """Finite number at ``series[index]``; None when absent or unusable."""
    if not isinstance(series, (list, tuple)) or index >= len(series):
        return None
    value = series[index]
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _value_at(series: Optional[Sequence[Any]], index: int, default: float = 0.0) -> float:
    number = _number_at(series, index)
    return default if number is None else number


def normalize_days(raw: dict) -> List[DayForecast]:
    """
    Convert an Open-Meteo ``daily`` payload into at most 7 DayForecasts.

    A day with an unparseable date or a missing, non-numeric or non-finite
    temperature is logged and skipped; the remaining days are kept.
    """
    daily = raw.get("daily") if isinstance(raw, dict) else None
    if not isinstance(daily, dict):
        daily = {}
    times = daily.get("time")
    if not isinstance(times, list):
        times = []
    highs = daily.get("temperature_2m_max")
    lows = daily.get("temperature_2m_min")

    days: List[DayForecast] = []
    for i, day_str in enumerate(times[:MAX_FORECAST_DAYS]):
        high = _number_at(highs, i)
        low = _number_at(lows, i)
        if high is None or low is None:
            logger.warning("Forecast day %s is missing temperatures; skipping", day_str)
            continue
        try:
            day = date.fromisoformat(day_str)
        except (TypeError, ValueError):
            logger.warning("Forecast day %r has an unparseable date; skipping", day_str)
            continue
        precip = round(_value_at(daily.get("precipitation_probability_max"), i))
        days.append(
            DayForecast(
                date=day,
                high_temp=round(high),
                low_temp=round(low),
                precip_chance=min(max(precip, 0), 100),
                wind_speed=max(round(_value_at(daily.get("wind_speed_10m_max"), i)), 0),
                uv_index=max(round(_value_at(daily.get("uv_index_max"), i)), 0),
                condition=map_weather_code(int(_value_at(daily.get("weather_code"), i))),
            )
        )
    return days


def fetch_forecast(
    latitude: float,
    longitude: float,
    *,
    base_url: Optional[str] = None,
    session: Optional[requests.Session] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> List[DayForecast]:
    """
    Fetch and normalize the daily forecast for a coordinate.

    Raises ValidationError for out-of-range coordinates (before any I/O) and
    TransientIOError when the weather service does not answer OK.
    """
    if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
        raise ValidationError(f"coordinates out of range: lat={latitude} lon={longitude}")

    params = {
        "latitude": str(latitude),
        "longitude": str(longitude),
        "daily": ",".join(DAILY_FIELDS),
        "temperature_unit": "fahrenheit",
        "wind_speed_unit": "mph",
        "timezone": "auto",
    }
    resp = fetch_with_retry(
        base_url or settings.FORECAST_BASE_URL,
        params=params,
        config=FORECAST_RETRY,
        session=session,
        sleep=sleep,
    )
    if not resp.ok:
        logger.error("Open-Meteo forecast API error: %s for lat=%s, lon=%s", resp.status_code, latitude, longitude)
        raise TransientIOError(
            f"Weather service unavailable (status: {resp.status_code})",
            status_code=resp.status_code,
        )
    try:
        data = resp.json()
    except ValueError as exc:
        raise TransientIOError("Weather service returned invalid JSON") from exc
    return normalize_days(data)
