"""
Forecast API routes.
"""
import logging
from datetime import date
from typing import List

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from domain.errors import TransientIOError, ValidationError
from domain.models import Condition, DayForecast
from services.forecast import fetch_forecast

router = APIRouter()
logger = logging.getLogger(__name__)


class ForecastRequest(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class DayForecastModel(BaseModel):
    date: date
    high_temp: float
    low_temp: float
    precip_chance: float = Field(0, ge=0, le=100)
    wind_speed: float = Field(0, ge=0)
    uv_index: float = Field(0, ge=0)
    condition: Condition = Condition.CLOUDS

    def to_domain(self) -> DayForecast:
        return DayForecast(**self.model_dump())

    @classmethod
    def from_domain(cls, day: DayForecast) -> "DayForecastModel":
        return cls(
            date=day.date,
            high_temp=day.high_temp,
            low_temp=day.low_temp,
            precip_chance=day.precip_chance,
            wind_speed=day.wind_speed,
            uv_index=day.uv_index,
            condition=day.condition,
        )


class ForecastResponse(BaseModel):
    days: List[DayForecastModel]


@router.post("/forecast", response_model=ForecastResponse)
def get_forecast(body: ForecastRequest):
    """Seven-day forecast for a coordinate, in °F and mph."""
    try:
        days = fetch_forecast(body.lat, body.lon)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except TransientIOError as exc:
        logger.error("/forecast error: %s", exc)
        raise HTTPException(status_code=503, detail="Failed to fetch forecast")
    return ForecastResponse(days=[DayForecastModel.from_domain(d) for d in days])
