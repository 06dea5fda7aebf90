"""
Outfit generation API routes.
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from api.routes.forecast import DayForecastModel
from domain.errors import InvalidInput
from domain.models import Persona
from services.outfit_notes import build_day_advice, get_default_notes_writer

router = APIRouter()


class PlaceRef(BaseModel):
    name: str


class GenerateOutfitsRequest(BaseModel):
    place: Optional[PlaceRef] = None
    days: List[DayForecastModel] = Field(..., min_length=1)
    persona: Optional[Persona] = None


class DayAdviceResponse(BaseModel):
    date: date
    items: List[str]
    notes: Optional[str] = None


class GenerateOutfitsResponse(BaseModel):
    outfits: List[DayAdviceResponse]


@router.post("/generate-outfits", response_model=GenerateOutfitsResponse)
def generate_outfits(body: GenerateOutfitsRequest):
    """
    Deterministic items per day, plus optional notes.

    The notes step never changes ``items``.
    """
    days = [d.to_domain() for d in body.days]
    try:
        advice = build_day_advice(
            days,
            persona=body.persona,
            place_name=body.place.name if body.place else None,
            notes_writer=get_default_notes_writer(),
        )
    except InvalidInput as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    return GenerateOutfitsResponse(
        outfits=[DayAdviceResponse(date=a.date, items=a.items, notes=a.notes) for a in advice]
    )
