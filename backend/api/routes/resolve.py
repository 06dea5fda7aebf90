"""
Location resolution API routes.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from domain.errors import NotFoundError, TransientIOError, ValidationError
from domain.models import ResolvedPlace
from services.location_resolver import get_default_resolver

router = APIRouter()
logger = logging.getLogger(__name__)


class ResolveRequest(BaseModel):
    query: str = Field(..., min_length=1)


class ResolvedPlaceResponse(BaseModel):
    name: str
    region: Optional[str] = None
    country: Optional[str] = None
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    confidence: float = Field(..., ge=0, le=1)


class ResolveResponse(BaseModel):
    place: ResolvedPlaceResponse
    candidates: List[ResolvedPlaceResponse] = Field(default_factory=list, max_length=4)


class NotFoundResponse(BaseModel):
    error: str
    attempted_names: List[str]
    suggestions: List[str]
    deadline_exceeded: bool = False


def place_to_response(place: ResolvedPlace) -> ResolvedPlaceResponse:
    """Convert domain ResolvedPlace to API response."""
    return ResolvedPlaceResponse(**place.to_dict())


@router.post(
    "/resolve",
    response_model=ResolveResponse,
    responses={404: {"model": NotFoundResponse}},
)
def resolve_location(body: ResolveRequest):
    """Turn a colloquial place phrase into a top place plus alternates."""
    try:
        result = get_default_resolver().resolve(body.query)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except NotFoundError as exc:
        payload = NotFoundResponse(
            error="No geocoding results",
            attempted_names=exc.attempted_names,
            suggestions=exc.suggestions,
            deadline_exceeded=exc.deadline_exceeded,
        )
        return JSONResponse(status_code=404, content=payload.model_dump())
    except TransientIOError as exc:
        logger.warning("/resolve upstream failure: %s", exc)
        raise HTTPException(status_code=503, detail="Location service unavailable")

    return ResolveResponse(
        place=place_to_response(result.place),
        candidates=[place_to_response(p) for p in result.candidates],
    )
