"""
Deterministic outfit rules: a day's weather in, an ordered item list out.

No I/O and no hidden state. Item order is the base band first, then the
add-ons in their fixed check order, with persona swaps applied in place.
"""
from __future__ import annotations

import math
from typing import Dict, List, Optional, Tuple, Union

from domain.errors import InvalidInput
from domain.models import DayForecast, Persona

# (max high temp in °F, base items); the first band whose ceiling is >= high wins.
TEMPERATURE_BANDS: Tuple[Tuple[float, Tuple[str, ...]], ...] = (
    (40, ("insulated coat", "thermal base layer", "beanie", "warm socks", "insulated boots")),
    (55, ("sweater", "medium jacket", "jeans", "closed shoes")),
    (72, ("tee or long-sleeve", "light layer", "pants or jeans")),
    (84, ("breathable tee", "light pants or shorts", "comfortable shoes")),
    (math.inf, ("ultra-light top", "linen or tech shorts", "breathable shoes")),
)

RAIN_PRECIP_CHANCE = 40
WINDY_SPEED_MPH = 18
HIGH_UV_INDEX = 7
COLD_LOW_TEMP = 38
SWING_LOW_TEMP = 50
SWING_HIGH_TEMP = 65

PERSONA_REPLACEMENTS: Dict[Persona, Dict[str, str]] = {
    Persona.MINIMAL: {
        "medium jacket": "versatile jacket",
        "light layer": "simple cardigan",
        "breathable tee": "plain tee",
    },
    Persona.OUTDOORSY: {
        "medium jacket": "technical fleece",
        "light layer": "packable vest",
        "comfortable shoes": "trail shoes",
        "breathable shoes": "hiking sandals",
    },
    Persona.STREET: {
        "medium jacket": "bomber or denim jacket",
        "beanie": "stylish cap",
        "comfortable shoes": "sneakers",
        "light pants or shorts": "cargo pants",
    },
    Persona.BUSINESS: {
        "tee or long-sleeve": "button-up shirt",
        "light pants or shorts": "chinos",
        "comfortable shoes": "loafers or oxfords",
        "ultra-light top": "linen shirt",
    },
}


def _finite(value: object, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInput(f"{field_name} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise InvalidInput(f"{field_name} must be finite, got {value!r}")
    return float(value)


def _validate(day: DayForecast) -> None:
    _finite(day.high_temp, "high_temp")
    _finite(day.low_temp, "low_temp")
    precip = _finite(day.precip_chance, "precip_chance")
    wind = _finite(day.wind_speed, "wind_speed")
    uv = _finite(day.uv_index, "uv_index")
    if not 0 <= precip <= 100:
        raise InvalidInput(f"precip_chance must be within [0, 100], got {precip}")
    if wind < 0:
        raise InvalidInput(f"wind_speed must be >= 0, got {wind}")
    if uv < 0:
        raise InvalidInput(f"uv_index must be >= 0, got {uv}")


def _coerce_persona(persona: Union[Persona, str, None]) -> Optional[Persona]:
    if persona is None or isinstance(persona, Persona):
        return persona
    try:
        return Persona(persona)
    except ValueError as exc:
        raise InvalidInput(f"unknown persona: {persona!r}") from exc


def select_band(high_temp: float) -> Tuple[str, ...]:
    for ceiling, items in TEMPERATURE_BANDS:
        if ceiling >= high_temp:
            return items
    # The last band is unbounded.
    return TEMPERATURE_BANDS[-1][1]


def weather_add_ons(day: DayForecast) -> List[str]:
    """Conditional items in fixed check order."""
    extras: List[str] = []
    if day.precip_chance >= RAIN_PRECIP_CHANCE:
        extras += ["waterproof shell", "water-resistant shoes"]
    if day.wind_speed >= WINDY_SPEED_MPH:
        extras.append("windbreaker")
    if day.uv_index >= HIGH_UV_INDEX:
        extras += ["sun hat", "sunglasses", "sunscreen"]
    if day.low_temp <= COLD_LOW_TEMP:
        extras += ["gloves", "warm scarf"]
    # Cold morning, warm afternoon.
    if day.low_temp <= SWING_LOW_TEMP and day.high_temp >= SWING_HIGH_TEMP:
        extras.append("packable layer")
    return extras


def advise(day: DayForecast, persona: Union[Persona, str, None] = None) -> List[str]:
    """
    Clothing items for ``day``.

    Raises InvalidInput for non-finite or out-of-domain values. A persona
    swap that collides with an existing item leaves the duplicate in place.
    """
    _validate(day)
    chosen = _coerce_persona(persona)

    items = list(dict.fromkeys([*select_band(day.high_temp), *weather_add_ons(day)]))

    if chosen is not None:
        replacements = PERSONA_REPLACEMENTS[chosen]
        items = [replacements.get(item, item) for item in items]
    return items
