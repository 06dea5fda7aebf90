"""
Core domain models for location resolution and outfit advice.
These are framework-agnostic and can be used across all services.
"""
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from domain.errors import ValidationError


class Condition(str, Enum):
    """Coarse sky condition for a forecast day."""
    SUN = "sun"
    CLOUDS = "clouds"
    RAIN = "rain"
    SNOW = "snow"
    MIXED = "mixed"


class Persona(str, Enum):
    """Named style presets that swap specific outfit items."""
    MINIMAL = "minimal"
    OUTDOORSY = "outdoorsy"
    STREET = "street"
    BUSINESS = "business"


# Discrete confidence tiers for geocoded places; never interpolated.
PRIMARY_CONFIDENCE = 0.9
SECONDARY_CONFIDENCE = 0.6


@dataclass(frozen=True)
class PlaceCandidate:
    """An unresolved place name produced by the extractor."""
    name: str
    region_hint: Optional[str] = None
    country_hint: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["PlaceCandidate"]:
        """Build a candidate from loose extractor output; None when unusable."""
        if not isinstance(data, dict):
            return None
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            return None
        region = data.get("region") or data.get("admin1") or data.get("region_hint")
        country = data.get("country") or data.get("country_hint")
        return cls(
            name=name.strip(),
            region_hint=region.strip() if isinstance(region, str) and region.strip() else None,
            country_hint=country.strip() if isinstance(country, str) and country.strip() else None,
        )


@dataclass(frozen=True)
class ResolvedPlace:
    """A geocoded place with a tiered confidence."""
    name: str
    latitude: float
    longitude: float
    confidence: float
    region: Optional[str] = None
    country: Optional[str] = None

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValidationError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValidationError(f"longitude out of range: {self.longitude}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValidationError(f"confidence out of range: {self.confidence}")

    @property
    def dedupe_key(self) -> Tuple[float, float]:
        """Coordinates rounded to 3 decimals (~100m), the identity of a place."""
        return (round(self.latitude, 3), round(self.longitude, 3))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "region": self.region,
            "country": self.country,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "confidence": self.confidence,
        }


@dataclass
class Resolution:
    """Outcome of a successful resolve(): the top pick plus up to 4 alternates."""
    place: ResolvedPlace
    candidates: List[ResolvedPlace] = field(default_factory=list)
    attempts: int = 1
    attempted_names: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class DayForecast:
    """One day of normalized forecast data (Fahrenheit, mph)."""
    date: date
    high_temp: float
    low_temp: float
    precip_chance: float = 0
    wind_speed: float = 0
    uv_index: float = 0
    condition: Condition = Condition.CLOUDS


@dataclass
class DayAdvice:
    """Deterministic clothing items for a day, with optional free-text notes."""
    date: date
    items: List[str] = field(default_factory=list)
    notes: Optional[str] = None
