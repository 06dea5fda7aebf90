"""Forward geocoding of extracted place candidates using the Open-Meteo search API.

One lookup per candidate name. Matches are filtered by the candidate's
region/country hints and turned into ResolvedPlace records with tiered
confidence. A candidate whose lookup fails simply contributes nothing.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Any, Callable, List, Optional

import requests

from domain.errors import TransientIOError, ValidationError
from domain.models import (
    PRIMARY_CONFIDENCE,
    SECONDARY_CONFIDENCE,
    PlaceCandidate,
    ResolvedPlace,
)
from services.http_retry import RetryConfig, fetch_with_retry
from settings import settings

logger = logging.getLogger(__name__)

GEOCODE_MAX_RESULTS = 5
# Primary plus up to two secondaries per candidate.
MAX_PLACES_PER_CANDIDATE = 3
USER_AGENT = "weather-wardrobe/0.1"

# Read-only idempotent call: retry eagerly with a short timeout.
GEOCODE_RETRY = RetryConfig(max_retries=3, initial_delay_ms=500, timeout_ms=5000)


def _coerce_coord(value: Any) -> Optional[float]:
    """Coerce a coordinate field to float; None when missing or not finite."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _contains(haystack: Any, needle: str) -> bool:
    return isinstance(haystack, str) and needle.lower() in haystack.lower()


def matches_hints(item: dict, candidate: PlaceCandidate) -> bool:
    """
    Advisory hint filter: case-insensitive containment, never strict equality.

    The country hint passes when the match's country contains it or its
    country code equals it; the region hint when the match's region
    (``admin1``) contains it.
    """
    country = candidate.country_hint
    if country:
        code = item.get("country_code")
        code_match = isinstance(code, str) and code.lower() == country.lower()
        if not (_contains(item.get("country"), country) or code_match):
            return False
    region = candidate.region_hint
    if region and not _contains(item.get("admin1"), region):
        return False
    return True


def to_resolved_place(item: dict, confidence: float) -> Optional[ResolvedPlace]:
    """Convert one raw lookup match; None when its coordinates are unusable."""
    lat = _coerce_coord(item.get("latitude"))
    lon = _coerce_coord(item.get("longitude"))
    if lat is None or lon is None:
        return None
    try:
        return ResolvedPlace(
            name=str(item.get("name") or ""),
            region=item.get("admin1") or None,
            country=item.get("country") or None,
            latitude=lat,
            longitude=lon,
            confidence=confidence,
        )
    except ValidationError:
        return None


class GeocodeClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        retry: Optional[RetryConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = (base_url or settings.GEOCODING_BASE_URL).rstrip("/")
        self.session = session
        self.retry = retry or GEOCODE_RETRY
        self.sleep = sleep

    def lookup(self, name: str, max_results: int = GEOCODE_MAX_RESULTS) -> List[dict]:
        """
        Raw search matches for ``name`` (possibly empty).

        Raises TransientIOError when the service never answers OK.
        """
        params = {
            "name": name,
            "count": str(max_results),
            "language": "en",
            "format": "json",
        }
        resp = fetch_with_retry(
            self.base_url,
            params=params,
            headers={"User-Agent": USER_AGENT},
            config=self.retry,
            session=self.session,
            sleep=self.sleep,
        )
        if not resp.ok:
            raise TransientIOError(
                f"Geocoding lookup for {name!r} failed with status {resp.status_code}",
                status_code=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise TransientIOError(f"Geocoding lookup for {name!r} returned invalid JSON") from exc
        results = (data or {}).get("results") or []
        return [r for r in results if isinstance(r, dict)][:max_results]

    def geocode(self, candidate: PlaceCandidate) -> List[ResolvedPlace]:
        """Scored places for one candidate; empty on lookup failure or no match."""
        try:
            items = self.lookup(candidate.name, GEOCODE_MAX_RESULTS)
        except TransientIOError as exc:
            logger.warning("Geocode lookup failed for %r: %s", candidate.name, exc)
            return []

        if not items:
            logger.debug("Geocode: no matches for %r", candidate.name)
            return []

        if candidate.region_hint or candidate.country_hint:
            filtered = [item for item in items if matches_hints(item, candidate)]
            if filtered:
                items = filtered
            else:
                logger.info(
                    "Geocode: hints region=%r country=%r matched none of %d results for %r; using unfiltered",
                    candidate.region_hint,
                    candidate.country_hint,
                    len(items),
                    candidate.name,
                )

        places: List[ResolvedPlace] = []
        for item in items:
            confidence = PRIMARY_CONFIDENCE if not places else SECONDARY_CONFIDENCE
            place = to_resolved_place(item, confidence)
            if place is None:
                logger.debug("Geocode: dropping match without usable coordinates: %s", item)
                continue
            places.append(place)
            if len(places) >= MAX_PLACES_PER_CANDIDATE:
                break

        logger.debug(
            "Geocode: candidate=%r region=%r country=%r -> %d place(s)",
            candidate.name,
            candidate.region_hint,
            candidate.country_hint,
            len(places),
        )
        return places


_default_geocode_client: Optional[GeocodeClient] = None


def get_default_geocode_client() -> GeocodeClient:
    global _default_geocode_client
    if _default_geocode_client is None:
        _default_geocode_client = GeocodeClient()
    return _default_geocode_client


def geocode(candidate: PlaceCandidate) -> List[ResolvedPlace]:
    """Geocode a candidate with the default client."""
    return get_default_geocode_client().geocode(candidate)
