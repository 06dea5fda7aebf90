"""
Location resolution: colloquial text in, a ranked set of geocoded places out.

Each attempt asks the extractor for candidates using the prompt strategy for
that attempt, geocodes every candidate in parallel, and stops as soon as
anything geocodes. Retrying here is semantic (a different prompt), so it is
independent from the HTTP-level retries of the request layer.
"""
from __future__ import annotations

import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout, wait
from typing import Callable, Iterable, List, Optional

from domain.errors import NotFoundError, ValidationError
from domain.models import PlaceCandidate, Resolution, ResolvedPlace
from services.extraction_strategy import build_prompt
from services.extractor import PlaceExtractor, get_default_extractor
from services.geocoding import get_default_geocode_client
from settings import settings

logger = logging.getLogger(__name__)

MAX_ALTERNATES = 4

Geocoder = Callable[[PlaceCandidate], List[ResolvedPlace]]


def fallback_candidate(query: str) -> PlaceCandidate:
    """First whitespace/comma-delimited token of the raw query."""
    tokens = [t for t in re.split(r"[\s,]+", query.strip()) if t]
    return PlaceCandidate(name=tokens[0] if tokens else query.strip())


def distinct_names(names: Iterable[str]) -> List[str]:
    """Names in first-seen order, de-duplicated case-insensitively."""
    seen = set()
    result: List[str] = []
    for name in names:
        key = name.strip().lower()
        if key and key not in seen:
            seen.add(key)
            result.append(name.strip())
    return result


def rank_places(places: Iterable[ResolvedPlace]) -> List[ResolvedPlace]:
    """
    Sort by confidence (descending, stable) and drop repeats of a rounded
    coordinate key. Sorting first means a repeated key keeps its highest
    confidence, and among equals the one seen first.
    """
    ordered = sorted(places, key=lambda p: p.confidence, reverse=True)
    seen = set()
    ranked: List[ResolvedPlace] = []
    for place in ordered:
        key = place.dedupe_key
        if key in seen:
            continue
        seen.add(key)
        ranked.append(place)
    return ranked


class LocationResolver:
    def __init__(
        self,
        extractor: Optional[PlaceExtractor] = None,
        geocoder: Optional[Geocoder] = None,
        max_attempts: Optional[int] = None,
        deadline_sec: Optional[float] = None,
        max_workers: int = 5,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.extractor = extractor or get_default_extractor()
        self.geocoder = geocoder or get_default_geocode_client().geocode
        self.max_attempts = max_attempts if max_attempts is not None else settings.RESOLVE_MAX_ATTEMPTS
        self.deadline_sec = deadline_sec if deadline_sec is not None else settings.RESOLVE_DEADLINE_SEC
        self.max_workers = max_workers
        self.clock = clock
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    def _extract(self, instructions: str, context: str, timeout_sec: float) -> List[PlaceCandidate]:
        try:
            return list(self.extractor.extract(instructions, context, timeout_sec=timeout_sec) or [])
        except Exception:
            logger.exception("Extractor raised; treating as zero candidates")
            return []

    def _geocode_one(self, candidate: PlaceCandidate) -> List[ResolvedPlace]:
        try:
            return list(self.geocoder(candidate) or [])
        except Exception:
            logger.exception("Geocoding %r raised; skipping candidate", candidate.name)
            return []

    def resolve(self, query: str, deadline_sec: Optional[float] = None) -> Resolution:
        """
        Resolve ``query`` to a top place plus up to 4 alternates.

        Raises ValidationError for an empty query and NotFoundError when no
        attempt geocoded anything (or the overall deadline ran out first).
        """
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("query must be a non-empty string")
        query = query.strip()

        budget = self.deadline_sec if deadline_sec is None else deadline_sec
        deadline = self.clock() + budget

        attempt = 0
        failed_names: List[str] = []
        accumulated: List[ResolvedPlace] = []
        deadline_exceeded = False

        executor = ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            while attempt < self.max_attempts and not accumulated:
                attempt += 1
                prompt = build_prompt(attempt, query, failed_names)
                logger.info("Resolve %r: attempt %d (tier %d)", query, attempt, prompt.tier)

                remaining = deadline - self.clock()
                if remaining <= 0:
                    deadline_exceeded = True
                    break
                future = executor.submit(self._extract, prompt.instructions, prompt.context, remaining)
                try:
                    candidates = future.result(timeout=remaining)
                except FuturesTimeout:
                    deadline_exceeded = True
                    break

                if not candidates:
                    candidates = [fallback_candidate(query)]
                    logger.info("Resolve %r: extractor returned nothing, falling back to %r", query, candidates[0].name)

                # Names already tried, regardless of how geocoding goes.
                failed_names.extend(c.name for c in candidates)

                remaining = deadline - self.clock()
                if remaining <= 0:
                    deadline_exceeded = True
                    break
                futures = [executor.submit(self._geocode_one, c) for c in candidates]
                _, pending = wait(futures, timeout=remaining)
                if pending:
                    deadline_exceeded = True
                    break

                # Candidate order, not completion order, so tiers stay stable.
                for fut in futures:
                    accumulated.extend(fut.result())
                logger.info(
                    "Resolve %r: attempt %d geocoded %d place(s) from %s",
                    query,
                    attempt,
                    len(accumulated),
                    [c.name for c in candidates],
                )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        attempted = distinct_names(failed_names)
        if deadline_exceeded:
            logger.warning("Resolve %r: deadline of %.1fs exceeded during attempt %d", query, budget, attempt)
        if not accumulated:
            raise NotFoundError(query, attempted, deadline_exceeded=deadline_exceeded)

        ranked = rank_places(accumulated)
        return Resolution(
            place=ranked[0],
            candidates=ranked[1:1 + MAX_ALTERNATES],
            attempts=attempt,
            attempted_names=attempted,
        )


_default_resolver: Optional[LocationResolver] = None


def get_default_resolver() -> LocationResolver:
    global _default_resolver
    if _default_resolver is None:
        _default_resolver = LocationResolver()
    return _default_resolver


def resolve_location(query: str, deadline_sec: Optional[float] = None) -> Resolution:
    return get_default_resolver().resolve(query, deadline_sec=deadline_sec)
