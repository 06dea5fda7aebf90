"""
Place extractor backed by an OpenAI chat model.

The resolver only depends on ``PlaceExtractor.extract``; any text-generation
backend can sit behind it. Failures of the backend surface as zero
candidates, never as exceptions.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from openai import OpenAI

from domain.models import PlaceCandidate
from settings import settings

logger = logging.getLogger(__name__)

MAX_CANDIDATES = 5


def _safe_json_loads(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Load JSON from model output, stripping markdown fences."""
    if not text:
        return None
    try:
        clean_text = text.strip().replace("```json", "").replace("```", "").strip()
        data = json.loads(clean_text)
    except (json.JSONDecodeError, TypeError):
        logger.warning("Could not decode JSON from extractor response: %s", text)
        return None
    return data if isinstance(data, dict) else None


def parse_candidates(payload: Optional[Dict[str, Any]]) -> List[PlaceCandidate]:
    """Turn ``{"candidates": [...]}`` into at most 5 usable candidates."""
    if not payload:
        return []
    raw = payload.get("candidates")
    if not isinstance(raw, list):
        return []
    candidates: List[PlaceCandidate] = []
    for item in raw:
        cand = PlaceCandidate.from_dict(item)
        if cand is not None:
            candidates.append(cand)
        if len(candidates) >= MAX_CANDIDATES:
            break
    return candidates


class PlaceExtractor:
    """
    Interface: instructions + context in, structured place candidates out.

    ``timeout_sec`` is the time left for the whole call, retries included.
    None means the extractor's own defaults apply.
    """

    def extract(self, instructions: str, context: str, timeout_sec: Optional[float] = None) -> List[PlaceCandidate]:
        raise NotImplementedError


class OpenAIPlaceExtractor(PlaceExtractor):
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_retries: Optional[int] = None,
        timeout_sec: Optional[float] = None,
        client: Optional[OpenAI] = None,
    ):
        self.model = model or settings.OPENAI_MODEL
        self.max_retries = settings.EXTRACTOR_MAX_RETRIES if max_retries is None else max_retries
        self.timeout_sec = settings.EXTRACTOR_TIMEOUT_SEC if timeout_sec is None else timeout_sec
        self.client = client or self._initialize_client(
            api_key or settings.OPENAI_API_KEY, self.max_retries, self.timeout_sec
        )

    def _initialize_client(self, api_key: Optional[str], max_retries: int, timeout_sec: float) -> Optional[OpenAI]:
        if not api_key:
            logger.warning("OPENAI_API_KEY is not set; place extraction will return no candidates.")
            return None
        return OpenAI(api_key=api_key, max_retries=max_retries, timeout=timeout_sec)

    def _client_within(self, timeout_sec: Optional[float]):
        """The client, narrowed to a single try when its full retry budget would overrun ``timeout_sec``."""
        if timeout_sec is None or self.timeout_sec * (self.max_retries + 1) <= timeout_sec:
            return self.client
        return self.client.with_options(timeout=min(self.timeout_sec, timeout_sec), max_retries=0)

    def extract(self, instructions: str, context: str, timeout_sec: Optional[float] = None) -> List[PlaceCandidate]:
        if self.client is None:
            return []
        if timeout_sec is not None and timeout_sec <= 0:
            return []
        try:
            response = self._client_within(timeout_sec).chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": instructions},
                    {"role": "user", "content": context},
                ],
                response_format={"type": "json_object"},
                temperature=0.2,
            )
            content = response.choices[0].message.content
        except Exception as exc:
            logger.warning("Place extraction call failed: %s", exc)
            return []
        candidates = parse_candidates(_safe_json_loads(content))
        logger.debug("Extractor returned %d candidate(s): %s", len(candidates), [c.name for c in candidates])
        return candidates


_default_extractor: Optional[PlaceExtractor] = None


def get_default_extractor() -> PlaceExtractor:
    global _default_extractor
    if _default_extractor is None:
        _default_extractor = OpenAIPlaceExtractor()
    return _default_extractor
