"""
Per-day outfit advice: rule-engine items plus optional friendly notes.

Notes come from a text model and are attached afterwards. The model only ever
sees a copy of the items and its output is only ever written to ``notes``.
"""
from __future__ import annotations

import json
import logging
from typing import List, Optional, Sequence, Union

from openai import OpenAI

from domain.models import DayAdvice, DayForecast, Persona
from services.outfit_rules import advise
from settings import settings

logger = logging.getLogger(__name__)

GENERIC_NOTE = "Dress comfortably for the weather conditions."


class NotesWriter:
    """Interface: one short note per day, same order as ``days``."""

    def write_notes(self, days: Sequence[DayForecast], items: Sequence[List[str]], place_name: Optional[str]) -> List[str]:
        raise NotImplementedError


class OpenAINotesWriter(NotesWriter):
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, client: Optional[OpenAI] = None):
        self.model = model or settings.OPENAI_MODEL
        key = api_key or settings.OPENAI_API_KEY
        if client is not None:
            self.client: Optional[OpenAI] = client
        elif key:
            self.client = OpenAI(
                api_key=key,
                max_retries=settings.EXTRACTOR_MAX_RETRIES,
                timeout=settings.EXTRACTOR_TIMEOUT_SEC,
            )
        else:
            logger.warning("OPENAI_API_KEY is not set; outfit notes will use generic text.")
            self.client = None

    def write_notes(self, days, items, place_name):
        if self.client is None:
            return []
        where = place_name or "the selected location"
        system = (
            f"You write one-sentence outfit notes for daily weather in {where}.\n"
            "Do not change or list the items provided. Just give friendly, practical advice.\n"
            "Keep it concise and natural. No brand names. Focus on comfort and practicality.\n"
            'Respond with a JSON object {"notes": [str, ...]} holding one note per day.'
        )
        prompt = "\n".join(
            f"Day {i + 1}: {d.high_temp}/{d.low_temp}°F, {d.precip_chance}% rain, "
            f"{d.wind_speed}mph wind, UV {d.uv_index}"
            for i, d in enumerate(days)
        )
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "system", "content": system}, {"role": "user", "content": prompt}],
                response_format={"type": "json_object"},
                temperature=0.7,
            )
            payload = json.loads(response.choices[0].message.content or "{}")
        except Exception as exc:
            logger.error("Failed to generate notes: %s", exc)
            return []
        notes = payload.get("notes") if isinstance(payload, dict) else None
        if not isinstance(notes, list):
            return []
        return [n.strip() if isinstance(n, str) and n.strip() else "" for n in notes]


def build_day_advice(
    days: Sequence[DayForecast],
    persona: Union[Persona, str, None] = None,
    place_name: Optional[str] = None,
    notes_writer: Optional[NotesWriter] = None,
) -> List[DayAdvice]:
    """
    Items from the rule engine for every day, then notes when a writer is
    given. Missing or failed notes fall back to a generic sentence.
    """
    advice = [DayAdvice(date=day.date, items=advise(day, persona)) for day in days]
    if notes_writer is None or not advice:
        return advice

    try:
        notes = notes_writer.write_notes(list(days), [list(a.items) for a in advice], place_name)
    except Exception:
        logger.exception("Notes writer raised; using generic notes")
        notes = []
    for i, day_advice in enumerate(advice):
        note = notes[i] if i < len(notes) else ""
        day_advice.notes = note or GENERIC_NOTE
    return advice


_default_notes_writer: Optional[NotesWriter] = None


def get_default_notes_writer() -> Optional[NotesWriter]:
    global _default_notes_writer
    if not settings.OUTFIT_NOTES_ENABLED:
        return None
    if _default_notes_writer is None:
        _default_notes_writer = OpenAINotesWriter()
    return _default_notes_writer
