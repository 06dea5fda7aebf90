"""
Prompt strategies for the place extractor, escalating with each attempt.

Tier 1 is conservative, tier 2 tells the model which names were already
tried and asks for spelling/historical variants, tier 3 (and anything after
it) asks for aggressive fallbacks such as capitals or well-known cities.
Pure string construction, no I/O.
"""
from dataclasses import dataclass
from typing import List, Sequence

MAX_TIER = 3

OUTPUT_FORMAT = (
    "Respond with a JSON object of the form "
    '{"candidates": [{"name": str, "region": str | null, "country": str | null}]} '
    "containing 1-5 candidates. Use null for anything you do not know; never guess."
)

TIER_1_INSTRUCTIONS = """You extract place candidates from colloquial hints.
Return 3-5 city-level candidates for the phrase.
Include the state/region and country when they can be identified.
Prefer US cities when the phrase references well-known US institutions or team
nicknames (Ivy League schools, MLB/NFL/NBA/NHL teams and rivalries).
If the region or country is unknown, leave it absent rather than guessing."""

TIER_2_INSTRUCTIONS = """You extract place candidates from colloquial hints.
A previous extraction produced names that could not be geocoded.
Do not repeat those names verbatim. Instead consider:
- misspellings and typos of the intended place
- phonetic variants and alternate transliterations
- former or historical names of the place
- splitting compound words into separate place names
Return 3-5 city-level candidates with region and country when known."""

TIER_3_INSTRUCTIONS = """You extract place candidates from colloquial hints.
Earlier attempts could not find any real place. Fall back aggressively:
- if a country is implied, use its capital or its largest city
- resolve nicknames to the official city name
- replace fictional places with the nearest real location they evoke
- if nothing else works, return a well-known global city related to the phrase
Every candidate must be a real, geocodable city name."""


@dataclass(frozen=True)
class ExtractionPrompt:
    tier: int
    instructions: str
    context: str


def tier_for_attempt(attempt: int) -> int:
    """Map a 1-based attempt number onto its strategy tier (terminal at 3)."""
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    return min(attempt, MAX_TIER)


def _format_tried(failed_names: Sequence[str]) -> str:
    unique: List[str] = []
    seen = set()
    for name in failed_names:
        key = name.strip().lower()
        if key and key not in seen:
            seen.add(key)
            unique.append(name.strip())
    return ", ".join(f'"{n}"' for n in unique) if unique else "(none)"


def build_prompt(attempt: int, query: str, failed_names: Sequence[str] = ()) -> ExtractionPrompt:
    tier = tier_for_attempt(attempt)
    lines = [f"Phrase: {query}"]

    if tier == 1:
        instructions = TIER_1_INSTRUCTIONS
        lines.append("Example: \"ivy league weekend\" -> New Haven (Connecticut, United States), "
                     "Cambridge (Massachusetts, United States), Princeton (New Jersey, United States)")
    elif tier == 2:
        instructions = TIER_2_INSTRUCTIONS
        lines.append(f"Names already tried: {_format_tried(failed_names)}")
        lines.append("Example: \"Pitsburg\" -> Pittsburgh (Pennsylvania, United States); "
                     "\"Bombay\" -> Mumbai (Maharashtra, India)")
    else:
        instructions = TIER_3_INSTRUCTIONS
        lines.append(f"Names already tried: {_format_tried(failed_names)}")
        lines.append("Example: \"somewhere in Kenya\" -> Nairobi (Kenya); "
                     "\"Gotham\" -> New York (New York, United States)")

    return ExtractionPrompt(
        tier=tier,
        instructions=f"{instructions}\n\n{OUTPUT_FORMAT}",
        context="\n".join(lines),
    )
