import pytest

from services.extraction_strategy import (
    TIER_1_INSTRUCTIONS,
    TIER_2_INSTRUCTIONS,
    TIER_3_INSTRUCTIONS,
    build_prompt,
    tier_for_attempt,
)


def test_tier_is_terminal_at_three():
    assert [tier_for_attempt(a) for a in (1, 2, 3, 4, 10)] == [1, 2, 3, 3, 3]


def test_attempt_must_be_positive():
    with pytest.raises(ValueError):
        tier_for_attempt(0)


def test_first_attempt_is_conservative():
    prompt = build_prompt(1, "ivy league weekend", [])
    assert prompt.tier == 1
    assert prompt.instructions.startswith(TIER_1_INSTRUCTIONS)
    assert "Phrase: ivy league weekend" in prompt.context
    assert "already tried" not in prompt.context


def test_second_attempt_lists_tried_names_and_variants():
    prompt = build_prompt(2, "pitsburg game", ["Pitsburg", "pitsburg", "Steel City"])
    assert prompt.tier == 2
    assert prompt.instructions.startswith(TIER_2_INSTRUCTIONS)
    assert "misspellings" in prompt.instructions
    assert 'Names already tried: "Pitsburg", "Steel City"' in prompt.context


def test_third_and_later_attempts_fall_back_aggressively():
    third = build_prompt(3, "gotham", ["Gotham"])
    fifth = build_prompt(5, "gotham", ["Gotham"])
    assert third.instructions.startswith(TIER_3_INSTRUCTIONS)
    assert "capital" in third.instructions
    assert third.tier == fifth.tier == 3
    assert third.instructions == fifth.instructions


def test_prompt_is_deterministic():
    assert build_prompt(2, "q", ["a", "b"]) == build_prompt(2, "q", ["a", "b"])


def test_every_tier_asks_for_json_candidates():
    for attempt in (1, 2, 3):
        assert '"candidates"' in build_prompt(attempt, "q", []).instructions
