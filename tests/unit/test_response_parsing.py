"""Tests for model response cleaning and JSON extraction."""

import pytest

from backend.itinerary.errors import ContentError
from backend.itinerary.llm.parsing import clean_model_response, parse_itinerary_json


def test_plain_json_array_unchanged() -> None:
    assert clean_model_response('[{"day": 1}]') == '[{"day": 1}]'


def test_strips_json_code_fence() -> None:
    content = '```json\n[{"day": 1}]\n```'
    assert clean_model_response(content) == '[{"day": 1}]'


def test_strips_bare_code_fence() -> None:
    content = '```\n[{"day": 1}]\n```'
    assert clean_model_response(content) == '[{"day": 1}]'


def test_drops_preamble_and_postamble() -> None:
    content = 'Here is your itinerary:\n[{"day": 1}, {"day": 2}]\nEnjoy your trip!'
    assert clean_model_response(content) == '[{"day": 1}, {"day": 2}]'


def test_keeps_span_from_first_to_last_bracket() -> None:
    content = 'Sure! [{"day": 1, "activities": [{"time": "Morning"}]}] (tags: [a])'
    assert clean_model_response(content) == '[{"day": 1, "activities": [{"time": "Morning"}]}] (tags: [a]'


def test_text_without_brackets_is_left_alone() -> None:
    assert clean_model_response('  {"day": 1}  ') == '{"day": 1}'


def test_parse_returns_python_structure() -> None:
    parsed = parse_itinerary_json('```json\n[{"day": 1, "theme": "Arrival"}]\n```')
    assert parsed == [{"day": 1, "theme": "Arrival"}]


def test_parse_failure_raises_content_error_with_preview() -> None:
    with pytest.raises(ContentError) as exc_info:
        parse_itinerary_json("I'm sorry, I can't help with that [truncated")

    assert "JSON parsing failed" in str(exc_info.value)
    assert "I'm sorry" in str(exc_info.value)
