"""Turning a model reply into parseable JSON.

Contract:
1. strip surrounding whitespace and leading/trailing markdown code fences
2. keep the span from the first "[" to the last "]" (drops any preamble or
   postamble the model added)
3. parse as JSON; failure is a ContentError, the text itself is broken
"""

import json
import re
from typing import Any

from backend.itinerary.errors import ContentError

_LEADING_FENCE = re.compile(r"^```[a-zA-Z]*\s*")
_TRAILING_FENCE = re.compile(r"\s*```$")


def clean_model_response(content: str) -> str:
    """Strip code fences and surrounding prose from a model reply."""
    cleaned = content.strip()
    cleaned = _LEADING_FENCE.sub("", cleaned)
    cleaned = _TRAILING_FENCE.sub("", cleaned)

    start = cleaned.find("[")
    end = cleaned.rfind("]")
    if start != -1 and end > start:
        cleaned = cleaned[start : end + 1]

    return cleaned.strip()


def parse_itinerary_json(content: str) -> Any:
    """Clean and parse a model reply.

    Raises:
        ContentError: The cleaned text is not valid JSON
    """
    cleaned = clean_model_response(content)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ContentError(f"JSON parsing failed: {e}. Content: {cleaned[:500]}") from e
