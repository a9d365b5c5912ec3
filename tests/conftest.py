"""Shared pytest fixtures for all test suites."""

from collections.abc import Callable
from typing import Any

import pytest

from backend.itinerary.resilience.retry import RetryConfig, RetryPolicy
from tests.fakes import FakeTokenProvider, RecordingSleep


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def retry_policy(recording_sleep: RecordingSleep) -> RetryPolicy:
    """Policy with default backoff that never actually sleeps."""
    return RetryPolicy(RetryConfig(), sleep_fn=recording_sleep)


@pytest.fixture
def token_provider() -> FakeTokenProvider:
    return FakeTokenProvider()


@pytest.fixture
def make_itinerary() -> Callable[..., list[dict[str, Any]]]:
    """Build a well-formed raw itinerary, optionally with custom day numbers."""

    def _make(days: int, day_numbers: list[int] | None = None) -> list[dict[str, Any]]:
        numbers = day_numbers or list(range(1, days + 1))
        return [
            {
                "day": number,
                "theme": f"Theme for day {number}",
                "activities": [
                    {
                        "time": "Morning",
                        "description": "Stroll along the river and visit the old town market",
                        "location": "Old Town",
                    },
                    {
                        "time": "Evening",
                        "description": "Dinner at a traditional bistro near the main square",
                        "location": "Main Square",
                    },
                ],
            }
            for number in numbers
        ]

    return _make
