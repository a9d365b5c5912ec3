"""Structural and sequencing validation of candidate itineraries.

Rules are checked in order and the first violation wins:
1. the candidate is a list (not a single object)
2. every element has a positive integer `day`, non-empty `theme`, non-empty `activities`
3. every activity has non-empty `time` and `location`, and a long enough `description`
4. the number of days equals the requested duration
5. `day` equals the 1-based position of each element
"""

from typing import Any

from backend.itinerary.errors import ItineraryValidationError, ValidationRule
from backend.itinerary.models.job import Day


def _is_non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and len(value) > 0


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class ItineraryValidator:
    """Validates a parsed model reply against the requested day count."""

    def __init__(self, min_description_length: int = 20) -> None:
        self.min_description_length = min_description_length

    def validate(self, candidate: Any, expected_days: int) -> list[Day]:
        """Validate `candidate` and return it as Day models.

        Raises:
            ItineraryValidationError: carrying the first violated rule and context
        """
        if not isinstance(candidate, list):
            raise ItineraryValidationError(
                f"expected a list of days, got {type(candidate).__name__}",
                rule=ValidationRule.NOT_A_SEQUENCE,
                context={"type": type(candidate).__name__},
            )

        for index, day in enumerate(candidate):
            self._check_day(index, day)

        for index, day in enumerate(candidate):
            for activity_index, activity in enumerate(day["activities"]):
                self._check_activity(index, activity_index, activity)

        if len(candidate) != expected_days:
            raise ItineraryValidationError(
                f"Expected {expected_days} days, got {len(candidate)} days",
                rule=ValidationRule.DAY_COUNT,
                context={"expected": expected_days, "actual": len(candidate)},
            )

        for index, day in enumerate(candidate):
            if day["day"] != index + 1:
                raise ItineraryValidationError(
                    f"Day sequence error: expected day {index + 1}, got day {day['day']}",
                    rule=ValidationRule.DAY_SEQUENCE,
                    context={"index": index, "expected": index + 1, "actual": day["day"]},
                )

        return [Day.model_validate(day) for day in candidate]

    def _check_day(self, index: int, day: Any) -> None:
        problem = None
        if not isinstance(day, dict):
            problem = f"must be an object, got {type(day).__name__}"
        elif not _is_positive_int(day.get("day")):
            problem = "day must be a positive integer"
        elif not _is_non_empty_str(day.get("theme")):
            problem = "theme is required"
        elif not isinstance(day.get("activities"), list) or not day["activities"]:
            problem = "at least one activity is required per day"

        if problem:
            raise ItineraryValidationError(
                f"[{index}]: {problem}",
                rule=ValidationRule.DAY_STRUCTURE,
                context={"index": index},
            )

    def _check_activity(self, index: int, activity_index: int, activity: Any) -> None:
        problem = None
        if not isinstance(activity, dict):
            problem = f"must be an object, got {type(activity).__name__}"
        elif not _is_non_empty_str(activity.get("time")):
            problem = "time is required"
        elif not _is_non_empty_str(activity.get("location")):
            problem = "location is required"
        elif (
            not isinstance(activity.get("description"), str)
            or len(activity["description"]) < self.min_description_length
        ):
            problem = f"description must be at least {self.min_description_length} characters"

        if problem:
            raise ItineraryValidationError(
                f"[{index}].activities[{activity_index}]: {problem}",
                rule=ValidationRule.ACTIVITY_STRUCTURE,
                context={"index": index, "activity_index": activity_index},
            )
