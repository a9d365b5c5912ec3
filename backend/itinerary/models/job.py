"""Job and itinerary models - the persisted job document."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class JobStatus(str, Enum):
    """Job lifecycle status."""

    processing = "processing"
    completed = "completed"
    failed = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.processing


class Activity(BaseModel):
    """Single activity within a day."""

    time: str = Field(..., min_length=1)
    description: str
    location: str = Field(..., min_length=1)


class Day(BaseModel):
    """One day of an itinerary. `day` mirrors the 1-based position."""

    day: int = Field(..., gt=0)
    theme: str = Field(..., min_length=1)
    activities: list[Activity] = Field(..., min_length=1)


class Job(BaseModel):
    """Persisted itinerary job.

    Once status is terminal exactly one of itinerary / error is set.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    status: JobStatus
    destination: str
    duration_days: int = Field(..., alias="durationDays", ge=1)
    created_at: datetime = Field(..., alias="createdAt")
    completed_at: datetime | None = Field(None, alias="completedAt")
    itinerary: list[Day] | None = None
    error: str | None = None

    @classmethod
    def new(cls, job_id: str, destination: str, duration_days: int, created_at: datetime) -> "Job":
        """Create a job in the processing state with all terminal fields null."""
        return cls(
            id=job_id,
            status=JobStatus.processing,
            destination=destination,
            duration_days=duration_days,
            created_at=created_at,
        )

    def to_document(self) -> dict[str, Any]:
        """Fields as stored in the document (the id is the document key)."""
        return {
            "status": self.status.value,
            "destination": self.destination,
            "durationDays": self.duration_days,
            "createdAt": self.created_at,
            "completedAt": self.completed_at,
            "itinerary": (
                [day.model_dump() for day in self.itinerary] if self.itinerary is not None else None
            ),
            "error": self.error,
        }

    @classmethod
    def from_document(cls, job_id: str, fields: dict[str, Any]) -> "Job":
        """Build a job from decoded document fields."""
        return cls.model_validate({"id": job_id, **fields})


def completed_patch(itinerary: list[Day], completed_at: datetime) -> dict[str, Any]:
    """Fields for the processing -> completed transition."""
    return {
        "status": JobStatus.completed.value,
        "itinerary": [day.model_dump() for day in itinerary],
        "completedAt": completed_at,
        "error": None,
    }


def failed_patch(error: str, completed_at: datetime) -> dict[str, Any]:
    """Fields for the processing -> failed transition."""
    return {
        "status": JobStatus.failed.value,
        "itinerary": None,
        "completedAt": completed_at,
        "error": error,
    }
