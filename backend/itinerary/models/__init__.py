"""Models package - re-exports for convenience."""

from backend.itinerary.models.job import (
    Activity,
    Day,
    Job,
    JobStatus,
    completed_patch,
    failed_patch,
)

__all__ = [
    "Activity",
    "Day",
    "Job",
    "JobStatus",
    "completed_patch",
    "failed_patch",
]
