"""Error taxonomy for the itinerary job service.

Errors fall into four families:
- ClientInputError: bad submission input, surfaced as 400, no job created
- DependencyError: token / store / model transport failures, retried per policy
- ContentError: model output that cannot be parsed or fails validation
- StuckJobError: the failure-path write itself failed; only ever logged
"""

from enum import Enum
from typing import Any


class ItineraryServiceError(Exception):
    """Base class for all service errors."""

    pass


class ClientInputError(ItineraryServiceError):
    """Submission input rejected before any job was created."""

    pass


class DependencyError(ItineraryServiceError):
    """An outbound dependency failed.

    Retryability follows the HTTP status when one is known: 429 and 5xx are
    retryable, other statuses are not. Callers may force it either way.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retryable: bool | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        if retryable is None:
            retryable = status_code is not None and (status_code == 429 or status_code >= 500)
        self.retryable = retryable


class TokenAcquisitionError(DependencyError):
    """Bearer token could not be obtained."""

    pass


class DocumentStoreError(DependencyError):
    """Document store request failed."""

    pass


class DocumentConflictError(DocumentStoreError):
    """Document already exists."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=409, retryable=False)


class DocumentNotFoundError(DocumentStoreError):
    """Document to update does not exist."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=404, retryable=False)


class ModelCallError(DependencyError):
    """Text generation request failed at the transport level."""

    pass


class ContentError(ItineraryServiceError):
    """Model output is broken (unparseable or structurally invalid)."""

    pass


class ValidationRule(str, Enum):
    """Itinerary validation rules, in the order they are checked."""

    NOT_A_SEQUENCE = "not_a_sequence"
    DAY_STRUCTURE = "day_structure"
    ACTIVITY_STRUCTURE = "activity_structure"
    DAY_COUNT = "day_count"
    DAY_SEQUENCE = "day_sequence"


class ItineraryValidationError(ContentError):
    """Candidate itinerary violated a validation rule."""

    def __init__(
        self,
        message: str,
        *,
        rule: ValidationRule,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"Validation failed ({rule.value}): {message}")
        self.rule = rule
        self.context = context or {}


class RetryExhaustedError(ItineraryServiceError):
    """Operation gave up, either out of attempts or on a non-retryable error."""

    def __init__(self, operation: str, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"{operation} failed after {attempts} attempt(s): {last_error}")
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error


class StuckJobError(ItineraryServiceError):
    """Failure status could not be written; the job stays in processing."""

    def __init__(self, job_id: str, cause: BaseException) -> None:
        super().__init__(f"Job {job_id} is stuck in processing: {cause}")
        self.job_id = job_id
        self.cause = cause
