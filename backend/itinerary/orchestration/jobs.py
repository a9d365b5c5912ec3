"""Job orchestration - the itinerary job state machine.

States: processing -> completed | processing -> failed. Terminal states are
final; each background run writes exactly one terminal document.

Ordering: submit() finishes creating the processing document before the
background run is scheduled, so a client polling right after receiving its
job id never sees "not found".
"""

import asyncio
import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from functools import partial
from typing import Any

from backend.itinerary.auth.tokens import ServiceAccountCredentials, TokenProvider
from backend.itinerary.errors import ClientInputError, ContentError, StuckJobError
from backend.itinerary.llm.client import TextGenerator
from backend.itinerary.models.job import Day, Job, JobStatus, completed_patch, failed_patch
from backend.itinerary.orchestration.scheduler import Scheduler
from backend.itinerary.resilience.retry import RetryPolicy, default_is_retryable
from backend.itinerary.store.documents import DocumentStore
from backend.itinerary.utils.metrics import job_transitions_total, stuck_jobs_total
from backend.itinerary.validation.itinerary import ItineraryValidator

logger = logging.getLogger(__name__)


def validate_submission(
    destination: Any,
    duration_days: Any,
    *,
    min_destination_length: int = 2,
    min_days: int = 1,
    max_days: int = 30,
) -> tuple[str, int]:
    """Validate and normalize submission input.

    Returns:
        (trimmed destination, duration in days)

    Raises:
        ClientInputError: On any violation; no job must be created
    """
    if not isinstance(destination, str) or len(destination.strip()) < min_destination_length:
        raise ClientInputError(
            f"destination is required and must be at least {min_destination_length} characters long"
        )

    # JSON numbers like 3.0 are whole numbers too
    if isinstance(duration_days, float) and duration_days.is_integer():
        duration_days = int(duration_days)

    if (
        not isinstance(duration_days, int)
        or isinstance(duration_days, bool)
        or not min_days <= duration_days <= max_days
    ):
        raise ClientInputError(f"durationDays must be an integer between {min_days} and {max_days}")

    return destination.strip(), duration_days


def is_generation_retryable(error: BaseException) -> bool:
    """Generation-level retry: broken content gets a fresh model call."""
    return isinstance(error, ContentError) or default_is_retryable(error)


class JobOrchestrator:
    """Accepts itinerary requests and drives each job to a terminal state."""

    def __init__(
        self,
        store: DocumentStore,
        token_provider: TokenProvider,
        generator: TextGenerator,
        validator: ItineraryValidator,
        retry_policy: RetryPolicy,
        scheduler: Scheduler,
        *,
        credentials: ServiceAccountCredentials | None = None,
        collection: str = "itineraries",
        min_destination_length: int = 2,
        min_days: int = 1,
        max_days: int = 30,
        deadline_seconds: float | None = None,
        id_factory: Callable[[], str] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            store: Job document store (system of record)
            token_provider: Bearer token source for the store
            generator: Itinerary text generator
            validator: Itinerary validator
            retry_policy: Policy for generation-level retries
            scheduler: Default detached-task scheduler
            credentials: Credential material passed to the token provider
            collection: Job document collection
            min_destination_length: Minimum trimmed destination length
            min_days: Minimum duration
            max_days: Maximum duration
            deadline_seconds: Optional wall-clock ceiling for one generation run
            id_factory: Job id factory (default: uuid4)
            clock: Timestamp source (default: now in UTC)
        """
        self._store = store
        self._token_provider = token_provider
        self._generator = generator
        self._validator = validator
        self._retry = retry_policy
        self._scheduler = scheduler
        self._credentials = credentials
        self.collection = collection
        self._min_destination_length = min_destination_length
        self._min_days = min_days
        self._max_days = max_days
        self._deadline_seconds = deadline_seconds
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self._clock = clock or (lambda: datetime.now(UTC))

    async def _get_token(self) -> str:
        return await self._token_provider.get_token(self._credentials)

    async def submit(
        self, destination: Any, duration_days: Any, *, scheduler: Scheduler | None = None
    ) -> str:
        """Create a processing job and schedule its generation.

        Args:
            destination: Trip destination
            duration_days: Trip length in days
            scheduler: Per-call scheduler override (e.g. request-scoped)

        Returns:
            The new job id

        Raises:
            ClientInputError: Invalid input, no job created
            RetryExhaustedError: Token or store failure, no job scheduled
        """
        destination, duration_days = validate_submission(
            destination,
            duration_days,
            min_destination_length=self._min_destination_length,
            min_days=self._min_days,
            max_days=self._max_days,
        )

        job_id = self._id_factory()
        logger.info(f"Submitting job {job_id}: {destination}, {duration_days} days")

        token = await self._get_token()
        job = Job.new(job_id, destination, duration_days, self._clock())
        await self._store.create(self.collection, job_id, job.to_document(), token=token)
        job_transitions_total.labels(status=JobStatus.processing.value).inc()

        (scheduler or self._scheduler).run_detached(
            partial(self.run_generation, job_id, destination, duration_days)
        )
        logger.info(f"Job {job_id} scheduled")
        return job_id

    async def _generate(self, destination: str, duration_days: int) -> list[Day]:
        async def attempt() -> list[Day]:
            candidate = await self._generator.complete(destination, duration_days)
            return self._validator.validate(candidate, duration_days)

        return await self._retry.execute(
            attempt, is_retryable=is_generation_retryable, name="itinerary generation"
        )

    async def run_generation(self, job_id: str, destination: str, duration_days: int) -> None:
        """Generate, validate and write the terminal state of one job.

        Never raises: failures end in a failed document, or, if even that
        write fails, in a logged StuckJobError.
        """
        logger.info(f"Starting itinerary generation for job {job_id}")
        token: str | None = None

        try:
            # Fresh token; the submission-time one may have expired by now
            token = await self._get_token()

            if self._deadline_seconds is not None:
                try:
                    itinerary = await asyncio.wait_for(
                        self._generate(destination, duration_days), timeout=self._deadline_seconds
                    )
                except TimeoutError as e:
                    raise TimeoutError(
                        f"exceeded deadline of {self._deadline_seconds:g}s"
                    ) from e
            else:
                itinerary = await self._generate(destination, duration_days)

            await self._store.update(
                self.collection, job_id, completed_patch(itinerary, self._clock()), token=token
            )
        except Exception as e:
            logger.error(f"Error generating itinerary for job {job_id}: {e}", exc_info=True)
            await self._write_failure(job_id, f"Generation failed: {e}", token)
            return

        job_transitions_total.labels(status=JobStatus.completed.value).inc()
        logger.info(f"Itinerary generation completed for job {job_id} ({len(itinerary)} days)")

    async def _current_status(self, job_id: str, token: str) -> JobStatus | None:
        try:
            fields = await self._store.get(self.collection, job_id, token=token)
        except Exception as e:
            logger.warning(f"Could not read job {job_id} before failure write: {e}")
            return None
        if fields is None:
            return None
        return JobStatus(fields.get("status", JobStatus.processing.value))

    async def _write_failure(self, job_id: str, message: str, token: str | None) -> None:
        patch = failed_patch(message, self._clock())

        try:
            if token is None:
                token = await self._get_token()

            # A write that errored may still have landed; terminal states are final
            current = await self._current_status(job_id, token)
            if current is not None and current.is_terminal:
                logger.warning(f"Job {job_id} already {current.value}, not marking it failed")
                job_transitions_total.labels(status=current.value).inc()
                return

            await self._store.update(self.collection, job_id, patch, token=token)
        except Exception as first_error:
            # One more try with a fresh token, then give up
            logger.warning(f"Failure write for job {job_id} rejected, retrying once: {first_error}")
            try:
                token = await self._get_token()
                await self._store.update(self.collection, job_id, patch, token=token)
            except Exception as second_error:
                stuck = StuckJobError(job_id, second_error)
                stuck_jobs_total.inc()
                logger.error(str(stuck), exc_info=second_error)
                return

        job_transitions_total.labels(status=JobStatus.failed.value).inc()
        logger.info(f"Updated job {job_id} status to failed")

    async def get_job(self, job_id: str) -> Job | None:
        """Read a job document.

        Returns:
            The job, or None if no document exists

        Raises:
            RetryExhaustedError: Token or store failure
        """
        token = await self._get_token()
        fields = await self._store.get(self.collection, job_id, token=token)
        if fields is None:
            return None
        return Job.from_document(job_id, fields)
