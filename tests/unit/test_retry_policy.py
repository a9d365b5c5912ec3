"""Unit tests for the retry policy.

Tests cover:
1. Backoff delay formula and cap
2. Retry until success, with exact suspension time
3. Non-retryable errors stop immediately
4. Exhaustion reports the number of attempts
5. Default retry classification
"""

import asyncio

import httpx
import pytest

from backend.itinerary.errors import (
    ClientInputError,
    ContentError,
    DependencyError,
    DocumentConflictError,
    ItineraryValidationError,
    RetryExhaustedError,
    ValidationRule,
)
from backend.itinerary.resilience.retry import (
    RetryConfig,
    RetryPolicy,
    compute_delay,
    default_is_retryable,
)
from tests.fakes import RecordingSleep


class FlakyOperation:
    """Fails a fixed number of times, then returns a value."""

    def __init__(self, failures: list[Exception], result: str = "ok") -> None:
        self.failures = list(failures)
        self.result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.result


class TestComputeDelay:
    """Test the deterministic backoff formula."""

    def test_default_delays_double(self) -> None:
        config = RetryConfig()
        assert [compute_delay(n, config) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]

    def test_delay_capped_at_max(self) -> None:
        config = RetryConfig(base_delay_ms=1000, max_delay_ms=5000, backoff_factor=10)
        assert compute_delay(1, config) == 1.0
        assert compute_delay(2, config) == 5.0
        assert compute_delay(6, config) == 5.0

    def test_max_attempts_is_retries_plus_one(self) -> None:
        assert RetryConfig(max_retries=3).max_attempts == 4


class TestRetryPolicy:
    """Test RetryPolicy.execute."""

    @pytest.mark.asyncio
    async def test_returns_result_without_sleeping_on_first_success(
        self, recording_sleep: RecordingSleep
    ) -> None:
        policy = RetryPolicy(sleep_fn=recording_sleep)
        operation = FlakyOperation([])

        assert await policy.execute(operation) == "ok"
        assert operation.calls == 1
        assert recording_sleep.calls == []

    @pytest.mark.asyncio
    async def test_fails_twice_then_succeeds(self, recording_sleep: RecordingSleep) -> None:
        policy = RetryPolicy(RetryConfig(max_retries=3), sleep_fn=recording_sleep)
        operation = FlakyOperation(
            [DependencyError("boom", status_code=503), DependencyError("boom", status_code=503)]
        )

        result = await policy.execute(operation)

        assert result == "ok"
        assert operation.calls == 3
        # baseDelay + baseDelay * backoffFactor = 1s + 2s
        assert recording_sleep.calls == [1.0, 2.0]
        assert recording_sleep.total == 3.0

    @pytest.mark.asyncio
    async def test_non_retryable_error_stops_immediately(self, recording_sleep: RecordingSleep) -> None:
        policy = RetryPolicy(sleep_fn=recording_sleep)
        operation = FlakyOperation([DependencyError("bad request", status_code=400)])

        with pytest.raises(RetryExhaustedError) as exc_info:
            await policy.execute(operation, name="store.create")

        assert exc_info.value.attempts == 1
        assert isinstance(exc_info.value.last_error, DependencyError)
        assert "store.create failed after 1 attempt(s)" in str(exc_info.value)
        assert operation.calls == 1
        assert recording_sleep.calls == []

    @pytest.mark.asyncio
    async def test_exhaustion_reports_attempt_count(self, recording_sleep: RecordingSleep) -> None:
        policy = RetryPolicy(RetryConfig(max_retries=3), sleep_fn=recording_sleep)
        operation = FlakyOperation([TimeoutError("slow")] * 10)

        with pytest.raises(RetryExhaustedError) as exc_info:
            await policy.execute(operation)

        assert exc_info.value.attempts == 4
        assert isinstance(exc_info.value.__cause__, TimeoutError)
        assert operation.calls == 4
        assert recording_sleep.calls == [1.0, 2.0, 4.0]

    @pytest.mark.asyncio
    async def test_custom_predicate_and_per_call_config(self, recording_sleep: RecordingSleep) -> None:
        policy = RetryPolicy(sleep_fn=recording_sleep)
        operation = FlakyOperation([ContentError("garbled")])

        result = await policy.execute(
            operation,
            is_retryable=lambda e: isinstance(e, ContentError),
            config=RetryConfig(max_retries=1, base_delay_ms=250),
        )

        assert result == "ok"
        assert recording_sleep.calls == [0.25]

    @pytest.mark.asyncio
    async def test_default_sleep_is_asyncio_sleep(self) -> None:
        policy = RetryPolicy(RetryConfig(max_retries=1, base_delay_ms=1))
        operation = FlakyOperation([DependencyError("busy", status_code=429)])

        assert await asyncio.wait_for(policy.execute(operation), timeout=1) == "ok"


class TestDefaultIsRetryable:
    """Test default retry classification."""

    @pytest.mark.parametrize("status_code", [429, 500, 502, 503])
    def test_rate_limit_and_server_errors_retryable(self, status_code: int) -> None:
        assert default_is_retryable(DependencyError("x", status_code=status_code)) is True

    @pytest.mark.parametrize("status_code", [400, 401, 403, 404])
    def test_client_errors_not_retryable(self, status_code: int) -> None:
        assert default_is_retryable(DependencyError("x", status_code=status_code)) is False

    def test_timeouts_and_transport_errors_retryable(self) -> None:
        request = httpx.Request("GET", "https://example.com")
        assert default_is_retryable(TimeoutError()) is True
        assert default_is_retryable(httpx.ReadTimeout("slow", request=request)) is True
        assert default_is_retryable(httpx.ConnectError("refused", request=request)) is True

    def test_http_status_error_uses_status(self) -> None:
        request = httpx.Request("GET", "https://example.com")
        server = httpx.HTTPStatusError("x", request=request, response=httpx.Response(503, request=request))
        client = httpx.HTTPStatusError("x", request=request, response=httpx.Response(422, request=request))
        assert default_is_retryable(server) is True
        assert default_is_retryable(client) is False

    def test_content_and_input_errors_not_retryable(self) -> None:
        validation = ItineraryValidationError("x", rule=ValidationRule.DAY_COUNT)
        assert default_is_retryable(ContentError("x")) is False
        assert default_is_retryable(validation) is False
        assert default_is_retryable(ClientInputError("x")) is False
        assert default_is_retryable(DocumentConflictError("x")) is False

    def test_exhausted_and_unknown_errors_not_retryable(self) -> None:
        exhausted = RetryExhaustedError("op", 4, TimeoutError())
        assert default_is_retryable(exhausted) is False
        assert default_is_retryable(RuntimeError("surprise")) is False

    def test_forced_retryable_dependency_error(self) -> None:
        assert default_is_retryable(DependencyError("connection reset", retryable=True)) is True
