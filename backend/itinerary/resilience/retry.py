"""Generic async retry executor with exponential backoff.

Every outbound call (token exchange, document writes, model invocation) runs
through RetryPolicy.execute:
- attempts 1..max_retries+1
- delay before attempt n+1 is min(base_delay * backoff_factor^(n-1), max_delay)
- no jitter; the delay depends only on the attempt number
- retryability decided per error by a caller-supplied predicate
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import httpx

from backend.itinerary.config import Settings
from backend.itinerary.errors import (
    ClientInputError,
    ContentError,
    DependencyError,
    RetryExhaustedError,
)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """Backoff configuration. Delays are in milliseconds."""

    max_retries: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 30000
    backoff_factor: float = 2.0

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryConfig":
        return cls(
            max_retries=settings.retry_max_retries,
            base_delay_ms=settings.retry_base_delay_ms,
            max_delay_ms=settings.retry_max_delay_ms,
            backoff_factor=settings.retry_backoff_factor,
        )


def compute_delay(attempt: int, config: RetryConfig) -> float:
    """Return the delay in seconds to wait after failed attempt `attempt` (1-based)."""
    delay_ms = config.base_delay_ms * config.backoff_factor ** (attempt - 1)
    return min(delay_ms, config.max_delay_ms) / 1000


def default_is_retryable(error: BaseException) -> bool:
    """Default retry classification.

    Retryable: timeouts, transport errors, HTTP 429 and 5xx.
    Not retryable: content/validation errors, client input errors, other 4xx,
    errors from an already exhausted inner retry, anything unrecognised.
    """
    if isinstance(error, (ContentError, ClientInputError, RetryExhaustedError)):
        return False
    if isinstance(error, DependencyError):
        return error.retryable
    if isinstance(error, (TimeoutError, httpx.TimeoutException, httpx.TransportError)):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return status == 429 or status >= 500
    status_code = getattr(error, "status_code", None)
    if isinstance(status_code, int):
        return status_code == 429 or status_code >= 500
    return False


class RetryMetrics:
    """Interface for retry metrics."""

    def record_attempt(self, operation: str, outcome: str, latency_ms: float) -> None:
        """Record one attempt."""
        pass


class RetryLogger:
    """Interface for structured retry logging."""

    def log_attempt(
        self,
        operation: str,
        attempt: int,
        max_attempts: int,
        outcome: str,
        delay_ms: float | None = None,
        error_reason: str | None = None,
    ) -> None:
        """Log one attempt."""
        pass


class RetryPolicy:
    """Bounded retry loop around a zero-argument async operation."""

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        metrics: RetryMetrics | None = None,
        logger: RetryLogger | None = None,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize policy.

        Args:
            config: Default backoff configuration
            metrics: Metrics recorder (optional, defaults to no-op)
            logger: Structured logger (optional, defaults to no-op)
            sleep_fn: Injectable sleep function (default: asyncio.sleep)
        """
        self.config = config or RetryConfig()
        self._metrics = metrics or RetryMetrics()
        self._logger = logger or RetryLogger()
        self._sleep = sleep_fn or asyncio.sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        is_retryable: Callable[[BaseException], bool] | None = None,
        config: RetryConfig | None = None,
        *,
        name: str = "operation",
    ) -> T:
        """Run `operation` until it succeeds, fails non-retryably, or runs out of attempts.

        Args:
            operation: Zero-argument async callable
            is_retryable: Error classifier (default: default_is_retryable)
            config: Per-call backoff override
            name: Operation name used in logs, metrics and error messages

        Returns:
            The operation's result

        Raises:
            RetryExhaustedError: wrapping the last error, with the attempt count
        """
        config = config or self.config
        is_retryable = is_retryable or default_is_retryable
        max_attempts = config.max_attempts

        for attempt in range(1, max_attempts + 1):
            attempt_start = time.monotonic()
            try:
                result = await operation()
            except Exception as e:
                elapsed_ms = (time.monotonic() - attempt_start) * 1000
                retryable = is_retryable(e)
                self._metrics.record_attempt(name, "retryable_error" if retryable else "error", elapsed_ms)

                if retryable and attempt < max_attempts:
                    delay = compute_delay(attempt, config)
                    self._logger.log_attempt(
                        name,
                        attempt,
                        max_attempts,
                        "retrying",
                        delay_ms=delay * 1000,
                        error_reason=f"{type(e).__name__}: {e}",
                    )
                    await self._sleep(delay)
                    continue

                self._logger.log_attempt(
                    name,
                    attempt,
                    max_attempts,
                    "gave_up",
                    error_reason=f"{type(e).__name__}: {e}",
                )
                raise RetryExhaustedError(name, attempt, e) from e

            elapsed_ms = (time.monotonic() - attempt_start) * 1000
            self._metrics.record_attempt(name, "success", elapsed_ms)
            self._logger.log_attempt(name, attempt, max_attempts, "success")
            return result

        # max_attempts is always >= 1, the loop returns or raises
        raise AssertionError("unreachable")
