"""Logging setup and structured retry logging."""

import logging
from typing import Any

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger."""
    root = logging.getLogger()
    root.setLevel(level.upper())
    if not any(getattr(h, "_itinerary_handler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._itinerary_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)


class StructuredRetryLogger:
    """Structured logger for retried outbound calls."""

    def log_attempt(
        self,
        operation: str,
        attempt: int,
        max_attempts: int,
        outcome: str,
        delay_ms: float | None = None,
        error_reason: str | None = None,
    ) -> None:
        """Log an attempt with structured data."""
        log_data: dict[str, Any] = {
            "operation": operation,
            "attempt": attempt,
            "max_attempts": max_attempts,
            "outcome": outcome,
        }

        if delay_ms is not None:
            log_data["delay_ms"] = round(delay_ms, 2)
        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"{operation} attempt {attempt}/{max_attempts} - {outcome}"
        if delay_ms is not None:
            log_msg += f", retrying in {delay_ms:.0f}ms"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
