"""Retry logic for transient Shopify API failures.

Rate limiting (429), server errors (5xx), store redirects (302) and
network failures are retried with a per-attempt delay. The delay honours
the ``Retry-After`` header when the API sends one, capped so that a single
wait never blocks for long, and the number of attempts is bounded.
"""

import logging
import time
import random
import threading
from typing import Callable, TypeVar, Any, Dict, Optional, List

from requests.exceptions import ConnectionError, Timeout

from ..exceptions import (
    MaxRetriesExceededError,
    RateLimitError,
    RedirectError,
    ServerError,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)


class RetryManager:
    """Manages retry logic with capped, optionally exponential delays."""

    def __init__(
        self,
        max_retries: int = 10,
        base_delay: float = 1.0,
        max_delay: float = 10.0,
        redirect_delay: float = 0.5,
        backoff_factor: float = 1.0,
        jitter: bool = False,
    ) -> None:
        """Initialize retry manager.

        Args:
            max_retries: Maximum number of retry attempts
            base_delay: Delay in seconds when the server gives no hint
            max_delay: Upper bound for any single delay
            redirect_delay: Fixed delay before following a store redirect
            backoff_factor: Multiplier applied per attempt (1.0 keeps it flat)
            jitter: Whether to add random jitter to delays
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.redirect_delay = redirect_delay
        self.backoff_factor = backoff_factor
        self.jitter = jitter

        self._retry_conditions: List[Callable[[Exception], bool]] = []
        self._default_retry_conditions()

        self._metrics = {
            "total_operations": 0,
            "successful_operations": 0,
            "failed_operations": 0,
            "total_retry_attempts": 0,
            "total_delay_time": 0.0,
        }
        self._metrics_lock = threading.Lock()

    def _count(self, **increments: float) -> None:
        with self._metrics_lock:
            for name, amount in increments.items():
                self._metrics[name] += amount

    def _default_retry_conditions(self) -> None:
        """Set up default retry conditions."""
        # Network errors
        self.add_retry_condition(lambda exc: isinstance(exc, (ConnectionError, Timeout)))

        # 429, 5xx and 302 responses
        self.add_retry_condition(
            lambda exc: isinstance(exc, (RateLimitError, ServerError, RedirectError))
        )

    def add_retry_condition(self, condition: Callable[[Exception], bool]) -> None:
        """Add a condition for when to retry.

        Args:
            condition: Function that takes an exception and returns True if should retry
        """
        self._retry_conditions.append(condition)

    def should_retry(self, exception: Exception) -> bool:
        """Check if an exception should trigger a retry."""
        return any(condition(exception) for condition in self._retry_conditions)

    def calculate_delay(self, attempt: int, exception: Optional[Exception] = None) -> float:
        """Calculate delay for a retry attempt.

        Args:
            attempt: Attempt number (0-based)
            exception: The exception that triggered the retry

        Returns:
            Delay in seconds
        """
        if isinstance(exception, RedirectError):
            return self.redirect_delay

        retry_after = getattr(exception, "retry_after", None)
        if retry_after is not None and retry_after >= 0:
            delay = float(retry_after)
        else:
            delay = self.base_delay * (self.backoff_factor ** attempt)

        delay = min(delay, self.max_delay)

        if self.jitter:
            delay += delay * random.random()
            delay = min(delay, self.max_delay)

        return delay

    def execute_with_retry(self, operation: Callable[[], T], description: str = "") -> T:
        """Execute an operation with retry logic.

        Args:
            operation: Function to execute
            description: Label used in log messages (e.g. ``GET /path``)

        Returns:
            Result of the operation

        Raises:
            MaxRetriesExceededError: If maximum retries are exceeded
        """
        self._count(total_operations=1)
        last_exception: Optional[Exception] = None
        total_delay = 0.0

        for attempt in range(self.max_retries + 1):
            try:
                result = operation()
                self._count(successful_operations=1, total_delay_time=total_delay)
                return result

            except Exception as e:
                if not self.should_retry(e):
                    self._count(failed_operations=1)
                    raise

                last_exception = e
                if attempt == self.max_retries:
                    break

                delay = self.calculate_delay(attempt, e)
                total_delay += delay
                self._count(total_retry_attempts=1)

                label = "REDIRECT" if isinstance(e, RedirectError) else "RETRY"
                logger.warning("%s: %s (%s), waiting %.1fs", label, description, e, delay)
                time.sleep(delay)

        self._count(failed_operations=1, total_delay_time=total_delay)

        raise MaxRetriesExceededError(
            f"Maximum retries ({self.max_retries}) exceeded for {description or 'operation'}",
            attempts=self.max_retries + 1,
            last_exception=last_exception,
        )

    def get_metrics(self) -> Dict[str, Any]:
        """Get retry metrics.

        Returns:
            Dictionary of metrics
        """
        with self._metrics_lock:
            metrics = self._metrics.copy()

        if metrics["total_operations"] > 0:
            metrics["success_rate"] = metrics["successful_operations"] / metrics["total_operations"]
            metrics["failure_rate"] = metrics["failed_operations"] / metrics["total_operations"]
        else:
            metrics["success_rate"] = 0.0
            metrics["failure_rate"] = 0.0

        if metrics["total_retry_attempts"] > 0:
            metrics["average_retry_delay"] = metrics["total_delay_time"] / metrics["total_retry_attempts"]
        else:
            metrics["average_retry_delay"] = 0.0

        return metrics

    def reset_metrics(self) -> None:
        """Reset all metrics to zero."""
        with self._metrics_lock:
            for key in self._metrics:
                self._metrics[key] = 0
