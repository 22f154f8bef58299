"""Unit tests for the retry module.

Tests the RetryManager delay calculation, retry conditions, attempt
limits and metrics.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest
from unittest.mock import Mock, patch

from requests.exceptions import ConnectionError, Timeout

from shopctl.utils.retry import RetryManager
from shopctl.exceptions import (
    BadRequestError,
    MaxRetriesExceededError,
    RateLimitError,
    RedirectError,
    ServerError,
)


class TestRetryManager:
    """Test cases for the RetryManager class."""

    def test_initialization_defaults(self):
        """Test RetryManager initialization with default values."""
        manager = RetryManager()

        assert manager.max_retries == 10
        assert manager.base_delay == 1.0
        assert manager.max_delay == 10.0
        assert manager.redirect_delay == 0.5

        metrics = manager.get_metrics()
        assert metrics["total_operations"] == 0
        assert metrics["total_retry_attempts"] == 0

    def test_should_retry_transient_errors(self):
        """Rate limits, server errors, redirects and network errors are retried."""
        manager = RetryManager()

        assert manager.should_retry(RateLimitError("slow down", status_code=429)) is True
        assert manager.should_retry(ServerError("boom", status_code=503)) is True
        assert manager.should_retry(RedirectError("moved", status_code=302)) is True
        assert manager.should_retry(ConnectionError("Network error")) is True
        assert manager.should_retry(Timeout("Request timeout")) is True

    def test_should_not_retry_client_errors(self):
        manager = RetryManager()

        assert manager.should_retry(BadRequestError("bad", status_code=422)) is False
        assert manager.should_retry(ValueError("nope")) is False

    def test_delay_uses_retry_after(self):
        manager = RetryManager()
        error = RateLimitError("slow down", status_code=429, retry_after=2.0)

        assert manager.calculate_delay(0, error) == 2.0

    def test_delay_is_capped(self):
        manager = RetryManager()
        error = RateLimitError("slow down", status_code=429, retry_after=120.0)

        assert manager.calculate_delay(0, error) == 10.0

    def test_delay_without_hint_is_flat(self):
        manager = RetryManager()
        error = ServerError("boom", status_code=500)

        assert manager.calculate_delay(0, error) == 1.0
        assert manager.calculate_delay(5, error) == 1.0

    def test_redirect_delay(self):
        manager = RetryManager()

        assert manager.calculate_delay(3, RedirectError("moved", status_code=302)) == 0.5

    @patch("shopctl.utils.retry.time.sleep")
    def test_execute_succeeds_after_transient_failures(self, mock_sleep):
        """Test that an operation is retried until it succeeds."""
        manager = RetryManager(max_retries=3)
        operation = Mock(side_effect=[ServerError("boom", status_code=500), RateLimitError("slow", status_code=429), "ok"])

        assert manager.execute_with_retry(operation, "GET /x") == "ok"
        assert operation.call_count == 3
        assert mock_sleep.call_count == 2

        metrics = manager.get_metrics()
        assert metrics["successful_operations"] == 1
        assert metrics["total_retry_attempts"] == 2

    @patch("shopctl.utils.retry.time.sleep")
    def test_execute_gives_up_after_max_retries(self, mock_sleep):
        """The operation runs max_retries + 1 times before giving up."""
        manager = RetryManager(max_retries=2)
        operation = Mock(side_effect=ServerError("boom", status_code=500))

        with pytest.raises(MaxRetriesExceededError) as exc_info:
            manager.execute_with_retry(operation, "GET /x")

        assert operation.call_count == 3
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_exception, ServerError)
        assert manager.get_metrics()["failed_operations"] == 1

    @patch("shopctl.utils.retry.time.sleep")
    def test_execute_does_not_retry_client_errors(self, mock_sleep):
        manager = RetryManager()
        operation = Mock(side_effect=BadRequestError("bad", status_code=422))

        with pytest.raises(BadRequestError):
            manager.execute_with_retry(operation)

        assert operation.call_count == 1
        mock_sleep.assert_not_called()

    @patch("shopctl.utils.retry.time.sleep")
    def test_zero_retries_runs_once(self, mock_sleep):
        manager = RetryManager(max_retries=0)
        operation = Mock(side_effect=ServerError("boom", status_code=500))

        with pytest.raises(MaxRetriesExceededError):
            manager.execute_with_retry(operation)

        assert operation.call_count == 1
        mock_sleep.assert_not_called()

    def test_reset_metrics(self):
        manager = RetryManager()
        manager.execute_with_retry(lambda: 1)
        manager.reset_metrics()

        assert manager.get_metrics()["total_operations"] == 0

    @patch("shopctl.utils.retry.time.sleep")
    def test_metrics_are_exact_under_concurrency(self, mock_sleep):
        """Counters stay exact when many worker threads share one manager."""
        manager = RetryManager(max_retries=1)
        flaky = {}

        def operation(n):
            # every third operation fails once before succeeding
            if n % 3 == 0 and n not in flaky:
                flaky[n] = True
                raise ServerError("boom", status_code=503)
            return n

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(lambda n: manager.execute_with_retry(lambda: operation(n)), range(300)))

        assert results == list(range(300))
        metrics = manager.get_metrics()
        assert metrics["total_operations"] == 300
        assert metrics["successful_operations"] == 300
        assert metrics["failed_operations"] == 0
        assert metrics["total_retry_attempts"] == 100
