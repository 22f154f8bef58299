"""Exception classes for the Shopify store CLI.

This module defines custom exception classes used throughout the application
for proper error handling and user feedback.
"""

from typing import Optional, Dict, Any, List


class ShopCtlError(Exception):
    """Base exception class for all shopctl errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigError(ShopCtlError):
    """Exception raised for configuration-related errors."""
    pass


class ValidationError(ShopCtlError):
    """Exception raised for data validation errors."""
    pass


class FileOperationError(ShopCtlError):
    """Exception raised when a local file cannot be read or written."""

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message
            file_path: Path to the file that caused the error
            operation: Operation that failed (read, write, delete, git)
            **kwargs: Additional arguments
        """
        super().__init__(message, **kwargs)
        self.file_path = file_path
        self.operation = operation


class ThemeOperationError(ShopCtlError):
    """Exception raised for theme lifecycle operations."""

    def __init__(
        self,
        message: str,
        theme_name: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)
        self.theme_name = theme_name
        self.operation = operation


class MaxRetriesExceededError(ShopCtlError):
    """Exception raised when maximum retry attempts are exceeded."""

    def __init__(
        self,
        message: str,
        attempts: int,
        last_exception: Optional[Exception] = None
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message
            attempts: Number of attempts made
            last_exception: The last exception that caused the failure
        """
        if last_exception is not None:
            message = f"{message}: {type(last_exception).__name__}: {last_exception}"
        super().__init__(message)
        self.attempts = attempts
        self.last_exception = last_exception


class BatchOperationError(ShopCtlError):
    """Exception raised when some actions of a sync batch failed."""

    def __init__(
        self,
        message: str,
        successful_operations: int = 0,
        failed_operations: int = 0,
        failures: Optional[List[Dict[str, Any]]] = None,
        **kwargs: Any
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message
            successful_operations: Number of successful operations
            failed_operations: Number of failed operations
            failures: List of failure details
            **kwargs: Additional arguments
        """
        super().__init__(message, **kwargs)
        self.successful_operations = successful_operations
        self.failed_operations = failed_operations
        self.failures = failures or []

    def get_summary(self) -> str:
        """Get a summary of the batch results."""
        total = self.successful_operations + self.failed_operations
        return (
            f"Sync completed: {self.successful_operations}/{total} successful, "
            f"{self.failed_operations} failed"
        )


class APIError(ShopCtlError):
    """Base exception for API-related errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[Any] = None
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message
            status_code: HTTP status code
            response_data: Decoded response body, when one was returned
        """
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data if response_data is not None else {}


class BadRequestError(APIError):
    """Exception raised for 400 Bad Request and 422 validation errors."""
    pass


class UnauthorizedError(APIError):
    """Exception raised for 401 Unauthorized errors."""
    pass


class ForbiddenError(APIError):
    """Exception raised for 403 Forbidden errors."""
    pass


class ServerError(APIError):
    """Exception raised for 5xx server errors."""
    pass


class RateLimitError(APIError):
    """Exception raised for 429 Rate Limit errors."""

    def __init__(
        self,
        message: str,
        retry_after: Optional[float] = None,
        **kwargs: Any
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message
            retry_after: Seconds to wait before retrying
            **kwargs: Additional arguments passed to parent class
        """
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class RedirectError(APIError):
    """Raised for a 302 response once the client has moved to the new host."""

    def __init__(self, message: str, location: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.location = location


def format_error_for_user(error: Exception, debug: bool = False) -> str:
    """Format an error message for user display.

    Args:
        error: The exception to format
        debug: Whether to include debug information

    Returns:
        Formatted error message
    """
    if isinstance(error, BatchOperationError):
        message = f"{error.message}\n{error.get_summary()}"
        if error.failures and debug:
            message += "\nFailures:"
            for failure in error.failures[:5]:
                message += f"\n  - {failure.get('action')} {failure.get('name')}: {failure.get('error')}"
            if len(error.failures) > 5:
                message += f"\n  ... and {len(error.failures) - 5} more"
        return message

    if isinstance(error, FileOperationError):
        message = f"File error: {error.message}"
        if error.file_path:
            message += f"\nFile: {error.file_path}"
        if error.operation:
            message += f"\nOperation: {error.operation}"
        return message

    if isinstance(error, APIError):
        message = f"API error: {error.message}"
        if error.status_code:
            message += f" (HTTP {error.status_code})"
        if debug and error.response_data:
            message += f"\nResponse: {error.response_data}"
        return message

    if isinstance(error, ShopCtlError):
        message = error.message
        if debug and error.details:
            message += f"\nDetails: {error.details}"
        return message

    return str(error)
