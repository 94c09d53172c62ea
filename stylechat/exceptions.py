"""Custom exceptions for StyleChat.

Defines specific exception types for better error handling and reporting.
The API layer renders any ``StyleChatException`` as a JSON error body using
its ``status_code``.
"""

from typing import Any, Dict, Optional


class StyleChatException(Exception):
    """Base exception for StyleChat errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception.

        Args:
            message: Human-readable error message
            status_code: HTTP status code for API responses
            details: Additional error details for debugging
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class ValidationError(StyleChatException):
    """Raised when a request is missing input or carries bad input."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=400, details=details)


class UpstreamProviderError(StyleChatException):
    """Raised when the embedding or language-model provider call fails."""

    def __init__(self, provider: str, error: Exception, status_code: int = 502):
        message = f"{provider} request failed: {str(error)}"
        super().__init__(
            message=message,
            status_code=status_code,
            details={
                "provider": provider,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )
        self.provider = provider
        self.error = error


class RateLimitedError(UpstreamProviderError):
    """Raised when a provider rejects a call because of its rate limit."""

    def __init__(self, provider: str, error: Exception):
        super().__init__(provider, error, status_code=429)


class QuotaExhaustedError(UpstreamProviderError):
    """Raised when a provider reports that its usage quota is used up."""

    def __init__(self, provider: str, error: Exception):
        super().__init__(provider, error, status_code=429)


class PersistenceError(StyleChatException):
    """Raised when a document-store read or write fails."""

    def __init__(self, operation: str, error: Exception):
        message = f"Failed to {operation}: {str(error)}"
        super().__init__(
            message=message,
            status_code=500,
            details={
                "operation": operation,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )


class DimensionMismatchError(StyleChatException):
    """Raised when a catalog embedding and the query embedding differ in length."""

    def __init__(self, item_id: str, expected: int, actual: int):
        message = (
            f"Embedding of item '{item_id}' has {actual} dimensions, "
            f"query embedding has {expected}"
        )
        super().__init__(
            message=message,
            status_code=500,
            details={"item_id": item_id, "expected": expected, "actual": actual},
        )
