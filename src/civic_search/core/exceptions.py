"""
Exception hierarchy for Civic Search.

Only two classes ever reach the HTTP boundary: ValidationError (client error,
raised by the search facade before dispatch) and AggregationError (generic
server error). Everything under APIError / DataError / ConfigurationError is
raised inside a content provider and recovered there by the synthetic
fallback path.

Exception Hierarchy:
    CivicSearchError (base)
    ├── APIError
    │   ├── NetworkError
    │   ├── RateLimitError
    │   │   └── CircuitOpenError
    │   ├── ServiceUnavailableError
    │   └── UpstreamError
    ├── ValidationError
    │   ├── InvalidQueryError
    │   └── InvalidParameterError
    ├── DataError
    │   └── ParseError
    ├── ConfigurationError
    └── AggregationError
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Any


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    WARNING = auto()  # Recoverable, can continue
    ERROR = auto()  # Failed but can retry
    CRITICAL = auto()  # Cannot continue
    TRANSIENT = auto()  # Temporary, should retry automatically


class ErrorCategory(Enum):
    """Categories for error classification."""

    API = "api"
    VALIDATION = "validation"
    DATA = "data"
    CONFIGURATION = "config"
    AGGREGATION = "aggregation"


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Extra context attached to an error."""

    provider_id: str | None = None
    operation: str | None = None
    input_value: Any = None
    suggestion: str | None = None
    example: str | None = None
    retry_after: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class CivicSearchError(Exception):
    """
    Base exception for all Civic Search errors.

    Carries a structured context, a severity, a category and a retry hint so
    callers can decide between retrying, falling back and surfacing.
    """

    __slots__ = ("context", "severity", "category", "retryable")

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        category: ErrorCategory = ErrorCategory.API,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.context = context or ErrorContext()
        self.severity = severity
        self.category = category
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "error": str(self),
            "category": self.category.value,
        }
        if self.context.suggestion:
            result["suggestion"] = self.context.suggestion
        if self.context.example:
            result["example"] = self.context.example
        return result


# =============================================================================
# API Errors (upstream content sources)
# =============================================================================


class APIError(CivicSearchError):
    """Base class for errors talking to an upstream content source."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
        retryable: bool = True,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.ERROR,
            category=ErrorCategory.API,
            retryable=retryable,
        )


class NetworkError(APIError):
    """Raised for connectivity problems (DNS, connect, read timeouts)."""

    def __init__(
        self,
        message: str = "Network connection failed",
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(message, context=context, retryable=True)


class RateLimitError(APIError):
    """Raised when an upstream rate limit is hit or a circuit breaker is open."""

    def __init__(
        self,
        message: str = "API rate limit exceeded",
        *,
        retry_after: float = 1.0,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = replace(
            context or ErrorContext(),
            retry_after=retry_after,
        )
        if not ctx.suggestion:
            ctx = replace(ctx, suggestion="Wait and retry the request")
        super().__init__(message, context=ctx, retryable=True)
        self.severity = ErrorSeverity.TRANSIENT


class CircuitOpenError(RateLimitError):
    """Raised by a circuit breaker that is rejecting calls; not retried immediately."""

    def __init__(self, message: str = "Circuit breaker is open", *, retry_after: float = 30.0) -> None:
        super().__init__(message, retry_after=retry_after)
        self.retryable = False


class ServiceUnavailableError(APIError):
    """Raised on 5xx answers from an upstream service."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        *,
        service: str = "upstream",
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(f"{service}: {message}", context=context, retryable=True)
        self.severity = ErrorSeverity.TRANSIENT


class UpstreamError(APIError):
    """Raised on non-retryable upstream answers (4xx other than 429)."""

    def __init__(
        self,
        service: str,
        status_code: int,
        reason: str = "",
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            f"{service} API error: {status_code} {reason}".strip(),
            context=context,
            retryable=False,
        )
        self.status_code = status_code


# =============================================================================
# Validation Errors (client errors, raised before dispatch)
# =============================================================================


class ValidationError(CivicSearchError):
    """Base class for input validation errors."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.WARNING,
            category=ErrorCategory.VALIDATION,
            retryable=False,
        )


class InvalidQueryError(ValidationError):
    """Raised when the search query is missing or blank."""

    def __init__(
        self,
        query: str | None,
        reason: str = "Query parameter is required and must be a non-empty string",
        *,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = replace(
            context or ErrorContext(),
            input_value=query,
            suggestion="Provide a non-empty search query",
            example="/api/search?q=reforma%20pensional",
        )
        super().__init__(reason, context=ctx)


class InvalidParameterError(ValidationError):
    """Raised when a request parameter has an unsupported value."""

    def __init__(
        self,
        param_name: str,
        value: Any,
        expected: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = replace(
            context or ErrorContext(),
            input_value=value,
            suggestion=f"Expected {expected}",
        )
        super().__init__(
            f"Invalid parameter '{param_name}': {value!r} (expected {expected})",
            context=ctx,
        )
        self.param_name = param_name


# =============================================================================
# Data Errors
# =============================================================================


class DataError(CivicSearchError):
    """Base class for data-related errors."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.ERROR,
            category=ErrorCategory.DATA,
            retryable=False,
        )


class ParseError(DataError):
    """Raised when an upstream payload cannot be interpreted."""

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        full_msg = f"Parse error: {message}"
        if source:
            full_msg = f"Parse error ({source}): {message}"
        super().__init__(full_msg, context=context)


# =============================================================================
# Configuration / Aggregation Errors
# =============================================================================


class ConfigurationError(CivicSearchError):
    """Raised when a provider is disabled or missing credentials."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.WARNING,
            category=ErrorCategory.CONFIGURATION,
            retryable=False,
        )


class AggregationError(CivicSearchError):
    """Raised for failures outside any single provider (merge, sort, paginate)."""

    def __init__(
        self,
        message: str = "Failed to perform search",
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.AGGREGATION,
            retryable=False,
        )


# =============================================================================
# Retry helpers
# =============================================================================


def is_retryable_error(error: BaseException) -> bool:
    """Check if an error should be retried."""
    if isinstance(error, CivicSearchError):
        return error.retryable

    error_str = str(error).lower()
    transient_patterns = [
        "rate limit",
        "too many requests",
        "temporarily unavailable",
        "service unavailable",
        "connection reset",
        "timeout",
    ]
    return any(pattern in error_str for pattern in transient_patterns)


def get_retry_delay(error: BaseException, attempt: int) -> float:
    """
    Calculate retry delay with exponential backoff.

    Args:
        error: The exception that occurred
        attempt: Current attempt number (0-based)

    Returns:
        Delay in seconds before next retry, capped at 30 seconds
    """
    base_delay = 1.0
    if isinstance(error, CivicSearchError) and error.context.retry_after:
        base_delay = error.context.retry_after

    delay = base_delay * (2**attempt)
    jitter = random.uniform(0, 0.1 * delay)
    return min(delay + jitter, 30.0)
