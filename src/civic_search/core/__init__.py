"""
Core building blocks.

Provides:
- Unified exception hierarchy
- Async utilities (TaskGroup fan-out, timeouts, circuit breaker)

Python 3.12+ features:
- Type parameter syntax (PEP 695)
- ExceptionGroup support (PEP 654)
- asyncio.TaskGroup
"""

from .exceptions import (
    # Base
    CivicSearchError,
    ErrorContext,
    ErrorSeverity,
    ErrorCategory,
    # API errors
    APIError,
    NetworkError,
    RateLimitError,
    CircuitOpenError,
    ServiceUnavailableError,
    UpstreamError,
    # Validation errors
    ValidationError,
    InvalidQueryError,
    InvalidParameterError,
    # Data errors
    DataError,
    ParseError,
    # Configuration / aggregation errors
    ConfigurationError,
    AggregationError,
    # Utilities
    is_retryable_error,
    get_retry_delay,
)

from .async_utils import (
    CircuitBreaker,
    gather_with_errors,
    timeout_with_fallback,
)

__all__ = [
    # Exceptions
    "CivicSearchError",
    "ErrorContext",
    "ErrorSeverity",
    "ErrorCategory",
    "APIError",
    "NetworkError",
    "RateLimitError",
    "CircuitOpenError",
    "ServiceUnavailableError",
    "UpstreamError",
    "ValidationError",
    "InvalidQueryError",
    "InvalidParameterError",
    "DataError",
    "ParseError",
    "ConfigurationError",
    "AggregationError",
    "is_retryable_error",
    "get_retry_delay",
    # Async
    "CircuitBreaker",
    "gather_with_errors",
    "timeout_with_fallback",
]
