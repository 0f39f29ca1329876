"""
Shared building blocks for AniMatch.

Provides:
- Unified exception hierarchy
- Sliding-window rate limiting and call deadlines
- Settings loaded from the environment
"""

from .async_utils import (
    SlidingWindowRateLimiter,
    call_with_deadline,
)
from .exceptions import (
    AdapterError,
    AdapterTimeoutError,
    AniMatchError,
    ConfigurationError,
    DataError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    InvalidParameterError,
    NotFoundError,
    ParseError,
    RateLimitError,
    UnknownSourceError,
    ValidationError,
    get_retry_delay,
    is_retryable_error,
)
from .settings import DEFAULT_SOURCE_WEIGHTS, DEFAULT_SOURCES, AniMatchSettings

__all__ = [
    # Exceptions
    "AniMatchError",
    "ErrorContext",
    "ErrorSeverity",
    "ErrorCategory",
    "AdapterError",
    "RateLimitError",
    "AdapterTimeoutError",
    "ValidationError",
    "InvalidParameterError",
    "UnknownSourceError",
    "DataError",
    "NotFoundError",
    "ParseError",
    "ConfigurationError",
    "is_retryable_error",
    "get_retry_delay",
    # Async utilities
    "SlidingWindowRateLimiter",
    "call_with_deadline",
    # Settings
    "AniMatchSettings",
    "DEFAULT_SOURCES",
    "DEFAULT_SOURCE_WEIGHTS",
]
