"""
Unified Exception Hierarchy for AniMatch.

Exception Hierarchy:
    AniMatchError (base)
    ├── AdapterError
    │   ├── RateLimitError
    │   └── AdapterTimeoutError
    ├── ValidationError
    │   ├── InvalidParameterError
    │   └── UnknownSourceError
    ├── DataError
    │   ├── NotFoundError
    │   └── ParseError
    └── ConfigurationError

AdapterError and its subclasses describe upstream failures of a single
catalog. The aggregator downgrades them to an empty contribution.
Everything under ValidationError signals bad input from the caller and is
propagated unchanged.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
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

    ADAPTER = "adapter"
    VALIDATION = "validation"
    DATA = "data"
    CONFIGURATION = "config"


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Rich context attached to every AniMatch error."""

    operation: str | None = None
    input_value: Any = None
    suggestion: str | None = None
    retry_after: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class AniMatchError(Exception):
    """
    Base exception for all AniMatch errors.

    Provides:
    - Structured error context
    - Severity classification
    - Retry guidance
    """

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        category: ErrorCategory = ErrorCategory.ADAPTER,
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
            "severity": self.severity.name.lower(),
            "retryable": self.retryable,
        }
        if self.context.operation:
            result["operation"] = self.context.operation
        if self.context.suggestion:
            result["suggestion"] = self.context.suggestion
        if self.context.retry_after:
            result["retry_after_seconds"] = self.context.retry_after
        return result


# =============================================================================
# Adapter Errors
# =============================================================================


class AdapterError(AniMatchError):
    """Upstream transport or parse failure of one catalog, tagged with its source."""

    def __init__(
        self,
        message: str,
        *,
        source: str,
        context: ErrorContext | None = None,
        retryable: bool = True,
    ) -> None:
        super().__init__(
            f"[{source}] {message}",
            context=context,
            severity=ErrorSeverity.ERROR,
            category=ErrorCategory.ADAPTER,
            retryable=retryable,
        )
        self.source = source


class RateLimitError(AdapterError):
    """Raised when a catalog keeps answering 429 after all retries."""

    def __init__(
        self,
        message: str = "API rate limit exceeded",
        *,
        source: str,
        retry_after: float = 1.0,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = context or ErrorContext()
        ctx = ErrorContext(
            operation=ctx.operation,
            input_value=ctx.input_value,
            suggestion=ctx.suggestion or "Wait and retry the request",
            retry_after=retry_after,
            metadata=ctx.metadata,
        )
        super().__init__(message, source=source, context=ctx, retryable=True)
        self.severity = ErrorSeverity.TRANSIENT


class AdapterTimeoutError(AdapterError):
    """Raised when a catalog call exceeds its per-call deadline."""

    def __init__(
        self,
        timeout: float,
        *,
        source: str,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            f"call exceeded {timeout:.1f}s deadline",
            source=source,
            context=context,
            retryable=True,
        )
        self.timeout = timeout
        self.severity = ErrorSeverity.TRANSIENT


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(AniMatchError):
    """Base class for validation errors."""

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


class InvalidParameterError(ValidationError):
    """Raised when a parameter value is invalid."""

    def __init__(
        self,
        param_name: str,
        value: Any,
        expected: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = context or ErrorContext()
        ctx = ErrorContext(
            operation=ctx.operation,
            input_value=value,
            suggestion=f"Expected {expected}",
            retry_after=ctx.retry_after,
            metadata=ctx.metadata,
        )
        super().__init__(
            f"Invalid parameter '{param_name}': {value!r} (expected {expected})",
            context=ctx,
        )
        self.param_name = param_name


class UnknownSourceError(ValidationError):
    """
    Raised when a composite id or configuration names a source that is not registered.

    This is a programmer/input error, never a transient failure, and is
    deliberately not caught by the aggregator.
    """

    def __init__(
        self,
        source_name: str,
        *,
        known_sources: tuple[str, ...] = (),
        context: ErrorContext | None = None,
    ) -> None:
        ctx = context or ErrorContext()
        suggestion = ctx.suggestion
        if known_sources and not suggestion:
            suggestion = f"Use one of: {', '.join(known_sources)}"
        ctx = ErrorContext(
            operation=ctx.operation,
            input_value=source_name,
            suggestion=suggestion,
            retry_after=ctx.retry_after,
            metadata=ctx.metadata,
        )
        super().__init__(f"Unknown source: {source_name!r}", context=ctx)
        self.source_name = source_name


# =============================================================================
# Data Errors
# =============================================================================


class DataError(AniMatchError):
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


class NotFoundError(DataError):
    """Raised when requested data is not found."""

    def __init__(
        self,
        resource: str,
        identifier: str | None = None,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        msg = f"{resource} not found"
        if identifier:
            msg = f"{resource} not found: {identifier}"

        ctx = context or ErrorContext()
        ctx = ErrorContext(
            operation=ctx.operation,
            input_value=identifier,
            suggestion=ctx.suggestion or "Check the identifier and try again",
            retry_after=ctx.retry_after,
            metadata=ctx.metadata,
        )
        super().__init__(msg, context=ctx)


class ParseError(DataError):
    """Raised when a catalog payload cannot be normalized."""

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
        self.source = source


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(AniMatchError):
    """Raised for configuration-related errors."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.CONFIGURATION,
            retryable=False,
        )


# =============================================================================
# Utilities
# =============================================================================


def is_retryable_error(error: Exception) -> bool:
    """Check if an error should be retried."""
    if isinstance(error, AniMatchError):
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


def get_retry_delay(error: Exception, attempt: int) -> float:
    """
    Calculate retry delay with exponential backoff.

    Args:
        error: The exception that occurred
        attempt: Current attempt number (0-based)

    Returns:
        Delay in seconds before next retry
    """
    base_delay = 1.0

    if isinstance(error, AniMatchError) and error.context.retry_after:
        base_delay = error.context.retry_after

    delay = base_delay * (2**attempt)
    jitter = random.uniform(0, 0.1 * delay)

    # Cap at 30 seconds
    return min(delay + jitter, 30.0)
