"""Error classification for LLM API failures.

Classifies provider exceptions into categories so the orchestrator can decide
how to retry: an overloaded or throttled endpoint is retried immediately on
the next credential, anything else waits out an exponential backoff first.
"""

import re
from enum import Enum
from typing import Optional


class ErrorCategory(Enum):
    """Categories of API errors."""

    BILLING_QUOTA = "billing_quota"  # Insufficient funds, quota exceeded
    AUTHENTICATION = "authentication"  # API key invalid or expired
    OVERLOADED = "overloaded"  # Model temporarily overloaded (503)
    RATE_LIMIT = "rate_limit"  # Rate limit/throttling errors
    MODEL_ERROR = "model_error"  # Model not found or unavailable
    SERVER_ERROR = "server_error"  # Provider server errors (5xx)
    NETWORK_ERROR = "network_error"  # Connection/timeout errors
    INVALID_REQUEST = "invalid_request"  # Malformed request or invalid parameters
    UNKNOWN = "unknown"  # Unclassified errors


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    CRITICAL = "critical"  # Requires immediate attention (e.g., billing)
    HIGH = "high"  # Important but not blocking (e.g., rate limits)
    MEDIUM = "medium"  # Should be addressed (e.g., invalid requests)
    LOW = "low"  # Informational (e.g., temporary network issues)


# Categories worth retrying on another key without waiting
_NO_BACKOFF_CATEGORIES = frozenset({ErrorCategory.OVERLOADED, ErrorCategory.RATE_LIMIT})


class ClassifiedError:
    """A classified API error with category and severity."""

    def __init__(
        self,
        category: ErrorCategory,
        severity: ErrorSeverity,
        provider: str,
        original_error: str,
        message: str,
        is_retryable: bool = False,
    ):
        """Initialize classified error.

        Args:
            category: Error category
            severity: Error severity level
            provider: LLM provider name
            original_error: Original error type name
            message: Human-readable error message
            is_retryable: Whether the error is transient and retryable
        """
        self.category = category
        self.severity = severity
        self.provider = provider
        self.original_error = original_error
        self.message = message
        self.is_retryable = is_retryable

    @property
    def skips_backoff(self) -> bool:
        """Whether the next attempt should start without a backoff delay."""
        return self.category in _NO_BACKOFF_CATEGORIES

    def __str__(self) -> str:
        return (
            f"[{self.severity.value.upper()}] {self.provider}: "
            f"{self.category.value} - {self.message}"
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/serialization."""
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "provider": self.provider,
            "original_error": self.original_error,
            "message": self.message,
            "is_retryable": self.is_retryable,
        }


class ErrorClassifier:
    """Classifies API errors from LLM providers."""

    # Patterns for overloaded model errors
    OVERLOADED_PATTERNS = [
        r"overloaded",
        r"\bunavailable\b",
        r"\b503\b",
    ]

    # Patterns for billing/quota errors
    BILLING_PATTERNS = [
        r"insufficient.*funds",
        r"quota.*exceeded",
        r"billing.*issue",
        r"insufficient.*quota",
        r"payment.*required",
        r"account.*suspended",
        r"\b402\b",
    ]

    # Patterns for authentication errors
    AUTH_PATTERNS = [
        r"invalid.*api.*key",
        r"api.*key.*not.*valid",
        r"authentication.*failed",
        r"unauthorized",
        r"api.*key.*expired",
        r"permission.*denied",
        r"\b401\b",
        r"\b403\b",
    ]

    # Patterns for rate limit errors
    RATE_LIMIT_PATTERNS = [
        r"rate.*limit",
        r"too.*many.*requests",
        r"resource.*exhausted",
        r"throttl",
        r"\b429\b",
        r"requests.*per.*minute",
    ]

    # Patterns for model errors
    MODEL_PATTERNS = [
        r"model.*not.*found",
        r"invalid.*model",
        r"model.*deprecated",
    ]

    # Patterns for server errors
    SERVER_ERROR_PATTERNS = [
        r"internal.*server.*error",
        r"\b50[0-9]\b",
        r"server.*error",
        r"upstream.*error",
    ]

    # Patterns for network errors
    NETWORK_PATTERNS = [
        r"connection.*error",
        r"timeout",
        r"timed out",
        r"network.*error",
        r"connection.*refused",
        r"connection.*reset",
        r"dns.*error",
    ]

    # Status codes that settle the category regardless of the message text.
    # Gemini's 429 body reads "Quota exceeded for metric ...", which would
    # otherwise match the billing patterns.
    STATUS_CATEGORIES = {
        503: ErrorCategory.OVERLOADED,
        429: ErrorCategory.RATE_LIMIT,
        401: ErrorCategory.AUTHENTICATION,
        403: ErrorCategory.AUTHENTICATION,
    }

    @staticmethod
    def classify_error(
        error: Exception,
        provider: str,
    ) -> ClassifiedError:
        """Classify an API error.

        An integer ``code`` attribute on the error (as carried by
        ``google.genai.errors.APIError``) takes precedence over the message.

        Args:
            error: The exception that was raised
            provider: Provider name

        Returns:
            ClassifiedError with category and severity
        """
        error_str = str(error).lower()
        error_type = type(error).__name__
        status_code = _status_code(error)

        category = ErrorClassifier.STATUS_CATEGORIES.get(status_code)
        if category is None:
            category = ErrorClassifier._categorize(error, error_str, status_code)

        if category is ErrorCategory.OVERLOADED:
            return ClassifiedError(
                category=category,
                severity=ErrorSeverity.LOW,
                provider=provider,
                original_error=error_type,
                message=f"{provider} model is overloaded. Switching credentials.",
                is_retryable=True,
            )

        if category is ErrorCategory.BILLING_QUOTA:
            return ClassifiedError(
                category=category,
                severity=ErrorSeverity.CRITICAL,
                provider=provider,
                original_error=error_type,
                message=(
                    f"Billing or quota issue detected. Please check your {provider} "
                    f"account balance and usage limits."
                ),
                is_retryable=False,
            )

        if category is ErrorCategory.AUTHENTICATION:
            return ClassifiedError(
                category=category,
                severity=ErrorSeverity.CRITICAL,
                provider=provider,
                original_error=error_type,
                message=(
                    f"Authentication failed. Please verify your {provider} API key "
                    f"is valid and has not expired."
                ),
                is_retryable=False,
            )

        if category is ErrorCategory.RATE_LIMIT:
            return ClassifiedError(
                category=category,
                severity=ErrorSeverity.HIGH,
                provider=provider,
                original_error=error_type,
                message=f"Rate limit exceeded for {provider}. Switching credentials.",
                is_retryable=True,
            )

        if category is ErrorCategory.MODEL_ERROR:
            return ClassifiedError(
                category=category,
                severity=ErrorSeverity.MEDIUM,
                provider=provider,
                original_error=error_type,
                message=f"Model configuration issue with {provider}. Verify model name/availability.",
                is_retryable=False,
            )

        if category is ErrorCategory.SERVER_ERROR:
            return ClassifiedError(
                category=category,
                severity=ErrorSeverity.MEDIUM,
                provider=provider,
                original_error=error_type,
                message=f"{provider} server error. This may be temporary.",
                is_retryable=True,
            )

        if category is ErrorCategory.NETWORK_ERROR:
            return ClassifiedError(
                category=category,
                severity=ErrorSeverity.LOW,
                provider=provider,
                original_error=error_type,
                message="Network connectivity issue. This may be temporary.",
                is_retryable=True,
            )

        if category is ErrorCategory.INVALID_REQUEST:
            return ClassifiedError(
                category=category,
                severity=ErrorSeverity.MEDIUM,
                provider=provider,
                original_error=error_type,
                message=f"Invalid request to {provider}. Check request parameters.",
                is_retryable=False,
            )

        return ClassifiedError(
            category=ErrorCategory.UNKNOWN,
            severity=ErrorSeverity.MEDIUM,
            provider=provider,
            original_error=error_type,
            message=f"Unclassified error from {provider}: {str(error)[:100]}",
            is_retryable=False,
        )

    @staticmethod
    def _categorize(
        error: Exception, error_str: str, status_code: Optional[int]
    ) -> ErrorCategory:
        """Pick a category from the message when the status code does not decide."""
        match = ErrorClassifier._match_patterns
        if match(error_str, ErrorClassifier.OVERLOADED_PATTERNS):
            return ErrorCategory.OVERLOADED
        if match(error_str, ErrorClassifier.BILLING_PATTERNS):
            return ErrorCategory.BILLING_QUOTA
        if match(error_str, ErrorClassifier.AUTH_PATTERNS):
            return ErrorCategory.AUTHENTICATION
        if match(error_str, ErrorClassifier.RATE_LIMIT_PATTERNS):
            return ErrorCategory.RATE_LIMIT
        if match(error_str, ErrorClassifier.MODEL_PATTERNS):
            return ErrorCategory.MODEL_ERROR
        if (status_code is not None and status_code >= 500) or match(
            error_str, ErrorClassifier.SERVER_ERROR_PATTERNS
        ):
            return ErrorCategory.SERVER_ERROR
        if isinstance(error, (ConnectionError, TimeoutError)) or match(
            error_str, ErrorClassifier.NETWORK_PATTERNS
        ):
            return ErrorCategory.NETWORK_ERROR
        if status_code == 400 or "invalid" in error_str or "bad request" in error_str:
            return ErrorCategory.INVALID_REQUEST
        return ErrorCategory.UNKNOWN

    @staticmethod
    def _match_patterns(text: str, patterns: list[str]) -> bool:
        """Check if text matches any of the given regex patterns."""
        return any(re.search(pattern, text, re.IGNORECASE) for pattern in patterns)


def _status_code(error: Exception) -> Optional[int]:
    code = getattr(error, "code", None)
    return code if isinstance(code, int) else None
