"""Infrastructure: credentials, secrets, error classification and retries."""

from .credentials import CredentialPool
from .error_classifier import ClassifiedError, ErrorCategory, ErrorClassifier, ErrorSeverity
from .retry import RetryPolicy, calculate_backoff_delay

__all__ = [
    "ClassifiedError",
    "CredentialPool",
    "ErrorCategory",
    "ErrorClassifier",
    "ErrorSeverity",
    "RetryPolicy",
    "calculate_backoff_delay",
]
