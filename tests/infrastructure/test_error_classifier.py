"""Tests for LLM API error classification."""

import pytest
from google.genai import errors

from quizgen.infrastructure.error_classifier import (
    ClassifiedError,
    ErrorCategory,
    ErrorClassifier,
    ErrorSeverity,
)

_GEMINI_QUOTA_BODY = {
    "error": {
        "code": 429,
        "status": "RESOURCE_EXHAUSTED",
        "message": (
            "You exceeded your current quota, please check your plan and billing "
            "details. Quota exceeded for metric: "
            "generativelanguage.googleapis.com/generate_content_free_tier_requests"
        ),
    }
}


class _CodedError(Exception):
    """Error carrying an HTTP status code, like google.genai APIError."""

    def __init__(self, code: int, message: str):
        self.code = code
        super().__init__(message)


class TestErrorClassifier:
    """Tests for ErrorClassifier.classify_error."""

    @pytest.mark.parametrize(
        "message,expected",
        [
            ("503 UNAVAILABLE. The model is overloaded. Please try again later.", ErrorCategory.OVERLOADED),
            ("Service Unavailable", ErrorCategory.OVERLOADED),
            ("429 Too Many Requests: Rate limit exceeded", ErrorCategory.RATE_LIMIT),
            ("429 RESOURCE_EXHAUSTED", ErrorCategory.RATE_LIMIT),
            ("Insufficient funds in account", ErrorCategory.BILLING_QUOTA),
            ("401 Unauthorized: Invalid API key", ErrorCategory.AUTHENTICATION),
            ("API key not valid. Please pass a valid API key.", ErrorCategory.AUTHENTICATION),
            ("Model not found: gemini-9", ErrorCategory.MODEL_ERROR),
            ("500 Internal Server Error", ErrorCategory.SERVER_ERROR),
            ("Connection reset by peer", ErrorCategory.NETWORK_ERROR),
            ("Request timed out", ErrorCategory.NETWORK_ERROR),
            ("400 Bad Request", ErrorCategory.INVALID_REQUEST),
            ("Something odd happened", ErrorCategory.UNKNOWN),
        ],
    )
    def test_message_classification(self, message, expected):
        """Test classification from the error message."""
        classified = ErrorClassifier.classify_error(Exception(message), provider="google")
        assert classified.category is expected
        assert classified.provider == "google"

    def test_status_code_classification(self):
        """Test that a numeric code attribute is used."""
        classified = ErrorClassifier.classify_error(_CodedError(503, "try later"), "google")
        assert classified.category is ErrorCategory.OVERLOADED

        classified = ErrorClassifier.classify_error(_CodedError(502, "bad gateway"), "google")
        assert classified.category is ErrorCategory.SERVER_ERROR

    def test_gemini_quota_429_is_rate_limit(self):
        """Test that a 429 is a rate limit even though it mentions quota."""
        error = errors.ClientError(429, _GEMINI_QUOTA_BODY)

        classified = ErrorClassifier.classify_error(error, "google")

        assert classified.category is ErrorCategory.RATE_LIMIT
        assert classified.skips_backoff

    @pytest.mark.parametrize(
        "code,expected",
        [
            (401, ErrorCategory.AUTHENTICATION),
            (403, ErrorCategory.AUTHENTICATION),
            (503, ErrorCategory.OVERLOADED),
        ],
    )
    def test_status_code_wins_over_message(self, code, expected):
        """Test that an explicit status code decides before message patterns."""
        classified = ErrorClassifier.classify_error(
            _CodedError(code, "Quota exceeded for metric: requests"), "google"
        )
        assert classified.category is expected

    def test_quota_message_without_code_is_billing(self):
        """Test that quota wording without a status code stays a billing issue."""
        classified = ErrorClassifier.classify_error(
            Exception("Quota exceeded for this billing account"), "google"
        )
        assert classified.category is ErrorCategory.BILLING_QUOTA

    def test_gemini_server_error(self):
        """Test a 500 from the Gemini SDK."""
        error = errors.ServerError(
            500, {"error": {"code": 500, "status": "INTERNAL", "message": "Internal error"}}
        )
        classified = ErrorClassifier.classify_error(error, "google")
        assert classified.category is ErrorCategory.SERVER_ERROR
        assert not classified.skips_backoff

    def test_builtin_timeout_is_network_error(self):
        """Test that TimeoutError is a network error."""
        classified = ErrorClassifier.classify_error(TimeoutError(), "google")
        assert classified.category is ErrorCategory.NETWORK_ERROR
        assert classified.is_retryable

    @pytest.mark.parametrize(
        "category,skips",
        [
            (ErrorCategory.OVERLOADED, True),
            (ErrorCategory.RATE_LIMIT, True),
            (ErrorCategory.SERVER_ERROR, False),
            (ErrorCategory.NETWORK_ERROR, False),
            (ErrorCategory.UNKNOWN, False),
        ],
    )
    def test_skips_backoff(self, category, skips):
        """Test that only overload and rate limits skip backoff."""
        classified = ClassifiedError(
            category=category,
            severity=ErrorSeverity.LOW,
            provider="google",
            original_error="Exception",
            message="m",
        )
        assert classified.skips_backoff is skips

    def test_to_dict_and_str(self):
        """Test serialization helpers."""
        classified = ErrorClassifier.classify_error(Exception("overloaded"), "google")
        data = classified.to_dict()
        assert data["category"] == "overloaded"
        assert data["is_retryable"] is True
        assert str(classified).startswith("[LOW] google: overloaded")
