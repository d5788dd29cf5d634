"""Tests for the retry policy and exponential backoff."""

from unittest.mock import patch

import pytest

from quizgen.infrastructure.retry import (
    MIN_RETRY_DELAY,
    RetryPolicy,
    calculate_backoff_delay,
)


class TestRetryPolicy:
    """Tests for RetryPolicy."""

    def test_default_values(self):
        """Test the default retry constants."""
        policy = RetryPolicy()
        assert policy.max_retries == 3
        assert policy.max_attempts == 4
        assert policy.base_delay == pytest.approx(1.0)
        assert policy.max_delay == pytest.approx(30.0)
        assert policy.exponential_base == pytest.approx(2.0)

    def test_custom_values(self):
        """Test that custom values are accepted."""
        policy = RetryPolicy(max_retries=0, base_delay=0.5, max_delay=5.0, exponential_base=3.0)
        assert policy.max_attempts == 1
        assert policy.exponential_base == pytest.approx(3.0)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_retries": -1},
            {"base_delay": -0.1},
            {"base_delay": 10.0, "max_delay": 5.0},
            {"exponential_base": 0.5},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        """Test validation in __post_init__."""
        with pytest.raises(ValueError):
            RetryPolicy(**kwargs)

    def test_from_settings(self):
        """Test that the policy is built from settings."""
        with patch("quizgen.infrastructure.retry.settings") as mock_settings:
            mock_settings.max_retries = 2
            mock_settings.retry_base_delay = 0.5
            mock_settings.retry_max_delay = 10.0
            mock_settings.retry_exponential_base = 2.0

            policy = RetryPolicy.from_settings()

        assert policy.max_retries == 2
        assert policy.base_delay == pytest.approx(0.5)
        assert policy.max_delay == pytest.approx(10.0)


class TestCalculateBackoffDelay:
    """Tests for calculate_backoff_delay."""

    def test_first_attempt_delay(self):
        """Test delay for the first failed attempt."""
        delay = calculate_backoff_delay(0, base_delay=1.0, max_delay=60.0, exponential_base=2.0)
        # 1.0 with jitter +-25%
        assert 0.75 <= delay <= 1.25

    def test_delay_doubles(self):
        """Test that the delay grows exponentially."""
        delay = calculate_backoff_delay(2, base_delay=1.0, max_delay=60.0, exponential_base=2.0)
        # 1.0 * 2^2 = 4.0 with jitter +-25%
        assert 3.0 <= delay <= 5.0

    def test_max_delay_cap(self):
        """Test that the delay is capped before jitter."""
        delay = calculate_backoff_delay(10, base_delay=1.0, max_delay=30.0, exponential_base=2.0)
        assert delay <= 37.5

    def test_never_below_minimum(self):
        """Test that the delay never drops below the floor."""
        for _ in range(100):
            delay = calculate_backoff_delay(0, base_delay=0.05, max_delay=1.0, exponential_base=2.0)
            assert delay >= MIN_RETRY_DELAY

    def test_jitter_bounds(self):
        """Test jitter at both extremes."""
        with patch("quizgen.infrastructure.retry.random.uniform", return_value=1.0):
            assert calculate_backoff_delay(1, 1.0, 60.0, 2.0) == pytest.approx(2.5)
        with patch("quizgen.infrastructure.retry.random.uniform", return_value=-1.0):
            assert calculate_backoff_delay(1, 1.0, 60.0, 2.0) == pytest.approx(1.5)

    def test_policy_backoff_delay(self):
        """Test that the policy delegates with its own constants."""
        policy = RetryPolicy(base_delay=2.0, max_delay=30.0, exponential_base=2.0)
        with patch("quizgen.infrastructure.retry.random.uniform", return_value=0.0):
            assert policy.backoff_delay(1) == pytest.approx(4.0)
