"""Tests for configuration settings."""

from unittest.mock import patch

import pytest

from quizgen.config import Settings
from quizgen.generation.extraction import ExtractionPolicy
from quizgen.infrastructure.retry import RetryPolicy


class TestGenerationConfig:
    """Tests for model and retry settings."""

    def test_defaults(self):
        """Test default values."""
        settings = Settings()
        assert settings.gemini_model == "gemini-2.5-flash"
        assert settings.max_output_tokens == 8000
        assert settings.max_retries == 3
        assert settings.retry_base_delay == pytest.approx(1.0)
        assert settings.min_real_question_ratio == pytest.approx(0.5)
        assert settings.min_real_question_length == 10

    def test_custom_values_from_env(self):
        """Test loading custom values from the environment."""
        with patch.dict(
            "os.environ",
            {
                "GEMINI_MODEL": "gemini-2.5-pro",
                "MAX_RETRIES": "5",
                "MIN_REAL_QUESTION_RATIO": "0.75",
                "PORT": "9000",
            },
            clear=False,
        ):
            settings = Settings()
            assert settings.gemini_model == "gemini-2.5-pro"
            assert settings.max_retries == 5
            assert settings.min_real_question_ratio == pytest.approx(0.75)
            assert settings.port == 9000


class TestPoliciesFromSettings:
    """Tests for building policies from settings."""

    def test_retry_policy(self):
        with patch("quizgen.infrastructure.retry.settings", Settings(max_retries=1)):
            assert RetryPolicy.from_settings().max_attempts == 2

    def test_extraction_policy(self):
        with patch(
            "quizgen.generation.extraction.settings",
            Settings(min_real_question_ratio=0.8, min_real_question_length=20),
        ):
            policy = ExtractionPolicy.from_settings()
        assert policy.min_real_ratio == pytest.approx(0.8)
        assert policy.min_real_length == 20
