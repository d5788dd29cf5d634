"""Tests for the Gemini provider integration."""

from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest

from quizgen.infrastructure.error_classifier import ErrorCategory
from quizgen.providers.base import LLMProviderError
from quizgen.providers.google_provider import GoogleProvider


@pytest.fixture
def api_key():
    return "test-gemini-key"


def _response(text):
    response = Mock()
    response.text = text
    return response


class TestGoogleProvider:
    """Test suite for GoogleProvider."""

    @patch("quizgen.providers.google_provider.genai.Client")
    def test_initialization(self, mock_client_class, api_key):
        """Test that provider initializes correctly."""
        provider = GoogleProvider(api_key=api_key, model="gemini-2.5-pro")

        assert provider.api_key == api_key
        assert provider.model == "gemini-2.5-pro"
        assert provider.client is mock_client_class.return_value
        assert provider.get_provider_name() == "google"
        mock_client_class.assert_called_once_with(api_key=api_key)

    @patch("quizgen.providers.google_provider.genai.Client")
    def test_default_model(self, mock_client_class, api_key):
        """Test that default model is set correctly."""
        provider = GoogleProvider(api_key=api_key)

        assert provider.model == "gemini-2.5-flash"

    @pytest.mark.asyncio
    @patch("quizgen.providers.google_provider.genai.Client")
    async def test_generate_completion_async_success(self, mock_client_class, api_key):
        """Test successful text completion generation."""
        mock_client = MagicMock()
        mock_client_class.return_value = mock_client
        mock_client.aio.models.generate_content = AsyncMock(
            return_value=_response('[{"a": 1}]')
        )

        provider = GoogleProvider(api_key=api_key)
        result = await provider.generate_completion_async(
            "prompt", temperature=0.4, max_tokens=8000
        )

        assert result == '[{"a": 1}]'
        mock_client.aio.models.generate_content.assert_awaited_once()
        mock_client.models.generate_content.assert_not_called()
        call_kwargs = mock_client.aio.models.generate_content.call_args.kwargs
        assert call_kwargs["model"] == "gemini-2.5-flash"
        assert call_kwargs["contents"] == "prompt"
        assert call_kwargs["config"].temperature == pytest.approx(0.4)
        assert call_kwargs["config"].max_output_tokens == 8000

    @pytest.mark.asyncio
    @patch("quizgen.providers.google_provider.genai.Client")
    async def test_generate_completion_async_with_kwargs(
        self, mock_client_class, api_key
    ):
        """Test that extra kwargs reach the generation config."""
        mock_client = MagicMock()
        mock_client_class.return_value = mock_client
        mock_client.aio.models.generate_content = AsyncMock(
            return_value=_response("Response")
        )

        provider = GoogleProvider(api_key=api_key)
        await provider.generate_completion_async(
            "prompt", temperature=0.5, max_tokens=500, top_p=0.9
        )

        config = mock_client.aio.models.generate_content.call_args.kwargs["config"]
        assert config.top_p == pytest.approx(0.9)

    @pytest.mark.asyncio
    @patch("quizgen.providers.google_provider.genai.Client")
    async def test_empty_response_text(self, mock_client_class, api_key):
        """Test that a response without text yields an empty string."""
        mock_client = MagicMock()
        mock_client_class.return_value = mock_client
        mock_client.aio.models.generate_content = AsyncMock(
            return_value=_response(None)
        )

        provider = GoogleProvider(api_key=api_key)

        assert await provider.generate_completion_async("prompt") == ""

    @pytest.mark.asyncio
    @patch("quizgen.providers.google_provider.genai.Client")
    async def test_generate_completion_async_api_error(
        self, mock_client_class, api_key
    ):
        """Test that API errors are classified and wrapped."""
        mock_client = MagicMock()
        mock_client_class.return_value = mock_client
        original = Exception("503 UNAVAILABLE. The model is overloaded.")
        mock_client.aio.models.generate_content = AsyncMock(side_effect=original)

        provider = GoogleProvider(api_key=api_key)

        with pytest.raises(LLMProviderError) as exc_info:
            await provider.generate_completion_async("prompt")

        assert exc_info.value.classified_error.category is ErrorCategory.OVERLOADED
        assert exc_info.value.classified_error.provider == "google"
        assert exc_info.value.original_exception is original
        assert exc_info.value.__cause__ is original

    @pytest.mark.asyncio
    @patch("quizgen.providers.google_provider.genai.Client")
    async def test_generate_completion_async_rate_limited(
        self, mock_client_class, api_key
    ):
        """Test that async errors are wrapped with their classification."""
        mock_client = MagicMock()
        mock_client_class.return_value = mock_client
        mock_client.aio.models.generate_content = AsyncMock(
            side_effect=Exception("429 RESOURCE_EXHAUSTED")
        )

        provider = GoogleProvider(api_key=api_key)

        with pytest.raises(LLMProviderError) as exc_info:
            await provider.generate_completion_async("prompt")

        assert exc_info.value.classified_error.category is ErrorCategory.RATE_LIMIT
        assert exc_info.value.classified_error.skips_backoff
