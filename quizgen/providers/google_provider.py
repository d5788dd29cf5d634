"""Google Gemini provider integration."""

from typing import Any

from google import genai
from google.genai import types

from .base import BaseLLMProvider


class GoogleProvider(BaseLLMProvider):
    """Gemini integration for exercise generation."""

    def __init__(self, api_key: str, model: str = "gemini-2.5-flash"):
        """
        Initialize Google provider.

        Args:
            api_key: Gemini API key
            model: Model to use (default: gemini-2.5-flash)
        """
        super().__init__(api_key, model)
        self.client = genai.Client(api_key=api_key)

    def _build_config(
        self, temperature: float, max_tokens: int, **kwargs: Any
    ) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_tokens,
            **kwargs,
        )

    async def generate_completion_async(
        self,
        prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        **kwargs: Any,
    ) -> str:
        """
        Generate a text completion using the Gemini API.

        Args:
            prompt: The prompt to send to the model
            temperature: Sampling temperature (0.0 to 2.0)
            max_tokens: Maximum tokens to generate
            **kwargs: Additional GenerateContentConfig fields

        Returns:
            The generated text, or an empty string if the model returned none

        Raises:
            LLMProviderError: If the API call fails
        """
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=self._build_config(temperature, max_tokens, **kwargs),
            )
        except Exception as e:
            raise self._handle_api_error(e) from e

        return response.text or ""
