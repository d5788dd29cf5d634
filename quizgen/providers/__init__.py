"""LLM provider integrations."""

from .base import BaseLLMProvider, LLMProviderError
from .google_provider import GoogleProvider

__all__ = ["BaseLLMProvider", "GoogleProvider", "LLMProviderError"]
