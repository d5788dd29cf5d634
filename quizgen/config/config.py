"""Configuration management for the question generation service."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    env: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    log_format: Optional[str] = None  # "text" or "json"; defaults by env
    port: int = 8001

    # LLM Settings
    # API keys are discovered separately (GEMINI_API_KEY_1..N or GEMINI_API_KEY),
    # see quizgen.infrastructure.credentials.
    gemini_model: str = "gemini-2.5-flash"
    max_output_tokens: int = 8000
    llm_timeout_seconds: float = 60.0

    # Retry Policy
    max_retries: int = 3  # Retries after the first attempt
    retry_base_delay: float = 1.0
    retry_max_delay: float = 30.0
    retry_exponential_base: float = 2.0

    # Extraction Policy
    min_real_question_ratio: float = 0.5  # Below this share of real questions, retry
    min_real_question_length: int = 10


# Global settings instance
settings = Settings()
