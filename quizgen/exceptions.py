"""Exception hierarchy for the question generation service.

Errors fall into four groups:

- ``ConfigurationError``: the process cannot serve requests at all
  (e.g. no API credentials). Raised at startup, never per request.
- ``RequestValidationError``: the caller sent an invalid request. Reported
  immediately as a client error; the model is never called.
- ``ExtractionError``: the model answered but the answer could not be turned
  into a usable question list. Signals the orchestrator to retry.
- ``GenerationError``: the retry budget is exhausted without a usable result.

Provider failures are wrapped separately in
``quizgen.providers.base.LLMProviderError``.
"""

from typing import Optional


class QuizGenError(Exception):
    """Base class for all service errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(QuizGenError):
    """Raised when the service is misconfigured."""


class RequestValidationError(QuizGenError):
    """Raised when a generation request is invalid."""


class PlanValidationError(RequestValidationError):
    """Raised when a type distribution cannot be planned from the request."""


class ExtractionError(QuizGenError):
    """Raised when a model response cannot be turned into questions.

    Attributes:
        layer: Name of the repair layer that produced the failure, if any
    """

    def __init__(self, message: str, layer: Optional[str] = None):
        self.layer = layer
        super().__init__(message)


class TooManyPlaceholdersError(ExtractionError):
    """Raised when extracted output is mostly placeholder content.

    Attributes:
        real_count: Number of non-placeholder questions found
        required: Minimum number of non-placeholder questions needed
    """

    def __init__(self, real_count: int, required: float, layer: Optional[str] = None):
        self.real_count = real_count
        self.required = required
        super().__init__(
            f"Too many placeholder questions ({real_count} real, "
            f"{required:g} required); output was probably truncated, retry needed",
            layer=layer,
        )


class GenerationError(QuizGenError):
    """Raised when generation fails after exhausting all retries.

    Attributes:
        attempts: Number of model calls made
        last_error: The error that ended the final attempt
    """

    def __init__(
        self,
        message: str,
        attempts: int = 0,
        last_error: Optional[BaseException] = None,
    ):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(message)
