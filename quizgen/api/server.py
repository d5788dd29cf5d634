"""
HTTP server for exercise generation.

Validates the inbound request, runs the generation pipeline and renders the
generated exercise. Invalid requests get a 400 and never reach the model;
generation failures get a 500.

Run with:
  python -m quizgen.api.server
"""
import logging
import time
import uuid
from typing import Any, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError as BodyValidationError
from fastapi.responses import JSONResponse

from quizgen.config.config import settings
from quizgen.data.models import GeneratedExercise, GenerationRequest
from quizgen.exceptions import (
    ConfigurationError,
    GenerationError,
    RequestValidationError,
)
from quizgen.generation.generator import ExerciseGenerator
from quizgen.logging_config import request_id_context

logger = logging.getLogger(__name__)

app = FastAPI(title="QuizGen Exercise Generation Service")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _format_validation_errors(errors: List[Any]) -> str:
    messages = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = str(error.get("msg", "Invalid value")).removeprefix("Value error, ")
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages) or "Invalid request"


def get_generator() -> ExerciseGenerator:
    """Return the process-wide generator, building it on first use."""
    generator = getattr(app.state, "generator", None)
    if generator is None:
        generator = ExerciseGenerator.from_settings()
        app.state.generator = generator
    return generator


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Tag log entries with a request ID and log each request."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    token = request_id_context.set(request_id)
    start = time.perf_counter()
    try:
        response = await call_next(request)
    finally:
        request_id_context.reset(token)
    duration_ms = round((time.perf_counter() - start) * 1000, 2)
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code}",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        },
    )
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(BodyValidationError)
async def body_validation_error(request: Request, exc: BodyValidationError):
    """Report malformed request bodies as 400 with a readable message."""
    message = _format_validation_errors(exc.errors())
    logger.info(f"Rejected invalid request: {message}")
    return _error(400, message)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "quizgen"}


@app.post(
    "/exercises/generate",
    response_model=GeneratedExercise,
    response_model_exclude_none=True,
)
async def generate_exercise(request: GenerationRequest):
    """
    Generate an exercise for a lesson.

    Returns:
        The generated exercise, 400 for an invalid type selection, or 500 if
        generation fails
    """
    try:
        generator = get_generator()
    except ConfigurationError as e:
        logger.error(f"Generator is not configured: {e}")
        return _error(500, e.message)

    try:
        return await generator.generate(request)
    except RequestValidationError as e:
        logger.info(f"Rejected request: {e}")
        return _error(400, e.message)
    except GenerationError as e:
        logger.error(f"Generation failed after {e.attempts} attempts: {e}")
        return _error(500, e.message)


def main() -> None:
    """Run the server with uvicorn, failing fast on missing credentials."""
    import uvicorn

    from quizgen.logging_config import setup_logging

    setup_logging()
    get_generator()
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
