"""Pytest configuration and shared fixtures for the generation service tests."""

import json
from typing import Any, Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest

from quizgen.data.models import (
    DistributionPlan,
    GeneratedQuestion,
    LanguageMode,
    QuestionKind,
    TypeAllocation,
)
from quizgen.generation.extraction import (
    ExtractionContext,
    ExtractionPolicy,
    ResponseExtractor,
)
from quizgen.infrastructure.credentials import CredentialPool
from quizgen.infrastructure.retry import RetryPolicy


def make_plan(*allocations) -> DistributionPlan:
    """Build a plan from (kind, count) pairs."""
    return DistributionPlan(
        allocations=tuple(TypeAllocation(kind=k, count=c) for k, c in allocations),
        total=sum(c for _, c in allocations),
    )


def make_raw_question(kind: QuestionKind, index: int = 1) -> Dict[str, Any]:
    """A well-formed question object as the model would return it."""
    raw: Dict[str, Any] = {
        "question_text": f"What is the key idea of statement number {index}?",
        "emoji": "📘",
        "explanation": f"Statement {index} explains the main concept.",
        "suggested_type": kind.value,
    }
    if kind is QuestionKind.TRUE_FALSE:
        raw["answers"] = ["True (correct)", "False"]
    elif kind is QuestionKind.MULTIPLE_SELECT:
        raw["answers"] = ["Alpha (correct)", "Beta (correct)", "Gamma", "Delta"]
    elif kind is QuestionKind.MULTIPLE_CHOICE:
        raw["answers"] = ["Alpha (correct)", "Beta", "Gamma", "Delta"]
    else:
        raw["model_answer"] = "A short model answer."
    return raw


def make_question(kind: QuestionKind, index: int = 1) -> GeneratedQuestion:
    return GeneratedQuestion.from_raw(make_raw_question(kind, index))


def dump_questions(raw_questions: List[Dict[str, Any]]) -> str:
    return json.dumps(raw_questions, ensure_ascii=False)


@pytest.fixture
def mixed_plan() -> DistributionPlan:
    """Two multiple choice followed by two true/false."""
    return make_plan((QuestionKind.MULTIPLE_CHOICE, 2), (QuestionKind.TRUE_FALSE, 2))


@pytest.fixture
def true_false_plan() -> DistributionPlan:
    return make_plan((QuestionKind.TRUE_FALSE, 4))


@pytest.fixture
def extractor() -> ResponseExtractor:
    return ResponseExtractor(ExtractionPolicy(min_real_ratio=0.5, min_real_length=10))


@pytest.fixture
def english_context(mixed_plan) -> ExtractionContext:
    return ExtractionContext(plan=mixed_plan, num_answers=4, language=LanguageMode.ENGLISH)


@pytest.fixture
def credential_pool() -> CredentialPool:
    return CredentialPool(["key-a", "key-b", "key-c"])


@pytest.fixture
def fast_retry_policy() -> RetryPolicy:
    return RetryPolicy(max_retries=3, base_delay=1.0, max_delay=30.0, exponential_base=2.0)


@pytest.fixture
def mock_provider() -> MagicMock:
    """Provider whose async completion is an AsyncMock."""
    provider = MagicMock()
    provider.generate_completion_async = AsyncMock()
    return provider


@pytest.fixture
def sample_request_data() -> Dict[str, Any]:
    """A valid generation request body."""
    return {
        "exercise_name": "Passive voice practice",
        "lesson_name": "English grammar: passive voice",
        "num_questions": 4,
        "difficulty": "Easy",
        "selected_types": ["true_false"],
        "user_id": 7,
    }
