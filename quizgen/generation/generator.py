"""Exercise generation orchestrator.

Drives one request end to end: plan, prompt, then a sequential attempt loop
that rotates credentials, calls the model and extracts questions, followed
by final ordering and id assignment.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from quizgen.config.config import settings
from quizgen.data.models import (
    DistributionPlan,
    FinalizedQuestion,
    GeneratedExercise,
    GeneratedQuestion,
    GenerationRequest,
    QuestionKind,
    QuestionTypeCatalog,
)
from quizgen.exceptions import ExtractionError, GenerationError
from quizgen.generation.answers import parse_option
from quizgen.generation.distribution import enforce_distribution, sort_by_plan_order
from quizgen.generation.extraction import (
    ExtractionContext,
    ExtractionPolicy,
    ResponseExtractor,
)
from quizgen.generation.planner import plan_for_request
from quizgen.generation.prompts import build_generation_prompt, detect_language
from quizgen.infrastructure.credentials import CredentialPool
from quizgen.infrastructure.retry import RetryPolicy
from quizgen.providers.base import BaseLLMProvider, LLMProviderError
from quizgen.providers.google_provider import GoogleProvider

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[str], BaseLLMProvider]


class IdSequence:
    """Synthesized ids for one generated exercise.

    The seed is the exercise id; questions get ``seed + 1``, ``seed + 2``, ...
    Ids are unique within one response only.
    """

    def __init__(self, seed: int):
        self.seed = seed
        self._issued = 0

    def next(self) -> int:
        self._issued += 1
        return self.seed + self._issued


def _millis_seed() -> int:
    return time.time_ns() // 1_000_000


class ExerciseGenerator:
    """Generates exercises from validated requests."""

    def __init__(
        self,
        credentials: CredentialPool,
        provider_factory: Optional[ProviderFactory] = None,
        retry_policy: Optional[RetryPolicy] = None,
        extractor: Optional[ResponseExtractor] = None,
        timeout: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
        id_seed: Callable[[], int] = _millis_seed,
    ):
        """Initialize the generator.

        Args:
            credentials: Pool of API keys rotated per attempt
            provider_factory: Builds a provider for a key; defaults to Gemini
            retry_policy: Attempt budget and backoff; defaults from settings
            extractor: Response extractor; defaults from settings
            timeout: Per-call timeout in seconds; defaults from settings
            max_output_tokens: Output token bound per call; defaults from settings
            id_seed: Returns the seed for synthesized ids
        """
        self.credentials = credentials
        self.provider_factory = provider_factory or self._default_provider
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self.extractor = extractor or ResponseExtractor(ExtractionPolicy.from_settings())
        self.timeout = timeout if timeout is not None else settings.llm_timeout_seconds
        self.max_output_tokens = max_output_tokens or settings.max_output_tokens
        self.id_seed = id_seed
        self._providers: Dict[str, BaseLLMProvider] = {}

    @classmethod
    def from_settings(cls) -> "ExerciseGenerator":
        """Build a generator from environment keys and application settings."""
        return cls(credentials=CredentialPool.from_settings())

    @staticmethod
    def _default_provider(api_key: str) -> BaseLLMProvider:
        return GoogleProvider(api_key=api_key, model=settings.gemini_model)

    def _provider_for(self, api_key: str) -> BaseLLMProvider:
        provider = self._providers.get(api_key)
        if provider is None:
            provider = self.provider_factory(api_key)
            self._providers[api_key] = provider
        return provider

    async def generate(self, request: GenerationRequest) -> GeneratedExercise:
        """Generate a complete exercise for ``request``.

        Raises:
            PlanValidationError: If the type selection cannot be planned
            GenerationError: If every attempt fails
        """
        plan = plan_for_request(request)
        language = request.language or detect_language(request.lesson_name)
        catalog = QuestionTypeCatalog()
        prompt = build_generation_prompt(
            plan=plan,
            difficulty=request.difficulty,
            lesson_name=request.lesson_name,
            num_answers=request.effective_num_answers,
            language=language,
            catalog=catalog,
        )
        context = ExtractionContext(
            plan=plan,
            num_answers=request.effective_num_answers,
            language=language,
        )

        logger.info(
            f"Generating '{request.exercise_name}': {plan.describe()} "
            f"({request.difficulty.value}, language={language.value})"
        )
        questions = await self.generate_questions(
            prompt.text, context, temperature=request.difficulty.temperature
        )
        return self._assemble(request, plan, catalog, questions)

    async def generate_questions(
        self,
        prompt: str,
        context: ExtractionContext,
        temperature: float,
    ) -> List[GeneratedQuestion]:
        """Run the attempt loop until a full question list is extracted.

        Overloaded and rate-limited calls are retried at once on the next key;
        other provider errors and timeouts back off first. Extraction failures
        and short results are retried at once.

        Returns:
            Questions in plan order; shorter than planned only when retries
            ran out after a short but successful extraction

        Raises:
            GenerationError: If no attempt produced a usable extraction
        """
        max_attempts = self.retry_policy.max_attempts
        last_error: Optional[BaseException] = None
        last_short: Optional[List[GeneratedQuestion]] = None

        for attempt in range(max_attempts):
            key_index, api_key = self.credentials.next()
            provider = self._provider_for(api_key)
            logger.info(f"Attempt {attempt + 1}/{max_attempts} using key index {key_index}")

            try:
                text = await asyncio.wait_for(
                    provider.generate_completion_async(
                        prompt,
                        temperature=temperature,
                        max_tokens=self.max_output_tokens,
                    ),
                    timeout=self.timeout,
                )
            except LLMProviderError as e:
                last_error = e
                if e.classified_error.skips_backoff:
                    logger.warning(
                        f"Attempt {attempt + 1} hit {e.classified_error.category.value}; "
                        "retrying with the next key"
                    )
                    continue
                logger.warning(f"Attempt {attempt + 1} failed: {e}")
                await self._backoff(attempt)
                continue
            except asyncio.TimeoutError as e:
                last_error = e
                logger.warning(f"Attempt {attempt + 1} timed out after {self.timeout}s")
                await self._backoff(attempt)
                continue

            logger.debug(f"Raw model output: {text}")

            try:
                questions = self.extractor.extract(text, context)
            except ExtractionError as e:
                last_error = e
                logger.warning(f"Attempt {attempt + 1} extraction failed: {e}")
                continue

            if len(questions) < context.total:
                last_short = questions
                logger.warning(
                    f"Attempt {attempt + 1} extracted {len(questions)} of "
                    f"{context.total} questions; retrying"
                )
                continue

            return self._final_order(questions, context.plan)

        if last_short is not None:
            logger.warning(
                f"Retries exhausted; proceeding with {len(last_short)} of "
                f"{context.total} questions"
            )
            return self._final_order(last_short, context.plan)

        raise GenerationError(
            f"Failed to generate questions after {max_attempts} attempts: {last_error}",
            attempts=max_attempts,
            last_error=last_error,
        )

    async def _backoff(self, attempt: int) -> None:
        if attempt + 1 >= self.retry_policy.max_attempts:
            return
        delay = self.retry_policy.backoff_delay(attempt)
        logger.info(f"Backing off {delay:.2f}s before the next attempt")
        await asyncio.sleep(delay)

    @staticmethod
    def _final_order(
        questions: List[GeneratedQuestion], plan: DistributionPlan
    ) -> List[GeneratedQuestion]:
        return sort_by_plan_order(enforce_distribution(questions, plan), plan)

    def _assemble(
        self,
        request: GenerationRequest,
        plan: DistributionPlan,
        catalog: QuestionTypeCatalog,
        questions: List[GeneratedQuestion],
    ) -> GeneratedExercise:
        ids = IdSequence(self.id_seed())
        main_kind = QuestionKind.MULTIPLE_CHOICE if plan.is_mixed else plan.primary_kind
        main_type = catalog.resolve(main_kind.value)

        finalized = [
            finalize_question(question, order, ids.next(), plan, catalog)
            for order, question in enumerate(questions, start=1)
        ]

        if request.exercise_type is not None:
            exercise_type = request.exercise_type.value
        else:
            exercise_type = "mixed" if plan.is_mixed else plan.primary_kind.value

        any_choice = any(kind.is_choice_based for kind in plan.kinds)
        exercise = GeneratedExercise(
            id=ids.seed,
            name=request.exercise_name,
            lesson_name=request.lesson_name,
            type=exercise_type,
            question_type_id=main_type.id,
            num_questions=len(finalized),
            num_answers=request.effective_num_answers if any_choice else None,
            difficulty=request.difficulty,
            user_id=request.user_id,
            created_at=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
            questions=finalized,
        )
        logger.info(f"Generated {len(finalized)} questions: {_kind_summary(finalized)}")
        return exercise


def finalize_question(
    question: GeneratedQuestion,
    order_num: int,
    question_id: int,
    plan: DistributionPlan,
    catalog: QuestionTypeCatalog,
) -> FinalizedQuestion:
    """Resolve type id and answer options for one extracted question."""
    kind = question.kind
    tag = kind.value if kind else (question.suggested_type or plan.primary_kind.value)
    record = catalog.resolve(tag)

    if kind is QuestionKind.OPEN_ENDED or not question.answers:
        answers = None
    else:
        answers = [parse_option(raw) for raw in question.answers]

    return FinalizedQuestion(
        id=question_id,
        order_num=order_num,
        question_type_id=record.id,
        question_type=tag,
        question_text=question.question_text,
        emoji=question.emoji,
        explanation=question.explanation,
        answers=answers,
        model_answer=None if kind and kind.is_choice_based else question.model_answer,
    )


def _kind_summary(questions: List[FinalizedQuestion]) -> str:
    counts: Dict[str, int] = {}
    for question in questions:
        counts[question.question_type] = counts.get(question.question_type, 0) + 1
    return ", ".join(f"{tag}={count}" for tag, count in counts.items())
