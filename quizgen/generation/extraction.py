"""Turn raw model output into exactly the planned list of questions.

Model output is often wrapped in code fences, cut off by the output token
limit, or slightly malformed. Extraction isolates the JSON array and then
tries an ordered list of strategies, each stricter input handling than the
last is lenient:

1. ``parse_direct``: strict JSON parse of the isolated array.
2. ``parse_repaired``: parse after conservative textual repairs.
3. ``salvage_objects``: parse each ``{...}`` span on its own.

A strategy's result is then enforced against the plan, sorted, padded with
placeholders and checked for plausibility. If any of that fails the next
strategy is tried.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

from quizgen.config.config import settings
from quizgen.data.models import (
    DistributionPlan,
    GeneratedQuestion,
    LanguageMode,
)
from quizgen.exceptions import ExtractionError, TooManyPlaceholdersError
from quizgen.generation.answers import (
    backfill_question,
    is_placeholder,
    placeholder_question,
    salvage_placeholder,
)
from quizgen.generation.distribution import (
    enforce_distribution,
    first_deficit_kind,
    normalize_single_kind,
    planned_kind_at,
    sort_by_plan_order,
)
from quizgen.text_utils import collapse_newlines, strip_markdown_code_blocks

logger = logging.getLogger(__name__)

_ARRAY_RE = re.compile(r"\[[\s\S]*\]")
_OBJECT_RE = re.compile(r"\{[\s\S]*?\}")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_BARE_VALUE_RE = re.compile(r":\s*([A-Za-z0-9_]+)\s*(?=[,}])")


@dataclass
class ExtractionPolicy:
    """Thresholds for accepting extracted output."""

    min_real_ratio: float = 0.5
    """Minimum share of the requested total that must be real questions."""

    min_real_length: int = 10
    """Question texts this short or shorter count as placeholders."""

    def __post_init__(self) -> None:
        if not 0.0 <= self.min_real_ratio <= 1.0:
            raise ValueError("min_real_ratio must be between 0.0 and 1.0")
        if self.min_real_length < 0:
            raise ValueError("min_real_length must be non-negative")

    @classmethod
    def from_settings(cls) -> "ExtractionPolicy":
        """Create a policy from application settings."""
        return cls(
            min_real_ratio=settings.min_real_question_ratio,
            min_real_length=settings.min_real_question_length,
        )


@dataclass(frozen=True)
class ExtractionContext:
    """Per-request inputs the extraction strategies need."""

    plan: DistributionPlan
    num_answers: Optional[int] = None
    language: LanguageMode = LanguageMode.VIETNAMESE

    @property
    def total(self) -> int:
        return self.plan.total


Strategy = Callable[[str, ExtractionContext], List[GeneratedQuestion]]
Finisher = Callable[[List[GeneratedQuestion], ExtractionContext], List[GeneratedQuestion]]


def isolate_array(text: str) -> str:
    """Cut the JSON array out of raw model output.

    Strips code fences, closes an array left open by truncation, and keeps
    the span from the first ``[`` to the last ``]``.

    Raises:
        ExtractionError: If the output contains no array at all
    """
    cleaned = strip_markdown_code_blocks(text or "").strip()
    if not cleaned.endswith("]"):
        logger.debug("Output does not end with ']'; appending one")
        cleaned += "]"

    match = _ARRAY_RE.search(cleaned)
    if match is None:
        raise ExtractionError("No JSON array found in model output", layer="isolate")
    return match.group(0)


def repair_json(text: str) -> str:
    """Apply conservative textual fixes for common JSON mistakes."""
    repaired = collapse_newlines(text)
    repaired = _TRAILING_COMMA_RE.sub(r"\1", repaired)
    return _BARE_VALUE_RE.sub(r':"\1"', repaired)


def _questions_from_payload(payload: Any, layer: str) -> List[GeneratedQuestion]:
    if not isinstance(payload, list):
        raise ExtractionError("Model output is not a JSON array", layer=layer)
    dropped = sum(1 for item in payload if not isinstance(item, dict))
    if dropped:
        logger.warning(f"Dropped {dropped} non-object item(s) from model output")
    return [GeneratedQuestion.from_raw(item) for item in payload if isinstance(item, dict)]


def parse_direct(text: str, context: ExtractionContext) -> List[GeneratedQuestion]:
    """Parse the isolated array as strict JSON."""
    # json.loads raises RecursionError on deep nesting and plain ValueError on
    # integer literals past the interpreter's digit limit
    try:
        payload = json.loads(text)
    except (ValueError, RecursionError) as e:
        raise ExtractionError(f"Invalid JSON: {e}", layer="parse_direct") from e
    return _questions_from_payload(payload, "parse_direct")


def parse_repaired(text: str, context: ExtractionContext) -> List[GeneratedQuestion]:
    """Parse the isolated array after ``repair_json``."""
    try:
        payload = json.loads(repair_json(text))
    except (ValueError, RecursionError) as e:
        raise ExtractionError(
            f"Invalid JSON after repair: {e}", layer="parse_repaired"
        ) from e
    return _questions_from_payload(payload, "parse_repaired")


def salvage_objects(text: str, context: ExtractionContext) -> List[GeneratedQuestion]:
    """Parse each object span independently.

    Spans that do not parse become numbered "auto fix" placeholders of the
    kind the plan expects at that position; spans that parse have their
    missing fields backfilled.
    """
    spans = _OBJECT_RE.findall(repair_json(text))[: context.total]
    if not spans:
        raise ExtractionError("No JSON objects found in model output", layer="salvage_objects")

    salvaged: List[GeneratedQuestion] = []
    for index, span in enumerate(spans):
        position = index + 1
        expected_kind = planned_kind_at(context.plan, len(salvaged))
        try:
            raw = json.loads(_TRAILING_COMMA_RE.sub(r"\1", span))
        except (ValueError, RecursionError):
            raw = None

        if not isinstance(raw, dict):
            logger.warning(f"Could not salvage object {position}; using a placeholder")
            salvaged.append(
                salvage_placeholder(
                    expected_kind, position, context.num_answers, context.language
                )
            )
            continue

        question = GeneratedQuestion.from_raw(raw)
        salvaged.append(
            backfill_question(
                question,
                question.kind or expected_kind,
                position,
                context.num_answers,
                context.language,
            )
        )
    return salvaged


def run_strategies(
    strategies: Sequence[Strategy],
    text: str,
    context: ExtractionContext,
    finish: Optional[Finisher] = None,
) -> List[GeneratedQuestion]:
    """Return the first strategy result that parses and survives ``finish``.

    Raises:
        ExtractionError: The last strategy's failure if every strategy fails
    """
    last_error: Optional[ExtractionError] = None
    for strategy in strategies:
        name = getattr(strategy, "__name__", repr(strategy))
        try:
            questions = strategy(text, context)
            if finish is not None:
                questions = finish(questions, context)
        except ExtractionError as e:
            if e.layer is None:
                e.layer = name
            logger.warning(f"Extraction layer '{name}' failed: {e}")
            last_error = e
            continue

        logger.debug(f"Extraction layer '{name}' produced {len(questions)} questions")
        return questions

    if last_error is None:
        raise ExtractionError("No extraction strategies configured")
    raise last_error


class ResponseExtractor:
    """Extracts, repairs and pads model output to match a plan."""

    DEFAULT_STRATEGIES: Sequence[Strategy] = (
        parse_direct,
        parse_repaired,
        salvage_objects,
    )

    def __init__(
        self,
        policy: Optional[ExtractionPolicy] = None,
        strategies: Optional[Sequence[Strategy]] = None,
    ):
        self.policy = policy or ExtractionPolicy.from_settings()
        self.strategies = tuple(strategies or self.DEFAULT_STRATEGIES)

    def extract(self, text: str, context: ExtractionContext) -> List[GeneratedQuestion]:
        """Extract exactly ``context.total`` questions from raw model output.

        Raises:
            ExtractionError: If no strategy yields a plausible result
        """
        span = isolate_array(text)
        return run_strategies(self.strategies, span, context, finish=self.finish)

    def finish(
        self, questions: List[GeneratedQuestion], context: ExtractionContext
    ) -> List[GeneratedQuestion]:
        """Enforce the plan, pad to the total and apply the plausibility gate."""
        plan = context.plan
        questions = normalize_single_kind(list(questions[: context.total]), plan)
        questions = enforce_distribution(questions, plan)
        questions = sort_by_plan_order(questions, plan)

        for position, question in enumerate(questions, start=1):
            backfill_question(
                question,
                question.kind or plan.primary_kind,
                position,
                context.num_answers,
                context.language,
            )

        while len(questions) < context.total:
            kind = first_deficit_kind(questions, plan)
            questions.append(
                placeholder_question(
                    kind, len(questions) + 1, context.num_answers, context.language
                )
            )
            questions = enforce_distribution(questions, plan)
            questions = sort_by_plan_order(questions, plan)

        self.check_plausibility(questions, context)
        return questions

    def count_real(
        self, questions: Sequence[GeneratedQuestion], language: LanguageMode
    ) -> int:
        """Number of questions that are not placeholders."""
        return sum(
            1
            for question in questions
            if not is_placeholder(question, language, self.policy.min_real_length)
        )

    def check_plausibility(
        self, questions: Sequence[GeneratedQuestion], context: ExtractionContext
    ) -> None:
        """Raise if too few questions are real model content.

        Raises:
            TooManyPlaceholdersError: If real questions fall below the ratio
        """
        real = self.count_real(questions, context.language)
        required = context.total * self.policy.min_real_ratio
        if real < required:
            raise TooManyPlaceholdersError(real_count=real, required=required)
