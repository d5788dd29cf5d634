"""Turn a request's type selection into an exact per-kind question plan."""

import logging
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from quizgen.data.models import (
    DistributionPlan,
    ExerciseType,
    GenerationRequest,
    QuestionKind,
    TypeAllocation,
)
from quizgen.exceptions import PlanValidationError

logger = logging.getLogger(__name__)

KindLike = Union[QuestionKind, str]


def _as_kind(tag: KindLike) -> QuestionKind:
    if isinstance(tag, QuestionKind):
        return tag
    kind = QuestionKind.from_tag(tag)
    if kind is None:
        raise PlanValidationError(f"Unknown question type: {tag!r}")
    return kind


def _plan(allocations: Iterable[Tuple[QuestionKind, int]], total: int) -> DistributionPlan:
    return DistributionPlan(
        allocations=tuple(TypeAllocation(kind=k, count=c) for k, c in allocations),
        total=total,
    )


def plan_from_quantities(
    type_quantities: Mapping[KindLike, int], num_questions: int
) -> DistributionPlan:
    """Build a plan from an explicit kind -> count map.

    Non-positive counts are dropped; the map's iteration order is kept.

    Raises:
        PlanValidationError: If a tag is unknown, nothing remains, or the
            counts do not sum to ``num_questions``
    """
    allocations: List[Tuple[QuestionKind, int]] = []
    for tag, count in type_quantities.items():
        kind = _as_kind(tag)
        if count > 0:
            allocations.append((kind, count))

    if not allocations:
        raise PlanValidationError("At least one question type must be selected")

    total = sum(count for _, count in allocations)
    if total != num_questions:
        raise PlanValidationError(
            f"Sum of type quantities ({total}) does not match "
            f"num_questions ({num_questions})"
        )
    return _plan(allocations, num_questions)


def plan_even_split(
    selected_types: Sequence[KindLike], num_questions: int
) -> DistributionPlan:
    """Split ``num_questions`` across the selected kinds as evenly as possible.

    The first ``num_questions % k`` kinds get one extra question. Kinds that
    would get zero questions (more kinds than questions) are left out.

    Raises:
        PlanValidationError: If no kinds are given, a tag is unknown, or a kind
            is repeated
    """
    kinds = [_as_kind(tag) for tag in selected_types]
    if not kinds:
        raise PlanValidationError("At least one question type must be selected")
    if len(set(kinds)) != len(kinds):
        raise PlanValidationError(
            f"Duplicate question types selected: {[k.value for k in kinds]}"
        )

    base, remainder = divmod(num_questions, len(kinds))
    allocations = [
        (kind, base + (1 if index < remainder else 0))
        for index, kind in enumerate(kinds)
    ]
    return _plan([(k, c) for k, c in allocations if c > 0], num_questions)


def build_distribution_plan(
    num_questions: int,
    type_quantities: Optional[Mapping[KindLike, int]] = None,
    selected_types: Optional[Sequence[KindLike]] = None,
    exercise_type: Optional[Union[ExerciseType, str]] = None,
) -> DistributionPlan:
    """Resolve the question-type distribution for one exercise.

    Precedence: explicit quantities, then an even split over selected kinds,
    then the legacy exercise type.

    Args:
        num_questions: Total number of questions requested
        type_quantities: Optional explicit kind -> count map
        selected_types: Optional kinds to split evenly across
        exercise_type: Optional legacy exercise-level type

    Returns:
        A validated DistributionPlan

    Raises:
        PlanValidationError: If the inputs cannot produce a valid plan
    """
    if num_questions < 1:
        raise PlanValidationError("num_questions must be at least 1")

    if type_quantities:
        plan = plan_from_quantities(type_quantities, num_questions)
    elif selected_types:
        plan = plan_even_split(selected_types, num_questions)
    elif exercise_type is not None:
        try:
            legacy = ExerciseType(exercise_type)
        except ValueError as e:
            raise PlanValidationError(f"Unknown exercise type: {exercise_type!r}") from e
        plan = plan_even_split(legacy.default_kinds(), num_questions)
    else:
        raise PlanValidationError("At least one question type must be selected")

    logger.info(f"Distribution plan: {plan.describe()}")
    return plan


def plan_for_request(request: GenerationRequest) -> DistributionPlan:
    """Build the distribution plan for a validated request."""
    return build_distribution_plan(
        num_questions=request.num_questions,
        type_quantities=request.type_quantities,
        selected_types=request.selected_types,
        exercise_type=request.exercise_type,
    )
