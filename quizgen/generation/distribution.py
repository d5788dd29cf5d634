"""Per-kind count enforcement and plan-order sorting.

Both operations are no-ops for single-kind plans and leave a list that
already matches the plan untouched, so they can be re-run freely.
"""

import logging
from typing import Dict, List, Sequence

from quizgen.data.models import DistributionPlan, GeneratedQuestion, QuestionKind

logger = logging.getLogger(__name__)


def _kind_counts(
    questions: Sequence[GeneratedQuestion], plan: DistributionPlan
) -> Dict[QuestionKind, int]:
    counts = {kind: 0 for kind in plan.kinds}
    for question in questions:
        kind = question.kind
        if kind in counts:
            counts[kind] += 1
    return counts


def _format_counts(counts: Dict[QuestionKind, int]) -> str:
    return ", ".join(f"{kind.value}={count}" for kind, count in counts.items())


def enforce_distribution(
    questions: List[GeneratedQuestion], plan: DistributionPlan
) -> List[GeneratedQuestion]:
    """Retag questions so each planned kind has exactly its planned count.

    Questions without a planned tag, and the surplus of any over-represented
    kind (taken from the tail), are reassigned to under-represented kinds in
    plan order. Questions already tagged within quota are left alone. The list
    is retagged in place and returned.

    Args:
        questions: Questions to retag; at most ``plan.total`` long
        plan: Target distribution
    """
    if not plan.is_mixed:
        return questions

    counts = _kind_counts(questions, plan)
    logger.debug(f"Counts before enforcement: {_format_counts(counts)}")

    queue: List[GeneratedQuestion] = []
    for question in questions:
        kind = question.kind
        if kind in counts:
            # Canonicalize tags such as "Multiple choice"
            question.suggested_type = kind.value
        else:
            queue.append(question)

    for allocation in plan.allocations:
        excess = counts[allocation.kind] - allocation.count
        if excess > 0:
            matches = [q for q in questions if q.kind is allocation.kind]
            queue.extend(reversed(matches[-excess:]))
            counts[allocation.kind] = allocation.count

    if not queue:
        return questions

    position = 0
    for question in queue:
        while (
            position < len(plan.allocations)
            and counts[plan.allocations[position].kind]
            >= plan.allocations[position].count
        ):
            position += 1
        if position == len(plan.allocations):
            logger.warning(
                f"{len(questions)} questions exceed the planned total {plan.total}; "
                "leaving surplus tags unchanged"
            )
            break
        target = plan.allocations[position].kind
        question.suggested_type = target.value
        counts[target] += 1

    logger.debug(f"Counts after enforcement: {_format_counts(counts)}")
    return questions


def sort_by_plan_order(
    questions: List[GeneratedQuestion], plan: DistributionPlan
) -> List[GeneratedQuestion]:
    """Stable-sort questions into plan order; unknown kinds go last."""
    if not plan.is_mixed:
        return questions
    return sorted(questions, key=lambda q: plan.index_of(q.kind))


def normalize_single_kind(
    questions: List[GeneratedQuestion], plan: DistributionPlan
) -> List[GeneratedQuestion]:
    """Stamp the plan's only kind on untagged questions of a single-kind plan."""
    if plan.is_mixed:
        return questions
    for question in questions:
        if question.kind is None:
            question.suggested_type = plan.primary_kind.value
    return questions


def planned_kind_at(plan: DistributionPlan, position: int) -> QuestionKind:
    """Kind the plan expects at 0-based ``position``; past the end, the last kind."""
    remaining = position
    for allocation in plan.allocations:
        if remaining < allocation.count:
            return allocation.kind
        remaining -= allocation.count
    return plan.allocations[-1].kind


def first_deficit_kind(
    questions: Sequence[GeneratedQuestion], plan: DistributionPlan
) -> QuestionKind:
    """First planned kind still below its count, in plan order."""
    counts = _kind_counts(questions, plan)
    for allocation in plan.allocations:
        if counts[allocation.kind] < allocation.count:
            return allocation.kind
    return plan.allocations[0].kind
