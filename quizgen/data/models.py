"""Data models for exercise generation.

Request and response models are pydantic models so the HTTP layer can
validate and serialize them directly. Questions coming back from the model
are untrusted: ``GeneratedQuestion.from_raw`` accepts any JSON value and
coerces it into a lenient shape instead of failing validation.
"""

import enum
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_NUM_ANSWERS = 4
MIN_NUM_ANSWERS = 2
MAX_NUM_ANSWERS = 5
MAX_QUESTIONS = 50


class QuestionKind(str, enum.Enum):
    """Question type tags understood by the generation pipeline."""

    MULTIPLE_CHOICE = "multiple_choice"  # Exactly one correct option
    TRUE_FALSE = "true_false"
    MULTIPLE_SELECT = "multiple_select"  # More than one correct option
    OPEN_ENDED = "open_ended"

    @property
    def is_choice_based(self) -> bool:
        """Whether questions of this kind carry enumerable answer options."""
        return self is not QuestionKind.OPEN_ENDED

    @property
    def allows_multiple_correct(self) -> bool:
        """Whether more than one option may be marked correct."""
        return self is QuestionKind.MULTIPLE_SELECT

    @property
    def label(self) -> str:
        """Human-readable name, e.g. "multiple choice"."""
        return self.value.replace("_", " ")

    @classmethod
    def from_tag(cls, tag: Optional[str]) -> Optional["QuestionKind"]:
        """Resolve a free-form tag ("Multiple choice", "true_false") to a kind.

        Returns:
            The matching kind, or None if the tag is empty or unknown
        """
        if not tag:
            return None
        normalized = tag.strip().lower().replace(" ", "_").replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            return None


class DifficultyLevel(str, enum.Enum):
    """Difficulty levels for generated exercises."""

    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"

    @classmethod
    def _missing_(cls, value: object) -> Optional["DifficultyLevel"]:
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return None

    @property
    def temperature(self) -> float:
        """Sampling temperature; harder exercises get more varied output."""
        return _DIFFICULTY_TEMPERATURES[self]


_DIFFICULTY_TEMPERATURES = {
    DifficultyLevel.EASY: 0.4,
    DifficultyLevel.MEDIUM: 0.6,
    DifficultyLevel.HARD: 0.8,
}


class ExerciseType(str, enum.Enum):
    """Legacy exercise-level type selector."""

    MULTIPLE_CHOICE = "multiple_choice"
    OPEN_ENDED = "open_ended"
    MIXED = "mixed"
    TRUE_FALSE = "true_false"
    MULTIPLE_SELECT = "multiple_select"

    def default_kinds(self) -> List[QuestionKind]:
        """Kinds implied by the exercise type when no selection is given."""
        if self is ExerciseType.MIXED:
            return [QuestionKind.MULTIPLE_CHOICE]
        return [QuestionKind(self.value)]


class LanguageMode(str, enum.Enum):
    """Language used for the prompt and for placeholder content."""

    VIETNAMESE = "vi"
    ENGLISH = "en"


class GenerationRequest(BaseModel):
    """Validated request to generate an exercise."""

    model_config = ConfigDict(populate_by_name=True)

    exercise_name: str
    lesson_name: str
    num_questions: int = Field(ge=1, le=MAX_QUESTIONS)
    num_answers: Optional[int] = Field(
        default=None, ge=MIN_NUM_ANSWERS, le=MAX_NUM_ANSWERS
    )
    difficulty: DifficultyLevel = DifficultyLevel.MEDIUM
    type_quantities: Optional[Dict[QuestionKind, int]] = None
    selected_types: Optional[List[QuestionKind]] = None
    exercise_type: Optional[ExerciseType] = Field(default=None, alias="type")
    user_id: int = Field(gt=0)
    language: Optional[LanguageMode] = None

    @field_validator("exercise_name", "lesson_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @model_validator(mode="after")
    def _check_type_selection(self) -> "GenerationRequest":
        if self.selected_types is not None:
            if not self.selected_types:
                raise ValueError("At least one question type must be selected")
            duplicates = [k.value for k, n in Counter(self.selected_types).items() if n > 1]
            if duplicates:
                raise ValueError(f"Duplicate selected types: {duplicates}")

        if (
            self.type_quantities is None
            and self.selected_types is None
            and self.exercise_type is None
        ):
            raise ValueError("At least one question type must be selected")

        if self.type_quantities is not None:
            total = sum(count for count in self.type_quantities.values() if count > 0)
            if total != self.num_questions:
                raise ValueError(
                    f"Sum of type_quantities ({total}) does not match "
                    f"num_questions ({self.num_questions})"
                )
        return self

    @property
    def effective_num_answers(self) -> int:
        """Option count for single-correct and multi-correct questions."""
        return self.num_answers or DEFAULT_NUM_ANSWERS


class TypeAllocation(BaseModel):
    """Number of questions planned for one kind."""

    model_config = ConfigDict(frozen=True)

    kind: QuestionKind
    count: int = Field(ge=1)


class DistributionPlan(BaseModel):
    """Ordered per-kind question counts; order is the output order."""

    model_config = ConfigDict(frozen=True)

    allocations: Tuple[TypeAllocation, ...]
    total: int = Field(ge=1)

    @model_validator(mode="after")
    def _check_invariants(self) -> "DistributionPlan":
        if not self.allocations:
            raise ValueError("A distribution plan needs at least one allocation")
        kinds = [a.kind for a in self.allocations]
        if len(set(kinds)) != len(kinds):
            raise ValueError(f"Each kind may appear only once: {kinds}")
        planned = sum(a.count for a in self.allocations)
        if planned != self.total:
            raise ValueError(
                f"Planned counts sum to {planned}, expected {self.total}"
            )
        return self

    @property
    def kinds(self) -> List[QuestionKind]:
        return [a.kind for a in self.allocations]

    @property
    def is_mixed(self) -> bool:
        """True when more than one kind is planned."""
        return len(self.allocations) > 1

    @property
    def primary_kind(self) -> QuestionKind:
        return self.allocations[0].kind

    def count_for(self, kind: QuestionKind) -> int:
        for allocation in self.allocations:
            if allocation.kind is kind:
                return allocation.count
        return 0

    def index_of(self, kind: Optional[QuestionKind]) -> int:
        """Position of ``kind`` in the plan; unknown kinds sort last."""
        for index, allocation in enumerate(self.allocations):
            if allocation.kind is kind:
                return index
        return len(self.allocations)

    def describe(self, separator: str = " ") -> str:
        """Render the plan as e.g. "3 multiple_choice, 2 true_false"."""
        return ", ".join(
            f"{a.count}{separator}{a.kind.value}" for a in self.allocations
        )


class GeneratedQuestion(BaseModel):
    """A question as returned by the model, after lenient coercion."""

    question_text: str = ""
    emoji: str = ""
    explanation: str = ""
    answers: Optional[List[str]] = None
    model_answer: Optional[str] = None
    suggested_type: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "GeneratedQuestion":
        """Build a question from an untrusted JSON object.

        Non-string scalars are stringified; a non-list ``answers`` is dropped.
        """
        answers = raw.get("answers")
        return cls(
            question_text=_as_text(raw.get("question_text")),
            emoji=_as_text(raw.get("emoji")),
            explanation=_as_text(raw.get("explanation")),
            answers=(
                [_as_text(a) for a in answers if a is not None]
                if isinstance(answers, list)
                else None
            ),
            model_answer=_as_optional_text(raw.get("model_answer")),
            suggested_type=_as_optional_text(raw.get("suggested_type")),
        )

    @property
    def kind(self) -> Optional[QuestionKind]:
        return QuestionKind.from_tag(self.suggested_type)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _as_optional_text(value: Any) -> Optional[str]:
    text = _as_text(value).strip()
    return text or None


class AnswerOption(BaseModel):
    """A single answer option with its correctness resolved."""

    model_config = ConfigDict(frozen=True)

    text: str
    is_correct: bool


class FinalizedQuestion(BaseModel):
    """A question ready to hand back to the caller."""

    model_config = ConfigDict(frozen=True)

    id: int
    order_num: int = Field(ge=1)
    question_type_id: int
    question_type: str
    question_text: str
    emoji: str
    explanation: str
    answers: Optional[List[AnswerOption]] = None
    model_answer: Optional[str] = None


class QuestionTypeRecord(BaseModel):
    """A question type known to the catalogue."""

    model_config = ConfigDict(frozen=True)

    id: int
    type_name: str
    icon: Optional[str] = None
    description: Optional[str] = None
    is_multiple_choice: bool


_DEFAULT_TYPE_RECORDS = (
    QuestionTypeRecord(
        id=1,
        type_name="multiple choice",
        icon="🔢",
        description="Multiple choice questions",
        is_multiple_choice=True,
    ),
    QuestionTypeRecord(
        id=2,
        type_name="true false",
        icon="✅",
        description="True/False questions",
        is_multiple_choice=True,
    ),
    QuestionTypeRecord(
        id=3,
        type_name="multiple select",
        icon="📝",
        description="Multiple select questions",
        is_multiple_choice=True,
    ),
    QuestionTypeRecord(
        id=4,
        type_name="open ended",
        icon="❓",
        description="Open-ended questions",
        is_multiple_choice=False,
    ),
)


class QuestionTypeCatalog:
    """Maps type tags to type ids.

    Each generation run gets its own catalogue; tags the catalogue does not
    know are given the next free synthetic id for the rest of that run.
    """

    def __init__(self, records: Iterable[QuestionTypeRecord] = _DEFAULT_TYPE_RECORDS):
        self._records: List[QuestionTypeRecord] = list(records)

    @property
    def records(self) -> List[QuestionTypeRecord]:
        return list(self._records)

    def find(self, tag: str) -> Optional[QuestionTypeRecord]:
        wanted = tag.strip().lower()
        spaced = wanted.replace("_", " ")
        for record in self._records:
            name = record.type_name.lower()
            if name == spaced or name == wanted:
                return record
        return None

    def resolve(self, tag: str) -> QuestionTypeRecord:
        """Return the record for ``tag``, registering it if unknown."""
        record = self.find(tag)
        if record is not None:
            return record

        kind = QuestionKind.from_tag(tag)
        record = QuestionTypeRecord(
            id=max((r.id for r in self._records), default=0) + 1,
            type_name=tag.strip(),
            is_multiple_choice=kind.is_choice_based if kind else False,
        )
        self._records.append(record)
        return record

    def describe(self) -> str:
        """Render as "1: multiple choice; 2: true false; ..." for prompts."""
        return "; ".join(f"{r.id}: {r.type_name}" for r in self._records)


class GeneratedExercise(BaseModel):
    """Response envelope for a generated exercise."""

    id: int
    name: str
    lesson_name: str
    type: str
    question_type_id: int
    num_questions: int
    num_answers: Optional[int] = None
    difficulty: DifficultyLevel
    user_id: int
    created_at: str
    questions: List[FinalizedQuestion]
