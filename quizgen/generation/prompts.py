"""Prompt rendering for exercise generation.

``build_generation_prompt`` is a pure function of the plan and request
parameters. The rendered prompt pins down the output contract the extractor
relies on: a bare JSON array, one object per question, correct options
marked inline with ``(correct)``, and a ``suggested_type`` tag per object.
"""

from dataclasses import dataclass
from typing import List, Optional

from quizgen.data.models import (
    DEFAULT_NUM_ANSWERS,
    DifficultyLevel,
    DistributionPlan,
    LanguageMode,
    QuestionKind,
    QuestionTypeCatalog,
)
from quizgen.generation.answers import CORRECT_MARKER

ENGLISH_GRAMMAR_KEYWORDS = (
    "english",
    "grammar",
    "passive",
    "voice",
    "infinitive",
    "gerund",
    "ving",
    "tov",
    "tense",
    "conditional",
)


@dataclass(frozen=True)
class GenerationPrompt:
    """A rendered prompt and the JSON object shape it asks for."""

    text: str
    object_shape: str


def is_english_grammar_topic(lesson_name: str) -> bool:
    lowered = lesson_name.lower()
    return any(keyword in lowered for keyword in ENGLISH_GRAMMAR_KEYWORDS)


def detect_language(lesson_name: str) -> LanguageMode:
    """English prompts for English grammar lessons, Vietnamese otherwise."""
    if is_english_grammar_topic(lesson_name):
        return LanguageMode.ENGLISH
    return LanguageMode.VIETNAMESE


def subject_hint(lesson_name: str) -> str:
    """Coarse subject area for the lesson, used to steer the model."""
    lowered = lesson_name.lower()
    grammar = is_english_grammar_topic(lesson_name)
    if "math" in lowered or "toán" in lowered:
        return "Mathematics"
    if "english" in lowered or "tiếng anh" in lowered:
        return "English Grammar" if grammar else "English Literature"
    if "vietnamese" in lowered or "tiếng việt" in lowered:
        return "Vietnamese Literature"
    if grammar:
        return "English Grammar"
    return "General Knowledge"


def object_shape_for(plan: DistributionPlan) -> str:
    """JSON object template shown to the model for this plan."""
    if plan.is_mixed:
        tags = "|".join(kind.value for kind in plan.kinds)
        return (
            '{ "question_text": "...", "emoji": "...", '
            f'"answers"?: ["...", "... {CORRECT_MARKER}", ...], '
            '"model_answer"?: "...", "explanation": "...", '
            f'"suggested_type": "{tags}" }}'
        )

    kind = plan.primary_kind
    if kind.is_choice_based:
        return (
            '{ "question_text": "...", "emoji": "...", '
            f'"answers": ["...", "... {CORRECT_MARKER}", ...], '
            f'"explanation": "...", "suggested_type": "{kind.value}" }}'
        )
    return (
        '{ "question_text": "...", "emoji": "...", "model_answer": "...", '
        f'"explanation": "...", "suggested_type": "{kind.value}" }}'
    )


def describe_ranges(plan: DistributionPlan, language: LanguageMode) -> str:
    """Spell out which 1-based question positions belong to which kind."""
    word = "questions" if language is LanguageMode.ENGLISH else "câu"
    parts: List[str] = []
    start = 1
    for allocation in plan.allocations:
        end = start + allocation.count - 1
        span = f"{start}" if start == end else f"{start}-{end}"
        parts.append(f"{word} {span}: {allocation.kind.value}")
        start = end + 1
    return "; ".join(parts)


_KIND_RULES = {
    LanguageMode.ENGLISH: {
        QuestionKind.MULTIPLE_CHOICE: (
            '{n} short options, exactly 1 marked "{marker}".'
        ),
        QuestionKind.TRUE_FALSE: (
            'Exactly 2 options ("True", "False"), exactly 1 marked "{marker}".'
        ),
        QuestionKind.MULTIPLE_SELECT: (
            '{n} short options, MORE THAN ONE marked "{marker}".'
        ),
        QuestionKind.OPEN_ENDED: (
            'No "answers"; include a short "model_answer" as a sample response.'
        ),
    },
    LanguageMode.VIETNAMESE: {
        QuestionKind.MULTIPLE_CHOICE: (
            '{n} đáp án ngắn, đúng 1 đáp án có "{marker}".'
        ),
        QuestionKind.TRUE_FALSE: (
            'Đúng 2 đáp án ("Đúng", "Sai"), đúng 1 đáp án có "{marker}".'
        ),
        QuestionKind.MULTIPLE_SELECT: (
            '{n} đáp án ngắn, NHIỀU HƠN MỘT đáp án có "{marker}".'
        ),
        QuestionKind.OPEN_ENDED: (
            'Không có "answers"; thêm "model_answer" ngắn làm đáp án mẫu.'
        ),
    },
}

_DIFFICULTY_WORDS = {
    LanguageMode.ENGLISH: {
        DifficultyLevel.EASY: "easy",
        DifficultyLevel.MEDIUM: "medium",
        DifficultyLevel.HARD: "hard",
    },
    LanguageMode.VIETNAMESE: {
        DifficultyLevel.EASY: "dễ",
        DifficultyLevel.MEDIUM: "trung bình",
        DifficultyLevel.HARD: "khó",
    },
}

_GRAMMAR_FOCUS = (
    "FOCUS ON ENGLISH GRAMMAR EXERCISES: test rules such as passive voice "
    "formation, to-infinitive vs. gerund (-ing form), sentence transformation, "
    "error identification, or fill-in-the-blank with the correct form. Use "
    "realistic high school examples."
)


def _kind_rules(
    plan: DistributionPlan, num_answers: int, language: LanguageMode
) -> List[str]:
    rules = _KIND_RULES[language]
    lines = []
    for kind in plan.kinds:
        rule = rules[kind].format(n=num_answers, marker=CORRECT_MARKER)
        lines.append(f"- {kind.value}: {rule}" if plan.is_mixed else f"- {rule}")
    return lines


def _render_english(
    plan: DistributionPlan,
    difficulty: DifficultyLevel,
    lesson_name: str,
    num_answers: int,
    shape: str,
    type_list: str,
) -> str:
    total = plan.total
    grammar = is_english_grammar_topic(lesson_name)
    level = (
        "high school students (grades 10-12), academic English grammar"
        if grammar
        else "high school students (grades 10-12), academic language"
    )
    if plan.is_mixed:
        what = f"mixed-type questions, EXACTLY {plan.describe()}, in this order"
    elif plan.primary_kind.is_choice_based:
        what = f"{plan.primary_kind.label} questions"
    else:
        what = "open-ended questions"

    lines = [
        f"Respond with ONLY a valid JSON array of exactly {total} objects, "
        "no other text (no markdown, no code fences, no commentary). "
        "Keep the JSON compact on one line; explanation under 30 words, "
        "each answer under 5 words.",
        f"Each object: {shape}",
        f"Generate {total} SHORT {what} for {level} on the "
        f'{subject_hint(lesson_name)} topic: "{lesson_name}".',
    ]
    if grammar:
        lines.append(_GRAMMAR_FOCUS)
    lines.append("REQUIREMENTS:")
    lines.append("- Clear academic English suitable for high school.")
    lines.append("- Each question 1-2 short sentences (under 50 words).")
    lines.append('- Add a fitting "emoji" (e.g. 📝, 🔤, 📚).')
    lines.append(
        f"- Difficulty: {difficulty.value} "
        f"({_DIFFICULTY_WORDS[LanguageMode.ENGLISH][difficulty]})."
    )
    if plan.is_mixed:
        lines.append(f"- Counts per type: {plan.describe()}.")
        lines.append(f"- Order: {describe_ranges(plan, LanguageMode.ENGLISH)}.")
    lines.extend(_kind_rules(plan, num_answers, LanguageMode.ENGLISH))
    lines.append('- Add an "explanation" (under 30 words).')
    lines.append(
        f'- Always set "suggested_type" to one of: {", ".join(plan_tags(plan))} '
        f"(known types: {type_list})."
    )
    return "\n".join(lines)


def _render_vietnamese(
    plan: DistributionPlan,
    difficulty: DifficultyLevel,
    lesson_name: str,
    num_answers: int,
    shape: str,
    type_list: str,
) -> str:
    total = plan.total
    if plan.is_mixed:
        what = f"câu hỏi nhiều loại, ĐÚNG {plan.describe()}, theo thứ tự này"
    elif plan.primary_kind.is_choice_based:
        what = f"câu hỏi trắc nghiệm {plan.primary_kind.label}"
    else:
        what = "câu hỏi tự luận"

    lines = [
        f"Trả lời DUY NHẤT bằng một mảng JSON hợp lệ gồm đúng {total} object, "
        "KHÔNG thêm bất kỳ nội dung nào khác (không markdown, không code fence, "
        "không giải thích). Giữ JSON gọn trên một dòng; explanation dưới 30 chữ, "
        "mỗi đáp án dưới 5 chữ.",
        f"Mỗi object: {shape}",
        f"Tạo {total} {what} NGẮN GỌN cho học sinh THPT (lớp 10-12) về "
        f'{subject_hint(lesson_name)} "{lesson_name}".',
        "YÊU CẦU:",
        "- Ngôn ngữ học thuật, rõ ràng, phù hợp trình độ THPT.",
        "- Mỗi câu hỏi 1-2 câu ngắn (dưới 50 chữ).",
        '- Có "emoji" phù hợp (ví dụ: 📊, 🔬, 📖).',
        f"- Độ khó: {difficulty.value} "
        f"({_DIFFICULTY_WORDS[LanguageMode.VIETNAMESE][difficulty]}).",
    ]
    if plan.is_mixed:
        lines.append(f"- Số lượng theo loại: {plan.describe()}.")
        lines.append(f"- Thứ tự: {describe_ranges(plan, LanguageMode.VIETNAMESE)}.")
    lines.extend(_kind_rules(plan, num_answers, LanguageMode.VIETNAMESE))
    lines.append('- Thêm "explanation" giải thích ngắn gọn (dưới 30 chữ).')
    lines.append(
        f'- Luôn đặt "suggested_type" là một trong: {", ".join(plan_tags(plan))} '
        f"(các loại đã biết: {type_list})."
    )
    return "\n".join(lines)


def plan_tags(plan: DistributionPlan) -> List[str]:
    return [kind.value for kind in plan.kinds]


def build_generation_prompt(
    plan: DistributionPlan,
    difficulty: DifficultyLevel,
    lesson_name: str,
    num_answers: Optional[int] = None,
    language: Optional[LanguageMode] = None,
    catalog: Optional[QuestionTypeCatalog] = None,
) -> GenerationPrompt:
    """Render the generation prompt.

    Args:
        plan: Per-kind question counts in output order
        difficulty: Requested difficulty
        lesson_name: Lesson or topic description
        num_answers: Options per choice question (default 4)
        language: Prompt language; detected from the lesson name if None
        catalog: Known question types listed in the prompt

    Returns:
        GenerationPrompt with the prompt text and object shape
    """
    language = language or detect_language(lesson_name)
    shape = object_shape_for(plan)
    type_list = (catalog or QuestionTypeCatalog()).describe()
    render = (
        _render_english if language is LanguageMode.ENGLISH else _render_vietnamese
    )
    text = render(
        plan,
        difficulty,
        lesson_name,
        num_answers or DEFAULT_NUM_ANSWERS,
        shape,
        type_list,
    )
    return GenerationPrompt(text=text, object_shape=shape)
