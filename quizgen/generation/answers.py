"""Answer-option marker convention and placeholder content.

The model marks correct options inline by appending ``(correct)`` to the
option text. ``parse_option`` and ``mark_option`` are the only functions that
know this convention; everything downstream works with ``AnswerOption``.
"""

import re
from typing import List, Optional

from quizgen.data.models import (
    DEFAULT_NUM_ANSWERS,
    AnswerOption,
    GeneratedQuestion,
    LanguageMode,
    QuestionKind,
)

CORRECT_MARKER = "(correct)"

_MARKER_RE = re.compile(r"\s*\(\s*correct\s*\)\s*", re.IGNORECASE)

# Fixed placeholder strings per language
_PLACEHOLDER_TEXT = {
    LanguageMode.ENGLISH: {
        "question": "Sample question {n}.",
        "explanation": "Sample explanation.",
        "model_answer": "Sample answer.",
        "salvage_question": "Question {n} (auto fix).",
        "salvage_explanation": "Parse error, using sample.",
        "salvage_model_answer": "Sample.",
        "backfill_question": "Question {n}",
        "true": "True",
        "false": "False",
        "right": "Correct",
        "wrong": "Incorrect",
        "option": "Option {letter}",
        "marker": "Sample",
    },
    LanguageMode.VIETNAMESE: {
        "question": "Câu hỏi mẫu {n}.",
        "explanation": "Giải thích mẫu.",
        "model_answer": "Đáp án mẫu.",
        "salvage_question": "Câu hỏi {n} (tự động fix).",
        "salvage_explanation": "Lỗi parse, dùng mẫu.",
        "salvage_model_answer": "Mẫu.",
        "backfill_question": "Câu hỏi {n}",
        "true": "Đúng",
        "false": "Sai",
        "right": "Đúng",
        "wrong": "Sai",
        "option": "Mẫu",
        "marker": "mẫu",
    },
}

_AUTO_FIX_MARKERS = ("auto fix", "tự động fix")

DEFAULT_EMOJI = "❓"


def parse_option(raw: str) -> AnswerOption:
    """Split a raw option string into its text and correctness."""
    is_correct = _MARKER_RE.search(raw) is not None
    text = _MARKER_RE.sub(" ", raw).strip() if is_correct else raw.strip()
    return AnswerOption(text=text, is_correct=is_correct)


def mark_option(text: str, is_correct: bool) -> str:
    """Render an option in the raw marker convention."""
    return f"{text} {CORRECT_MARKER}" if is_correct else text


def placeholder_options(
    kind: QuestionKind,
    num_answers: Optional[int] = None,
    language: LanguageMode = LanguageMode.VIETNAMESE,
) -> Optional[List[str]]:
    """Deterministic raw options for a placeholder question of ``kind``.

    Returns:
        Marked option strings, or None for open-ended questions
    """
    strings = _PLACEHOLDER_TEXT[language]
    count = num_answers or DEFAULT_NUM_ANSWERS

    if kind is QuestionKind.TRUE_FALSE:
        return [mark_option(strings["true"], False), mark_option(strings["false"], True)]

    if kind is QuestionKind.MULTIPLE_SELECT:
        pool = [
            mark_option(strings["wrong"], False),
            mark_option(strings["right"], True),
            mark_option(strings["right"], True),
            mark_option(strings["wrong"], False),
        ]
        options = pool[:count]
        options.extend([strings["wrong"]] * (count - len(options)))
        return options

    if kind is QuestionKind.MULTIPLE_CHOICE:
        return [
            mark_option(
                strings["option"].format(letter=chr(ord("A") + index)),
                index == 0,
            )
            for index in range(count)
        ]

    return None


def placeholder_question(
    kind: QuestionKind,
    position: int,
    num_answers: Optional[int] = None,
    language: LanguageMode = LanguageMode.VIETNAMESE,
) -> GeneratedQuestion:
    """Build the padding entry for 1-based ``position``."""
    strings = _PLACEHOLDER_TEXT[language]
    return GeneratedQuestion(
        question_text=strings["question"].format(n=position),
        emoji=DEFAULT_EMOJI,
        explanation=strings["explanation"],
        suggested_type=kind.value,
        answers=placeholder_options(kind, num_answers, language),
        model_answer=None if kind.is_choice_based else strings["model_answer"],
    )


def salvage_placeholder(
    kind: QuestionKind,
    position: int,
    num_answers: Optional[int] = None,
    language: LanguageMode = LanguageMode.VIETNAMESE,
) -> GeneratedQuestion:
    """Build the stand-in for an object span that could not be parsed."""
    strings = _PLACEHOLDER_TEXT[language]
    return GeneratedQuestion(
        question_text=strings["salvage_question"].format(n=position),
        emoji=DEFAULT_EMOJI,
        explanation=strings["salvage_explanation"],
        suggested_type=kind.value,
        answers=placeholder_options(kind, num_answers, language),
        model_answer=None if kind.is_choice_based else strings["salvage_model_answer"],
    )


def backfill_question(
    question: GeneratedQuestion,
    kind: QuestionKind,
    position: int,
    num_answers: Optional[int] = None,
    language: LanguageMode = LanguageMode.VIETNAMESE,
) -> GeneratedQuestion:
    """Fill the fields a partially parsed question is missing, in place."""
    strings = _PLACEHOLDER_TEXT[language]
    if not question.question_text.strip():
        question.question_text = strings["backfill_question"].format(n=position)
    if not question.emoji.strip():
        question.emoji = DEFAULT_EMOJI
    if not question.explanation.strip():
        question.explanation = strings["explanation"]
    if question.kind is None:
        question.suggested_type = kind.value
    if kind.is_choice_based:
        if not question.answers:
            question.answers = placeholder_options(kind, num_answers, language)
    elif not question.model_answer:
        question.model_answer = strings["model_answer"]
    return question


def is_placeholder(
    question: GeneratedQuestion,
    language: LanguageMode = LanguageMode.VIETNAMESE,
    min_length: int = 10,
) -> bool:
    """Whether ``question`` is padding rather than model content.

    Args:
        question: Question to inspect
        language: Language whose placeholder marker phrase is checked
        min_length: Texts this short or shorter count as placeholders
    """
    text = question.question_text
    if _PLACEHOLDER_TEXT[language]["marker"] in text:
        return True
    if any(marker in text for marker in _AUTO_FIX_MARKERS):
        return True
    return len(text.strip()) <= min_length
