"""Turn raw quiz records into display-ready questions."""

from __future__ import annotations

from typing import Iterable

from .models import ProcessedQuestion, QuizQuestion

__all__ = [
    "capitalize_first_letter",
    "resolve_correct_index",
    "normalize",
    "process_questions",
]


def capitalize_first_letter(text: str) -> str:
    if not text:
        return text
    return text[0].upper() + text[1:]


def resolve_correct_index(question: QuizQuestion) -> int:
    """Return the first option index listed as correct, ``-1`` otherwise.

    Matching is exact string equality against the stored answers.
    """

    accepted = set(question.correct_answers)
    for position, answer in enumerate(question.answers):
        if answer in accepted:
            return position
    return -1


def normalize(raw: QuizQuestion, display_id: int = 1) -> ProcessedQuestion:
    return ProcessedQuestion(
        id=display_id,
        text=capitalize_first_letter(raw.question),
        options=tuple(raw.answers),
        correct_answer=resolve_correct_index(raw),
        original=raw,
    )


def process_questions(
    questions: Iterable[QuizQuestion],
) -> list[ProcessedQuestion]:
    """Normalize ``questions`` in order, numbering them from 1."""

    return [
        normalize(question, display_id=position)
        for position, question in enumerate(questions, start=1)
    ]
