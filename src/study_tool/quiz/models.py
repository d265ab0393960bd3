"""Quiz data structures shared by the loader, controller and session UI."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping, MutableMapping, Optional

from .errors import MalformedContentError

__all__ = [
    "COMPREHENSIVE_QUIZ_ID",
    "NO_CHAPTER",
    "QuizQuestion",
    "QuizBank",
    "ProcessedQuestion",
    "extract_chapter_number",
]

COMPREHENSIVE_QUIZ_ID = "comprehensive"
NO_CHAPTER = 999

_CHAPTER_RE = re.compile(r"Chapter\s+(\d+)", re.IGNORECASE)


def extract_chapter_number(title: str) -> int:
    """Return the ``Chapter <N>`` number in ``title`` or :data:`NO_CHAPTER`."""

    match = _CHAPTER_RE.search(title or "")
    return int(match.group(1)) if match else NO_CHAPTER


@dataclass(frozen=True)
class QuizQuestion:
    """One raw question record as stored in a quiz bank resource."""

    question_id: str
    question: str
    answers: tuple[str, ...]
    correct_answers: tuple[str, ...]
    bank: str
    title: Optional[str] = None
    index: Optional[int] = None
    selected_answer: Optional[str] = None
    is_correct: Optional[bool] = None

    @classmethod
    def from_dict(
        cls, payload: Mapping[str, Any], *, fallback_id: str
    ) -> "QuizQuestion":
        if not isinstance(payload, Mapping):
            raise MalformedContentError(
                "Question record must be an object, found "
                f"{type(payload).__name__}."
            )
        question = payload.get("question")
        if not isinstance(question, str):
            raise MalformedContentError(
                "Question record is missing the 'question' string."
            )
        answers = _string_list(payload.get("answers"), field="answers")
        correct = _string_list(
            payload.get("correctAnswers"), field="correctAnswers"
        )
        title = payload.get("title")
        index = payload.get("index")
        selected = payload.get("selectedAnswer")
        is_correct = payload.get("isCorrect")
        return cls(
            question_id=str(payload.get("questionId") or fallback_id),
            question=question,
            answers=answers,
            correct_answers=correct,
            bank=str(payload.get("bank") or ""),
            title=title if isinstance(title, str) and title else None,
            index=index if isinstance(index, int) else None,
            selected_answer=selected if isinstance(selected, str) else None,
            is_correct=is_correct if isinstance(is_correct, bool) else None,
        )

    def to_dict(self) -> MutableMapping[str, Any]:
        payload: MutableMapping[str, Any] = {}
        if self.index is not None:
            payload["index"] = self.index
        payload.update(
            {
                "questionId": self.question_id,
                "question": self.question,
                "answers": list(self.answers),
                "correctAnswers": list(self.correct_answers),
                "bank": self.bank,
            }
        )
        if self.selected_answer is not None:
            payload["selectedAnswer"] = self.selected_answer
        if self.is_correct is not None:
            payload["isCorrect"] = self.is_correct
        if self.title is not None:
            payload["title"] = self.title
        return payload


def _string_list(value: Any, *, field: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise MalformedContentError(
            f"Question record field '{field}' must be a list of strings."
        )
    return tuple(str(item) for item in value)


@dataclass(frozen=True)
class QuizBank:
    """A named collection of questions loaded from one resource."""

    id: str
    name: str
    questions: tuple[QuizQuestion, ...] = field(default_factory=tuple)

    @property
    def chapter(self) -> int:
        return extract_chapter_number(self.name)

    def __len__(self) -> int:
        return len(self.questions)


@dataclass(frozen=True)
class ProcessedQuestion:
    """A question prepared for display.

    ``correct_answer`` is ``-1`` when none of the options matches the stored
    correct answers; callers must handle that case.
    """

    id: int
    text: str
    options: tuple[str, ...]
    correct_answer: int
    original: QuizQuestion

    @property
    def question_id(self) -> str:
        return self.original.question_id

    @property
    def has_answer(self) -> bool:
        return 0 <= self.correct_answer < len(self.options)

    def correct_text(self) -> Optional[str]:
        if not self.has_answer:
            return None
        return self.options[self.correct_answer]
