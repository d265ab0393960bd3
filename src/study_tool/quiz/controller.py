"""Quiz session state machine.

The controller owns a single :class:`SessionState` and moves it through
explicit :class:`SessionPhase` values. Operations that do not fit the current
phase raise :class:`InvalidTransitionError` instead of silently changing a
finalized answer. Every mutation is mirrored to the optional persistence
adapter.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from .errors import InvalidTransitionError
from .models import COMPREHENSIVE_QUIZ_ID, ProcessedQuestion, QuizBank
from .normalizer import process_questions
from .persistence import PersistenceAdapter, SessionSnapshot
from .review import apply_order, flatten_banks, shuffled_order

__all__ = [
    "SessionPhase",
    "SessionState",
    "SessionController",
]

_LOGGER = logging.getLogger(__name__)


class SessionPhase(Enum):
    LOADING = "loading"
    NO_CONTENT = "no-content"
    ANSWERING = "answering"
    REVEALED = "revealed"
    FINISHED = "finished"


# Phase-bound operations; select_quiz and restart work in any loaded phase.
_ALLOWED: dict[str, frozenset[SessionPhase]] = {
    "select an option": frozenset({SessionPhase.ANSWERING}),
    "submit": frozenset({SessionPhase.ANSWERING}),
    "advance": frozenset({SessionPhase.REVEALED}),
    "select a quiz": frozenset(
        {
            SessionPhase.NO_CONTENT,
            SessionPhase.ANSWERING,
            SessionPhase.REVEALED,
            SessionPhase.FINISHED,
        }
    ),
    "restart": frozenset(
        {
            SessionPhase.NO_CONTENT,
            SessionPhase.ANSWERING,
            SessionPhase.REVEALED,
            SessionPhase.FINISHED,
        }
    ),
}


@dataclass
class SessionState:
    """Mutable state of the running quiz."""

    selected_quiz: str = COMPREHENSIVE_QUIZ_ID
    questions: list[ProcessedQuestion] = field(default_factory=list)
    cursor: int = 0
    selected_option: Optional[int] = None
    revealed: bool = False
    score: int = 0
    completed: set[int] = field(default_factory=set)
    phase: SessionPhase = SessionPhase.LOADING

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def current(self) -> Optional[ProcessedQuestion]:
        if 0 <= self.cursor < len(self.questions):
            return self.questions[self.cursor]
        return None

    @property
    def is_last(self) -> bool:
        return self.cursor == len(self.questions) - 1


class SessionController:
    """Drive quiz selection, answering and scoring."""

    def __init__(
        self,
        *,
        persistence: Optional[PersistenceAdapter] = None,
        rng: Optional[random.Random] = None,
        default_quiz: str = COMPREHENSIVE_QUIZ_ID,
        reshuffle_on_restart: bool = False,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._state = SessionState(selected_quiz=default_quiz)
        self._banks: list[QuizBank] = []
        self._order: tuple[int, ...] = ()
        self._persistence = persistence
        self._rng = rng
        self._default_quiz = default_quiz
        self._reshuffle_on_restart = reshuffle_on_restart
        self._logger = logger or _LOGGER
        self._closed = False

    # -- read-only views -------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def phase(self) -> SessionPhase:
        return self._state.phase

    @property
    def banks(self) -> tuple[QuizBank, ...]:
        return tuple(self._banks)

    @property
    def current_question(self) -> Optional[ProcessedQuestion]:
        return self._state.current

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def progress_percent(self) -> int:
        total = self._state.total
        if total == 0:
            return 0
        ratio = len(self._state.completed) / total * 100
        return math.floor(ratio + 0.5)

    def bank_for(self, quiz_id: str) -> Optional[QuizBank]:
        for bank in self._banks:
            if bank.id == quiz_id:
                return bank
        return None

    def quiz_name(self, quiz_id: Optional[str] = None) -> str:
        target = quiz_id or self._state.selected_quiz
        if target == COMPREHENSIVE_QUIZ_ID:
            return "Comprehensive Review (All Questions)"
        bank = self.bank_for(target)
        return bank.name if bank else target

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            selected_quiz=self._state.selected_quiz,
            cursor=self._state.cursor,
            score=self._state.score,
            completed=tuple(sorted(self._state.completed)),
            order=self._order,
        )

    # -- lifecycle -------------------------------------------------------

    def attach_banks(self, banks: Sequence[QuizBank]) -> bool:
        """Install freshly loaded banks and open the default quiz.

        Returns ``False`` when the controller was closed while the load was
        in flight; the result is discarded in that case.
        """

        if self._closed:
            self._logger.info("Discarding quiz banks for a closed session")
            return False
        self._banks = list(banks)
        self._state.phase = SessionPhase.NO_CONTENT
        target = self._default_quiz
        if target != COMPREHENSIVE_QUIZ_ID and self.bank_for(target) is None:
            target = COMPREHENSIVE_QUIZ_ID
        self._open(target)
        return True

    def restore(self, snapshot: SessionSnapshot) -> None:
        """Resume a persisted session on top of the attached banks.

        A comprehensive session resumes only when its saved question order
        still fits the loaded banks; otherwise the review starts over.
        """

        self._ensure_loaded("restore")
        if snapshot.selected_quiz != self._state.selected_quiz:
            if not self.select_quiz(snapshot.selected_quiz):
                return
        total = self._state.total
        if total == 0:
            return
        if (
            self._state.selected_quiz == COMPREHENSIVE_QUIZ_ID
            and not self._apply_review_order(snapshot.order)
        ):
            self._logger.warning(
                "Saved review order does not fit the loaded banks; "
                "starting the review over",
                extra={
                    "saved_order_length": len(snapshot.order),
                    "total": total,
                },
            )
            self._reset_progress()
            self._persist()
            return
        state = self._state
        state.completed = {pos for pos in snapshot.completed if pos < total}
        state.score = min(snapshot.score, len(state.completed))
        state.cursor = min(snapshot.cursor, total)
        state.selected_option = None
        if state.cursor >= total:
            state.revealed = False
            state.phase = SessionPhase.FINISHED
        elif state.cursor in state.completed:
            state.revealed = True
            state.phase = SessionPhase.REVEALED
        else:
            state.revealed = False
            state.phase = SessionPhase.ANSWERING
        self._logger.info(
            "Restored quiz session",
            extra={
                "quiz": state.selected_quiz,
                "cursor": state.cursor,
                "score": state.score,
            },
        )
        self._persist()

    def close(self) -> None:
        self._closed = True

    # -- transitions -----------------------------------------------------

    def select_quiz(self, quiz_id: str) -> bool:
        """Switch to ``quiz_id``; unknown ids leave the session untouched."""

        self._require("select a quiz")
        if quiz_id != COMPREHENSIVE_QUIZ_ID and self.bank_for(quiz_id) is None:
            self._logger.warning(
                "Ignoring selection of unknown quiz",
                extra={"quiz": quiz_id},
            )
            return False
        self._open(quiz_id)
        return True

    def select_option(self, index: int) -> None:
        self._require("select an option")
        question = self._state.current
        assert question is not None
        if not 0 <= index < len(question.options):
            raise ValueError(
                f"Option {index} is out of range for a question with "
                f"{len(question.options)} options."
            )
        self._state.selected_option = index

    def submit(self) -> bool:
        """Score the selected option and reveal the result."""

        self._require("submit")
        state = self._state
        if state.selected_option is None:
            raise InvalidTransitionError("submit without a selection", state.phase)
        question = state.current
        assert question is not None
        correct = state.selected_option == question.correct_answer
        if correct:
            state.score += 1
        state.completed.add(state.cursor)
        state.revealed = True
        state.phase = SessionPhase.REVEALED
        self._persist()
        return correct

    def advance(self) -> None:
        """Move past a revealed question; past the last one the quiz finishes."""

        self._require("advance")
        state = self._state
        state.cursor += 1
        state.selected_option = None
        state.revealed = False
        if state.cursor >= state.total:
            state.cursor = state.total
            state.phase = SessionPhase.FINISHED
            self._logger.info(
                "Quiz finished",
                extra={
                    "quiz": state.selected_quiz,
                    "score": state.score,
                    "total": state.total,
                },
            )
        else:
            state.phase = SessionPhase.ANSWERING
        self._persist()

    def restart(self) -> None:
        self._require("restart")
        if (
            self._reshuffle_on_restart
            and self._state.selected_quiz == COMPREHENSIVE_QUIZ_ID
        ):
            self._state.questions = self._shuffle_review()
        self._reset_progress()
        self._persist()

    # -- internals -------------------------------------------------------

    def _open(self, quiz_id: str) -> None:
        if quiz_id == COMPREHENSIVE_QUIZ_ID:
            questions = self._shuffle_review()
        else:
            bank = self.bank_for(quiz_id)
            assert bank is not None
            questions = process_questions(bank.questions)
            self._order = ()
        self._state.selected_quiz = quiz_id
        self._state.questions = questions
        self._reset_progress()
        self._logger.info(
            "Selected quiz",
            extra={"quiz": quiz_id, "question_count": len(questions)},
        )
        self._persist()

    def _shuffle_review(self) -> list[ProcessedQuestion]:
        flat = flatten_banks(self._banks)
        self._order = shuffled_order(len(flat), self._rng)
        return [flat[position] for position in self._order]

    def _apply_review_order(self, order: Sequence[int]) -> bool:
        questions = apply_order(flatten_banks(self._banks), order)
        if questions is None:
            return False
        self._state.questions = questions
        self._order = tuple(order)
        return True

    def _reset_progress(self) -> None:
        state = self._state
        state.cursor = 0
        state.selected_option = None
        state.revealed = False
        state.score = 0
        state.completed = set()
        state.phase = (
            SessionPhase.ANSWERING if state.questions else SessionPhase.NO_CONTENT
        )

    def _require(self, action: str) -> None:
        if self._state.phase not in _ALLOWED[action]:
            raise InvalidTransitionError(action, self._state.phase)

    def _ensure_loaded(self, action: str) -> None:
        if self._state.phase is SessionPhase.LOADING:
            raise InvalidTransitionError(action, self._state.phase)

    def _persist(self) -> None:
        if self._persistence is not None and not self._closed:
            self._persistence.save_snapshot(self.snapshot())
