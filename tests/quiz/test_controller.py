from __future__ import annotations

import random

import pytest

from study_tool.quiz.controller import SessionController, SessionPhase
from study_tool.quiz.errors import InvalidTransitionError
from study_tool.quiz.models import QuizBank, QuizQuestion
from study_tool.quiz.persistence import (
    MemoryStore,
    PersistenceAdapter,
    SessionSnapshot,
)


def _bank(bank_id: str, count: int, name: str | None = None) -> QuizBank:
    questions = tuple(
        QuizQuestion(
            question_id=f"{bank_id}-{n}",
            question=f"{bank_id} question {n}",
            answers=("right", "wrong"),
            correct_answers=("right",),
            bank=bank_id,
        )
        for n in range(1, count + 1)
    )
    return QuizBank(id=bank_id, name=name or bank_id, questions=questions)


@pytest.fixture
def banks() -> list[QuizBank]:
    return [_bank("ch1", 2, "Chapter 1 Quiz"), _bank("ch2", 3, "Chapter 2 Quiz")]


@pytest.fixture
def controller(banks) -> SessionController:
    ctrl = SessionController(rng=random.Random(0))
    ctrl.attach_banks(banks)
    return ctrl


def _answer(ctrl: SessionController, option: int) -> bool:
    ctrl.select_option(option)
    return ctrl.submit()


def test_starts_loading_and_rejects_actions():
    ctrl = SessionController()

    assert ctrl.phase is SessionPhase.LOADING
    with pytest.raises(InvalidTransitionError):
        ctrl.select_option(0)
    with pytest.raises(InvalidTransitionError):
        ctrl.select_quiz("comprehensive")


def test_attach_opens_comprehensive_review(controller):
    state = controller.state

    assert controller.phase is SessionPhase.ANSWERING
    assert state.selected_quiz == "comprehensive"
    assert state.total == 5
    assert (state.cursor, state.score, state.completed) == (0, 0, set())
    assert controller.quiz_name() == "Comprehensive Review (All Questions)"


def test_attach_falls_back_when_default_quiz_is_unknown(banks):
    ctrl = SessionController(default_quiz="ch9")

    ctrl.attach_banks(banks)

    assert ctrl.state.selected_quiz == "comprehensive"


def test_attach_with_no_banks_has_no_content():
    ctrl = SessionController()

    ctrl.attach_banks([])

    assert ctrl.phase is SessionPhase.NO_CONTENT
    assert ctrl.current_question is None
    with pytest.raises(InvalidTransitionError):
        ctrl.submit()


def test_closed_controller_discards_late_banks(banks):
    ctrl = SessionController()
    ctrl.close()

    assert ctrl.attach_banks(banks) is False
    assert ctrl.phase is SessionPhase.LOADING
    assert ctrl.banks == ()


def test_select_quiz_resets_progress(controller):
    _answer(controller, 0)

    assert controller.select_quiz("ch2") is True

    state = controller.state
    assert state.selected_quiz == "ch2"
    assert [q.question_id for q in state.questions] == ["ch2-1", "ch2-2", "ch2-3"]
    assert [q.id for q in state.questions] == [1, 2, 3]
    assert (state.cursor, state.score, state.completed) == (0, 0, set())
    assert controller.quiz_name() == "Chapter 2 Quiz"


def test_select_unknown_quiz_is_a_noop(controller):
    before = [q.question_id for q in controller.state.questions]
    _answer(controller, 0)

    assert controller.select_quiz("nope") is False

    assert [q.question_id for q in controller.state.questions] == before
    assert controller.state.score == 1
    assert controller.phase is SessionPhase.REVEALED


def test_select_option_can_change_until_submitted(controller):
    controller.select_option(0)
    controller.select_option(1)

    assert controller.state.selected_option == 1

    controller.submit()
    with pytest.raises(InvalidTransitionError):
        controller.select_option(0)
    assert controller.state.selected_option == 1


def test_select_option_out_of_range(controller):
    with pytest.raises(ValueError):
        controller.select_option(2)
    with pytest.raises(ValueError):
        controller.select_option(-1)
    assert controller.state.selected_option is None


def test_submit_requires_selection(controller):
    with pytest.raises(InvalidTransitionError, match="without a selection"):
        controller.submit()
    assert controller.phase is SessionPhase.ANSWERING


def test_submit_scores_once(controller):
    assert _answer(controller, 0) is True

    state = controller.state
    assert state.score == 1
    assert state.completed == {0}
    assert state.revealed
    with pytest.raises(InvalidTransitionError):
        controller.submit()
    assert state.score == 1


def test_incorrect_answer_still_completes(controller):
    assert _answer(controller, 1) is False

    assert controller.state.score == 0
    assert controller.state.completed == {0}


def test_advance_requires_reveal(controller):
    with pytest.raises(InvalidTransitionError):
        controller.advance()

    _answer(controller, 0)
    controller.advance()

    state = controller.state
    assert state.cursor == 1
    assert state.selected_option is None
    assert not state.revealed
    assert controller.phase is SessionPhase.ANSWERING


def test_finishing_a_quiz(controller):
    controller.select_quiz("ch1")
    _answer(controller, 0)
    controller.advance()
    _answer(controller, 1)
    assert controller.state.is_last

    controller.advance()

    assert controller.phase is SessionPhase.FINISHED
    assert controller.state.cursor == 2
    assert controller.current_question is None
    assert controller.state.score == 1
    assert controller.progress_percent == 100
    with pytest.raises(InvalidTransitionError):
        controller.advance()


def test_progress_rounds_half_up(banks):
    ctrl = SessionController()
    ctrl.attach_banks([_bank("eight", 8)])
    ctrl.select_quiz("eight")

    _answer(ctrl, 0)
    assert ctrl.progress_percent == 13  # 12.5

    ctrl2 = SessionController()
    ctrl2.attach_banks(banks)
    ctrl2.select_quiz("ch2")
    _answer(ctrl2, 0)
    assert ctrl2.progress_percent == 33


def test_restart_clears_progress_and_keeps_order(controller):
    order = [q.question_id for q in controller.state.questions]
    _answer(controller, 0)
    controller.advance()

    controller.restart()

    state = controller.state
    assert [q.question_id for q in state.questions] == order
    assert (state.cursor, state.score, state.completed) == (0, 0, set())
    assert controller.phase is SessionPhase.ANSWERING


def test_restart_reshuffle_is_opt_in(banks):
    ctrl = SessionController(rng=random.Random(5), reshuffle_on_restart=True)
    ctrl.attach_banks(banks)
    first = [q.question_id for q in ctrl.state.questions]

    orders = set()
    for _ in range(10):
        ctrl.restart()
        ids = [q.question_id for q in ctrl.state.questions]
        assert sorted(ids) == sorted(first)
        orders.add(tuple(ids))

    assert len(orders) > 1


def test_seeded_comprehensive_order_is_reproducible(banks):
    first = SessionController(rng=random.Random(99))
    second = SessionController(rng=random.Random(99))
    first.attach_banks(banks)
    second.attach_banks(banks)

    assert [q.question_id for q in first.state.questions] == [
        q.question_id for q in second.state.questions
    ]


def test_mutations_are_persisted(banks):
    store = MemoryStore()
    ctrl = SessionController(persistence=PersistenceAdapter(store))
    ctrl.attach_banks(banks)
    ctrl.select_quiz("ch2")
    _answer(ctrl, 0)
    ctrl.advance()

    adapter = PersistenceAdapter(store)
    assert adapter.load_snapshot() == SessionSnapshot(
        selected_quiz="ch2", cursor=1, score=1, completed=(0,)
    )


def test_closed_controller_stops_persisting(banks):
    store = MemoryStore()
    ctrl = SessionController(persistence=PersistenceAdapter(store))
    ctrl.attach_banks(banks)
    ctrl.select_quiz("ch1")
    ctrl.close()

    _answer(ctrl, 0)

    assert PersistenceAdapter(store).load_snapshot().score == 0


def test_restore_resumes_on_unanswered_question(controller):
    controller.restore(
        SessionSnapshot(selected_quiz="ch2", cursor=1, score=1, completed=(0,))
    )

    state = controller.state
    assert state.selected_quiz == "ch2"
    assert (state.cursor, state.score, state.completed) == (1, 1, {0})
    assert controller.phase is SessionPhase.ANSWERING


def test_restore_on_completed_question_is_revealed(controller):
    controller.restore(
        SessionSnapshot(selected_quiz="ch2", cursor=1, score=2, completed=(0, 1))
    )

    assert controller.phase is SessionPhase.REVEALED
    with pytest.raises(InvalidTransitionError):
        controller.submit()
    controller.advance()
    assert controller.state.cursor == 2


def test_restore_clamps_inconsistent_values(controller):
    controller.restore(
        SessionSnapshot(selected_quiz="ch1", cursor=10, score=9, completed=(0, 7))
    )

    state = controller.state
    assert state.completed == {0}
    assert state.score == 1
    assert state.cursor == 2
    assert controller.phase is SessionPhase.FINISHED


def test_restore_with_unknown_quiz_keeps_current(controller):
    before = [q.question_id for q in controller.state.questions]

    controller.restore(SessionSnapshot(selected_quiz="gone", cursor=1))

    assert controller.state.selected_quiz == "comprehensive"
    assert [q.question_id for q in controller.state.questions] == before
    assert controller.state.cursor == 0


def test_restore_before_load_is_rejected():
    with pytest.raises(InvalidTransitionError):
        SessionController().restore(SessionSnapshot())


def test_restore_comprehensive_keeps_saved_order_under_new_rng(banks):
    store = MemoryStore()
    first = SessionController(
        persistence=PersistenceAdapter(store), rng=random.Random(1)
    )
    first.attach_banks(banks)
    answered = first.current_question.question_id
    _answer(first, 0)
    first.close()

    saved = PersistenceAdapter(store).load_snapshot()
    second = SessionController(rng=random.Random(7))
    second.attach_banks(banks)
    second.restore(saved)

    assert second.phase is SessionPhase.REVEALED
    assert second.current_question.question_id == answered
    assert [q.question_id for q in second.state.questions] == [
        q.question_id for q in first.state.questions
    ]
    with pytest.raises(InvalidTransitionError):
        second.submit()


def test_restore_comprehensive_without_usable_order_starts_over(
    controller, caplog
):
    with caplog.at_level("WARNING"):
        controller.restore(
            SessionSnapshot(cursor=2, score=1, completed=(0, 1), order=(0, 1))
        )

    state = controller.state
    assert state.selected_quiz == "comprehensive"
    assert (state.cursor, state.score, state.completed) == (0, 0, set())
    assert controller.phase is SessionPhase.ANSWERING
    assert controller.snapshot().order != (0, 1)
    assert any("review order" in r.getMessage() for r in caplog.records)


def test_restart_with_reshuffle_records_new_order(banks):
    ctrl = SessionController(rng=random.Random(3), reshuffle_on_restart=True)
    ctrl.attach_banks(banks)

    ctrl.restart()

    order = ctrl.snapshot().order
    flat_ids = [q.question_id for bank in banks for q in bank.questions]
    assert sorted(order) == list(range(5))
    assert [q.question_id for q in ctrl.state.questions] == [
        flat_ids[position] for position in order
    ]
