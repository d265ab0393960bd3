from __future__ import annotations

import random

import pytest
from rich.console import Console

from study_tool.quiz.controller import SessionController, SessionPhase
from study_tool.quiz.models import QuizBank, QuizQuestion
from study_tool.quiz.session import (
    SessionCommand,
    apply_command,
    parse_session_command,
    render_bank_table,
    run_quiz_session,
)


def make_provider(commands: list[str]):
    iterator = iter(commands)

    def _provider() -> str:
        return next(iterator)

    return _provider


def _console() -> Console:
    return Console(record=True, width=100, force_terminal=True)


def _controller(*, correct=("right",)) -> SessionController:
    questions = tuple(
        QuizQuestion(
            question_id=f"ch1-{n}",
            question=f"question number {n}?",
            answers=("right", "wrong"),
            correct_answers=correct,
            bank="Chapter 1 Quiz",
        )
        for n in (1, 2)
    )
    controller = SessionController(rng=random.Random(1))
    controller.attach_banks(
        [QuizBank(id="ch1", name="Chapter 1 Quiz", questions=questions)]
    )
    controller.select_quiz("ch1")
    return controller


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2", SessionCommand("select", choice=1)),
        (" B ", SessionCommand("select", choice=1)),
        ("a", SessionCommand("select", choice=0)),
        ("s", SessionCommand("submit")),
        ("Submit", SessionCommand("submit")),
        ("n", SessionCommand("next")),
        ("restart", SessionCommand("restart")),
        ("l", SessionCommand("list")),
        ("exit", SessionCommand("quit")),
        ("?", SessionCommand("help")),
        ("use Chapter_2", SessionCommand("use", quiz="Chapter_2")),
    ],
)
def test_parse_session_command(raw, expected):
    assert parse_session_command(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "0", "use", "use   ", "xyz"])
def test_parse_session_command_rejects(raw):
    assert parse_session_command(raw) is None


def test_full_session_flow():
    console = _console()
    controller = _controller()

    result = run_quiz_session(
        controller,
        console,
        make_provider(["1", "s", "n", "b", "s", "n", "q"]),
    )

    assert result.exit_action == "quit"
    assert result.finished
    assert (result.score, result.total, result.answered) == (1, 2, 2)
    text = console.export_text()
    assert "Question 1 of 2" in text
    assert "Question 2 of 2" in text
    assert "Question number 1?" in text
    assert "Correct!" in text
    assert "Incorrect!" in text
    assert "Correct answer: right" in text
    assert "Quiz Complete!" in text
    assert "Final Score: 1 out of 2" in text
    assert "Progress is saved" in text


def test_progress_shown_in_header():
    console = _console()
    controller = _controller()

    run_quiz_session(controller, console, make_provider(["1", "s"]))

    assert "Progress: 50%" in console.export_text()


def test_session_interrupted_when_input_ends():
    controller = _controller()

    result = run_quiz_session(controller, _console(), make_provider(["1"]))

    assert result.exit_action == "interrupted"
    assert controller.state.selected_option == 0
    assert not result.finished


def test_invalid_actions_show_hints():
    console = _console()
    controller = _controller()

    run_quiz_session(
        controller, console, make_provider(["s", "n", "1", "s", "2", "s", "q"])
    )

    text = console.export_text()
    assert "Choose an option before submitting." in text
    assert "Submit an answer before moving on." in text
    assert "Answer already submitted." in text
    assert controller.state.score == 1
    assert controller.phase is SessionPhase.REVEALED


def test_unrecognized_and_out_of_range_input():
    console = _console()
    controller = _controller()

    run_quiz_session(controller, console, make_provider(["zz", "9", "q"]))

    text = console.export_text()
    assert "Unrecognized command." in text
    assert "out of range" in text
    assert controller.state.selected_option is None


def test_missing_correct_answer_is_reported():
    console = _console()
    controller = _controller(correct=())

    run_quiz_session(controller, console, make_provider(["1", "s", "q"]))

    text = console.export_text()
    assert "No correct answer is recorded for this question." in text
    assert "Incorrect!" in text
    assert controller.state.score == 0


def test_switch_quiz_and_list():
    console = _console()
    controller = _controller()

    apply_command(SessionCommand("list"), controller, console)
    handled = apply_command(SessionCommand("use", quiz="nope"), controller, console)
    switched = apply_command(
        SessionCommand("use", quiz="comprehensive"), controller, console
    )

    text = console.export_text()
    assert "Quizzes" in text
    assert "Comprehensive Review (All Questions)" in text
    assert "No quiz with id 'nope'" in text
    assert handled is False
    assert switched is True
    assert controller.state.selected_quiz == "comprehensive"


def test_restart_from_finished():
    console = _console()
    controller = _controller()

    run_quiz_session(
        controller,
        console,
        make_provider(["1", "s", "n", "1", "s", "n", "r", "q"]),
    )

    assert "Quiz restarted." in console.export_text()
    assert controller.phase is SessionPhase.ANSWERING
    assert controller.state.score == 0


def test_empty_session_reports_no_content():
    console = _console()
    controller = SessionController()
    controller.attach_banks([])

    result = run_quiz_session(controller, console, make_provider([]))

    assert result.exit_action == "empty"
    assert "No quizzes available" in console.export_text()


def test_render_bank_table_counts_questions():
    console = _console()
    bank = _controller().banks[0]

    render_bank_table(console, [bank])

    text = console.export_text()
    assert "ch1" in text
    assert "Chapter 1 Quiz" in text
