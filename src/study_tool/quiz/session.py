"""Rich-powered quiz session loop.

Renders the controller's current question, reads one command per prompt and
applies it. The loop holds no quiz state of its own; everything lives in the
:class:`~study_tool.quiz.controller.SessionController` so it can be persisted
and tested without a terminal.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Callable, Literal, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .controller import SessionController, SessionPhase
from .errors import InvalidTransitionError
from .models import COMPREHENSIVE_QUIZ_ID, QuizBank

InputProvider = Callable[[], str]
ExitAction = Literal["quit", "interrupted", "empty"]
CommandType = Literal[
    "select", "submit", "next", "restart", "use", "list", "quit", "help"
]

_WORD_COMMANDS: dict[str, CommandType] = {
    "s": "submit",
    "submit": "submit",
    "n": "next",
    "next": "next",
    "r": "restart",
    "restart": "restart",
    "l": "list",
    "list": "list",
    "q": "quit",
    "quit": "quit",
    "exit": "quit",
    "h": "help",
    "?": "help",
    "help": "help",
}

HELP_TEXT = (
    "Commands: 1-9 or a-k (choose option), s (submit), n (next), "
    "r (restart), use <quiz id> (switch quiz), l (list quizzes), q (quit)"
)


@dataclass(frozen=True)
class SessionCommand:
    """Normalized user command parsed from console input."""

    type: CommandType
    choice: Optional[int] = None
    quiz: Optional[str] = None


@dataclass(frozen=True)
class QuizSessionResult:
    """Return value from :func:`run_quiz_session`."""

    exit_action: ExitAction
    quiz_id: str
    score: int
    total: int
    answered: int
    finished: bool


def parse_session_command(raw: Optional[str]) -> Optional[SessionCommand]:
    """Parse raw user input; returns ``None`` for blank or unknown input.

    Options are chosen by 1-based number or by letter (``a`` = first).
    """

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    lowered = text.lower()
    head, _, rest = lowered.partition(" ")
    if head == "use":
        target = text.split(None, 1)[1].strip() if rest.strip() else ""
        return SessionCommand("use", quiz=target) if target else None
    if lowered in _WORD_COMMANDS:
        return SessionCommand(_WORD_COMMANDS[lowered])
    if text.isdigit():
        number = int(text)
        return SessionCommand("select", choice=number - 1) if number else None
    if len(text) == 1 and text.isalpha():
        return SessionCommand("select", choice=ord(lowered) - ord("a"))
    return None


def run_quiz_session(
    controller: SessionController,
    console: Console,
    input_provider: InputProvider,
) -> QuizSessionResult:
    """Run the interactive loop until the user quits or input runs out."""

    if controller.phase in (SessionPhase.LOADING, SessionPhase.NO_CONTENT):
        _render_no_content(console)
        return _result(controller, "empty")

    exit_action: ExitAction = "quit"
    render = True
    while True:
        if render:
            render_state(console, controller)
        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\n[bold yellow]Session interrupted.[/]")
            exit_action = "interrupted"
            break
        command = parse_session_command(raw)
        if command is None:
            console.print("[red]Unrecognized command.[/] " + HELP_TEXT)
            render = False
            continue
        if command.type == "quit":
            console.print("[bold yellow]Leaving quiz. Progress is saved.[/]")
            break
        render = apply_command(command, controller, console)

    return _result(controller, exit_action)


def apply_command(
    command: SessionCommand,
    controller: SessionController,
    console: Console,
) -> bool:
    """Apply ``command``; returns whether the question should be redrawn."""

    try:
        if command.type == "select" and command.choice is not None:
            controller.select_option(command.choice)
            return True
        if command.type == "submit":
            controller.submit()
            return True
        if command.type == "next":
            controller.advance()
            return True
        if command.type == "restart":
            controller.restart()
            console.print("[bold]Quiz restarted.[/]")
            return True
        if command.type == "use" and command.quiz:
            if controller.select_quiz(command.quiz):
                return True
            console.print(
                f"[red]No quiz with id '{command.quiz}'.[/] "
                "Use 'l' to list available quizzes."
            )
            return False
        if command.type == "list":
            render_bank_table(console, controller.banks)
            return False
        if command.type == "help":
            console.print(HELP_TEXT)
            return False
    except InvalidTransitionError as exc:
        console.print(f"[red]{_transition_hint(controller, exc)}[/]")
        return False
    except ValueError as exc:
        console.print(f"[red]{exc}[/]")
        return False
    return False


def _transition_hint(
    controller: SessionController, exc: InvalidTransitionError
) -> str:
    phase = controller.phase
    if phase is SessionPhase.REVEALED:
        return "Answer already submitted. Press n for the next question."
    if phase is SessionPhase.FINISHED:
        return "Quiz complete. Press r to restart or use <quiz id>."
    if exc.action.startswith("submit"):
        return "Choose an option before submitting."
    if exc.action == "advance":
        return "Submit an answer before moving on."
    return str(exc)


def render_state(console: Console, controller: SessionController) -> None:
    state = controller.state
    if controller.phase is SessionPhase.FINISHED:
        _render_finished(console, controller)
        return
    question = controller.current_question
    if question is None:
        _render_no_content(console)
        return

    console.print()
    console.rule(Text(controller.quiz_name(), style="bold magenta"))
    console.print(
        Text.assemble(
            (f"Question {state.cursor + 1}", "bold cyan"),
            (f" of {state.total}", "dim"),
            ("  |  ", "dim"),
            (f"Score: {state.score}", "bold"),
            ("  |  ", "dim"),
            (f"Progress: {controller.progress_percent}%", "dim"),
        )
    )
    console.print(Text(question.text, style="bold"))

    table = Table(show_header=False, box=box.SIMPLE, expand=True)
    table.add_column("Key", justify="right", style="cyan")
    table.add_column("Option")
    revealed = controller.phase is SessionPhase.REVEALED
    for position, option in enumerate(question.options):
        selected = position == state.selected_option
        marker = "•" if selected else " "
        row = Text(f"{marker} ")
        label = Text(option)
        if revealed and position == question.correct_answer:
            label.stylize("bold green")
        elif revealed and selected:
            label.stylize("bold red")
        elif selected:
            label.stylize("bold cyan")
        row += label
        table.add_row(str(position + 1), row)
    console.print(table)

    if revealed:
        _render_feedback(console, controller)
    else:
        hint = "Choose an option, then s to submit."
        if state.selected_option is not None:
            hint = "Press s to submit or choose another option."
        console.print(Text(hint, style="dim"))


def _render_feedback(console: Console, controller: SessionController) -> None:
    state = controller.state
    question = controller.current_question
    assert question is not None
    if state.selected_option is not None:
        if state.selected_option == question.correct_answer:
            console.print(Text("Correct!", style="bold green"))
        else:
            console.print(Text("Incorrect!", style="bold red"))
    answer = question.correct_text()
    if answer is None:
        console.print(
            Text(
                "No correct answer is recorded for this question.",
                style="yellow",
            )
        )
    else:
        console.print(
            Text.assemble(("Correct answer: ", "dim"), (answer, "green"))
        )
    if state.is_last:
        console.print(Text("Press n to see your final score.", style="dim"))
    else:
        console.print(Text("Press n for the next question.", style="dim"))


def _render_finished(console: Console, controller: SessionController) -> None:
    state = controller.state
    console.print()
    console.print(
        Panel(
            Text.assemble(
                ("Quiz Complete!\n", "bold green"),
                f"Final Score: {state.score} out of {state.total}",
            ),
            title=controller.quiz_name(),
            border_style="green",
        )
    )
    console.print(
        Text("Press r to restart or use <quiz id> to switch.", style="dim")
    )


def _render_no_content(console: Console) -> None:
    console.print(
        Panel(
            "Please check if the quiz files are properly loaded.",
            title="No quizzes available",
            border_style="yellow",
        )
    )


def render_bank_table(console: Console, banks: Sequence[QuizBank]) -> None:
    table = Table(title="Quizzes", box=box.SIMPLE, expand=False)
    table.add_column("Id")
    table.add_column("Name", overflow="fold")
    table.add_column("Questions", justify="right")
    total = sum(len(bank) for bank in banks)
    table.add_row(
        COMPREHENSIVE_QUIZ_ID, "Comprehensive Review (All Questions)", str(total)
    )
    for bank in banks:
        table.add_row(bank.id, bank.name, str(len(bank)))
    console.print(table)


def _result(
    controller: SessionController, exit_action: ExitAction
) -> QuizSessionResult:
    state = controller.state
    return QuizSessionResult(
        exit_action=exit_action,
        quiz_id=state.selected_quiz,
        score=state.score,
        total=state.total,
        answered=len(state.completed),
        finished=controller.phase is SessionPhase.FINISHED,
    )
