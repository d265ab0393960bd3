"""Command-line entry point for ``study quiz``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import random
import sys
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console

from study_tool.core import config_templates
from study_tool.core import workspace as workspace_mod
from study_tool.core.config_templates import ConfigTemplateError
from study_tool.core.logging import configure_logger
from study_tool.core.workspace import WorkspaceError

from .config import (
    CONFIG_FILENAME,
    ConfigOverrides,
    LoadResult,
    QuizConfigError,
    load_config,
)
from .controller import SessionController
from .loader import load_banks
from .models import COMPREHENSIVE_QUIZ_ID, QuizBank
from .persistence import JsonFileStore, PersistenceAdapter
from .session import render_bank_table, run_quiz_session
from .sources import build_fetcher

LOGGER_NAME = "study_tool"


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to a quiz TOML config (defaults to the workspace config).",
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root used for config, logs and state.",
    )
    parser.add_argument(
        "--source",
        help="Base URL or directory holding the quiz banks.",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level for the log file (defaults to INFO).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Also log to stderr at DEBUG level.",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="study quiz",
        description="Practice multiple-choice quiz banks in the terminal.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sp_start = sub.add_parser("start", help="Start or resume a quiz session")
    _add_common_options(sp_start)
    sp_start.add_argument(
        "--quiz",
        help="Quiz to open: a bank id or 'comprehensive'.",
    )
    sp_start.add_argument(
        "--fresh",
        action="store_true",
        help="Ignore saved progress and start from the first question.",
    )
    sp_start.add_argument(
        "--seed",
        type=int,
        help="Seed the comprehensive review shuffle for a repeatable order.",
    )
    sp_start.add_argument(
        "--reshuffle-on-restart",
        dest="reshuffle_on_restart",
        action="store_true",
        default=None,
        help="Reshuffle the comprehensive review when restarting.",
    )

    sp_banks = sub.add_parser("banks", help="List the quiz banks that load")
    _add_common_options(sp_banks)

    sp_reset = sub.add_parser("reset", help="Clear saved session progress")
    _add_common_options(sp_reset)

    sp_config = sub.add_parser("config", help="Manage quiz configuration")
    config_sub = sp_config.add_subparsers(dest="action", required=True)
    sp_init = config_sub.add_parser(
        "init", help=f"Write the default {CONFIG_FILENAME} template"
    )
    sp_init.add_argument(
        "--path",
        type=Path,
        help="Destination for the config (defaults to the workspace).",
    )
    sp_init.add_argument(
        "--workspace",
        type=Path,
        help="Workspace root used to resolve the default config path.",
    )
    sp_init.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the destination if it already exists.",
    )
    return parser


def _load_settings(
    args: argparse.Namespace,
) -> tuple[LoadResult, logging.Logger, Path]:
    overrides = ConfigOverrides(
        location=args.source,
        default_quiz=getattr(args, "quiz", None),
        reshuffle_on_restart=getattr(args, "reshuffle_on_restart", None),
        log_level=args.log_level,
    )
    result = load_config(
        config_path=args.config,
        overrides=overrides,
        workspace_path=args.workspace,
    )
    logger, log_path = configure_logger(
        LOGGER_NAME,
        log_dir=result.layout.path_for("logs"),
        level=result.config.log_level,
        verbose=bool(args.verbose),
        filename="quiz.log",
    )
    return result, logger, log_path


def _fetch_banks(result: LoadResult, logger: logging.Logger) -> list[QuizBank]:
    config = result.config
    fetcher = build_fetcher(config.location)
    logger.debug(
        "Loading quiz banks",
        extra={"location": config.location, "files": len(config.quiz_files)},
    )
    try:
        return asyncio.run(
            load_banks(
                fetcher,
                resource_names=config.quiz_files,
                candidate_paths=config.candidate_paths,
                logger=logger.getChild("loader"),
            )
        )
    finally:
        fetcher.close()


def _quiz_exists(quiz_id: str, banks: Sequence[QuizBank]) -> bool:
    if quiz_id == COMPREHENSIVE_QUIZ_ID:
        return True
    return any(bank.id == quiz_id for bank in banks)


def _cmd_start(args: argparse.Namespace) -> int:
    result, logger, _ = _load_settings(args)
    config = result.config
    console = Console()

    with console.status("Loading quizzes..."):
        banks = _fetch_banks(result, logger)

    if args.quiz and not _quiz_exists(args.quiz, banks):
        sys.stderr.write(
            f"Error: no quiz with id '{args.quiz}'. "
            "Run 'study quiz banks' to list quizzes.\n"
        )
        return 2

    adapter = PersistenceAdapter(
        JsonFileStore(config.state_file), logger=logger.getChild("state")
    )
    controller = SessionController(
        persistence=adapter,
        rng=random.Random(args.seed) if args.seed is not None else None,
        default_quiz=config.default_quiz,
        reshuffle_on_restart=config.reshuffle_on_restart,
        logger=logger.getChild("session"),
    )
    # Read saved progress first; opening a quiz overwrites the stored keys.
    saved = None if args.fresh else adapter.load_snapshot()
    controller.attach_banks(banks)

    if args.quiz and controller.state.selected_quiz != args.quiz:
        controller.select_quiz(args.quiz)
    if saved is not None and (
        not args.quiz or saved.selected_quiz == args.quiz
    ):
        controller.restore(saved)

    try:
        outcome = run_quiz_session(
            controller,
            console,
            lambda: console.input("[bold cyan]> [/]"),
        )
    finally:
        controller.close()
    logger.info(
        "Quiz session ended",
        extra={
            "exit_action": outcome.exit_action,
            "quiz": outcome.quiz_id,
            "score": outcome.score,
            "total": outcome.total,
        },
    )
    return 1 if outcome.exit_action == "empty" else 0


def _cmd_banks(args: argparse.Namespace) -> int:
    result, logger, _ = _load_settings(args)
    banks = _fetch_banks(result, logger)
    render_bank_table(Console(), banks)
    return 0


def _cmd_reset(args: argparse.Namespace) -> int:
    result, logger, _ = _load_settings(args)
    state_file = result.config.state_file
    PersistenceAdapter(JsonFileStore(state_file), logger=logger).clear()
    sys.stdout.write(f"Cleared saved quiz progress in {state_file}\n")
    return 0


def _cmd_config_init(args: argparse.Namespace) -> int:
    try:
        target = _resolve_config_target(args)
    except WorkspaceError as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1
    template = config_templates.get_template("quiz")
    try:
        written = template.write(target, overwrite=args.force)
    except ConfigTemplateError as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1
    sys.stdout.write(f"Wrote quiz config to {written}\n")
    return 0


def _resolve_config_target(args: argparse.Namespace) -> Path:
    if args.path is not None:
        candidate = args.path.expanduser()
        if not candidate.is_absolute():
            candidate = (Path.cwd() / candidate).resolve()
        return candidate
    layout = workspace_mod.ensure_workspace(path=args.workspace)
    return layout.path_for("config") / CONFIG_FILENAME


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    try:
        if args.command == "start":
            return _cmd_start(args)
        if args.command == "banks":
            return _cmd_banks(args)
        if args.command == "reset":
            return _cmd_reset(args)
        if args.command == "config" and args.action == "init":
            return _cmd_config_init(args)
    except QuizConfigError as exc:
        parser.error(str(exc))
    except WorkspaceError as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1
    parser.print_help()  # pragma: no cover - argparse enforces commands
    return 2


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
