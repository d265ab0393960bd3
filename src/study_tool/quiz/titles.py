"""Backfill the ``title`` field on quiz bank files.

Banks are displayed by the first record's ``title``. Older exports only carry
``bank``; this tool copies ``bank`` into ``title`` on every record so the
titles can then be edited by hand.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from enum import Enum
from json import JSONDecodeError
from pathlib import Path
from typing import Optional, Sequence

from study_tool.core.files import iter_files, read_json_file, write_json_atomic

UNTITLED = "Untitled Quiz"


class TitleStatus(Enum):
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass(frozen=True)
class TitleOutcome:
    path: Path
    status: TitleStatus
    reason: Optional[str] = None


def add_title_field(path: Path) -> TitleOutcome:
    """Give every record in ``path`` a ``title`` unless the first one has it."""

    try:
        records = read_json_file(path)
    except (OSError, UnicodeDecodeError, JSONDecodeError) as exc:
        return TitleOutcome(path, TitleStatus.FAILED, str(exc))
    if not isinstance(records, list):
        return TitleOutcome(
            path, TitleStatus.FAILED, "expected a JSON array of questions"
        )
    if records and isinstance(records[0], dict) and records[0].get("title"):
        return TitleOutcome(path, TitleStatus.UNCHANGED, "already titled")

    for record in records:
        if isinstance(record, dict):
            record["title"] = record.get("bank") or UNTITLED
    try:
        write_json_atomic(path, records, indent=2)
    except OSError as exc:
        return TitleOutcome(path, TitleStatus.FAILED, str(exc))
    return TitleOutcome(path, TitleStatus.UPDATED)


def add_titles(directory: Path) -> list[TitleOutcome]:
    """Process every ``*.json`` file directly inside ``directory``."""

    files = iter_files([directory], {"json"}, level_limit=1)
    return [add_title_field(path) for path in files]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="study add-titles",
        description=(
            "Add a 'title' field (copied from 'bank') to quiz JSON files that "
            "do not have one yet."
        ),
    )
    parser.add_argument(
        "directory",
        type=Path,
        nargs="?",
        default=Path("quizzes"),
        help="Directory holding the quiz JSON files.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    directory: Path = args.directory
    if not directory.is_dir():
        sys.stderr.write(f"Quizzes directory not found: {directory}\n")
        return 1

    outcomes = add_titles(directory)
    if not outcomes:
        sys.stdout.write(f"No JSON files found in {directory}\n")
        return 0

    sys.stdout.write(f"Found {len(outcomes)} JSON file(s) to process.\n")
    for outcome in outcomes:
        name = outcome.path.name
        if outcome.status is TitleStatus.UPDATED:
            sys.stdout.write(f"  added title field to {name}\n")
        elif outcome.status is TitleStatus.UNCHANGED:
            sys.stdout.write(f"  {name} already has a title field\n")
        else:
            sys.stderr.write(f"  failed to process {name}: {outcome.reason}\n")

    updated = sum(1 for o in outcomes if o.status is TitleStatus.UPDATED)
    if updated:
        sys.stdout.write(
            "Edit each file's 'title' values to give the quizzes "
            "descriptive names.\n"
        )
    failed = any(o.status is TitleStatus.FAILED for o in outcomes)
    return 1 if failed else 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
