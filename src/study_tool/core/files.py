"""File discovery and JSON IO helpers shared across study tool modules."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Iterator, Sequence, Set

__all__ = [
    "iter_files",
    "read_json_file",
    "write_json_atomic",
]


def iter_files(
    paths: Sequence[Path],
    extensions: Set[str],
    level_limit: int = 1,
) -> Iterator[Path]:
    """Yield files matching ``extensions`` in name order per input path.

    ``level_limit`` bounds directory depth (``1`` = direct children only,
    ``0`` = unlimited). Missing inputs raise :class:`FileNotFoundError`.
    """

    if level_limit < 0:
        raise ValueError("level_limit must be >= 0")
    for raw in paths:
        path = Path(raw)
        if path.is_file():
            if _matches_extension(path, extensions):
                yield path
            continue
        if not path.exists():
            raise FileNotFoundError(f"Input not found: {path}")
        if not path.is_dir():
            continue
        children = sorted(
            (child for child in path.rglob("*") if child.is_file()),
            key=lambda child: child.name.lower(),
        )
        for child in children:
            depth = len(child.relative_to(path).parts)
            if level_limit and depth > level_limit:
                continue
            if _matches_extension(child, extensions):
                yield child


def _matches_extension(path: Path, extensions: Set[str]) -> bool:
    return path.suffix.lower().lstrip(".") in extensions


def read_json_file(path: Path) -> Any:
    """Decode a UTF-8 JSON document; decode errors propagate to the caller."""

    with Path(path).open("r", encoding="utf-8") as handle:
        return json.load(handle)


def write_json_atomic(
    path: Path, payload: Any, *, indent: int | None = 2, mode: int | None = None
) -> None:
    """Replace ``path`` with ``payload`` via a temp file in the same folder."""

    path.parent.mkdir(parents=True, exist_ok=True)
    handle = tempfile.NamedTemporaryFile(
        "w",
        delete=False,
        encoding="utf-8",
        dir=str(path.parent),
        suffix=".tmp",
    )
    try:
        json.dump(payload, handle, indent=indent, ensure_ascii=False)
        handle.flush()
        os.fsync(handle.fileno())
    except BaseException:
        handle.close()
        Path(handle.name).unlink(missing_ok=True)
        raise
    handle.close()
    os.replace(handle.name, path)
    if mode is not None:
        try:
            path.chmod(mode)
        except PermissionError:  # pragma: no cover - depends on filesystem
            pass
