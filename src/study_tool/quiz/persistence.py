"""Mirror quiz session state into a durable key-value store.

Each snapshot field is stored under its own key as JSON text so a failure on
one key never blocks the others. Reads degrade to caller-supplied defaults
instead of raising.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from json import JSONDecodeError
from pathlib import Path
from typing import Any, Callable, MutableMapping, Optional, Protocol

from study_tool.core.files import read_json_file, write_json_atomic

from .errors import StorageError
from .models import COMPREHENSIVE_QUIZ_ID

__all__ = [
    "KEY_SELECTED_QUIZ",
    "KEY_CURRENT_INDEX",
    "KEY_SCORE",
    "KEY_COMPLETED",
    "KEY_REVIEW_ORDER",
    "KEY_HISTORY",
    "SNAPSHOT_KEYS",
    "SessionSnapshot",
    "KeyValueStore",
    "MemoryStore",
    "JsonFileStore",
    "PersistenceAdapter",
]

_LOGGER = logging.getLogger(__name__)

KEY_SELECTED_QUIZ = "studyTool.selectedQuiz"
KEY_CURRENT_INDEX = "studyTool.currentQuestionIndex"
KEY_SCORE = "studyTool.score"
KEY_COMPLETED = "studyTool.completedQuestions"
# Flattened-bank positions in comprehensive display order; empty otherwise.
KEY_REVIEW_ORDER = "studyTool.reviewOrder"
# Reserved for a future attempt history; nothing reads or writes it yet.
KEY_HISTORY = "studyTool.quizHistory"

SNAPSHOT_KEYS = (
    KEY_SELECTED_QUIZ,
    KEY_CURRENT_INDEX,
    KEY_SCORE,
    KEY_COMPLETED,
    KEY_REVIEW_ORDER,
)


@dataclass(frozen=True)
class SessionSnapshot:
    """The persisted subset of a quiz session."""

    selected_quiz: str = COMPREHENSIVE_QUIZ_ID
    cursor: int = 0
    score: int = 0
    completed: tuple[int, ...] = field(default_factory=tuple)
    order: tuple[int, ...] = field(default_factory=tuple)


class KeyValueStore(Protocol):
    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemoryStore:
    """In-process store; the default for tests and ``--fresh`` runs."""

    def __init__(self, initial: Optional[MutableMapping[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._data.get(key, default)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> tuple[str, ...]:
        return tuple(self._data)


class JsonFileStore:
    """Key-value store persisted as one JSON object on disk.

    Every write rewrites the file atomically; values are the JSON-encoded
    strings handed to :meth:`set`.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._read().get(key)
        return value if isinstance(value, str) else default

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            payload = read_json_file(self._path)
        except (OSError, UnicodeDecodeError, JSONDecodeError) as exc:
            raise StorageError(
                f"Failed to read state file {self._path}: {exc}"
            ) from exc
        if not isinstance(payload, dict):
            raise StorageError(
                f"State file {self._path} must hold a JSON object."
            )
        return payload

    def _write(self, data: dict[str, Any]) -> None:
        try:
            write_json_atomic(self._path, data, mode=0o600)
        except OSError as exc:
            raise StorageError(
                f"Failed to write state file {self._path}: {exc}"
            ) from exc


class PersistenceAdapter:
    """Serialize session snapshots to a :class:`KeyValueStore`."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._store = store
        self._logger = logger or _LOGGER

    @property
    def store(self) -> KeyValueStore:
        return self._store

    def save_snapshot(self, snapshot: SessionSnapshot) -> None:
        """Write each field independently; failures are logged and dropped."""

        self._write(KEY_SELECTED_QUIZ, snapshot.selected_quiz)
        self._write(KEY_CURRENT_INDEX, snapshot.cursor)
        self._write(KEY_SCORE, snapshot.score)
        self._write(KEY_COMPLETED, sorted(snapshot.completed))
        self._write(KEY_REVIEW_ORDER, list(snapshot.order))

    def load_snapshot(
        self, defaults: Optional[SessionSnapshot] = None
    ) -> SessionSnapshot:
        """Read each field independently, using ``defaults`` when unusable."""

        base = defaults or SessionSnapshot()
        return SessionSnapshot(
            selected_quiz=self._read(
                KEY_SELECTED_QUIZ, base.selected_quiz, _as_quiz_id
            ),
            cursor=self._read(KEY_CURRENT_INDEX, base.cursor, _as_count),
            score=self._read(KEY_SCORE, base.score, _as_count),
            completed=self._read(KEY_COMPLETED, base.completed, _as_positions),
            order=self._read(KEY_REVIEW_ORDER, base.order, _as_order),
        )

    def clear(self) -> None:
        for key in SNAPSHOT_KEYS:
            try:
                self._store.remove(key)
            except StorageError as exc:
                self._logger.warning(
                    "Failed to clear session key",
                    extra={"key": key, "reason": str(exc)},
                )

    def _write(self, key: str, value: Any) -> None:
        try:
            encoded = json.dumps(value)
            self._store.set(key, encoded)
        except (StorageError, TypeError, ValueError) as exc:
            self._logger.warning(
                "Failed to persist session key",
                extra={"key": key, "reason": str(exc)},
            )

    def _read(self, key: str, default: Any, coerce: Callable[[Any], Any]) -> Any:
        try:
            raw = self._store.get(key)
        except StorageError as exc:
            self._logger.warning(
                "Failed to read session key",
                extra={"key": key, "reason": str(exc)},
            )
            return default
        if raw is None:
            return default
        try:
            return coerce(json.loads(raw))
        except (TypeError, ValueError) as exc:
            self._logger.warning(
                "Ignoring malformed session value",
                extra={"key": key, "reason": str(exc)},
            )
            return default


def _as_quiz_id(value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise ValueError("selected quiz must be a non-empty string")
    return value


def _as_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError("expected a non-negative integer")
    return value


def _as_positions(value: Any) -> tuple[int, ...]:
    if not isinstance(value, list):
        raise ValueError("completed questions must be a list")
    return tuple(sorted({_as_count(item) for item in value}))


def _as_order(value: Any) -> tuple[int, ...]:
    if not isinstance(value, list):
        raise ValueError("review order must be a list")
    return tuple(_as_count(item) for item in value)
