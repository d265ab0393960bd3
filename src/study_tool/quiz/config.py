"""Configuration loader for quiz sessions."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional, Sequence

from study_tool.core import config as core_config
from study_tool.core import workspace as workspace_mod

from .errors import QuizConfigError
from .loader import CANDIDATE_PATHS, DEFAULT_QUIZ_FILES
from .models import COMPREHENSIVE_QUIZ_ID

CONFIG_FILENAME = "quiz.toml"
CONFIG_ENV = "STUDY_QUIZ_CONFIG"
ENV_PREFIX = "STUDY_QUIZ_"
STATE_FILENAME = "quiz_state.json"

_DEFAULT_LOCATION = "."
_DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class QuizConfig:
    """Fully resolved settings for a quiz run."""

    location: str
    candidate_paths: tuple[str, ...]
    quiz_files: tuple[str, ...]
    default_quiz: str
    reshuffle_on_restart: bool
    state_file: Path
    log_level: str


@dataclass(frozen=True)
class ConfigOverrides:
    """Command-line overrides applied on top of file and environment."""

    location: Optional[str] = None
    default_quiz: Optional[str] = None
    reshuffle_on_restart: Optional[bool] = None
    state_file: Optional[Path] = None
    log_level: Optional[str] = None


@dataclass(frozen=True)
class LoadResult:
    config: QuizConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Resolve quiz settings with precedence CLI > env > TOML > defaults."""

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    layout = workspace_mod.ensure_workspace(env=env_map, path=workspace_path)
    requested = _resolve_config_path(
        config_path=config_path,
        env_map=env_map,
        default_path=layout.path_for("config") / CONFIG_FILENAME,
    )

    table = _default_table()
    loaded_path: Optional[Path] = None
    if requested.exists():
        try:
            core_config.merge_defaults(table, core_config.load_toml(requested))
        except core_config.TomlConfigError as exc:
            raise QuizConfigError(str(exc)) from exc
        loaded_path = requested
    elif config_path is not None or (env_map.get(CONFIG_ENV) or "").strip():
        raise QuizConfigError(f"Config file not found: {requested}")

    try:
        env_reshuffle = core_config.env_flag(
            env_map, ENV_PREFIX, "RESHUFFLE_ON_RESTART"
        )
    except core_config.TomlConfigError as exc:
        raise QuizConfigError(str(exc)) from exc

    sources = table["sources"]
    session = table["session"]

    location = _require_string(
        core_config.pick_first(
            overrides.location,
            core_config.env_value(env_map, ENV_PREFIX, "SOURCE"),
            sources["location"],
        ),
        field="sources.location",
    )
    state_file = _resolve_state_file(
        core_config.pick_first(
            overrides.state_file,
            core_config.env_value(env_map, ENV_PREFIX, "STATE_FILE"),
            table["storage"]["state_file"],
        ),
        layout=layout,
    )
    log_level = _require_string(
        core_config.pick_first(
            overrides.log_level,
            core_config.env_value(env_map, ENV_PREFIX, "LOG_LEVEL"),
            table["logging"]["level"],
        ),
        field="logging.level",
    ).upper()
    reshuffle = core_config.pick_first(
        overrides.reshuffle_on_restart,
        env_reshuffle,
        session["reshuffle_on_restart"],
    )
    if not isinstance(reshuffle, bool):
        raise QuizConfigError("'session.reshuffle_on_restart' must be a boolean.")

    config = QuizConfig(
        location=location,
        candidate_paths=_candidate_paths(sources["candidate_paths"]),
        quiz_files=_quiz_files(sources["quiz_files"]),
        default_quiz=_require_string(
            core_config.pick_first(
                overrides.default_quiz, session["default_quiz"]
            ),
            field="session.default_quiz",
        ),
        reshuffle_on_restart=reshuffle,
        state_file=state_file,
        log_level=log_level,
    )
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def _default_table() -> MutableMapping[str, MutableMapping[str, Any]]:
    return {
        "sources": {
            "location": _DEFAULT_LOCATION,
            "candidate_paths": list(CANDIDATE_PATHS),
            "quiz_files": [],
        },
        "session": {
            "default_quiz": COMPREHENSIVE_QUIZ_ID,
            "reshuffle_on_restart": False,
        },
        "storage": {"state_file": ""},
        "logging": {"level": _DEFAULT_LOG_LEVEL},
    }


def _resolve_config_path(
    *,
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    default_path: Path,
) -> Path:
    if config_path is not None:
        return config_path.expanduser()
    env_candidate = (env_map.get(CONFIG_ENV) or "").strip()
    if env_candidate:
        return Path(env_candidate).expanduser()
    return default_path


def _require_string(value: object, *, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise QuizConfigError(f"'{field}' must be a non-empty string.")
    return value.strip()


def _string_sequence(value: object, *, field: str) -> tuple[str, ...]:
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        raise QuizConfigError(f"'{field}' must be a list of strings.")
    return tuple(_require_string(item, field=field) for item in value)


def _candidate_paths(value: object) -> tuple[str, ...]:
    paths = _string_sequence(value, field="sources.candidate_paths")
    if not paths:
        raise QuizConfigError(
            "'sources.candidate_paths' must list at least one path."
        )
    for path in paths:
        if "{name}" not in path:
            raise QuizConfigError(
                f"Candidate path '{path}' must contain the {{name}} placeholder."
            )
    return paths


def _quiz_files(value: object) -> tuple[str, ...]:
    files = _string_sequence(value, field="sources.quiz_files")
    return files or DEFAULT_QUIZ_FILES


def _resolve_state_file(
    candidate: object, *, layout: workspace_mod.WorkspaceLayout
) -> Path:
    if isinstance(candidate, str):
        candidate = Path(candidate.strip()) if candidate.strip() else None
    if candidate is None:
        return layout.path_for("state") / STATE_FILENAME
    if not isinstance(candidate, Path):
        raise QuizConfigError("'storage.state_file' must be a string.")
    candidate = candidate.expanduser()
    if not candidate.is_absolute():
        return (layout.home / candidate).resolve()
    return candidate.resolve()
