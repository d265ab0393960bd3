from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
ROOT = TESTS_DIR.parent
for extra in (TESTS_DIR, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import StubFetcher, WorkspaceBuilder  # noqa: E402


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a helper bound to pytest's per-test tmp directory."""

    return WorkspaceBuilder(tmp_path)


@pytest.fixture
def stub_fetcher() -> StubFetcher:
    return StubFetcher()


@pytest.fixture(autouse=True)
def _isolate_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    """Keep CLI runs away from the real home workspace and env overrides."""

    for name in (
        "STUDY_QUIZ_CONFIG",
        "STUDY_QUIZ_SOURCE",
        "STUDY_QUIZ_STATE_FILE",
        "STUDY_QUIZ_LOG_LEVEL",
        "STUDY_QUIZ_RESHUFFLE_ON_RESTART",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("STUDY_TOOL_DATA_HOME", str(tmp_path / "study-home"))
    yield
    logger = logging.getLogger("study_tool")
    logger.propagate = True
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
