"""Shared testing fixtures for the study tool test suite."""

from .quiz import (  # noqa: F401
    StubFetcher,
    bank_payload,
    fetch_error,
    question_record,
)
from .workspace import WorkspaceBuilder, build_tree  # noqa: F401

__all__ = [
    "StubFetcher",
    "WorkspaceBuilder",
    "bank_payload",
    "build_tree",
    "fetch_error",
    "question_record",
]
