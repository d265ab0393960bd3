"""Load quiz banks from a fixed list of JSON resources."""

from __future__ import annotations

import json
import logging
from typing import Iterable, Optional, Sequence

from .errors import FetchError, MalformedContentError
from .models import QuizBank, QuizQuestion
from .normalizer import capitalize_first_letter
from .sources import FetchResponse, ResourceFetcher

__all__ = [
    "DEFAULT_QUIZ_FILES",
    "CANDIDATE_PATHS",
    "RESOURCE_SUFFIX",
    "UNKNOWN_TOPIC",
    "FALLBACK_BANK_ID",
    "FALLBACK_BANK_NAME",
    "fallback_banks",
    "bank_id_for",
    "parse_bank",
    "sort_banks",
    "fetch_resource",
    "load_banks",
]

_LOGGER = logging.getLogger(__name__)

RESOURCE_SUFFIX = ".json"
UNKNOWN_TOPIC = "Unknown Topic"
FALLBACK_BANK_ID = "fallback"
FALLBACK_BANK_NAME = "Fallback Quiz - General Knowledge"

DEFAULT_QUIZ_FILES: tuple[str, ...] = tuple(
    f"canvas_quiz_results_{stamp}.json"
    for stamp in (
        1755654631020,
        1755654636456,
        1755654642621,
        1755654648626,
        1755654653858,
        1755654658566,
        1755654662791,
        1755654666987,
        1755654671653,
        1755654677481,
        1755654685712,
        1755654690966,
        1755654695793,
        1755654702275,
        1755654711436,
        1755654715305,
        1755654719358,
        1755654723382,
        1755654728535,
        1755654731788,
        1755654736147,
        1755654741176,
        1755654747371,
        1755654751542,
        1755654758363,
        1755654762380,
        1755654766924,
        1755654771420,
        1755654774952,
        1755654778339,
        1755654781736,
        1755654785730,
        1755654789198,
        1755654792260,
        1755654796556,
    )
)

# Tried in order for every resource: dev server, sub-path deploy, relative.
CANDIDATE_PATHS: tuple[str, ...] = (
    "/quizzes/{name}",
    "/StudyTool/quizzes/{name}",
    "./quizzes/{name}",
)

_FALLBACK_QUESTIONS: tuple[QuizQuestion, ...] = (
    QuizQuestion(
        index=1,
        question_id="fallback_1",
        question="What is the capital of France?",
        answers=("London", "Berlin", "Paris", "Madrid"),
        correct_answers=("Paris",),
        selected_answer="Paris",
        is_correct=True,
        bank=FALLBACK_BANK_NAME,
    ),
    QuizQuestion(
        index=2,
        question_id="fallback_2",
        question="Which planet is known as the Red Planet?",
        answers=("Venus", "Mars", "Jupiter", "Saturn"),
        correct_answers=("Mars",),
        selected_answer="Mars",
        is_correct=True,
        bank=FALLBACK_BANK_NAME,
    ),
    QuizQuestion(
        index=3,
        question_id="fallback_3",
        question="What is 2 + 2?",
        answers=("3", "4", "5", "6"),
        correct_answers=("4",),
        selected_answer="4",
        is_correct=True,
        bank=FALLBACK_BANK_NAME,
    ),
)


def fallback_banks() -> list[QuizBank]:
    """Return the built-in bank used when no resource could be loaded."""

    return [
        QuizBank(
            id=FALLBACK_BANK_ID,
            name=FALLBACK_BANK_NAME,
            questions=_FALLBACK_QUESTIONS,
        )
    ]


def bank_id_for(resource_name: str) -> str:
    return resource_name.removesuffix(RESOURCE_SUFFIX)


def parse_bank(
    resource_name: str, body: str, *, logger: Optional[logging.Logger] = None
) -> QuizBank:
    """Build a :class:`QuizBank` from a resource's JSON text.

    The display name prefers the first record's ``title``, then its
    ``bank``. Unusable records are skipped with a warning; a resource with
    no usable records is malformed. Question text is capitalized here;
    correct-answer resolution happens when questions are prepared for a
    session.
    """

    log = logger or _LOGGER

    bank_id = bank_id_for(resource_name)
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise MalformedContentError(
            f"Quiz resource {resource_name} is not valid JSON: {exc}"
        ) from exc
    if not isinstance(payload, list):
        raise MalformedContentError(
            f"Quiz resource {resource_name} must hold a JSON array of "
            "questions."
        )
    if not payload:
        raise MalformedContentError(
            f"Quiz resource {resource_name} contains no questions."
        )

    records: list[QuizQuestion] = []
    for position, item in enumerate(payload, start=1):
        try:
            records.append(
                QuizQuestion.from_dict(item, fallback_id=f"{bank_id}_{position}")
            )
        except MalformedContentError as exc:
            log.warning(
                "Skipped malformed quiz record",
                extra={
                    "resource": resource_name,
                    "position": position,
                    "reason": str(exc),
                },
            )
    if not records:
        raise MalformedContentError(
            f"Quiz resource {resource_name} contains no usable questions."
        )
    first = records[0]
    name = first.title or first.bank or UNKNOWN_TOPIC
    questions = tuple(
        _with_question(record, capitalize_first_letter(record.question))
        for record in records
    )
    return QuizBank(id=bank_id, name=name, questions=questions)


def _with_question(record: QuizQuestion, text: str) -> QuizQuestion:
    if text == record.question:
        return record
    return QuizQuestion(
        question_id=record.question_id,
        question=text,
        answers=record.answers,
        correct_answers=record.correct_answers,
        bank=record.bank,
        title=record.title,
        index=record.index,
        selected_answer=record.selected_answer,
        is_correct=record.is_correct,
    )


def sort_banks(banks: Iterable[QuizBank]) -> list[QuizBank]:
    """Order banks by chapter number; chapterless banks keep their order last."""

    return sorted(banks, key=lambda bank: bank.chapter)


async def fetch_resource(
    fetcher: ResourceFetcher,
    resource_name: str,
    *,
    candidate_paths: Sequence[str] = CANDIDATE_PATHS,
    logger: Optional[logging.Logger] = None,
) -> Optional[FetchResponse]:
    """Try each candidate path in order and return the first success."""

    log = logger or _LOGGER
    for template in candidate_paths:
        location = template.format(name=resource_name)
        try:
            response = await fetcher.fetch(location)
        except FetchError as exc:
            log.debug(
                "Quiz resource fetch failed",
                extra={
                    "resource": resource_name,
                    "location": location,
                    "reason": exc.reason,
                },
            )
            continue
        if response.ok:
            return response
        log.debug(
            "Quiz resource location unavailable",
            extra={
                "resource": resource_name,
                "location": location,
                "status": response.status,
            },
        )
    return None


async def load_banks(
    fetcher: ResourceFetcher,
    *,
    resource_names: Optional[Sequence[str]] = None,
    candidate_paths: Sequence[str] = CANDIDATE_PATHS,
    logger: Optional[logging.Logger] = None,
) -> list[QuizBank]:
    """Fetch every resource in order and return the banks sorted by chapter.

    Resources that cannot be fetched or parsed are skipped. When nothing
    loads, or the load fails outright, the fallback bank is returned so the
    caller always has content.
    """

    log = logger or _LOGGER
    names = DEFAULT_QUIZ_FILES if resource_names is None else resource_names
    try:
        banks = await _load_all(fetcher, names, candidate_paths, log)
    except Exception:
        log.exception("Quiz bank load failed; using fallback bank")
        return fallback_banks()

    if not banks:
        log.info("No quiz resources loaded; using fallback bank")
        return fallback_banks()

    log.info(
        "Loaded quiz banks",
        extra={"bank_count": len(banks), "resource_count": len(names)},
    )
    return banks


async def _load_all(
    fetcher: ResourceFetcher,
    names: Sequence[str],
    candidate_paths: Sequence[str],
    log: logging.Logger,
) -> list[QuizBank]:
    banks: list[QuizBank] = []
    seen: set[str] = set()
    for resource_name in names:
        if bank_id_for(resource_name) in seen:
            log.warning(
                "Skipped duplicate quiz resource",
                extra={"resource": resource_name},
            )
            continue
        response = await fetch_resource(
            fetcher,
            resource_name,
            candidate_paths=candidate_paths,
            logger=log,
        )
        if response is None:
            log.warning(
                "Skipped quiz resource; no candidate location responded",
                extra={"resource": resource_name},
            )
            continue
        try:
            bank = parse_bank(resource_name, response.text, logger=log)
        except MalformedContentError as exc:
            log.warning(
                "Skipped malformed quiz resource",
                extra={"resource": resource_name, "reason": str(exc)},
            )
            continue
        seen.add(bank.id)
        banks.append(bank)
    return sort_banks(banks)
