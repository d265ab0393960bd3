"""Comprehensive review: every loaded question in one shuffled run."""

from __future__ import annotations

import random
from typing import Iterable, Optional, Sequence, TypeVar

from .models import ProcessedQuestion, QuizBank
from .normalizer import process_questions

__all__ = [
    "shuffle",
    "flatten_banks",
    "shuffled_order",
    "apply_order",
    "build_comprehensive",
]

T = TypeVar("T")


def shuffle(items: Sequence[T], rng: Optional[random.Random] = None) -> list[T]:
    """Return a Fisher-Yates shuffled copy of ``items``.

    Pass a seeded ``random.Random`` to make the order reproducible.
    """

    source = rng or random.Random()
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = source.randrange(i + 1)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def flatten_banks(banks: Iterable[QuizBank]) -> list[ProcessedQuestion]:
    """Processed questions of every bank, in bank order.

    Display ids stay relative to each question's source bank.
    """

    combined: list[ProcessedQuestion] = []
    for bank in banks:
        combined.extend(process_questions(bank.questions))
    return combined


def shuffled_order(
    count: int, rng: Optional[random.Random] = None
) -> tuple[int, ...]:
    return tuple(shuffle(range(count), rng))


def apply_order(
    items: Sequence[T], order: Sequence[int]
) -> Optional[list[T]]:
    """Arrange ``items`` by ``order``, or ``None`` if it is not a permutation."""

    if len(order) != len(items) or sorted(order) != list(range(len(items))):
        return None
    return [items[position] for position in order]


def build_comprehensive(
    banks: Iterable[QuizBank], *, rng: Optional[random.Random] = None
) -> list[ProcessedQuestion]:
    """Flatten ``banks`` into one list of processed questions, shuffled."""

    return shuffle(flatten_banks(banks), rng)
