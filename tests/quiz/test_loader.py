from __future__ import annotations

import asyncio
import json
import logging

import pytest

from fixtures import StubFetcher, bank_payload, fetch_error, question_record
from study_tool.quiz import loader
from study_tool.quiz.errors import MalformedContentError


def _load(fetcher, names, **kwargs):
    return asyncio.run(loader.load_banks(fetcher, resource_names=names, **kwargs))


def test_default_resource_list():
    assert len(loader.DEFAULT_QUIZ_FILES) == 35
    assert all(
        name.startswith("canvas_quiz_results_") and name.endswith(".json")
        for name in loader.DEFAULT_QUIZ_FILES
    )
    assert len(set(loader.DEFAULT_QUIZ_FILES)) == 35


def test_parse_bank_prefers_title_then_bank():
    titled = loader.parse_bank("a.json", bank_payload("Chapter 2 Quiz"))
    records = [question_record("q?", ["x"], ["x"], bank="Bank Only")]
    untitled = loader.parse_bank("b.json", json.dumps(records))
    records[0]["bank"] = ""
    anonymous = loader.parse_bank("c.json", json.dumps(records))

    assert (titled.id, titled.name) == ("a", "Chapter 2 Quiz")
    assert untitled.name == "Bank Only"
    assert anonymous.name == loader.UNKNOWN_TOPIC


def test_parse_bank_capitalizes_and_fills_ids():
    records = [question_record("lower case?", ["a"], ["a"])]

    bank = loader.parse_bank("quiz.json", json.dumps(records))

    assert bank.questions[0].question == "Lower case?"
    assert bank.questions[0].question_id == "quiz_1"


@pytest.mark.parametrize("body", ["{not json", '{"a": 1}', "[]", "[3]"])
def test_parse_bank_rejects_unusable_content(body):
    with pytest.raises(MalformedContentError):
        loader.parse_bank("bad.json", body)


def test_parse_bank_skips_bad_records_only(caplog):
    no_answers = question_record("broken?", ["a"], ["a"])
    no_answers["answers"] = "a"
    records = [
        {"answers": ["x"], "correctAnswers": ["x"]},
        question_record("first good?", ["a", "b"], ["a"], title="Chapter 4"),
        no_answers,
        question_record("second good?", ["c"], ["c"]),
    ]

    with caplog.at_level(logging.WARNING, logger="study_tool.quiz.loader"):
        bank = loader.parse_bank("ch4.json", json.dumps(records))

    assert bank.name == "Chapter 4"
    assert [q.question for q in bank.questions] == [
        "First good?",
        "Second good?",
    ]
    assert [q.question_id for q in bank.questions] == ["ch4_2", "ch4_4"]
    skipped = [
        record
        for record in caplog.records
        if record.getMessage() == "Skipped malformed quiz record"
    ]
    assert [record.position for record in skipped] == [1, 3]


def test_sort_banks_by_chapter_stable():
    banks = [
        loader.parse_bank("x.json", bank_payload("Midterm Review")),
        loader.parse_bank("c10.json", bank_payload("Chapter 10 Quiz")),
        loader.parse_bank("c2.json", bank_payload("Chapter 2 Quiz")),
        loader.parse_bank("y.json", bank_payload("Final Review")),
    ]

    ordered = [bank.id for bank in loader.sort_banks(banks)]

    assert ordered == ["c2", "c10", "x", "y"]


def test_fetch_resource_tries_candidates_in_order():
    fetcher = StubFetcher(
        {
            "/quizzes/a.json": 500,
            "/StudyTool/quizzes/a.json": bank_payload("A"),
        }
    )

    response = asyncio.run(loader.fetch_resource(fetcher, "a.json"))

    assert response is not None and response.ok
    assert fetcher.calls == ["/quizzes/a.json", "/StudyTool/quizzes/a.json"]


def test_fetch_resource_moves_past_transport_errors():
    fetcher = StubFetcher(
        {
            "/quizzes/a.json": fetch_error("/quizzes/a.json"),
            "/StudyTool/quizzes/a.json": 404,
            "./quizzes/a.json": bank_payload("A"),
        }
    )

    response = asyncio.run(loader.fetch_resource(fetcher, "a.json"))

    assert response is not None
    assert len(fetcher.calls) == 3


def test_fetch_resource_returns_none_when_all_fail():
    fetcher = StubFetcher()

    assert asyncio.run(loader.fetch_resource(fetcher, "a.json")) is None
    assert len(fetcher.calls) == len(loader.CANDIDATE_PATHS)


def test_load_banks_skips_bad_resources_and_sorts(caplog):
    fetcher = StubFetcher(
        {
            "/quizzes/ch3.json": bank_payload("Chapter 3 Quiz", 1),
            "/quizzes/ch1.json": bank_payload("Chapter 1 Quiz", 2),
            "/quizzes/broken.json": "{oops",
            "/quizzes/empty.json": "[]",
        }
    )

    with caplog.at_level(logging.WARNING, logger="study_tool.quiz.loader"):
        banks = _load(
            fetcher,
            ["ch3.json", "missing.json", "broken.json", "empty.json", "ch1.json"],
        )

    assert [bank.id for bank in banks] == ["ch1", "ch3"]
    assert [len(bank) for bank in banks] == [2, 1]
    messages = [record.getMessage() for record in caplog.records]
    assert any("no candidate location" in message for message in messages)
    assert sum("malformed" in message for message in messages) == 2


def test_load_banks_skips_duplicate_ids():
    fetcher = StubFetcher({"/quizzes/a.json": bank_payload("A")})

    banks = _load(fetcher, ["a.json", "a.json"])

    assert [bank.id for bank in banks] == ["a"]
    assert fetcher.calls == ["/quizzes/a.json"]


def test_load_banks_falls_back_when_nothing_loads():
    banks = _load(StubFetcher(), ["a.json", "b.json"])

    assert [bank.id for bank in banks] == [loader.FALLBACK_BANK_ID]
    fallback = banks[0]
    assert fallback.name == loader.FALLBACK_BANK_NAME
    assert [q.question for q in fallback.questions] == [
        "What is the capital of France?",
        "Which planet is known as the Red Planet?",
        "What is 2 + 2?",
    ]


def test_load_banks_falls_back_on_unexpected_failure(caplog):
    class ExplodingFetcher:
        async def fetch(self, location):
            raise RuntimeError("socket exploded")

    with caplog.at_level(logging.ERROR, logger="study_tool.quiz.loader"):
        banks = _load(ExplodingFetcher(), ["a.json"])

    assert [bank.id for bank in banks] == [loader.FALLBACK_BANK_ID]
    assert any(record.exc_info for record in caplog.records)


def test_load_banks_uses_custom_candidate_paths():
    fetcher = StubFetcher({"banks/a.json": bank_payload("A")})

    banks = _load(fetcher, ["a.json"], candidate_paths=("banks/{name}",))

    assert [bank.id for bank in banks] == ["a"]
    assert fetcher.calls == ["banks/a.json"]
