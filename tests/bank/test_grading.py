from __future__ import annotations

import pytest

from quiz_bank.bank.grading import (
    DEFAULT_VOCABULARY,
    YesNoVocabulary,
    correct_option_index,
    grade,
)
from quiz_bank.bank.models import QuestionRecord


@pytest.mark.parametrize(
    "canonical, given, expected",
    [
        ("B", "B", True),
        ("B", "b", True),
        ("B", " b ", True),
        ("b", "B", True),
        ("B) Paris", "B", True),
        ("B", "C", False),
        ("B", "", False),
        ("", "B", False),
        ("", "", False),
    ],
)
def test_grade_multiple_choice_compares_first_letter(
    payloads, canonical, given, expected
):
    record = QuestionRecord.from_payload(payloads.mcq(answer=canonical))
    assert grade(record, given) is expected


@pytest.mark.parametrize(
    "canonical, given, expected",
    [
        ("TAK", "tak", True),
        ("TAK", " TAK ", True),
        ("TAK", "NIE", False),
        ("NIE", "nie", True),
        ("TAK", "T", False),
        ("TAK", "yes", False),
        ("TAK", None, False),
        ("YES", "yes", True),
        ("NO", "no", True),
        ("YES", "TAK", False),
    ],
)
def test_grade_yes_no_compares_normalized_answers(
    payloads, canonical, given, expected
):
    record = QuestionRecord.from_payload(payloads.yn(answer=canonical))
    assert grade(record, given) is expected


def test_yes_no_canonical_outside_vocabulary_is_gradable(payloads):
    record = QuestionRecord.from_payload(payloads.yn(answer="YES"))

    assert "YES" not in DEFAULT_VOCABULARY.tokens
    assert grade(record, "yes") is True
    assert grade(record, "NIE") is False


def test_vocabulary_tokens_are_normalized():
    vocabulary = YesNoVocabulary(yes=" yes", no="No ")
    assert vocabulary.tokens == ("YES", "NO")


def test_correct_option_index(payloads):
    record = QuestionRecord.from_payload(payloads.mcq(answer="c"))
    assert correct_option_index(record) == 2

    out_of_range = QuestionRecord.from_payload(payloads.mcq(answer="Z"))
    assert correct_option_index(out_of_range) is None

    yes_no = QuestionRecord.from_payload(payloads.yn())
    assert correct_option_index(yes_no) is None
