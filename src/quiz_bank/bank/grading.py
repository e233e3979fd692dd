"""Correctness rules for submitted answers.

Multiple-choice answers are compared on their first character only, so a
canonical answer stored as ``"b"`` and one stored as ``"B) Paris"`` both
accept ``"B"``. The generator's answer format is not fully controlled, hence
the leniency. Note the ambiguity: an option text beginning with another
option's letter can produce a false positive.

Yes/no answers must equal the canonical answer exactly after normalization.
The generator may emit TAK/NIE or YES/NO literals, so grading ignores the
configured vocabulary; :class:`YesNoVocabulary` only decides which choices
are offered to the user.
"""

from __future__ import annotations

from dataclasses import dataclass

from .models import QuestionKind, QuestionRecord
from .normalize import index_for_letter, normalize_answer

__all__ = [
    "YesNoVocabulary",
    "DEFAULT_VOCABULARY",
    "grade",
    "correct_option_index",
]


@dataclass(frozen=True)
class YesNoVocabulary:
    """The affirmative/negative choices offered for a yes/no question."""

    yes: str = "TAK"
    no: str = "NIE"

    def __post_init__(self) -> None:
        object.__setattr__(self, "yes", normalize_answer(self.yes))
        object.__setattr__(self, "no", normalize_answer(self.no))

    @property
    def tokens(self) -> tuple[str, str]:
        return (self.yes, self.no)


DEFAULT_VOCABULARY = YesNoVocabulary()


def grade(record: QuestionRecord, raw_user_answer: object) -> bool:
    """Return whether ``raw_user_answer`` matches the record's answer."""

    expected = normalize_answer(record.answer)
    given = normalize_answer(raw_user_answer)
    if record.kind is QuestionKind.MULTIPLE_CHOICE:
        if not expected or not given:
            return False
        return expected[0] == given[0]
    return expected == given


def correct_option_index(record: QuestionRecord) -> int | None:
    if record.kind is not QuestionKind.MULTIPLE_CHOICE:
        return None
    index = index_for_letter(record.answer)
    if index is None or not record.options or index >= len(record.options):
        return None
    return index
