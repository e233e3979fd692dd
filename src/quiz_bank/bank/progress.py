"""Answer and rating state transitions for stored questions.

Each question moves ``Unanswered -> Answered(correct | incorrect)`` on its
first submitted answer; later submissions are ignored. ``reset_topic`` moves
every answered record of a topic back to ``Unanswered``. Ratings live beside
the answer state and may be set or overwritten at any time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from .errors import InvalidArgument, QuestionBankError
from .grading import grade
from .models import AnswerState, QuestionRecord, RatingState, utc_timestamp
from .store import RecordStore

__all__ = [
    "MIN_SCORE",
    "MAX_SCORE",
    "TopicProgress",
    "ProgressTracker",
    "clamp_score",
]

MIN_SCORE = 1
MAX_SCORE = 10

_LOGGER = logging.getLogger("quiz_bank.bank.progress")


@dataclass(frozen=True)
class TopicProgress:
    """Answer statistics for a single topic."""

    topic: str
    answered_count: int
    total_count: int
    correct_count: int

    @property
    def is_complete(self) -> bool:
        return self.total_count > 0 and self.answered_count == self.total_count

    @property
    def percent_correct(self) -> int:
        if self.total_count == 0:
            return 0
        return round(self.correct_count / self.total_count * 100)


def clamp_score(score: int) -> int:
    if isinstance(score, bool) or not isinstance(score, int):
        raise InvalidArgument(
            f"Rating score must be an integer, got {type(score).__name__}."
        )
    return max(MIN_SCORE, min(MAX_SCORE, score))


class ProgressTracker:
    """Persist answer/rating outcomes through a :class:`RecordStore`."""

    def __init__(
        self,
        store: RecordStore,
        *,
        clock: Callable[[], str] = utc_timestamp,
        logger: logging.Logger | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._logger = logger or _LOGGER

    @property
    def store(self) -> RecordStore:
        return self._store

    async def submit_answer(
        self, question_id: str, raw_answer: str
    ) -> AnswerState:
        """Grade and record ``raw_answer``; the first answer wins."""

        def _answer(record: QuestionRecord) -> QuestionRecord:
            if record.answer_state is not None:
                return record
            state = AnswerState(
                user_answer=str(raw_answer),
                is_correct=grade(record, raw_answer),
                answered_at=self._clock(),
            )
            return record.with_answer(state)

        updated = await self._store.update(question_id, _answer)
        state = updated.answer_state
        if state is None:
            raise QuestionBankError(
                f"Answer for {question_id} was not recorded."
            )
        self._logger.info(
            "Recorded answer",
            extra={
                "question_id": question_id,
                "is_correct": state.is_correct,
            },
        )
        return state

    async def rate(
        self,
        question_id: str,
        score: int,
        feedback: str | None = None,
    ) -> RatingState:
        """Store a rating, clamping ``score`` into ``[1, 10]``."""

        state = RatingState(
            score=clamp_score(score),
            feedback=str(feedback) if feedback is not None else None,
        )
        await self._store.update(
            question_id, lambda record: record.with_rating(state)
        )
        self._logger.info(
            "Recorded rating",
            extra={"question_id": question_id, "score": state.score},
        )
        return state

    async def reset_topic(self, topic: str) -> int:
        """Clear answers in ``topic``; ratings and payload stay untouched."""

        def _clear(record: QuestionRecord) -> QuestionRecord:
            if record.answer_state is None:
                return record
            return record.with_answer(None)

        reset = await self._store.update_topic(topic, _clear)
        self._logger.info(
            "Reset topic progress",
            extra={"topic": topic, "reset_count": reset},
        )
        return reset

    async def progress(self, topic: str) -> TopicProgress:
        records = await self._store.get_by_topic(topic)
        states = [rec.answer_state for rec in records if rec.answer_state]
        correct = sum(1 for state in states if state.is_correct)
        return TopicProgress(
            topic=topic,
            answered_count=len(states),
            total_count=len(records),
            correct_count=correct,
        )
