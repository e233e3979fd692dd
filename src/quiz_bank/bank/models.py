"""Question records and the payload shapes they are built from.

Records are immutable; answer and rating updates produce new instances via
``dataclasses.replace`` so the store can stage them in a draft before commit.
Payload parsing is defensive because the generator output is only loosely
typed: unknown metadata values are coerced, and ``topic``/``timestamp`` fall
back to explicit defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, MutableMapping, Union

from .errors import InvalidArgument

__all__ = [
    "UNTITLED_TOPIC",
    "MetadataValue",
    "QuestionKind",
    "Citation",
    "AnswerState",
    "RatingState",
    "QuestionRecord",
    "coerce_metadata",
    "utc_timestamp",
]


UNTITLED_TOPIC = "untitled"

MetadataValue = Union[
    str,
    int,
    float,
    bool,
    None,
    list["MetadataValue"],
    Mapping[str, "MetadataValue"],
]


class QuestionKind(str, Enum):
    MULTIPLE_CHOICE = "MCQ"
    YES_NO = "YN"

    @classmethod
    def parse(cls, raw: object) -> "QuestionKind":
        text = str(raw or "").strip().upper()
        for kind in cls:
            if kind.value == text:
                return kind
        raise InvalidArgument(f"Unknown question kind: {raw!r}")


@dataclass(frozen=True)
class Citation:
    """Source excerpt backing a generated question."""

    source: str
    page: int | None
    quote: str

    def to_dict(self) -> MutableMapping[str, Any]:
        return {"source": self.source, "page": self.page, "quote": self.quote}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Citation":
        if not isinstance(payload, Mapping):
            raise InvalidArgument("Citation entries must be mappings.")
        return cls(
            source=str(payload.get("source") or ""),
            page=_coerce_page(payload.get("page")),
            quote=str(payload.get("quote") or ""),
        )


@dataclass(frozen=True)
class AnswerState:
    user_answer: str
    is_correct: bool
    answered_at: str

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "user_answer": self.user_answer,
            "is_correct": self.is_correct,
            "answered_at": self.answered_at,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "AnswerState":
        try:
            user_answer = payload["user_answer"]
            is_correct = payload["is_correct"]
            answered_at = payload["answered_at"]
        except KeyError as exc:
            raise InvalidArgument(
                f"Answer state missing required field: {exc}"
            ) from exc
        if not isinstance(is_correct, bool):
            raise InvalidArgument("Answer state 'is_correct' must be a bool.")
        return cls(
            user_answer=str(user_answer),
            is_correct=is_correct,
            answered_at=str(answered_at),
        )


@dataclass(frozen=True)
class RatingState:
    score: int
    feedback: str | None = None

    def to_dict(self) -> MutableMapping[str, Any]:
        return {"score": self.score, "feedback": self.feedback}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "RatingState":
        score = payload.get("score")
        if isinstance(score, bool) or not isinstance(score, int):
            raise InvalidArgument("Rating 'score' must be an integer.")
        feedback = payload.get("feedback")
        return cls(
            score=score,
            feedback=str(feedback) if feedback is not None else None,
        )


@dataclass(frozen=True)
class QuestionRecord:
    """One persisted question plus its local answer and rating state."""

    question_id: str
    topic: str
    created_at: str
    kind: QuestionKind
    stem: str
    answer: str
    explanation: str = ""
    options: tuple[str, ...] | None = None
    citations: tuple[Citation, ...] = ()
    metadata: Mapping[str, MetadataValue] = field(default_factory=dict)
    answer_state: AnswerState | None = None
    rating_state: RatingState | None = None
    sequence: int = 0

    @property
    def is_answered(self) -> bool:
        return self.answer_state is not None

    def with_answer(self, state: AnswerState | None) -> "QuestionRecord":
        return replace(self, answer_state=state)

    def with_rating(self, state: RatingState | None) -> "QuestionRecord":
        return replace(self, rating_state=state)

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        *,
        untitled_label: str = UNTITLED_TOPIC,
        now: str | None = None,
    ) -> "QuestionRecord":
        """Build a record from a generator ``QuestionWrapper`` payload."""

        if not isinstance(payload, Mapping):
            raise InvalidArgument("Question payload must be a mapping.")
        question_id = payload.get("question_id", payload.get("questionId"))
        if not isinstance(question_id, str) or not question_id.strip():
            raise InvalidArgument(
                "Question payload requires a non-empty 'question_id'."
            )
        question = payload.get("question")
        if not isinstance(question, Mapping):
            raise InvalidArgument(
                f"Question payload {question_id!r} lacks a 'question' table."
            )
        metadata = coerce_metadata(question.get("metadata") or {})
        return cls(
            question_id=question_id.strip(),
            topic=_topic_from(metadata, untitled_label),
            created_at=_timestamp_from(metadata, now),
            kind=QuestionKind.parse(question.get("kind")),
            stem=str(question.get("stem") or "").strip(),
            answer=str(question.get("answer") or "").strip(),
            explanation=str(question.get("explanation") or "").strip(),
            options=_coerce_options(question.get("options")),
            citations=_coerce_citations(question.get("citations")),
            metadata=metadata,
        )

    def to_dict(self) -> MutableMapping[str, Any]:
        payload: MutableMapping[str, Any] = {
            "question_id": self.question_id,
            "topic": self.topic,
            "created_at": self.created_at,
            "sequence": self.sequence,
            "kind": self.kind.value,
            "stem": self.stem,
            "answer": self.answer,
            "explanation": self.explanation,
            "options": (
                list(self.options) if self.options is not None else None
            ),
            "citations": [citation.to_dict() for citation in self.citations],
            "metadata": dict(self.metadata),
        }
        if self.answer_state is not None:
            payload["answer_state"] = self.answer_state.to_dict()
        if self.rating_state is not None:
            payload["rating_state"] = self.rating_state.to_dict()
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "QuestionRecord":
        """Rebuild a record previously produced by :meth:`to_dict`."""

        try:
            question_id = str(payload["question_id"])
            topic = str(payload["topic"])
            created_at = str(payload["created_at"])
            kind = QuestionKind.parse(payload["kind"])
            sequence = int(payload.get("sequence", 0))
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidArgument(
                f"Stored record missing or invalid field: {exc}"
            ) from exc
        answer_state = payload.get("answer_state")
        rating_state = payload.get("rating_state")
        return cls(
            question_id=question_id,
            topic=topic,
            created_at=created_at,
            kind=kind,
            stem=str(payload.get("stem") or ""),
            answer=str(payload.get("answer") or ""),
            explanation=str(payload.get("explanation") or ""),
            options=_coerce_options(payload.get("options")),
            citations=_coerce_citations(payload.get("citations")),
            metadata=coerce_metadata(payload.get("metadata") or {}),
            answer_state=(
                AnswerState.from_dict(answer_state)
                if isinstance(answer_state, Mapping)
                else None
            ),
            rating_state=(
                RatingState.from_dict(rating_state)
                if isinstance(rating_state, Mapping)
                else None
            ),
            sequence=sequence,
        )


def coerce_metadata(raw: object) -> dict[str, MetadataValue]:
    """Return ``raw`` as a JSON-compatible mapping of metadata values."""

    if not isinstance(raw, Mapping):
        raise InvalidArgument("Question metadata must be a mapping.")
    return {str(key): _coerce_value(value) for key, value in raw.items()}


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _coerce_value(value: object) -> MetadataValue:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Mapping):
        return {str(key): _coerce_value(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [_coerce_value(item) for item in value]
    return repr(value)


def _topic_from(metadata: Mapping[str, MetadataValue], fallback: str) -> str:
    topic = metadata.get("topic")
    if isinstance(topic, str) and topic.strip():
        return topic.strip()
    return fallback


def _timestamp_from(
    metadata: Mapping[str, MetadataValue], now: str | None
) -> str:
    stamp = metadata.get("timestamp")
    if isinstance(stamp, str) and stamp.strip():
        return stamp.strip()
    return now or utc_timestamp()


def _coerce_options(raw: object) -> tuple[str, ...] | None:
    if raw is None:
        return None
    if isinstance(raw, (str, bytes)) or not isinstance(raw, (list, tuple)):
        raise InvalidArgument("Question 'options' must be a list of strings.")
    return tuple(str(option) for option in raw)


def _coerce_citations(raw: object) -> tuple[Citation, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, (list, tuple)):
        raise InvalidArgument("Question 'citations' must be a list.")
    return tuple(Citation.from_dict(item) for item in raw)


def _coerce_page(raw: object) -> int | None:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return int(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
