"""Bridge between generation-service responses and the local bank.

The generator answers either with a single ``QuestionWrapper`` or, when asked
for several questions, with ``{"items": [QuestionWrapper, ...]}``. Every
wrapper becomes its own record. Rating calls are mirrored locally only once
the remote endpoint acknowledged them.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator, List, Mapping

from .errors import InvalidArgument
from .models import UNTITLED_TOPIC, QuestionRecord, utc_timestamp
from .progress import ProgressTracker
from .store import RecordStore

__all__ = [
    "iter_question_payloads",
    "parse_records",
    "ingest_payload",
    "mirror_rating",
]

_LOGGER = logging.getLogger("quiz_bank.bank.ingest")


def iter_question_payloads(data: Any) -> Iterator[Mapping[str, Any]]:
    """Yield question wrappers from a single or multi-item response."""

    if not isinstance(data, Mapping):
        raise InvalidArgument("Generation response must be a JSON object.")
    items = data.get("items")
    if items is None:
        yield data
        return
    if not isinstance(items, list):
        raise InvalidArgument("Generation response 'items' must be a list.")
    for item in items:
        if not isinstance(item, Mapping):
            raise InvalidArgument("Each generated item must be an object.")
        yield item


def parse_records(
    data: Any,
    *,
    untitled_label: str = UNTITLED_TOPIC,
) -> List[QuestionRecord]:
    """Validate a whole response up front so nothing is half-ingested."""

    now = utc_timestamp()
    return [
        QuestionRecord.from_payload(
            payload, untitled_label=untitled_label, now=now
        )
        for payload in iter_question_payloads(data)
    ]


async def ingest_payload(
    store: RecordStore,
    data: Any,
    *,
    untitled_label: str = UNTITLED_TOPIC,
    logger: logging.Logger | None = None,
) -> List[str]:
    """Upsert every question in ``data``; return their ids in order."""

    log = logger or _LOGGER
    records = parse_records(data, untitled_label=untitled_label)
    for record in records:
        await store.upsert(record)
    log.info(
        "Ingested generated questions",
        extra={
            "count": len(records),
            "topics": sorted({record.topic for record in records}),
        },
    )
    return [record.question_id for record in records]


async def mirror_rating(
    tracker: ProgressTracker,
    question_id: str,
    score: int,
    feedback: str | None,
    ack: Any,
) -> bool:
    """Store a rating locally when the remote ``{"ok": bool}`` ack allows."""

    if not isinstance(ack, Mapping) or not isinstance(ack.get("ok"), bool):
        raise InvalidArgument("Rating acknowledgment must be {'ok': bool}.")
    if not ack["ok"]:
        _LOGGER.warning(
            "Remote rating rejected; local state unchanged",
            extra={"question_id": question_id},
        )
        return False
    await tracker.rate(question_id, score, feedback)
    return True
