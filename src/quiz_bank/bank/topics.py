"""Per-topic summaries for browsing the bank."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from .store import RecordStore

__all__ = [
    "TopicSummary",
    "summarize",
]


@dataclass(frozen=True)
class TopicSummary:
    topic: str
    count: int
    last_timestamp: str


async def summarize(store: RecordStore) -> List[TopicSummary]:
    """Group every stored record by topic, most recently active first.

    Ties on ``last_timestamp`` are ordered by topic name.
    """

    counts: Dict[str, int] = {}
    latest: Dict[str, str] = {}
    for record in await store.get_all():
        counts[record.topic] = counts.get(record.topic, 0) + 1
        previous = latest.get(record.topic)
        if previous is None or record.created_at > previous:
            latest[record.topic] = record.created_at
    summaries = [
        TopicSummary(topic=topic, count=count, last_timestamp=latest[topic])
        for topic, count in counts.items()
    ]
    summaries.sort(key=lambda item: item.topic)
    summaries.sort(key=lambda item: item.last_timestamp, reverse=True)
    return summaries
