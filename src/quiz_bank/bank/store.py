"""Durable keyed storage for question records.

The store keeps the committed state in memory (primary table keyed by
``question_id`` plus a ``topic -> {question_id}`` index) and mirrors it to a
single JSON document. Every mutation runs as a transaction:

1. writers in this process are serialized by an :class:`asyncio.Lock`, and
   writers in other processes by an exclusive lock file held for the whole
   transaction;
2. the document is reloaded under that lock and copied into a draft, so
   commits made by another process are never overwritten;
3. the body mutates the draft, which is written atomically (temp file +
   ``os.replace``) off the event loop;
4. only then is the draft swapped in and the change notifier fired once.

A failure anywhere before the swap leaves the committed tables untouched, so
readers never observe a record in one table but not the other.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Iterable, Mapping

from .errors import InvalidArgument, NotFound, StorageUnavailable
from .models import QuestionRecord
from .notifier import ChangeNotifier, default_notifier

__all__ = [
    "Mutator",
    "RecordStore",
]


Mutator = Callable[[QuestionRecord], QuestionRecord]

_SCHEMA_VERSION = 1
_LOCK_SUFFIX = ".lock"
_DEFAULT_LOCK_TIMEOUT_SECONDS = 5.0

_LOGGER = logging.getLogger("quiz_bank.bank.store")


@dataclass
class _Tables:
    records: dict[str, QuestionRecord] = field(default_factory=dict)
    by_topic: dict[str, set[str]] = field(default_factory=dict)
    next_sequence: int = 1
    dirty: bool = False

    def copy(self) -> "_Tables":
        return _Tables(
            records=dict(self.records),
            by_topic={topic: set(ids) for topic, ids in self.by_topic.items()},
            next_sequence=self.next_sequence,
        )

    def put(self, record: QuestionRecord) -> None:
        previous = self.records.get(record.question_id)
        if previous is not None and previous.topic != record.topic:
            self._unindex(previous)
        self.records[record.question_id] = record
        self.by_topic.setdefault(record.topic, set()).add(record.question_id)
        self.dirty = True

    def remove(self, question_id: str) -> bool:
        previous = self.records.pop(question_id, None)
        if previous is None:
            return False
        self._unindex(previous)
        self.dirty = True
        return True

    def clear(self) -> None:
        if self.records:
            self.dirty = True
        self.records.clear()
        self.by_topic.clear()

    def _unindex(self, record: QuestionRecord) -> None:
        ids = self.by_topic.get(record.topic)
        if ids is None:
            return
        ids.discard(record.question_id)
        if not ids:
            del self.by_topic[record.topic]

    def to_payload(self) -> Mapping[str, Any]:
        ordered = sorted(self.records.values(), key=lambda rec: rec.sequence)
        return {
            "schema_version": _SCHEMA_VERSION,
            "next_sequence": self.next_sequence,
            "records": [record.to_dict() for record in ordered],
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "_Tables":
        if not isinstance(payload, Mapping):
            raise InvalidArgument("Bank document must be a JSON object.")
        version = payload.get("schema_version")
        if version != _SCHEMA_VERSION:
            raise InvalidArgument(
                f"Unsupported bank schema version: {version}"
            )
        raw_records = payload.get("records", [])
        if not isinstance(raw_records, list):
            raise InvalidArgument("Bank 'records' must be a list.")
        tables = cls()
        for item in raw_records:
            if not isinstance(item, Mapping):
                raise InvalidArgument("Bank records must be JSON objects.")
            tables.put(QuestionRecord.from_dict(item))
        highest = max(
            (record.sequence for record in tables.records.values()),
            default=0,
        )
        stored_next = payload.get("next_sequence", highest + 1)
        if isinstance(stored_next, bool) or not isinstance(stored_next, int):
            raise InvalidArgument("Bank 'next_sequence' must be an integer.")
        tables.next_sequence = max(stored_next, highest + 1)
        tables.dirty = False
        return tables


class RecordStore:
    """Transactional question store with a secondary index on topic.

    Instances are created with :meth:`open`; every public operation is a
    coroutine.
    """

    def __init__(
        self,
        path: Path,
        *,
        tables: _Tables | None = None,
        notifier: ChangeNotifier | None = None,
        logger: logging.Logger | None = None,
        lock_timeout: float = _DEFAULT_LOCK_TIMEOUT_SECONDS,
    ) -> None:
        self._path = path
        self._tables = tables or _Tables()
        self._notifier = notifier or default_notifier
        self._logger = logger or _LOGGER
        self._lock_timeout = lock_timeout
        self._write_lock = asyncio.Lock()

    @classmethod
    async def open(
        cls,
        path: Path,
        *,
        notifier: ChangeNotifier | None = None,
        logger: logging.Logger | None = None,
        lock_timeout: float = _DEFAULT_LOCK_TIMEOUT_SECONDS,
    ) -> "RecordStore":
        """Load the bank at ``path``, creating its directory when missing."""

        tables = await asyncio.to_thread(_load_tables, path)
        store = cls(
            path,
            tables=tables,
            notifier=notifier,
            logger=logger,
            lock_timeout=lock_timeout,
        )
        store._logger.debug(
            "Opened question bank",
            extra={"path": str(path), "record_count": len(tables.records)},
        )
        return store

    @property
    def path(self) -> Path:
        return self._path

    @property
    def notifier(self) -> ChangeNotifier:
        return self._notifier

    # Queries -------------------------------------------------------------

    async def get(self, question_id: str) -> QuestionRecord | None:
        return self._tables.records.get(question_id)

    async def get_by_topic(self, topic: str) -> list[QuestionRecord]:
        """Return the topic's records oldest first (quiz traversal order)."""

        tables = self._tables
        ids = tables.by_topic.get(topic, ())
        records = [tables.records[qid] for qid in ids]
        records.sort(key=lambda rec: (rec.created_at, rec.sequence))
        return records

    async def get_all(self) -> list[QuestionRecord]:
        return list(self._tables.records.values())

    async def topics(self) -> list[str]:
        return sorted(self._tables.by_topic)

    # Mutations -----------------------------------------------------------

    async def upsert(self, record: QuestionRecord) -> None:
        """Insert ``record`` or replace the stored one with the same id.

        ``topic``, ``created_at`` and ``sequence`` stay pinned to the values
        of the first insertion.
        """

        async with self._transaction("upsert") as draft:
            existing = draft.records.get(record.question_id)
            if existing is None:
                stored = replace(record, sequence=draft.next_sequence)
                draft.next_sequence += 1
            else:
                stored = replace(
                    record,
                    topic=existing.topic,
                    created_at=existing.created_at,
                    sequence=existing.sequence,
                )
            if stored != existing:
                draft.put(stored)

    async def delete_one(self, question_id: str) -> None:
        async with self._transaction("delete_one") as draft:
            draft.remove(question_id)

    async def delete_topics(self, topics: Iterable[str]) -> None:
        """Remove every record whose topic is in ``topics`` in one commit."""

        wanted = _validate_topics(topics)
        if not wanted:
            return
        async with self._transaction("delete_topics") as draft:
            for topic in wanted:
                for question_id in tuple(draft.by_topic.get(topic, ())):
                    draft.remove(question_id)

    async def clear_all(self) -> None:
        async with self._transaction("clear_all") as draft:
            draft.clear()

    async def update(
        self, question_id: str, mutator: Mutator
    ) -> QuestionRecord:
        """Apply ``mutator`` to one record inside a transaction.

        Returning the record unchanged (the same object) skips the write.
        Raises :class:`NotFound` for unknown ids.
        """

        async with self._transaction("update") as draft:
            current = draft.records.get(question_id)
            if current is None:
                raise NotFound(question_id)
            updated = mutator(current)
            if updated is not current:
                updated = _pin_identity(current, updated)
                draft.put(updated)
        return updated

    async def update_topic(self, topic: str, mutator: Mutator) -> int:
        """Apply ``mutator`` to every record of ``topic``; return changes."""

        changed = 0
        async with self._transaction("update_topic") as draft:
            for question_id in tuple(draft.by_topic.get(topic, ())):
                current = draft.records[question_id]
                updated = mutator(current)
                if updated is current:
                    continue
                draft.put(_pin_identity(current, updated))
                changed += 1
        return changed

    # Internals -----------------------------------------------------------

    @asynccontextmanager
    async def _transaction(self, action: str) -> AsyncIterator[_Tables]:
        lock = _FileLock(
            self._path.with_name(self._path.name + _LOCK_SUFFIX),
            timeout=self._lock_timeout,
        )
        async with self._write_lock:
            await asyncio.to_thread(lock.acquire)
            try:
                # Another process may have committed since we last looked.
                current = await asyncio.to_thread(_load_tables, self._path)
                draft = current.copy()
                yield draft
                if draft.dirty:
                    await asyncio.to_thread(
                        _write_tables, self._path, draft
                    )
                    draft.dirty = False
                self._tables = draft
            finally:
                await asyncio.to_thread(lock.release)
            self._logger.info(
                "Committed question bank transaction",
                extra={
                    "action": action,
                    "record_count": len(draft.records),
                    "topic_count": len(draft.by_topic),
                },
            )
        self._notifier.notify()


def _validate_topics(topics: Iterable[str]) -> set[str]:
    if isinstance(topics, (str, bytes)):
        raise InvalidArgument(
            "delete_topics expects a collection of topic names, not a string."
        )
    try:
        items = list(topics)
    except TypeError as exc:
        raise InvalidArgument(
            "Topics must be an iterable of strings."
        ) from exc
    for item in items:
        if not isinstance(item, str):
            raise InvalidArgument(
                f"Topic names must be strings, got {type(item).__name__}."
            )
    return set(items)


def _pin_identity(
    current: QuestionRecord, updated: QuestionRecord
) -> QuestionRecord:
    return replace(
        updated,
        question_id=current.question_id,
        topic=current.topic,
        created_at=current.created_at,
        sequence=current.sequence,
    )


def _load_tables(path: Path) -> _Tables:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if not path.exists():
            return _Tables()
        if not path.is_file():
            raise StorageUnavailable(f"Bank path is not a file: {path}")
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise StorageUnavailable(f"Cannot open question bank: {path}") from exc
    try:
        return _Tables.from_payload(json.loads(text))
    except (json.JSONDecodeError, InvalidArgument) as exc:
        raise StorageUnavailable(
            f"Question bank is corrupt: {path} ({exc})"
        ) from exc


def _write_tables(path: Path, tables: _Tables) -> None:
    try:
        _atomic_write_json(path, tables.to_payload())
    except OSError as exc:
        raise StorageUnavailable(
            f"Failed to write question bank: {path}"
        ) from exc


class _FileLock:
    """Exclusive lock file holding the owner's PID.

    The lock spans a whole transaction (reload, mutate, write). A lock left
    by a process that no longer exists is reclaimed.
    """

    def __init__(self, path: Path, *, timeout: float) -> None:
        self._path = path
        self._timeout = timeout

    @property
    def path(self) -> Path:
        return self._path

    def acquire(self) -> None:
        deadline = time.monotonic() + self._timeout
        while True:
            try:
                fd = os.open(
                    self._path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600
                )
            except FileExistsError:
                if self._reclaim_stale():
                    continue
                if time.monotonic() > deadline:
                    raise StorageUnavailable(
                        f"Timed out waiting for bank lock: {self._path} "
                        "(remove it if no other quizbank process is running)"
                    )
                time.sleep(0.05)
                continue
            except OSError as exc:
                raise StorageUnavailable(
                    f"Cannot create bank lock: {self._path}"
                ) from exc
            try:
                os.write(fd, str(os.getpid()).encode("ascii"))
            finally:
                os.close(fd)
            return

    def release(self) -> None:
        self._path.unlink(missing_ok=True)

    def _reclaim_stale(self) -> bool:
        owner = _read_lock_owner(self._path)
        if owner is None or _pid_alive(owner):
            return False
        _LOGGER.warning(
            "Removing stale bank lock",
            extra={"lock_path": str(self._path), "pid": owner},
        )
        self._path.unlink(missing_ok=True)
        return True

    def __enter__(self) -> "_FileLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        self.release()


def _read_lock_owner(path: Path) -> int | None:
    try:
        text = path.read_text(encoding="ascii").strip()
    except (OSError, UnicodeDecodeError):
        return None
    if not text.isdigit():
        return None
    return int(text)


def _pid_alive(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except OSError:
        return True
    return True


def _atomic_write_json(path: Path, payload: Mapping[str, Any]) -> None:
    handle = tempfile.NamedTemporaryFile(
        "w",
        delete=False,
        encoding="utf-8",
        dir=str(path.parent),
        prefix=f".{path.name}.",
    )
    try:
        json.dump(payload, handle, indent=2, ensure_ascii=False)
        handle.flush()
        os.fsync(handle.fileno())
    except BaseException:
        handle.close()
        Path(handle.name).unlink(missing_ok=True)
        raise
    handle.close()
    os.replace(handle.name, path)
    try:
        path.chmod(0o600)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
