"""Process-wide "questions updated" broadcast."""

from __future__ import annotations

import logging
from typing import Callable

__all__ = [
    "Listener",
    "ChangeNotifier",
    "default_notifier",
]

Listener = Callable[[], None]

_LOGGER = logging.getLogger("quiz_bank.bank.notifier")


class ChangeNotifier:
    """Observer registry fired after every committed bank mutation.

    The event carries no payload; listeners re-query the store to learn what
    changed.
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            self.unsubscribe(listener)

        return _unsubscribe

    def unsubscribe(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            return

    def notify(self) -> None:
        # Snapshot so listeners may unsubscribe while being notified.
        for listener in tuple(self._listeners):
            try:
                listener()
            except Exception:
                _LOGGER.exception(
                    "Change listener failed",
                    extra={"listener": repr(listener)},
                )


default_notifier = ChangeNotifier()
