from __future__ import annotations

import logging

from quiz_bank.bank.notifier import ChangeNotifier


def test_subscribe_and_notify():
    notifier = ChangeNotifier()
    calls = []
    unsubscribe = notifier.subscribe(lambda: calls.append("a"))
    notifier.subscribe(lambda: calls.append("b"))

    notifier.notify()
    unsubscribe()
    notifier.notify()

    assert calls == ["a", "b", "b"]
    assert notifier.listener_count == 1


def test_unsubscribe_unknown_listener_is_noop():
    notifier = ChangeNotifier()
    notifier.unsubscribe(lambda: None)
    assert notifier.listener_count == 0


def test_listener_may_unsubscribe_during_notify():
    notifier = ChangeNotifier()
    calls = []

    def once():
        calls.append("once")
        unsubscribe()

    unsubscribe = notifier.subscribe(once)
    notifier.subscribe(lambda: calls.append("other"))

    notifier.notify()
    notifier.notify()

    assert calls == ["once", "other", "other"]


def test_failing_listener_does_not_block_others(caplog):
    notifier = ChangeNotifier()
    calls = []

    def broken():
        raise RuntimeError("listener exploded")

    notifier.subscribe(broken)
    notifier.subscribe(lambda: calls.append("ok"))

    with caplog.at_level(logging.ERROR, logger="quiz_bank.bank.notifier"):
        notifier.notify()

    assert calls == ["ok"]
    assert any(
        "Change listener failed" in record.getMessage()
        for record in caplog.records
    )
