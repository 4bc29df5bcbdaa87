"""Tests for named broadcast signals."""

from __future__ import annotations

import logging

from otpdesk.events import Signal


def test_subscribers_called_in_order():
    sig = Signal("test")
    calls = []
    sig.subscribe(lambda: calls.append("a"))
    sig.subscribe(lambda: calls.append("b"))
    sig.emit()
    assert calls == ["a", "b"]
    assert sig.subscriber_count == 2


def test_cancel_is_idempotent():
    sig = Signal("test")
    calls = []
    sub = sig.subscribe(lambda: calls.append(1))
    sub.cancel()
    sub.cancel()
    sig.emit()
    assert calls == []
    assert sig.subscriber_count == 0


def test_failing_subscriber_does_not_stop_others(caplog):
    sig = Signal("test")
    calls = []

    def boom():
        raise RuntimeError("subscriber bug")

    sig.subscribe(boom)
    sig.subscribe(lambda: calls.append(1))
    with caplog.at_level(logging.WARNING, logger="otpdesk.events"):
        sig.emit()
    assert calls == [1]
    assert "Subscriber of test failed" in caplog.text


def test_cancel_during_emit():
    sig = Signal("test")
    calls = []
    second = None

    def first():
        calls.append("first")
        second.cancel()

    sig.subscribe(first)
    second = sig.subscribe(lambda: calls.append("second"))
    sig.emit()
    assert calls == ["first"]
