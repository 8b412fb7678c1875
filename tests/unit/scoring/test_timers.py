"""Tests for the simulation-clock scheduler."""

from __future__ import annotations

from marksman.scoring.timers import Scheduler


def test_fires_once_when_due():
    scheduler = Scheduler()
    fired = []
    task = scheduler.schedule(0.5, lambda: fired.append(scheduler.time_s))

    for _ in range(49):
        scheduler.advance(0.01)
    assert fired == []
    assert task.pending

    scheduler.advance(0.01)
    scheduler.advance(0.01)

    assert len(fired) == 1
    assert task.fired and not task.pending
    assert scheduler.pending_count == 0


def test_fires_in_due_order():
    scheduler = Scheduler()
    order = []
    scheduler.schedule(0.3, lambda: order.append("late"))
    scheduler.schedule(0.1, lambda: order.append("early"))

    scheduler.advance(1.0)

    assert order == ["early", "late"]


def test_cancel_key_only_hits_that_key():
    scheduler = Scheduler()
    fired = []
    scheduler.schedule(0.1, lambda: fired.append(0), key=0)
    scheduler.schedule(0.1, lambda: fired.append(1), key=1)

    assert scheduler.cancel_key(0) == 1
    assert scheduler.cancel_key(0) == 0
    scheduler.advance(0.2)

    assert fired == [1]


def test_callback_can_cancel_a_later_task():
    scheduler = Scheduler()
    fired = []
    second = scheduler.schedule(0.2, lambda: fired.append("second"))
    scheduler.schedule(0.1, lambda: (fired.append("first"), second.cancel()))

    scheduler.advance(0.5)

    assert fired == ["first"]


def test_negative_delay_is_due_immediately():
    scheduler = Scheduler()
    fired = []
    scheduler.schedule(-1.0, lambda: fired.append(True))

    scheduler.advance(0.0)

    assert fired == [True]
