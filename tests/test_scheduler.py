from __future__ import annotations

import threading

from mailalive.scheduler import PeriodicTask


def test_action_runs_immediately_and_repeats() -> None:
    ran = threading.Event()
    calls: list[int] = []

    def action() -> None:
        calls.append(1)
        if len(calls) >= 3:
            ran.set()

    task = PeriodicTask("test", 0.01, action)
    task.start()
    try:
        assert ran.wait(5)
    finally:
        task.stop(timeout=5)

    assert not task.running
    assert len(calls) >= 3


def test_stop_interrupts_the_sleep() -> None:
    first = threading.Event()
    task = PeriodicTask("slow", 3600, first.set)
    task.start()
    assert first.wait(5)

    task.stop(timeout=5)

    assert not task.running


def test_failing_action_does_not_kill_the_loop() -> None:
    done = threading.Event()
    calls: list[int] = []

    def action() -> None:
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("first tick fails")
        done.set()

    task = PeriodicTask("flaky", 0.01, action)
    task.start()
    try:
        assert done.wait(5)
    finally:
        task.stop(timeout=5)

    assert len(calls) >= 2


def test_start_is_idempotent() -> None:
    started = threading.Event()
    task = PeriodicTask("once", 3600, started.set)
    task.start()
    thread = task._thread
    task.start()
    try:
        assert task._thread is thread
    finally:
        task.stop(timeout=5)
