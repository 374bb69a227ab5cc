import threading
import time

import pytest

from voicetime.integration.task_scheduler import TaskScheduler


def test_runs_operation_after_delay(scheduler):
    fired = threading.Event()
    started = time.monotonic()
    scheduler.schedule(0.2, fired.set)
    assert fired.wait(timeout=3)
    assert time.monotonic() - started >= 0.2


def test_earlier_deadline_runs_first(scheduler):
    order = []
    done = threading.Event()

    def record(name):
        order.append(name)
        if len(order) == 2:
            done.set()

    scheduler.schedule(0.4, lambda: record("late"))
    scheduler.schedule(0.1, lambda: record("early"))
    assert done.wait(timeout=3)
    assert order == ["early", "late"]


def test_cancel_before_due_suppresses_operation(scheduler):
    fired = threading.Event()
    handle = scheduler.schedule(0.2, fired.set)
    assert handle.cancel()
    assert handle.cancelled
    assert not fired.wait(timeout=0.5)
    assert scheduler.get_stats()["cancelled"] == 1


def test_cancel_after_start_returns_false(scheduler):
    entered = threading.Event()
    release = threading.Event()

    def slow():
        entered.set()
        release.wait(timeout=3)

    handle = scheduler.schedule(0, slow)
    assert entered.wait(timeout=3)
    assert not handle.cancel()
    assert handle.started
    release.set()


def test_failing_operation_is_isolated(scheduler):
    fired = threading.Event()

    def boom():
        raise RuntimeError("boom")

    scheduler.schedule(0, boom)
    scheduler.schedule(0.05, fired.set)
    assert fired.wait(timeout=3)
    deadline = time.monotonic() + 3
    while scheduler.get_stats()["failed"] < 1 and time.monotonic() < deadline:
        time.sleep(0.01)
    assert scheduler.get_stats()["failed"] == 1


def test_shutdown_cancels_pending():
    s = TaskScheduler(num_workers=1)
    fired = threading.Event()
    s.schedule(0.3, fired.set)
    assert s.pending_count() == 1
    s.shutdown(wait=True)
    assert not fired.wait(timeout=0.5)
    with pytest.raises(RuntimeError):
        s.schedule(0, fired.set)
