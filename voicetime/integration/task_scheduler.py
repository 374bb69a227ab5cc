"""
Task Scheduler - cancellable one-shot timers for the real-time voice pipeline.

One timer thread keeps a heap of pending tasks ordered by due time and hands
each due task to a small worker pool, so a slow or failing callback never
holds up the timer or other firings.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(order=True)
class ScheduledTask:
    """A one-shot operation due at a monotonic deadline."""
    run_at: float
    seq: int
    task_id: str = field(compare=False)
    operation: Callable[[], Any] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)
    started: bool = field(default=False, compare=False)


class ScheduledHandle:
    """Returned by TaskScheduler.schedule(); revokes the firing if it has not begun."""

    def __init__(self, scheduler: "TaskScheduler", task: ScheduledTask):
        self._scheduler = scheduler
        self._task = task

    @property
    def task_id(self) -> str:
        return self._task.task_id

    @property
    def cancelled(self) -> bool:
        return self._task.cancelled

    @property
    def started(self) -> bool:
        return self._task.started

    def cancel(self) -> bool:
        """
        Cancel the firing.

        Returns:
            True if the operation will never run, False if it already started
        """
        return self._scheduler._cancel(self._task)


class TaskScheduler:
    """
    Non-blocking scheduler for delayed operations.

    Usage:
        scheduler = TaskScheduler()
        handle = scheduler.schedule(10, lambda: fire_reminder(reminder_id))
        handle.cancel()  # before it runs
    """

    def __init__(self, num_workers: int = 2):
        """
        Initialize scheduler.

        Args:
            num_workers: Number of worker threads running due operations
        """
        self.num_workers = num_workers
        self._heap: List[ScheduledTask] = []
        self._counter = itertools.count()
        self._cond = threading.Condition()
        self.running = True
        self.task_count = 0
        self.completed_count = 0
        self.failed_count = 0
        self.cancelled_count = 0

        self._executor = ThreadPoolExecutor(
            max_workers=num_workers,
            thread_name_prefix="TaskScheduler-Worker",
        )
        self._timer = threading.Thread(
            target=self._timer_loop,
            name="TaskScheduler-Timer",
            daemon=True,
        )
        self._timer.start()

    def schedule(
        self,
        delay_seconds: float,
        operation: Callable[[], Any],
        task_id: Optional[str] = None,
    ) -> ScheduledHandle:
        """
        Run operation once, no earlier than delay_seconds from now (non-blocking).

        Returns:
            ScheduledHandle for cancellation
        """
        with self._cond:
            if not self.running:
                raise RuntimeError("TaskScheduler is shut down")
            self.task_count += 1
            if task_id is None:
                task_id = f"scheduled_task_{self.task_count}"
            task = ScheduledTask(
                run_at=time.monotonic() + max(0.0, float(delay_seconds)),
                seq=next(self._counter),
                task_id=task_id,
                operation=operation,
            )
            heapq.heappush(self._heap, task)
            self._cond.notify()
        return ScheduledHandle(self, task)

    def _cancel(self, task: ScheduledTask) -> bool:
        with self._cond:
            if task.started:
                return False
            if not task.cancelled:
                task.cancelled = True
                self.cancelled_count += 1
                self._cond.notify()
            return True

    def _timer_loop(self):
        """Timer thread: wait for the earliest deadline, then dispatch."""
        while True:
            with self._cond:
                while self.running and not self._heap:
                    self._cond.wait()
                if not self.running:
                    return

                task = self._heap[0]
                if task.cancelled:
                    heapq.heappop(self._heap)
                    continue

                remaining = task.run_at - time.monotonic()
                if remaining > 0:
                    self._cond.wait(timeout=remaining)
                    continue

                heapq.heappop(self._heap)

            try:
                self._executor.submit(self._run, task)
            except RuntimeError:
                # Executor shut down underneath us
                return

    def _run(self, task: ScheduledTask):
        with self._cond:
            if task.cancelled:
                return
            task.started = True

        try:
            task.operation()
            with self._cond:
                self.completed_count += 1
        except Exception:
            logger.exception("Scheduled task %s failed", task.task_id)
            with self._cond:
                self.failed_count += 1

    def pending_count(self) -> int:
        with self._cond:
            return sum(1 for t in self._heap if not t.cancelled)

    def get_stats(self) -> dict:
        """Get scheduler statistics."""
        with self._cond:
            return {
                "pending": sum(1 for t in self._heap if not t.cancelled),
                "total_tasks": self.task_count,
                "completed": self.completed_count,
                "failed": self.failed_count,
                "cancelled": self.cancelled_count,
                "workers": self.num_workers,
            }

    def shutdown(self, wait: bool = True):
        """Cancel everything still pending and stop the threads."""
        with self._cond:
            if not self.running:
                return
            self.running = False
            for task in self._heap:
                if not task.cancelled and not task.started:
                    task.cancelled = True
                    self.cancelled_count += 1
            self._heap.clear()
            self._cond.notify_all()

        if wait:
            self._timer.join(timeout=5.0)
        self._executor.shutdown(wait=wait)


_global_scheduler: Optional[TaskScheduler] = None


def get_task_scheduler(num_workers: int = 2) -> TaskScheduler:
    """Get or create global task scheduler."""
    global _global_scheduler
    if _global_scheduler is None or not _global_scheduler.running:
        _global_scheduler = TaskScheduler(num_workers=num_workers)
    return _global_scheduler


def shutdown_task_scheduler(wait: bool = True) -> None:
    """Stop the global scheduler if one was created."""
    global _global_scheduler
    if _global_scheduler is not None:
        _global_scheduler.shutdown(wait=wait)
        _global_scheduler = None
