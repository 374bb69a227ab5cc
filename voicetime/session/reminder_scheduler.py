"""
Reminder Scheduler - one-shot reminders that fire on their own.

Lifecycle per reminder:

    Scheduled ──(duration elapses, timer)──► Triggered ──(complete_reminder)──► Completed

clear_session_reminders() removes a reminder in any state and revokes its
pending timer. The Triggered transition and removal both happen under the
reminder lock, so a reminder removed before its firing commits is never
triggered. Once the transition has committed, the on_trigger delivery that
follows still runs even if the reminder is cleared in the meantime.
"""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Callable, Dict, List, Optional

from config import thresholds
from voicetime.errors import VoiceTimeValidationError
from voicetime.integration.task_scheduler import ScheduledHandle, TaskScheduler, get_task_scheduler
from voicetime.session.session_models import Reminder
from voicetime.temporal.time_context import TimeContextProvider, get_time_context_provider

logger = logging.getLogger(__name__)

OnTrigger = Callable[[Reminder], None]


class ReminderScheduler:
    """
    Per-session reminders backed by a TaskScheduler.

    Usage:
        reminders = ReminderScheduler()
        r = reminders.set_reminder(session_id, user_id, "check rice", 600, on_trigger=notify)
        ...
        for pending in reminders.get_pending_reminders(session_id):
            speak(pending.task)
            reminders.complete_reminder(pending.reminder_id)
    """

    def __init__(
        self,
        scheduler: Optional[TaskScheduler] = None,
        time_provider: Optional[TimeContextProvider] = None,
    ):
        self.scheduler = scheduler or get_task_scheduler()
        self.time_provider = time_provider or get_time_context_provider()
        # Insertion order doubles as creation order
        self._reminders: Dict[str, Reminder] = {}
        self._handles: Dict[str, ScheduledHandle] = {}
        self._lock = threading.Lock()

    # =========================================================================
    # MAIN API
    # =========================================================================

    def set_reminder(
        self,
        session_id: str,
        user_id: str,
        task: str,
        duration_seconds: int,
        on_trigger: Optional[OnTrigger] = None,
    ) -> Reminder:
        """
        Schedule a reminder that triggers after duration_seconds.

        Args:
            session_id: Owning session
            user_id: User to remind
            task: Free-text task description
            duration_seconds: Seconds until the reminder triggers (0 = now)
            on_trigger: Called with the triggered reminder, off the caller's thread

        Returns:
            Copy of the stored reminder (Scheduled, or Triggered when duration is 0)
        """
        task = _validate_reminder(session_id, user_id, task, duration_seconds)

        created = self.time_provider.now_millis()
        reminder = Reminder(
            reminder_id=uuid.uuid4().hex,
            session_id=session_id,
            user_id=user_id,
            task=task,
            created_at=created,
            reminder_time=created + duration_seconds * 1000,
            duration_seconds=duration_seconds,
        )
        reminder_id = reminder.reminder_id

        with self._lock:
            self._reminders[reminder_id] = reminder

        if duration_seconds == 0:
            # Triggered before returning so the very next read sees it
            triggered = self._mark_triggered(reminder_id)
            if triggered is not None and on_trigger is not None:
                try:
                    self.scheduler.schedule(0, lambda: self._deliver(triggered, on_trigger), task_id=f"reminder_{reminder_id}")
                except RuntimeError:
                    self._discard(reminder_id)
                    raise
        else:
            try:
                handle = self.scheduler.schedule(
                    duration_seconds,
                    lambda: self._fire(reminder_id, on_trigger),
                    task_id=f"reminder_{reminder_id}",
                )
            except RuntimeError:
                self._discard(reminder_id)
                raise
            with self._lock:
                if reminder_id in self._reminders and not self._reminders[reminder_id].was_triggered:
                    self._handles[reminder_id] = handle
                else:
                    # Cleared (or already fired) before the handle was stored
                    handle.cancel()

        logger.info(
            "Set reminder %s for session %s in %d seconds: %s",
            reminder_id, session_id, duration_seconds, task,
        )
        with self._lock:
            stored = self._reminders.get(reminder_id, reminder)
            return stored.model_copy()

    def get_pending_reminders(self, session_id: str) -> List[Reminder]:
        """Triggered, not yet completed reminders for a session, in creation order."""
        with self._lock:
            return [
                r.model_copy()
                for r in self._reminders.values()
                if r.session_id == session_id and r.was_triggered and not r.is_completed
            ]

    def complete_reminder(self, reminder_id: str) -> bool:
        """Acknowledge a reminder. Safe to call repeatedly; False only if unknown."""
        with self._lock:
            reminder = self._reminders.get(reminder_id)
            if reminder is None:
                return False
            if not reminder.is_completed:
                reminder.is_completed = True
                reminder.completed_at = self.time_provider.now_millis()
                logger.info("Completed reminder %s", reminder_id)
            return True

    def clear_session_reminders(self, session_id: str) -> None:
        self.cancel_session_reminders(session_id)

    # =========================================================================
    # EXTENDED API
    # =========================================================================

    def get_reminder(self, reminder_id: str) -> Optional[Reminder]:
        with self._lock:
            reminder = self._reminders.get(reminder_id)
            return reminder.model_copy() if reminder is not None else None

    def get_session_reminders(self, session_id: str) -> List[Reminder]:
        """Every reminder of a session regardless of state."""
        with self._lock:
            return [r.model_copy() for r in self._reminders.values() if r.session_id == session_id]

    def cancel_session_reminders(self, session_id: str) -> int:
        """Remove all reminders of a session, returns how many were removed."""
        with self._lock:
            ids = [rid for rid, r in self._reminders.items() if r.session_id == session_id]
            handles = []
            for rid in ids:
                del self._reminders[rid]
                handle = self._handles.pop(rid, None)
                if handle is not None:
                    handles.append(handle)

        for handle in handles:
            handle.cancel()

        if ids:
            logger.info("Cleared %d reminder(s) for session %s", len(ids), session_id)
        return len(ids)

    def shutdown(self) -> None:
        """Revoke every pending firing and drop all records."""
        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
            self._reminders.clear()
        for handle in handles:
            handle.cancel()

    # =========================================================================
    # INTERNAL METHODS
    # =========================================================================

    def _mark_triggered(self, reminder_id: str) -> Optional[Reminder]:
        with self._lock:
            reminder = self._reminders.get(reminder_id)
            self._handles.pop(reminder_id, None)
            if reminder is None or reminder.was_triggered:
                return None
            reminder.was_triggered = True
            reminder.triggered_at = self.time_provider.now_millis()
            return reminder.model_copy()

    def _discard(self, reminder_id: str) -> None:
        """Drop a record whose timer could not be scheduled."""
        with self._lock:
            self._reminders.pop(reminder_id, None)
            self._handles.pop(reminder_id, None)
        logger.warning("Scheduler rejected reminder %s, record discarded", reminder_id)

    def _fire(self, reminder_id: str, on_trigger: Optional[OnTrigger]) -> None:
        """Timer callback (worker thread)."""
        triggered = self._mark_triggered(reminder_id)
        if triggered is None:
            logger.debug("Reminder %s no longer exists, skipping trigger", reminder_id)
            return

        logger.info("Reminder %s triggered: %s", reminder_id, triggered.task)
        if on_trigger is not None:
            self._deliver(triggered, on_trigger)

    def _deliver(self, reminder: Reminder, on_trigger: OnTrigger) -> None:
        try:
            on_trigger(reminder)
        except Exception:
            logger.exception("on_trigger callback failed for reminder %s", reminder.reminder_id)


def _validate_reminder(session_id: str, user_id: str, task: str, duration_seconds: int) -> str:
    if not session_id:
        raise VoiceTimeValidationError("session_id is required")
    if not user_id:
        raise VoiceTimeValidationError("user_id is required")
    if not isinstance(task, str) or not task.strip():
        raise VoiceTimeValidationError("task must be a non-empty string")
    if isinstance(duration_seconds, bool) or not isinstance(duration_seconds, int):
        raise VoiceTimeValidationError(f"duration_seconds must be an integer, got {duration_seconds!r}")
    if duration_seconds < 0:
        raise VoiceTimeValidationError(f"duration_seconds must be >= 0, got {duration_seconds}")
    if duration_seconds > thresholds.MAX_REMINDER_SECONDS:
        raise VoiceTimeValidationError(
            f"duration_seconds must be <= {thresholds.MAX_REMINDER_SECONDS}, got {duration_seconds}"
        )
    return task.strip()
