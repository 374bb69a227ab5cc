"""
Session Registry - aggregate root for per-conversation temporal state.

Owns session lifecycle (Active -> Ended, one way) and composes:
  - DelayTracker        response-delay windows (lazy expiry)
  - ReminderScheduler   one-shot reminders (timer-driven)
  - TimeContextProvider the single source of "now"

Ending a session cancels its reminders, clears its delay, writes a one-line
summary to the long-term memory store and removes it from the live set,
whether or not the write succeeded.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from config import thresholds
from voicetime.errors import ExternalStoreError, VoiceTimeValidationError
from voicetime.memory.long_term_store import LongTermMemoryStore
from voicetime.session.delay_tracker import DelayTracker
from voicetime.session.reminder_scheduler import OnTrigger, ReminderScheduler
from voicetime.session.session_models import (
    Delay,
    Reminder,
    Session,
    SessionStart,
    SessionSummary,
    SessionView,
)
from voicetime.temporal.expression_parser import (
    TimeExpressionParser,
    TimeExpressions,
    get_time_expression_parser,
)
from voicetime.temporal.time_context import (
    TimeContextProvider,
    TimeContextSnapshot,
    get_time_context_provider,
)

logger = logging.getLogger(__name__)

# Fields a caller may override through update_session()
UPDATABLE_FIELDS = {"interaction_count", "memory_ids"}


@dataclass
class UtteranceOutcome:
    """What process_utterance() detected and did."""
    session_id: str
    expressions: TimeExpressions
    time_context: TimeContextSnapshot
    delay: Optional[Delay] = None
    reminder: Optional[Reminder] = None
    error: Optional[str] = None


class SessionRegistry:
    """
    Live sessions plus their delays and reminders.

    Usage:
        registry = SessionRegistry(memory_store=store)
        start = registry.create_session("u1")
        registry.process_utterance(start.session_id, "remind me in 10 minutes to check rice")
        ...
        summary = registry.end_session(start.session_id)
    """

    def __init__(
        self,
        memory_store: Optional[LongTermMemoryStore] = None,
        delay_tracker: Optional[DelayTracker] = None,
        reminder_scheduler: Optional[ReminderScheduler] = None,
        time_provider: Optional[TimeContextProvider] = None,
        parser: Optional[TimeExpressionParser] = None,
    ):
        self.time_provider = time_provider or get_time_context_provider()
        self.delays = delay_tracker or DelayTracker(time_provider=self.time_provider)
        self.reminders = reminder_scheduler or ReminderScheduler(time_provider=self.time_provider)
        self.parser = parser or get_time_expression_parser()
        self.memory_store = memory_store
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def create_session(self, user_id: str) -> SessionStart:
        if not user_id or not isinstance(user_id, str):
            raise VoiceTimeValidationError("user_id is required")

        time_context = self.time_provider.now()
        session = Session(
            session_id=uuid.uuid4().hex,
            user_id=user_id,
            start_time=time_context.timestamp,
            last_active_time=time_context.timestamp,
        )
        with self._lock:
            self._sessions[session.session_id] = session

        logger.info("Created session %s for user %s", session.session_id, user_id)
        return SessionStart(
            session_id=session.session_id,
            start_time=session.start_time,
            time_context=time_context.to_dict(),
        )

    def update_session(self, session_id: str, updates: Optional[Dict[str, Any]] = None) -> Optional[Session]:
        """
        Merge updates into a live session.

        last_active_time is always refreshed to now and
        interaction_count goes up by one unless the caller supplied it.

        Returns:
            Updated session copy, or None if the session is not live
        """
        updates = dict(updates or {})
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise VoiceTimeValidationError(f"cannot update fields: {sorted(unknown)}")
        if "interaction_count" in updates:
            count = updates["interaction_count"]
            if isinstance(count, bool) or not isinstance(count, int) or count < 0:
                raise VoiceTimeValidationError(f"interaction_count must be a non-negative integer, got {count!r}")

        with self._lock:
            session = self._live(session_id)
            if session is None:
                return None

            if "memory_ids" in updates:
                new_ids = list(updates["memory_ids"] or [])
                if new_ids[:len(session.memory_ids)] != session.memory_ids:
                    raise VoiceTimeValidationError("memory_ids is append-only")
                updates["memory_ids"] = new_ids

            merged = {
                **updates,
                "last_active_time": self.time_provider.now_millis(),
            }
            if "interaction_count" not in updates:
                merged["interaction_count"] = session.interaction_count + 1

            updated = session.model_copy(update=merged)
            self._sessions[session_id] = updated
            return updated.model_copy(deep=True)

    def get_session(self, session_id: str) -> Optional[SessionView]:
        """Stored session plus elapsed duration, current time, pending reminders and active delay."""
        with self._lock:
            session = self._live(session_id)
            if session is None:
                return None
            session = session.model_copy(deep=True)

        delay = self.delays.get_delay(session_id)
        return SessionView(
            **session.model_dump(),
            duration=self.time_provider.elapsed_since(session.start_time).to_dict(),
            current_time=self.time_provider.now().to_dict(),
            pending_reminders=self.reminders.get_pending_reminders(session_id),
            active_delay=delay if delay is not None and delay.is_active else None,
        )

    def end_session(self, session_id: str) -> Optional[SessionSummary]:
        """
        End a live session.

        Returns:
            SessionSummary (persisted=False and persistence_error set when the
            memory store failed), or None if the session is not live
        """
        with self._lock:
            session = self._live(session_id)
            if session is None:
                return None
            session = session.model_copy(update={"status": "ended"}, deep=True)
            self._sessions[session_id] = session

        try:
            elapsed = self.time_provider.elapsed_since(session.start_time)
            cancelled = self.reminders.cancel_session_reminders(session_id)
            self.delays.clear_delay(session_id)

            summary = SessionSummary(
                session_id=session_id,
                user_id=session.user_id,
                start_time=session.start_time,
                end_time=session.start_time + elapsed.millis,
                duration=elapsed.human_readable,
                duration_seconds=elapsed.seconds,
                interaction_count=session.interaction_count,
                memory_ids=list(session.memory_ids),
                cancelled_reminders=cancelled,
            )
            self._persist_summary(session, summary)
        finally:
            with self._lock:
                self._sessions.pop(session_id, None)

        logger.info(
            "Ended session %s after %s (%d interactions, persisted=%s)",
            session_id, summary.duration, summary.interaction_count, summary.persisted,
        )
        return summary

    # =========================================================================
    # EXTENDED API
    # =========================================================================

    def add_memory_id(self, session_id: str, memory_id: str) -> Optional[Session]:
        """Append a memory-store record id to the session (counts as activity, not an interaction)."""
        if not memory_id:
            raise VoiceTimeValidationError("memory_id is required")
        with self._lock:
            session = self._live(session_id)
            if session is None:
                return None
            updated = session.model_copy(update={
                "memory_ids": [*session.memory_ids, memory_id],
                "last_active_time": self.time_provider.now_millis(),
            })
            self._sessions[session_id] = updated
            return updated.model_copy(deep=True)

    def touch_session(self, session_id: str) -> Optional[Session]:
        """Keep-alive: refresh last_active_time without counting an interaction."""
        with self._lock:
            session = self._live(session_id)
            if session is None:
                return None
            session.last_active_time = self.time_provider.now_millis()
            return session.model_copy(deep=True)

    def list_sessions(self, user_id: Optional[str] = None) -> List[Session]:
        with self._lock:
            return [
                s.model_copy(deep=True)
                for s in self._sessions.values()
                if user_id is None or s.user_id == user_id
            ]

    def set_reminder(
        self,
        session_id: str,
        task: str,
        duration_seconds: int,
        on_trigger: Optional[OnTrigger] = None,
    ) -> Optional[Reminder]:
        """Schedule a reminder for a live session (None if the session is not live)."""
        with self._lock:
            session = self._live(session_id)
            if session is None:
                return None
            user_id = session.user_id
        return self.reminders.set_reminder(session_id, user_id, task, duration_seconds, on_trigger)

    def process_utterance(
        self,
        session_id: str,
        text: str,
        on_reminder: Optional[OnTrigger] = None,
    ) -> Optional[UtteranceOutcome]:
        """
        Route an utterance: delay phrases start a delay window, reminder
        phrases schedule a reminder. The utterance counts as one interaction.
        """
        with self._lock:
            session = self._live(session_id)
            if session is None:
                return None
            user_id = session.user_id

        expressions = self.parser.parse(text)
        outcome = UtteranceOutcome(
            session_id=session_id,
            expressions=expressions,
            time_context=self.time_provider.now(),
        )

        try:
            if expressions.delay.has_delay:
                outcome.delay = self.delays.create_delay(session_id, expressions.delay.delay_seconds)
            if expressions.reminder.has_reminder:
                outcome.reminder = self.reminders.set_reminder(
                    session_id,
                    user_id,
                    expressions.reminder.task,
                    expressions.reminder.duration_seconds,
                    on_reminder,
                )
        except VoiceTimeValidationError as e:
            logger.warning("Rejected time expression for session %s: %s", session_id, e)
            outcome.error = str(e)

        self.update_session(session_id)
        return outcome

    def shutdown(self) -> None:
        """Drop live sessions and revoke every pending reminder."""
        with self._lock:
            count = len(self._sessions)
            self._sessions.clear()
        self.reminders.shutdown()
        logger.info("Session registry shut down (%d live sessions dropped)", count)

    # =========================================================================
    # INTERNAL METHODS
    # =========================================================================

    def _live(self, session_id: str) -> Optional[Session]:
        """Active session record or None. Caller holds the lock."""
        session = self._sessions.get(session_id)
        if session is None or session.status != "active":
            return None
        return session

    def _persist_summary(self, session: Session, summary: SessionSummary) -> None:
        if self.memory_store is None:
            summary.persistence_error = "no memory store configured"
            return

        message = (
            f"Session summary: User had a conversation lasting {summary.duration} "
            f"with {summary.interaction_count} interactions."
        )
        try:
            result = self.memory_store.store_conversation(
                session.user_id,
                [{"role": "system", "content": message}],
                {
                    "category": thresholds.SESSION_SUMMARY_CATEGORY,
                    "session_summary": summary.model_dump(
                        include={"session_id", "user_id", "start_time", "end_time", "duration",
                                 "interaction_count", "memory_ids"},
                    ),
                },
            )
        except ExternalStoreError as e:
            logger.error("Failed to persist summary for session %s: %s", session.session_id, e)
            summary.persistence_error = str(e)
            return
        except Exception as e:
            logger.exception("Unexpected memory store failure for session %s", session.session_id)
            summary.persistence_error = f"{type(e).__name__}: {e}"
            return

        summary.persisted = True
        record_id = (result or {}).get("id")
        summary.memory_record_id = str(record_id) if record_id is not None else None
