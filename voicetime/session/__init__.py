"""
Session Module.

Session lifecycle with response delays and one-shot reminders.
"""

from voicetime.session.delay_tracker import DelayTracker
from voicetime.session.reminder_scheduler import ReminderScheduler
from voicetime.session.session_registry import SessionRegistry, UtteranceOutcome
from voicetime.session.session_models import (
    Delay,
    Reminder,
    Session,
    SessionStart,
    SessionSummary,
    SessionView,
)

__all__ = [
    "DelayTracker",
    "ReminderScheduler",
    "SessionRegistry",
    "UtteranceOutcome",
    "Delay",
    "Reminder",
    "Session",
    "SessionStart",
    "SessionSummary",
    "SessionView",
]
