"""HTTP routes over the session registry."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from config.settings import settings
from voicetime.errors import VoiceTimeValidationError
from voicetime.integration.task_scheduler import get_task_scheduler
from voicetime.memory.long_term_store import get_memory_store
from voicetime.session.reminder_scheduler import ReminderScheduler
from voicetime.session.session_models import (
    Reminder,
    Session,
    SessionStart,
    SessionSummary,
    SessionView,
)
from voicetime.session.session_registry import SessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter()

_registry: Optional[SessionRegistry] = None


def get_registry() -> SessionRegistry:
    """Get or create the process-wide registry."""
    global _registry
    if _registry is None:
        _registry = SessionRegistry(
            memory_store=get_memory_store(),
            reminder_scheduler=ReminderScheduler(scheduler=get_task_scheduler(settings.scheduler_workers)),
        )
    return _registry


def shutdown_registry() -> None:
    global _registry
    if _registry is not None:
        _registry.shutdown()
        _registry = None


def _log_triggered(reminder: Reminder) -> None:
    logger.info("Reminder due for session %s: %s", reminder.session_id, reminder.task)


def _not_found(kind: str, ident: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{kind} {ident} not found")


class CreateSessionRequest(BaseModel):
    user_id: str = Field(min_length=1)


class UpdateSessionRequest(BaseModel):
    interaction_count: Optional[int] = None
    memory_ids: Optional[list[str]] = None


class UtteranceRequest(BaseModel):
    text: str


class ReminderRequest(BaseModel):
    task: str
    duration_seconds: int


@router.get("/time")
def current_time(registry: SessionRegistry = Depends(get_registry)) -> dict[str, Any]:
    return registry.time_provider.now().to_dict()


@router.post("/sessions", response_model=SessionStart)
def create_session(body: CreateSessionRequest, registry: SessionRegistry = Depends(get_registry)):
    try:
        return registry.create_session(body.user_id)
    except VoiceTimeValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/sessions/{session_id}", response_model=SessionView)
def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    view = registry.get_session(session_id)
    if view is None:
        raise _not_found("Session", session_id)
    return view


@router.patch("/sessions/{session_id}", response_model=Session)
def update_session(session_id: str, body: UpdateSessionRequest, registry: SessionRegistry = Depends(get_registry)):
    try:
        session = registry.update_session(session_id, body.model_dump(exclude_unset=True))
    except VoiceTimeValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if session is None:
        raise _not_found("Session", session_id)
    return session


@router.post("/sessions/{session_id}/keep-alive")
def keep_alive(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    if registry.touch_session(session_id) is None:
        raise _not_found("Session", session_id)
    return {"status": "ok"}


@router.post("/sessions/{session_id}/end", response_model=SessionSummary)
def end_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    summary = registry.end_session(session_id)
    if summary is None:
        raise _not_found("Session", session_id)
    return summary


@router.post("/sessions/{session_id}/utterances")
def process_utterance(session_id: str, body: UtteranceRequest, registry: SessionRegistry = Depends(get_registry)):
    outcome = registry.process_utterance(session_id, body.text, on_reminder=_log_triggered)
    if outcome is None:
        raise _not_found("Session", session_id)
    return {
        "session_id": session_id,
        "has_delay": outcome.expressions.delay.has_delay,
        "delay_seconds": outcome.expressions.delay.delay_seconds,
        "has_reminder": outcome.expressions.reminder.has_reminder,
        "duration_seconds": outcome.expressions.reminder.duration_seconds,
        "task": outcome.expressions.reminder.task,
        "delay": outcome.delay.model_dump() if outcome.delay else None,
        "reminder": outcome.reminder.model_dump() if outcome.reminder else None,
        "remaining_delay_seconds": registry.delays.get_remaining_delay_time(session_id),
        "time_context": outcome.time_context.to_dict(),
        "error": outcome.error,
    }


@router.get("/sessions/{session_id}/delay")
def get_delay(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    if registry.get_session(session_id) is None:
        raise _not_found("Session", session_id)
    delay = registry.delays.get_delay(session_id)
    return {
        "active": registry.delays.has_active_delay(session_id),
        "remaining_seconds": registry.delays.get_remaining_delay_time(session_id),
        "delay": delay.model_dump() if delay else None,
    }


@router.delete("/sessions/{session_id}/delay")
def clear_delay(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    if registry.get_session(session_id) is None:
        raise _not_found("Session", session_id)
    return {"cleared": registry.delays.clear_delay(session_id)}


@router.post("/sessions/{session_id}/reminders", response_model=Reminder)
def set_reminder(session_id: str, body: ReminderRequest, registry: SessionRegistry = Depends(get_registry)):
    try:
        reminder = registry.set_reminder(session_id, body.task, body.duration_seconds, on_trigger=_log_triggered)
    except VoiceTimeValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if reminder is None:
        raise _not_found("Session", session_id)
    return reminder


@router.get("/sessions/{session_id}/reminders", response_model=list[Reminder])
def pending_reminders(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    if registry.get_session(session_id) is None:
        raise _not_found("Session", session_id)
    return registry.reminders.get_pending_reminders(session_id)


@router.post("/reminders/{reminder_id}/complete")
def complete_reminder(reminder_id: str, registry: SessionRegistry = Depends(get_registry)):
    if not registry.reminders.complete_reminder(reminder_id):
        raise _not_found("Reminder", reminder_id)
    return {"completed": True}
