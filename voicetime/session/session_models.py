from __future__ import annotations
from typing import Any, Literal

from pydantic import BaseModel, Field


SessionStatus = Literal["active", "ended"]

class Session(BaseModel):
    session_id: str
    user_id: str
    start_time: int
    last_active_time: int
    interaction_count: int = 0
    memory_ids: list[str] = Field(default_factory=list)
    status: SessionStatus = "active"

class Delay(BaseModel):
    session_id: str
    delay_seconds: int
    start_time: int
    end_time: int
    is_active: bool = True

class Reminder(BaseModel):
    reminder_id: str
    session_id: str
    user_id: str
    task: str
    created_at: int
    reminder_time: int
    duration_seconds: int
    is_completed: bool = False
    was_triggered: bool = False
    triggered_at: int | None = None
    completed_at: int | None = None

class SessionStart(BaseModel):
    session_id: str
    start_time: int
    time_context: dict[str, Any]

class SessionView(Session):
    """Stored session plus fields derived at read time."""
    duration: dict[str, Any]
    current_time: dict[str, Any]
    pending_reminders: list[Reminder] = Field(default_factory=list)
    active_delay: Delay | None = None

class SessionSummary(BaseModel):
    session_id: str
    user_id: str
    start_time: int
    end_time: int
    duration: str
    duration_seconds: int
    interaction_count: int
    memory_ids: list[str] = Field(default_factory=list)
    cancelled_reminders: int = 0
    persisted: bool = False
    persistence_error: str | None = None
    memory_record_id: str | None = None
