from pydantic import BaseModel, Field
from typing import Literal, Any

Role = Literal["system", "user", "assistant"]

class ConversationMessage(BaseModel):
    role: Role
    content: str

class MemoryRecord(BaseModel):
    id: str
    user_id: str
    content: str
    created_at: int  # epoch millis
    updated_at: int | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

class MemoryHit(MemoryRecord):
    score: float
    time_since: str
    is_recent: bool

class MemoryHistoryEntry(BaseModel):
    memory_id: str
    action: Literal["add", "update", "delete"]
    old_content: str | None = None
    new_content: str | None = None
    ts: int
