"""
Long-Term Memory Store.

Contract used by the session layer (store_conversation) plus a local
SQLite-backed implementation with embedding search, edit history and
per-user deletion.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Union

import numpy as np

from config.settings import settings
from voicetime.errors import ExternalStoreError
from voicetime.memory.memory_models import (
    ConversationMessage,
    MemoryHistoryEntry,
    MemoryHit,
    MemoryRecord,
)
from voicetime.temporal.time_context import TimeContextProvider, get_time_context_provider
from voicetime.vector.embedder import embed_text
from voicetime.vector.vector_index import top_k_by_cosine

logger = logging.getLogger(__name__)

MessageLike = Union[ConversationMessage, Dict[str, Any]]


class LongTermMemoryStore(Protocol):
    def store_conversation(self, user_id: str, messages: List[MessageLike], metadata: Dict[str, Any]) -> Dict[str, Any]: ...


SCHEMA = """
CREATE TABLE IF NOT EXISTS memories (
    id          TEXT PRIMARY KEY,
    user_id     TEXT NOT NULL,
    content     TEXT NOT NULL,
    metadata    TEXT NOT NULL DEFAULT '{}',
    embedding   BLOB NOT NULL,
    created_at  INTEGER NOT NULL,
    updated_at  INTEGER
);
CREATE INDEX IF NOT EXISTS idx_memories_user ON memories(user_id, created_at);
CREATE TABLE IF NOT EXISTS memory_history (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    memory_id    TEXT NOT NULL,
    action       TEXT NOT NULL,
    old_content  TEXT,
    new_content  TEXT,
    ts           INTEGER NOT NULL
);
"""


def _as_message(message: MessageLike) -> ConversationMessage:
    if isinstance(message, ConversationMessage):
        return message
    return ConversationMessage.model_validate(message)


def messages_to_content(messages: Iterable[MessageLike]) -> str:
    parsed = [_as_message(m) for m in messages]
    if len(parsed) == 1:
        return parsed[0].content.strip()
    return "\n".join(f"{m.role}: {m.content.strip()}" for m in parsed)


class SQLiteMemoryStore:
    """
    Local long-term memory.

    Usage:
        store = SQLiteMemoryStore("Memory Storage/voicetime.db")
        store.store_conversation("u1", [{"role": "user", "content": "I love spicy food"}], {"category": "preferences"})
        hits = store.retrieve_relevant_memories("u1", "what food do I like?")
    """

    def __init__(
        self,
        db_path: Optional[str] = None,
        time_provider: Optional[TimeContextProvider] = None,
    ):
        self.db_path = db_path or settings.sqlite_path
        self.time_provider = time_provider or get_time_context_provider()
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._closed = False
        with self._db() as conn:
            conn.executescript(SCHEMA)

    @contextmanager
    def _db(self):
        """Serialized access to the shared connection; sqlite errors become ExternalStoreError."""
        with self._lock:
            if self._closed:
                raise ExternalStoreError("memory store is closed")
            try:
                yield self._conn
                self._conn.commit()
            except sqlite3.Error as e:
                self._conn.rollback()
                raise ExternalStoreError(f"memory store failure: {e}") from e

    # =========================================================================
    # WRITE
    # =========================================================================

    def store_conversation(
        self,
        user_id: str,
        messages: List[MessageLike],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Persist a conversation fragment with the current time context.

        Returns:
            {"id": memory_id, "conversation_id": ...}
        """
        if not user_id:
            raise ExternalStoreError("user_id is required")
        try:
            content = messages_to_content(messages)
        except ValueError as e:
            raise ExternalStoreError(f"invalid messages: {e}") from e
        if not content:
            raise ExternalStoreError("nothing to store")

        time_context = self.time_provider.now()
        enriched = {
            **(metadata or {}),
            "time_context": time_context.to_dict(),
            "conversation_id": (metadata or {}).get("conversation_id") or uuid.uuid4().hex,
        }
        memory_id = f"memory_{uuid.uuid4().hex}"
        embedding = embed_text(content).astype(np.float32).tobytes()

        with self._db() as conn:
            conn.execute(
                """INSERT INTO memories(id, user_id, content, metadata, embedding, created_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (memory_id, user_id, content, json.dumps(enriched, default=str), embedding, time_context.timestamp),
            )
            self._log_history(conn, memory_id, "add", None, content, time_context.timestamp)

        logger.info("Stored conversation for user %s with ID %s", user_id, memory_id)
        return {"id": memory_id, "conversation_id": enriched["conversation_id"]}

    def update_memory(self, memory_id: str, content: str) -> Optional[MemoryRecord]:
        """Replace a memory's content. Returns the updated record, None if unknown."""
        now = self.time_provider.now_millis()
        with self._db() as conn:
            row = conn.execute("SELECT content FROM memories WHERE id=?", (memory_id,)).fetchone()
            if row is None:
                return None
            conn.execute(
                "UPDATE memories SET content=?, embedding=?, updated_at=? WHERE id=?",
                (content, embed_text(content).astype(np.float32).tobytes(), now, memory_id),
            )
            self._log_history(conn, memory_id, "update", row["content"], content, now)
            updated = conn.execute("SELECT * FROM memories WHERE id=?", (memory_id,)).fetchone()
            return _row_to_record(updated)

    def delete_user_memories(self, user_id: str) -> int:
        """Delete every memory of a user. Returns number removed."""
        now = self.time_provider.now_millis()
        with self._db() as conn:
            rows = conn.execute("SELECT id, content FROM memories WHERE user_id=?", (user_id,)).fetchall()
            for r in rows:
                self._log_history(conn, r["id"], "delete", r["content"], None, now)
            conn.execute("DELETE FROM memories WHERE user_id=?", (user_id,))
        logger.info("Deleted %d memories for user %s", len(rows), user_id)
        return len(rows)

    # =========================================================================
    # READ
    # =========================================================================

    def retrieve_relevant_memories(self, user_id: str, query: str, k: Optional[int] = None) -> List[MemoryHit]:
        """Memories ranked by similarity to query, annotated with how long ago they were made."""
        k = k or settings.default_top_k
        with self._db() as conn:
            rows = conn.execute(
                "SELECT * FROM memories WHERE user_id=? ORDER BY created_at DESC",
                (user_id,),
            ).fetchall()
        if not rows:
            return []

        vectors = [np.frombuffer(r["embedding"], dtype=np.float32) for r in rows]
        top = top_k_by_cosine(embed_text(query), vectors, k=min(k, len(vectors)))

        hits = []
        for idx, score in top:
            record = _row_to_record(rows[idx])
            created = record.metadata.get("time_context", {}).get("timestamp", record.created_at)
            hits.append(MemoryHit(
                **record.model_dump(),
                score=score,
                time_since=self.time_provider.time_since(created),
                is_recent=self.time_provider.is_recent(created, hours=settings.recent_memory_hours),
            ))
        return hits

    def get_all_user_memories(self, user_id: str) -> List[MemoryRecord]:
        with self._db() as conn:
            rows = conn.execute(
                "SELECT * FROM memories WHERE user_id=? ORDER BY created_at ASC",
                (user_id,),
            ).fetchall()
        return [_row_to_record(r) for r in rows]

    def get_memory_history(self, memory_id: str) -> List[MemoryHistoryEntry]:
        with self._db() as conn:
            rows = conn.execute(
                "SELECT * FROM memory_history WHERE memory_id=? ORDER BY id ASC",
                (memory_id,),
            ).fetchall()
        return [
            MemoryHistoryEntry(
                memory_id=r["memory_id"],
                action=r["action"],
                old_content=r["old_content"],
                new_content=r["new_content"],
                ts=r["ts"],
            )
            for r in rows
        ]

    def close(self) -> None:
        with self._lock:
            if not self._closed:
                self._closed = True
                self._conn.close()

    def _log_history(self, conn, memory_id: str, action: str, old: Optional[str], new: Optional[str], ts: int) -> None:
        conn.execute(
            "INSERT INTO memory_history(memory_id, action, old_content, new_content, ts) VALUES (?, ?, ?, ?, ?)",
            (memory_id, action, old, new, ts),
        )


def _row_to_record(row: sqlite3.Row) -> MemoryRecord:
    return MemoryRecord(
        id=row["id"],
        user_id=row["user_id"],
        content=row["content"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        metadata=json.loads(row["metadata"] or "{}"),
    )


_store_instance: Optional[SQLiteMemoryStore] = None


def get_memory_store() -> SQLiteMemoryStore:
    """Get singleton local memory store."""
    global _store_instance
    if _store_instance is None:
        _store_instance = SQLiteMemoryStore()
    return _store_instance
