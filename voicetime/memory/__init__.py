from voicetime.memory.long_term_store import LongTermMemoryStore, SQLiteMemoryStore, get_memory_store

__all__ = ["LongTermMemoryStore", "SQLiteMemoryStore", "get_memory_store"]
