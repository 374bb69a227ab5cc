from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="VOICETIME_",
        extra="ignore"  # Ignore unrelated env vars (XI_API_KEY, AGENT_ID, ...)
    )

    timezone: str = "UTC"
    log_level: str = "INFO"
    scheduler_workers: int = 2
    sqlite_path: str = "Memory Storage/voicetime.db"
    embedding_dim: int = 384
    embedding_model: str = "all-MiniLM-L6-v2"
    use_real_embeddings: bool = False
    default_top_k: int = 5
    recent_memory_hours: int = 24

settings = Settings()
