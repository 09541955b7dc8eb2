"""Application settings loaded from .env file."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Row store
    DATABASE_URL: str = "sqlite:///scripts/demo.db"
    BROWSE_TABLES: str = ""          # empty = every table the store reports
    OWNER_COLUMN: str = "user_id"

    # Metadata cache
    META_CACHE_TTL_SECONDS: int = 300
    META_CACHE_VERSION: int = 1
    META_CACHE_DIR: str = ""         # empty = in-memory durable tier
    SAMPLE_ROW_LIMIT: int = 50
    TYPE_SAMPLE_CAP: int = 10

    # Probes
    PROBE_TIMEOUT_SECONDS: float = 6.0
    PROBE_ATTEMPTS: int = 2
    PROBE_BACKOFF_SECONDS: float = 0.3

    # Grid
    DEFAULT_PAGE_SIZE: int = 25
    SEARCH_MAX_COLUMNS: int = 4
    SEARCH_DEBOUNCE_MS: int = 400
    ROW_HEIGHT_PX: int = 32
    OVERSCAN_ROWS: int = 6

    # Sessions
    SESSION_IDLE_SECONDS: int = 1800
    MAX_SESSIONS: int = 200

    # Ollama (optional schema summaries)
    OLLAMA_ENABLED: bool = False
    OLLAMA_HOST: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "qwen2.5-coder:3b"
    OLLAMA_TIMEOUT_SECONDS: int = 120

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    CORS_ORIGINS: str = "http://localhost:5173"

    # Logging
    LOG_LEVEL: str = "INFO"

    @property
    def browse_table_list(self) -> list[str]:
        return [t.strip() for t in self.BROWSE_TABLES.split(",") if t.strip()]


settings = Settings()
