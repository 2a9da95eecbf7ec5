from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str  # mongodb://host:port/dbname, or memory:// for an in-process store
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    cors_origins: list[str] = []
    collection_name: str = "project_comments"
    # Change notifications may lag writes by 5-10s; snapshots are ignored for this long after a save
    sync_cooldown_ms: int = 8000
    conflict_backoff_base_ms: int = 100
    conflict_backoff_max_ms: int = 5000
    network_backoff_base_ms: int = 500
    network_backoff_max_ms: int = 10000
    max_attempts: int = 75
    max_duration_ms: int = 5 * 60 * 1000
    telegram_bot_token: str | None = None  # Telegram Bot API token for failure alerts (optional)
    telegram_chat_id: str | None = None

    model_config = {
        "env_file": [".env"],
        "env_prefix": "THREADLINE_",
        "extra": "ignore",
    }
