"""Application settings loaded from the environment."""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-level configuration, validated only by downstream failure."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    # Telegram
    BOT_TOKEN: str = ""
    WEBHOOK_URL: Optional[str] = None
    ADMIN_ID: Optional[str] = None
    TELEGRAM_API_URL: str = "https://api.telegram.org"
    TELEGRAM_TIMEOUT: float = 15.0

    # Completion service (Gemini through its OpenAI-compatible endpoint)
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-1.5-flash"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    GEMINI_TIMEOUT: float = 60.0
    HISTORY_LIMIT: int = 20

    # State
    DATA_DIR: Path = Path("data")
    STATE_BACKEND: str = "json"
    DATABASE_URL: Optional[str] = None

    @property
    def seed_admin_id(self) -> str:
        """Admin written to a fresh admin document."""
        return self.ADMIN_ID or "123456789"

    @property
    def database_url(self) -> str:
        return self.DATABASE_URL or f"sqlite:///{self.DATA_DIR / 'relaybot.db'}"


settings = Settings()
