import logging
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, HttpUrl

logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash-lite"
    gemini_base_url: HttpUrl = "https://generativelanguage.googleapis.com/v1beta"
    request_timeout: float = 30.0
    max_attempts: int = Field(default=3, ge=1)
    max_turns: int = Field(default=14, ge=1, le=14)
    initial_stability: int = Field(default=70, ge=0, le=100)
    state_dir: Path = Path("state")
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

settings = Settings()

# Ensure data dir exists
try:
    settings.state_dir.mkdir(parents=True, exist_ok=True)
except Exception:
    logger.exception("Failed to create folder %s", settings.state_dir)
