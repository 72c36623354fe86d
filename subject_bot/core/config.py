"""Application settings and configuration."""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Application
    app_name: str = "Subject Bot"

    # Telegram Bot
    telegram_bot_token: str = Field(..., min_length=1)

    # AI summary (OpenAI-compatible chat completions, OpenRouter by default)
    openrouter_api_key: Optional[str] = None
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    summary_model: str = "deepseek/deepseek-chat"
    summary_temperature: float = 0.7
    summary_max_tokens: int = 1500
    summary_timeout_seconds: float = 120.0

    # Sessions
    session_timeout_minutes: int = 30
    sweep_interval_minutes: int = 10

    # Question flow
    max_answer_length: int = 4000
    answer_delay_seconds: float = 0.5
    default_language: str = "ru"
    languages: List[str] = Field(default_factory=lambda: ["ru", "uk", "en"])

    # Export / import
    export_dir: Optional[Path] = None
    max_import_bytes: int = 256 * 1024

    # Monitoring
    log_level: str = "INFO"
    json_logs: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

    @model_validator(mode="after")
    def _check_consistency(self) -> "Settings":
        if self.sweep_interval_minutes >= self.session_timeout_minutes:
            raise ValueError(
                "sweep_interval_minutes must be shorter than session_timeout_minutes"
            )
        if not self.languages:
            raise ValueError("at least one language must be configured")
        if self.default_language not in self.languages:
            raise ValueError(
                f"default_language '{self.default_language}' is not in languages {self.languages}"
            )
        return self


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
