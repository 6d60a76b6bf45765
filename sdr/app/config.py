from __future__ import annotations

import tempfile
from pathlib import Path

from pydantic import AnyUrl, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from sdr.services.errors import ConfigurationError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    # Required credentials
    GROQ_API_KEY: str = Field(min_length=1)
    CLAUDE_API_KEY: str = Field(min_length=1)
    SUPABASE_URL: AnyUrl
    SUPABASE_ANON_KEY: str = Field(min_length=1)

    HOST: str = "0.0.0.0"
    PORT: int = 8080
    APP_ENV: str = "local"
    LOG_LEVEL: str = "INFO"
    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:4200", "http://localhost:3000"],
    )

    DOWNLOAD_DIR: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()) / "sdr-downloads")

    GROQ_API_URL: str = "https://api.groq.com/openai/v1/audio/transcriptions"
    GROQ_MODEL: str = "whisper-large-v3-turbo"

    CLAUDE_API_URL: str = "https://api.anthropic.com/v1/messages"
    CLAUDE_MODEL: str = "claude-sonnet-4-20250514"
    CLAUDE_MAX_TOKENS: int = 2048
    LLM_LENIENT_JSON: bool = False

    HTTP_TIMEOUT_SECONDS: float = 120.0

    @property
    def supabase_url(self) -> str:
        return str(self.SUPABASE_URL).rstrip("/")


def _describe(error: dict) -> str:
    field = ".".join(str(part) for part in error.get("loc", ())) or "settings"
    if error.get("type") == "missing":
        return f"{field} is required"
    return f"{field}: {error.get('msg')}"


def load_settings(**overrides) -> Settings:
    """Load settings once at startup, failing fast on any missing credential."""
    try:
        return Settings(**overrides)
    except ValidationError as error:
        raise ConfigurationError([_describe(e) for e in error.errors()]) from error
