from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MODEL = "gemini-2.0-flash"
DEFAULT_API_BASE = "https://generativelanguage.googleapis.com/v1beta"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Used only when the settings store has no key yet (first launch).
    GEMINI_API_KEY: str | None = None
    GEMINI_MODEL: str = DEFAULT_MODEL
    GEMINI_API_BASE: str = DEFAULT_API_BASE
    GEMINI_TIMEOUT_SECONDS: float = 120.0

    # Where settings.json lives.
    KABU_AI_HOME: str = str(Path.home() / ".kabu_ai")

    # IANA name (e.g. "Asia/Tokyo"). Unset means the machine's local clock.
    MARKET_TIMEZONE: str | None = None

    KABU_AI_LOG_LEVEL: str = "INFO"
    DASHBOARD_PORT: int = 5001

    @property
    def gemini_api_key(self) -> str | None:
        return self.GEMINI_API_KEY

    @property
    def gemini_model(self) -> str:
        return (self.GEMINI_MODEL or DEFAULT_MODEL).strip()

    @property
    def gemini_api_base(self) -> str:
        return self.GEMINI_API_BASE.rstrip("/")

    @property
    def gemini_timeout(self) -> float:
        return float(self.GEMINI_TIMEOUT_SECONDS)

    @property
    def home_dir(self) -> Path:
        return Path(self.KABU_AI_HOME).expanduser()

    @property
    def market_timezone(self) -> str | None:
        tz = (self.MARKET_TIMEZONE or "").strip()
        return tz or None

    @property
    def log_level(self) -> str:
        return (self.KABU_AI_LOG_LEVEL or "INFO").strip().upper()

    @property
    def dashboard_port(self) -> int:
        return self.DASHBOARD_PORT


def load_settings() -> Settings:
    return Settings()
