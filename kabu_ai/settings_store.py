"""
Persistent key-value settings: API key, selected model, theme.

Stores at ~/.kabu_ai/settings.json (or $KABU_AI_HOME/settings.json).
Values are opaque strings; the only validation is the non-empty check
on the API key when saving.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path

from kabu_ai.config import Settings
from kabu_ai.models import Credentials

logger = logging.getLogger(__name__)

KEY_API = "investment_app_api_key"
KEY_MODEL = "investment_app_model"
KEY_THEME = "investment_app_theme"

THEMES = ("dark", "light")
DEFAULT_THEME = "dark"


class SettingsStore:
    def __init__(self, path: Path):
        self.path = Path(path)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SettingsStore":
        return cls(settings.home_dir / "settings.json")

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable settings file %s: %s", self.path, exc)
            return {}
        if not isinstance(raw, dict):
            return {}
        return {str(k): str(v) for k, v in raw.items() if v is not None}

    def get(self, key: str, default: str = "") -> str:
        return self._read_all().get(key) or default

    def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

    # -- typed helpers ------------------------------------------------------

    def load_credentials(self, settings: Settings) -> Credentials:
        """Stored values win; .env / environment fill the gaps on first launch."""
        return Credentials(
            api_key=self.get(KEY_API) or (settings.gemini_api_key or ""),
            selected_model=self.get(KEY_MODEL) or settings.gemini_model,
        )

    def save_credentials(self, api_key: str, model: str | None = None) -> Credentials:
        key = (api_key or "").strip()
        if not key:
            raise ValueError("APIキーを入力してください。")
        if model:
            self.set(KEY_MODEL, model)
        self.set(KEY_API, key)
        return Credentials(api_key=key, selected_model=model or self.get(KEY_MODEL))

    def load_theme(self) -> str:
        theme = self.get(KEY_THEME, DEFAULT_THEME)
        return theme if theme in THEMES else DEFAULT_THEME

    def save_theme(self, theme: str) -> None:
        self.set(KEY_THEME, theme)
