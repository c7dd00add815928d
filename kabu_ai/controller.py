"""
Event handlers for the UI surfaces (Flask dashboard, CLI).

The controller owns AppState and is the only place that talks to the
Gemini client, the prompt builder and the parser. Every handler returns an
ActionResult; errors never escape as exceptions, they come back as a
status + user-facing message (and are logged).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable

from kabu_ai.config import Settings
from kabu_ai.errors import AuthError, KabuAIError
from kabu_ai.llm.gemini import GeminiClient
from kabu_ai.llm.parsing import parse_analysis_report, parse_market_snapshot
from kabu_ai.llm.prompts import build_analysis_prompt, build_market_scan_prompt, stock_from_query
from kabu_ai.models import Credentials, StockRecord
from kabu_ai.settings_store import SettingsStore
from kabu_ai.state import AppState, RequestSlot
from kabu_ai.utils.dates import market_now, target_trading_date

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "処理中です。完了までお待ちください。"
NO_KEY_FOR_MODELS_MESSAGE = "APIキーを先に入力してください。"
NO_KEY_ON_STARTUP_MESSAGE = "APIキーが設定されていません。右上の設定ボタンからGemini APIキーを入力してください。"

# Snapshot list names used to address a row from the UI.
STOP_HIGHS = "stop_highs"
SOARING = "soaring"

ClientFactory = Callable[[Credentials], GeminiClient]


@dataclass(frozen=True)
class ActionResult:
    status: str  # ok|busy|needs_settings|error
    message: str = ""
    payload: Any = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def level(self) -> str:
        return "info" if self.status == "ok" else "warning"

    @classmethod
    def busy(cls) -> "ActionResult":
        return cls("busy", BUSY_MESSAGE)


class AppController:
    def __init__(
        self,
        settings: Settings,
        store: SettingsStore,
        *,
        client_factory: ClientFactory | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.settings = settings
        self.store = store
        self.state = AppState(
            credentials=store.load_credentials(settings),
            theme=store.load_theme(),
        )
        self._client_factory = client_factory or (lambda creds: GeminiClient.from_credentials(creds, settings))
        self._clock = clock or (lambda: market_now(settings.market_timezone))

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppController":
        return cls(settings, SettingsStore.from_settings(settings))

    # ------------------------------------------------------------------
    # Settings / theme
    # ------------------------------------------------------------------

    def startup_alert(self) -> ActionResult | None:
        if not self.state.credentials.has_key:
            return ActionResult("needs_settings", NO_KEY_ON_STARTUP_MESSAGE)
        return None

    def save_settings(self, api_key: str, model: str | None = None) -> ActionResult:
        chosen = (model or "").strip() or self.state.credentials.selected_model
        try:
            creds = self.store.save_credentials(api_key, chosen)
        except ValueError as exc:
            return ActionResult("error", str(exc))
        self.state.credentials = creds
        logger.info("Saved API key and model %s", creds.selected_model)
        return ActionResult("ok", f"APIキーとモデル（{creds.selected_model}）を保存しました。", creds)

    def toggle_theme(self) -> str:
        self.state.theme = "light" if self.state.theme == "dark" else "dark"
        self.store.save_theme(self.state.theme)
        return self.state.theme

    def target_date(self) -> date:
        return target_trading_date(self._clock())

    # ------------------------------------------------------------------
    # Network actions
    # ------------------------------------------------------------------

    def _client(self) -> GeminiClient:
        return self._client_factory(self.state.credentials)

    def _run(self, slot: RequestSlot, action: Callable[[], ActionResult], failure_prefix: str = "") -> ActionResult:
        """Reject if in flight; always release the slot, even on failure."""
        if not slot.try_begin():
            logger.info("%s request already in flight; ignoring", slot.name)
            return ActionResult.busy()
        error: str | None = None
        try:
            return action()
        except KabuAIError as exc:
            error = exc.message
            logger.warning("%s request failed: %s", slot.name, exc.message)
            return ActionResult("error", f"{failure_prefix}{exc.message}", exc)
        finally:
            slot.finish(error)

    def fetch_models(self, api_key: str | None = None) -> ActionResult:
        key = (api_key or "").strip() or self.state.credentials.api_key
        if not key:
            return ActionResult("error", NO_KEY_FOR_MODELS_MESSAGE)

        def action() -> ActionResult:
            models = self._client().list_models(api_key_override=key)
            self.state.available_models = models
            return ActionResult("ok", f"{len(models)}件のモデルを取得しました", models)

        return self._run(self.state.models_slot, action, failure_prefix="取得失敗: ")

    def scan_market(self) -> ActionResult:
        if not self.state.credentials.has_key:
            return ActionResult("needs_settings", AuthError().message)

        def action() -> ActionResult:
            prompt = build_market_scan_prompt(self.target_date())
            result = self._client().generate(prompt, allow_search=True)
            snapshot = parse_market_snapshot(result.text, result.citations)
            self.state.snapshot = snapshot
            logger.info(
                "Market scan: %d stop-high, %d soaring (model=%s, grounding=%s)",
                len(snapshot.stop_highs),
                len(snapshot.soaring),
                result.model_used,
                result.grounding_used,
            )
            msg = f"ストップ高: {len(snapshot.stop_highs)}件 / 急騰: {len(snapshot.soaring)}件 を取得しました"
            return ActionResult("ok", msg, snapshot)

        return self._run(self.state.scan_slot, action)

    def analyze_stock(self, stock: StockRecord) -> ActionResult:
        if not self.state.credentials.has_key:
            return ActionResult("needs_settings", AuthError().message)

        def action() -> ActionResult:
            self.state.selected_stock = stock
            prompt = build_analysis_prompt(stock, self.target_date())
            result = self._client().generate(prompt, allow_search=True)
            report = parse_analysis_report(result.text, result.citations)
            self.state.report = report
            label = stock.code or stock.name
            logger.info("Analysis for %s: verdict=%s sources=%d", label, report.verdict.judgment, len(report.sources))
            return ActionResult("ok", f"{label} の分析が完了しました", report)

        return self._run(self.state.analysis_slot, action, failure_prefix="分析に失敗しました: ")

    def analyze_query(self, query: str) -> ActionResult:
        try:
            stock = stock_from_query(query)
        except ValueError as exc:
            return ActionResult("error", str(exc))
        return self.analyze_stock(stock)

    def stock_at(self, category: str, index: int) -> StockRecord | None:
        """Row `index` (1-based, as displayed) of the current snapshot's `category` list."""
        snap = self.state.snapshot
        if snap is None:
            return None
        rows = {STOP_HIGHS: snap.stop_highs, SOARING: snap.soaring}.get(category)
        if rows is None or not 1 <= index <= len(rows):
            return None
        return rows[index - 1]
