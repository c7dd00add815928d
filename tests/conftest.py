"""
Pytest configuration and shared fixtures for kabu-ai tests.

Usage:
    @pytest.fixture functions are automatically available to all tests.
    Import helpers from conftest when needed.
"""
import json
from datetime import datetime
from typing import Any
from unittest.mock import MagicMock

import pytest

from kabu_ai.config import Settings
from kabu_ai.models import GenerationResult, ModelDescriptor, SourceCitation
from kabu_ai.settings_store import SettingsStore


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings isolated from the developer's .env and ~/.kabu_ai."""
    return Settings(
        _env_file=None,
        GEMINI_API_KEY=None,
        GEMINI_MODEL="gemini-2.0-flash",
        GEMINI_API_BASE="https://gemini.test/v1beta",
        GEMINI_TIMEOUT_SECONDS=5,
        KABU_AI_HOME=str(tmp_path / "home"),
        MARKET_TIMEZONE=None,
    )


@pytest.fixture
def store(test_settings) -> SettingsStore:
    return SettingsStore.from_settings(test_settings)


@pytest.fixture
def keyed_store(store) -> SettingsStore:
    """Store with an API key already saved."""
    store.save_credentials("test-key", "gemini-2.0-flash")
    return store


# Afternoon of 2024-01-10 (Wed): target date is that same day.
AFTER_CLOSE = datetime(2024, 1, 10, 16, 0, 0)


# =============================================================================
# Sample Gemini Payloads
# =============================================================================

def make_stock_row(code: Any = "1234", name: str = "テスト工業", **overrides) -> dict:
    row = {
        "no": 1,
        "code": code,
        "name": name,
        "market": "東証プライム",
        "price": "500",
        "change": "+16.5%",
        "material": "上方修正",
    }
    row.update(overrides)
    return row


def make_scan_text(stop_highs: list[dict] | None = None, soaring: list[dict] | None = None) -> str:
    return json.dumps(
        {
            "date": "2024-01-10",
            "stopHighs": stop_highs if stop_highs is not None else [make_stock_row()],
            "soaring": soaring if soaring is not None else [make_stock_row("5678", "急騰商事", change="+12.0%")],
        },
        ensure_ascii=False,
    )


def make_report_dict(**overrides) -> dict:
    report = {
        "basicInfo": {
            "name": "トヨタ自動車",
            "code": "7203",
            "market": "東証プライム",
            "price": "2500",
            "change": "+3.2%",
            "stopHighReason": "好決算",
        },
        "performance": {
            "revenue": "45兆円",
            "operatingProfit": "5.3兆円",
            "ordinaryProfit": "6.9兆円",
            "netProfit": "4.9兆円",
            "growthRate": "+21%",
            "operatingMargin": "11.8%",
            "comment": "増収増益",
        },
        "financial": {
            "equityRatio": "38%",
            "interestBearingDebt": "取得できなかった",
            "operatingCF": "4.2兆円",
            "comment": "",
        },
        "valuation": {
            "per": "10.2倍",
            "pbr": "1.3倍",
            "roe": "12%",
            "dividendYield": "2.4%",
            "eps": "245円",
            "bps": "1900円",
            "comment": "割安",
        },
        "material": {
            "strength": "強い",
            "strengthScore": 80,
            "continuity": "中期",
            "heatLevel": "やや過熱",
            "comment": "",
        },
        "risks": ["為替変動", "原材料高"],
        "cautions": "決算跨ぎに注意",
        "verdict": {
            "judgment": "買い",
            "reason1": "好業績",
            "reason2": "割安",
            "reason3": "",
            "shortTerm": "押し目買い",
            "longTerm": "保有継続",
            "stopLoss": "2300円",
            "profitTarget": "2800円",
        },
        "sources": [
            {"title": "モデル記載タイトル", "url": "https://example.com/a"},
            {"title": "IR", "url": "https://example.com/ir"},
        ],
        "dataNote": "一部データは前期のもの",
    }
    report.update(overrides)
    return report


def make_report_text(**overrides) -> str:
    return json.dumps(make_report_dict(**overrides), ensure_ascii=False)


def gemini_response(text: str, chunks: list[dict] | None = None) -> dict:
    candidate: dict[str, Any] = {"content": {"parts": [{"text": text}]}}
    if chunks is not None:
        candidate["groundingMetadata"] = {"groundingChunks": chunks}
    return {"candidates": [candidate]}


def mock_response(status: int = 200, payload: Any = None) -> MagicMock:
    """Stand-in for requests.Response."""
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    if isinstance(payload, Exception):
        resp.json.side_effect = payload
    else:
        resp.json.return_value = payload if payload is not None else {}
    return resp


# =============================================================================
# Fake Gemini Client
# =============================================================================

@pytest.fixture
def fake_client() -> MagicMock:
    """GeminiClient double; tests set generate/list_models return values."""
    client = MagicMock()
    client.generate.return_value = GenerationResult(
        text=make_scan_text(),
        citations=[SourceCitation("株探", "https://kabutan.jp/x")],
        model_used="gemini-2.0-flash",
        grounding_used=True,
    )
    client.list_models.return_value = [
        ModelDescriptor("gemini-2.5-flash", "Gemini 2.5 Flash", "", True),
        ModelDescriptor("gemma-3", "Gemma 3", "", False),
    ]
    return client
