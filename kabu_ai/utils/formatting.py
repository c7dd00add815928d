"""
Display formatting rules shared by the dashboard templates and the CLI.

Provides consistent formatting for:
- Market segment badges (プライム / スタンダード / グロース)
- Change percentages
- Verdict banners and material-strength meters
"""
from __future__ import annotations

import math
import re
from typing import Optional

from kabu_ai.models import ModelDescriptor


# ============================================================================
# Market segment
# ============================================================================

MARKET_PRIME = "market-prime"
MARKET_GROWTH = "market-growth"
MARKET_STANDARD = "market-standard"


def market_class(market: Optional[str]) -> str:
    """Bucket a free-text market name; substring match, not an enumeration."""
    if not market:
        return MARKET_STANDARD
    m = market.lower()
    if "プライム" in m or "prime" in m:
        return MARKET_PRIME
    if "グロース" in m or "growth" in m:
        return MARKET_GROWTH
    return MARKET_STANDARD


# ============================================================================
# Change percentage
# ============================================================================

_LEADING_NUMBER_RE = re.compile(r"\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_change(value: object) -> Optional[float]:
    """'+5.5%' -> 5.5, '+15.2% (S高)' -> 15.2; None when there is no leading number."""
    if value is None:
        return None
    m = _LEADING_NUMBER_RE.match(str(value))
    if m is None:
        return None
    v = float(m.group(1))
    return v if math.isfinite(v) else None


def format_change(value: object) -> str:
    """'+5.5%' -> '+5.50%'. Unparsable input passes through unchanged."""
    v = parse_change(value)
    if v is None:
        return "" if value is None else str(value)
    sign = "+" if v > 0 else ""
    return f"{sign}{v:.2f}%"


def change_class(value: object) -> str:
    v = parse_change(value)
    if v is not None and v >= 0:
        return "change-positive"
    return "change-negative"


# ============================================================================
# Verdict / material strength
# ============================================================================

VERDICT_STYLES: dict[str, tuple[str, str]] = {
    "buy": ("buy", "✅"),
    "neutral": ("neutral", "⚖️"),
    "sell": ("sell", "🔴"),
}

JUDGMENT_ALIASES = {
    "買い": "buy",
    "buy": "buy",
    "中立": "neutral",
    "neutral": "neutral",
    "売り": "sell",
    "sell": "sell",
}


def normalize_judgment(label: Optional[str]) -> str:
    """Map a model-written verdict label to buy|neutral|sell (default neutral)."""
    key = (label or "").strip().lower()
    return JUDGMENT_ALIASES.get(key, "neutral")


def verdict_style(judgment: Optional[str]) -> tuple[str, str]:
    """(css class, icon) for a verdict; unknown values render as neutral."""
    return VERDICT_STYLES[normalize_judgment(judgment)]


DEFAULT_STRENGTH_SCORE = 50


def strength_class(score: Optional[int]) -> str:
    s = DEFAULT_STRENGTH_SCORE if score is None else score
    if s >= 70:
        return "high"
    if s >= 40:
        return "medium"
    return "low"


# ============================================================================
# Model picker
# ============================================================================

NO_MODELS_LABEL = "利用可能なモデルがありません"


def model_option_label(model: ModelDescriptor) -> str:
    tag = " ✓検索対応" if model.supports_search else " △検索非対応"
    return f"{model.display_name}{tag}"
