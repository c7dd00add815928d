from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import urlsplit

WEB_URL_SCHEMES = ("http", "https")


def is_web_url(url: str) -> bool:
    """Only http(s) links are rendered as clickable sources."""
    try:
        parts = urlsplit((url or "").strip())
    except ValueError:
        return False
    return parts.scheme.lower() in WEB_URL_SCHEMES and bool(parts.netloc)


@dataclass(frozen=True)
class Credentials:
    api_key: str
    selected_model: str

    @property
    def has_key(self) -> bool:
        return bool(self.api_key.strip())


@dataclass(frozen=True)
class ModelDescriptor:
    id: str  # "gemini-2.0-flash" (namespace prefix stripped)
    display_name: str
    description: str
    supports_search: bool


@dataclass(frozen=True)
class SourceCitation:
    title: str
    url: str

    @property
    def label(self) -> str:
        return self.title or self.url


@dataclass(frozen=True)
class StockRecord:
    """One stop-high or soaring event on the target trading date."""

    sequence_no: int
    code: str  # 4 digits, always str even if the model emitted a number
    name: str
    market: str
    price: str  # yen, free text from the model
    change_percent: str  # "+16.5%" etc, free text
    material: str  # reason for the move, <= ~30 chars


@dataclass(frozen=True)
class MarketSnapshot:
    date: str
    stop_highs: list[StockRecord]
    soaring: list[StockRecord]
    citations: list[SourceCitation] = field(default_factory=list)


@dataclass(frozen=True)
class GenerationResult:
    text: str
    citations: list[SourceCitation]
    model_used: str
    grounding_used: bool


# ---------------------------------------------------------------------------
# Analysis report
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BasicInfo:
    name: str
    code: str
    market: str
    price: str
    change: str
    stop_high_reason: str


@dataclass(frozen=True)
class Performance:
    revenue: str
    operating_profit: str
    ordinary_profit: str
    net_profit: str
    growth_rate: str
    operating_margin: str
    comment: str


@dataclass(frozen=True)
class FinancialHealth:
    equity_ratio: str
    interest_bearing_debt: str
    operating_cf: str
    comment: str


@dataclass(frozen=True)
class Valuation:
    per: str
    pbr: str
    roe: str
    dividend_yield: str
    eps: str
    bps: str
    comment: str


@dataclass(frozen=True)
class MaterialAssessment:
    strength: str
    strength_score: int | None  # 0..100
    continuity: str
    heat_level: str
    comment: str


@dataclass(frozen=True)
class Verdict:
    label: str  # as written by the model, e.g. "買い"
    judgment: str  # buy|neutral|sell
    reasons: list[str]
    short_term: str
    long_term: str
    stop_loss: str
    profit_target: str


@dataclass(frozen=True)
class AnalysisReport:
    basic_info: BasicInfo
    performance: Performance
    financial: FinancialHealth
    valuation: Valuation
    material: MaterialAssessment
    risks: list[str]
    cautions: str
    verdict: Verdict
    sources: list[SourceCitation]
    data_note: str

    @property
    def code(self) -> str:
        return self.basic_info.code
