"""
Turn Gemini's free-form text into domain records.

The prompts ask for bare JSON, but models still wrap it in ```json fences or
add a sentence of prose around it. Extraction runs an ordered list of
strategies and stops at the first one that yields a JSON object:

    1. direct: the (trimmed, de-fenced) text is the object
    2. outermost: first "{" through last "}" of that text

Each strategy returns a ParseAttempt instead of raising, so the pipeline
never has to reason about which exception came from which stage.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence

from kabu_ai.errors import ParseError
from kabu_ai.models import (
    AnalysisReport,
    BasicInfo,
    FinancialHealth,
    MarketSnapshot,
    MaterialAssessment,
    Performance,
    SourceCitation,
    StockRecord,
    Valuation,
    Verdict,
    is_web_url,
)
from kabu_ai.utils.formatting import normalize_judgment

logger = logging.getLogger(__name__)

MARKET_PARSE_ERROR = "データの解析に失敗しました。"
ANALYSIS_PARSE_ERROR = "分析データの解析に失敗しました。"

_OPEN_FENCE_RE = re.compile(r"^```[A-Za-z0-9_+-]*[ \t]*\r?\n?")
_CLOSE_FENCE_RE = re.compile(r"\r?\n?[ \t]*```$")


# ---------------------------------------------------------------------------
# JSON extraction pipeline
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ParseAttempt:
    strategy: str
    value: dict[str, Any] | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.value is not None


def strip_code_fences(text: str) -> str:
    """Drop one leading ```lang marker and one trailing ``` marker."""
    t = (text or "").strip()
    t = _OPEN_FENCE_RE.sub("", t, count=1)
    t = _CLOSE_FENCE_RE.sub("", t, count=1)
    return t.strip()


def _loads_object(strategy: str, text: str) -> ParseAttempt:
    try:
        obj = json.loads(text)
    except ValueError as exc:
        return ParseAttempt(strategy, detail=str(exc))
    if not isinstance(obj, dict):
        return ParseAttempt(strategy, detail=f"expected a JSON object, got {type(obj).__name__}")
    return ParseAttempt(strategy, value=obj)


def parse_direct(text: str) -> ParseAttempt:
    return _loads_object("direct", text)


def parse_outermost_object(text: str) -> ParseAttempt:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return ParseAttempt("outermost", detail="no {...} block found")
    return _loads_object("outermost", text[start : end + 1])


JSON_STRATEGIES: tuple[Callable[[str], ParseAttempt], ...] = (
    parse_direct,
    parse_outermost_object,
)


def extract_json_object(
    raw_text: str,
    *,
    error_message: str = MARKET_PARSE_ERROR,
    strategies: Sequence[Callable[[str], ParseAttempt]] = JSON_STRATEGIES,
) -> dict[str, Any]:
    text = strip_code_fences(raw_text)
    attempts: list[ParseAttempt] = []
    if text:
        for strategy in strategies:
            attempt = strategy(text)
            if attempt.ok:
                return attempt.value  # type: ignore[return-value]
            attempts.append(attempt)
    detail = "; ".join(f"{a.strategy}: {a.detail}" for a in attempts) or "empty response"
    logger.warning("Could not recover JSON from model output (%s); head=%r", detail, text[:200])
    raise ParseError(error_message)


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------

def _text(obj: Any, key: str, default: str = "") -> str:
    if not isinstance(obj, dict):
        return default
    v = obj.get(key)
    if v is None:
        return default
    return str(v).strip()


def _section(obj: dict[str, Any], key: str) -> dict[str, Any]:
    v = obj.get(key)
    return v if isinstance(v, dict) else {}


def _score(v: Any) -> int | None:
    if isinstance(v, bool) or v is None:
        return None
    try:
        score = int(round(float(str(v).replace("%", "").strip())))
    except (ValueError, OverflowError):
        return None
    return max(0, min(100, score))


def _to_stock(row: Any, position: int) -> StockRecord | None:
    if not isinstance(row, dict):
        return None
    no = row.get("no")
    try:
        seq = int(no) if no is not None and not isinstance(no, bool) else position
    except (TypeError, ValueError, OverflowError):
        seq = position
    return StockRecord(
        sequence_no=seq,
        code=_text(row, "code"),
        name=_text(row, "name"),
        market=_text(row, "market"),
        price=_text(row, "price"),
        change_percent=_text(row, "change"),
        material=_text(row, "material"),
    )


def _to_stocks(rows: Any) -> list[StockRecord]:
    if not isinstance(rows, list):
        return []
    out: list[StockRecord] = []
    for i, row in enumerate(rows, start=1):
        rec = _to_stock(row, i)
        if rec is not None:
            out.append(rec)
    return out


def _citations_from_rows(rows: Any) -> list[SourceCitation]:
    if not isinstance(rows, list):
        return []
    out: list[SourceCitation] = []
    for row in rows:
        url = _text(row, "url")
        if is_web_url(url):
            out.append(SourceCitation(title=_text(row, "title"), url=url))
    return out


# ---------------------------------------------------------------------------
# Reconciliation rules
# ---------------------------------------------------------------------------

def drop_overlapping_codes(stop_highs: list[StockRecord], soaring: list[StockRecord]) -> list[StockRecord]:
    """Soaring rows whose code is already a stop-high are dropped (not merged)."""
    taken = {str(s.code) for s in stop_highs}
    return [s for s in soaring if str(s.code) not in taken]


def merge_citations(*groups: Iterable[SourceCitation]) -> list[SourceCitation]:
    """Concatenate in order, keep the first entry per url, drop empty and non-http(s) urls."""
    seen: set[str] = set()
    out: list[SourceCitation] = []
    for group in groups:
        for c in group:
            if not is_web_url(c.url) or c.url in seen:
                continue
            seen.add(c.url)
            out.append(c)
    return out


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------

def parse_market_snapshot(raw_text: str, citations: Sequence[SourceCitation] = ()) -> MarketSnapshot:
    obj = extract_json_object(raw_text, error_message=MARKET_PARSE_ERROR)

    stop_rows = obj.get("stopHighs")
    if stop_rows is None:
        # Older prompt revision returned a single "stocks" list of stop-highs.
        stop_rows = obj.get("stocks")
    stop_highs = _to_stocks(stop_rows)
    soaring = drop_overlapping_codes(stop_highs, _to_stocks(obj.get("soaring")))

    return MarketSnapshot(
        date=_text(obj, "date"),
        stop_highs=stop_highs,
        soaring=soaring,
        citations=list(citations),
    )


def parse_analysis_report(raw_text: str, citations: Sequence[SourceCitation] = ()) -> AnalysisReport:
    obj = extract_json_object(raw_text, error_message=ANALYSIS_PARSE_ERROR)

    basic = _section(obj, "basicInfo")
    perf = _section(obj, "performance")
    fin = _section(obj, "financial")
    val = _section(obj, "valuation")
    mat = _section(obj, "material")
    ver = _section(obj, "verdict")

    risks_raw = obj.get("risks")
    risks = [str(r).strip() for r in risks_raw if str(r).strip()] if isinstance(risks_raw, list) else []
    label = _text(ver, "judgment")

    return AnalysisReport(
        basic_info=BasicInfo(
            name=_text(basic, "name"),
            code=_text(basic, "code"),
            market=_text(basic, "market"),
            price=_text(basic, "price"),
            change=_text(basic, "change"),
            stop_high_reason=_text(basic, "stopHighReason"),
        ),
        performance=Performance(
            revenue=_text(perf, "revenue"),
            operating_profit=_text(perf, "operatingProfit"),
            ordinary_profit=_text(perf, "ordinaryProfit"),
            net_profit=_text(perf, "netProfit"),
            growth_rate=_text(perf, "growthRate"),
            operating_margin=_text(perf, "operatingMargin"),
            comment=_text(perf, "comment"),
        ),
        financial=FinancialHealth(
            equity_ratio=_text(fin, "equityRatio"),
            interest_bearing_debt=_text(fin, "interestBearingDebt"),
            operating_cf=_text(fin, "operatingCF"),
            comment=_text(fin, "comment"),
        ),
        valuation=Valuation(
            per=_text(val, "per"),
            pbr=_text(val, "pbr"),
            roe=_text(val, "roe"),
            dividend_yield=_text(val, "dividendYield"),
            eps=_text(val, "eps"),
            bps=_text(val, "bps"),
            comment=_text(val, "comment"),
        ),
        material=MaterialAssessment(
            strength=_text(mat, "strength"),
            strength_score=_score(mat.get("strengthScore")),
            continuity=_text(mat, "continuity"),
            heat_level=_text(mat, "heatLevel"),
            comment=_text(mat, "comment"),
        ),
        risks=risks,
        cautions=_text(obj, "cautions"),
        verdict=Verdict(
            label=label,
            judgment=normalize_judgment(label),
            reasons=[r for r in (_text(ver, f"reason{i}") for i in (1, 2, 3)) if r],
            short_term=_text(ver, "shortTerm"),
            long_term=_text(ver, "longTerm"),
            stop_loss=_text(ver, "stopLoss"),
            profit_target=_text(ver, "profitTarget"),
        ),
        # Grounding chunks come first: they are links the service verified.
        sources=merge_citations(citations, _citations_from_rows(obj.get("sources"))),
        data_note=_text(obj, "dataNote"),
    )
