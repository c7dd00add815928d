"""
View-models: plain dicts built from domain records.

Both the Jinja templates (dashboard/) and the rich tables (CLI) consume
these, so the display rules in utils.formatting are applied exactly once.
"""
from __future__ import annotations

from typing import Any

from kabu_ai.llm.prompts import NOT_OBTAINED
from kabu_ai.models import AnalysisReport, ModelDescriptor, SourceCitation, StockRecord, is_web_url
from kabu_ai.utils.formatting import (
    DEFAULT_STRENGTH_SCORE,
    NO_MODELS_LABEL,
    change_class,
    format_change,
    market_class,
    model_option_label,
    strength_class,
    verdict_style,
)

SCAN_SOURCE_LIMIT = 5
REPORT_SOURCE_LIMIT = 8

DISCLAIMER = (
    "本レポートは情報提供を目的としており、投資勧誘を目的とするものではありません。"
    "投資判断はご自身の責任において行ってください。"
    "AIによる分析であり、実際の投資成果を保証するものではありません。"
)

ALERT_ICONS = {"warning": "⚠️", "info": "ℹ️"}


def alert_view(message: str, level: str = "info") -> dict[str, str]:
    level = level if level in ALERT_ICONS else "info"
    return {"level": level, "icon": ALERT_ICONS[level], "message": message}


def stock_rows(stocks: list[StockRecord]) -> list[dict[str, Any]]:
    return [
        {
            "index": i,
            "code": s.code,
            "name": s.name,
            "market": s.market,
            "market_class": market_class(s.market),
            "price": s.price,
            "change": s.change_percent,
            "change_display": format_change(s.change_percent),
            "change_class": change_class(s.change_percent),
            "material": s.material,
        }
        for i, s in enumerate(stocks, start=1)
    ]


def source_links(citations: list[SourceCitation], limit: int) -> list[dict[str, str]]:
    links = [c for c in citations if is_web_url(c.url)]
    return [{"url": c.url, "label": c.label} for c in links[:limit]]


def model_options(models: list[ModelDescriptor], selected: str) -> list[dict[str, Any]]:
    if not models:
        return [{"value": "", "label": NO_MODELS_LABEL, "selected": True}]
    return [{"value": m.id, "label": model_option_label(m), "selected": m.id == selected} for m in models]


def _or_missing(value: str) -> str:
    return value or NOT_OBTAINED


def _rows(pairs: list[tuple[str, str]], highlight: tuple[str, ...] = ()) -> list[dict[str, Any]]:
    return [{"label": label, "value": _or_missing(value), "highlight": label in highlight} for label, value in pairs]


def report_view(report: AnalysisReport) -> dict[str, Any]:
    b, p, f, v, m, vd = (
        report.basic_info,
        report.performance,
        report.financial,
        report.valuation,
        report.material,
        report.verdict,
    )
    verdict_class, verdict_icon = verdict_style(vd.judgment)
    score = DEFAULT_STRENGTH_SCORE if m.strength_score is None else m.strength_score

    cards = [
        {
            "icon": "📈",
            "title": "業績分析（決算）",
            "rows": _rows(
                [
                    ("売上高", p.revenue),
                    ("営業利益", p.operating_profit),
                    ("経常利益", p.ordinary_profit),
                    ("純利益", p.net_profit),
                    ("前年比成長率", p.growth_rate),
                    ("営業利益率", p.operating_margin),
                ],
                highlight=("前年比成長率",),
            ),
            "comment": p.comment,
        },
        {
            "icon": "🏦",
            "title": "財務健全性",
            "rows": _rows(
                [
                    ("自己資本比率", f.equity_ratio),
                    ("有利子負債", f.interest_bearing_debt),
                    ("営業キャッシュフロー", f.operating_cf),
                ]
            ),
            "comment": f.comment,
        },
        {
            "icon": "💹",
            "title": "株価バリュエーション",
            "rows": _rows(
                [
                    ("PER", v.per),
                    ("PBR", v.pbr),
                    ("ROE", v.roe),
                    ("EPS", v.eps),
                    ("BPS", v.bps),
                    ("配当利回り", v.dividend_yield),
                ]
            ),
            "comment": v.comment,
        },
    ]

    return {
        "header": {
            "name": b.name,
            "code": b.code,
            "market": b.market,
            "market_class": market_class(b.market),
            "price": b.price,
            "change": b.change,
            "change_class": change_class(b.change),
            "stop_high_reason": _or_missing(b.stop_high_reason),
        },
        "verdict": {
            "class": verdict_class,
            "icon": verdict_icon,
            "label": vd.label or "中立",
            "reasons": list(vd.reasons),
            "strategies": [
                {"icon": "⚡", "label": "短期トレード", "value": _or_missing(vd.short_term), "tone": ""},
                {"icon": "📅", "label": "中長期投資", "value": _or_missing(vd.long_term), "tone": ""},
                {"icon": "🛑", "label": "損切りライン", "value": _or_missing(vd.stop_loss), "tone": "negative"},
                {"icon": "🎯", "label": "利確目標", "value": _or_missing(vd.profit_target), "tone": "positive"},
            ],
        },
        "cards": cards,
        "material": {
            "rows_before": _rows([("材料の強さ", m.strength)]),
            "score": score,
            "strength_class": strength_class(m.strength_score),
            "rows_after": _rows([("継続性", m.continuity), ("需給（過熱度）", m.heat_level)]),
            "comment": m.comment,
        },
        "risks": list(report.risks),
        "cautions": report.cautions,
        "data_note": report.data_note,
        "sources": source_links(report.sources, REPORT_SOURCE_LIMIT),
        "disclaimer": DISCLAIMER,
    }
