"""
Tests for turning model output into snapshots and reports.
"""
from __future__ import annotations

import json

import pytest

from conftest import make_report_text, make_scan_text, make_stock_row
from kabu_ai.errors import ParseError
from kabu_ai.llm.parsing import (
    ANALYSIS_PARSE_ERROR,
    MARKET_PARSE_ERROR,
    drop_overlapping_codes,
    extract_json_object,
    merge_citations,
    parse_analysis_report,
    parse_direct,
    parse_market_snapshot,
    parse_outermost_object,
    strip_code_fences,
)
from kabu_ai.models import SourceCitation


class TestJsonExtraction:
    """Fence stripping and the ordered fallback strategies."""

    @pytest.mark.parametrize("wrapped", [
        "```json\n{raw}\n```",
        "```\n{raw}\n```",
        "  ```JSON\n{raw}```  ",
        "\n\n{raw}\n",
    ])
    def test_fenced_equals_unwrapped(self, wrapped: str):
        raw = make_scan_text()
        assert parse_market_snapshot(wrapped.replace("{raw}", raw)) == parse_market_snapshot(raw)

    def test_strip_code_fences_leaves_plain_text(self):
        assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'

    def test_direct_rejects_non_object(self):
        attempt = parse_direct("[1, 2]")
        assert not attempt.ok
        assert "list" in attempt.detail

    def test_outermost_object_from_prose(self):
        text = 'はい、結果です：\n{"date": "2024-01-10", "stopHighs": []}\n以上です。'
        assert not parse_direct(text).ok
        attempt = parse_outermost_object(text)
        assert attempt.ok
        assert attempt.value["date"] == "2024-01-10"

    def test_outermost_without_braces(self):
        attempt = parse_outermost_object("no json here")
        assert not attempt.ok

    def test_empty_text_is_parse_error(self):
        with pytest.raises(ParseError) as exc:
            extract_json_object("   ")
        assert exc.value.message == MARKET_PARSE_ERROR

    def test_garbage_is_parse_error_with_custom_message(self):
        with pytest.raises(ParseError) as exc:
            extract_json_object("{not json}", error_message=ANALYSIS_PARSE_ERROR)
        assert exc.value.message == ANALYSIS_PARSE_ERROR

    def test_custom_strategy_order(self):
        calls = []

        def first(text):
            calls.append("first")
            return parse_direct("{}")

        assert extract_json_object('{"x": 1}', strategies=[first]) == {}
        assert calls == ["first"]


class TestMarketSnapshot:
    """Stop-high / soaring normalization."""

    def test_overlap_scenario(self):
        """A code listed in both categories stays only in stopHighs."""
        body = {
            "date": "2024-01-10",
            "stopHighs": [{"code": "1234", "name": "X", "market": "プライム", "price": "500", "change": "+10.0%", "material": "材料不明"}],
            "soaring": [{"code": "1234", "name": "X", "market": "プライム", "price": "500", "change": "+10.0%", "material": "材料不明"}],
        }
        text = "```json\n" + json.dumps(body, ensure_ascii=False) + "\n```"
        snap = parse_market_snapshot(text)
        assert snap.date == "2024-01-10"
        assert len(snap.stop_highs) == 1
        assert snap.soaring == []

    def test_codes_compared_as_strings(self):
        text = make_scan_text(
            stop_highs=[make_stock_row(code=1234)],
            soaring=[make_stock_row(code="1234"), make_stock_row(code="9999")],
        )
        snap = parse_market_snapshot(text)
        assert snap.stop_highs[0].code == "1234"
        assert [s.code for s in snap.soaring] == ["9999"]

    def test_sets_disjoint(self):
        text = make_scan_text(
            stop_highs=[make_stock_row("1111"), make_stock_row("2222")],
            soaring=[make_stock_row("2222"), make_stock_row("3333"), make_stock_row("1111")],
        )
        snap = parse_market_snapshot(text)
        assert not {s.code for s in snap.stop_highs} & {s.code for s in snap.soaring}

    def test_legacy_stocks_schema(self):
        text = json.dumps({"date": "2024-01-10", "stocks": [make_stock_row("1111"), make_stock_row("2222")]})
        snap = parse_market_snapshot(text)
        assert [s.code for s in snap.stop_highs] == ["1111", "2222"]
        assert snap.soaring == []

    def test_citations_pass_through(self):
        cites = [SourceCitation("株探", "https://kabutan.jp/x")]
        snap = parse_market_snapshot(make_scan_text(), cites)
        assert snap.citations == cites

    def test_sequence_falls_back_to_position(self):
        text = make_scan_text(stop_highs=[make_stock_row("1111", no=None), make_stock_row("2222", no="x")])
        snap = parse_market_snapshot(text)
        assert [s.sequence_no for s in snap.stop_highs] == [1, 2]

    def test_infinite_sequence_falls_back_to_position(self):
        snap = parse_market_snapshot('{"stopHighs": [{"no": Infinity, "code": "1234"}, {"no": NaN, "code": "5678"}]}')
        assert [s.sequence_no for s in snap.stop_highs] == [1, 2]

    def test_non_dict_rows_skipped(self):
        text = make_scan_text(stop_highs=[make_stock_row("1111"), "junk", None], soaring=[])
        snap = parse_market_snapshot(text)
        assert len(snap.stop_highs) == 1


class TestAnalysisReport:
    """Analysis report normalization."""

    def test_fields_mapped(self):
        report = parse_analysis_report(make_report_text())
        assert report.code == "7203"
        assert report.basic_info.stop_high_reason == "好決算"
        assert report.performance.growth_rate == "+21%"
        assert report.financial.operating_cf == "4.2兆円"
        assert report.valuation.dividend_yield == "2.4%"
        assert report.material.strength_score == 80
        assert report.risks == ["為替変動", "原材料高"]
        assert report.verdict.reasons == ["好業績", "割安"]
        assert report.data_note == "一部データは前期のもの"

    @pytest.mark.parametrize("label,judgment", [
        ("買い", "buy"),
        ("中立", "neutral"),
        ("売り", "sell"),
        ("Buy", "buy"),
        ("様子見", "neutral"),
    ])
    def test_judgment_normalized(self, label: str, judgment: str):
        text = make_report_text(verdict={"judgment": label})
        report = parse_analysis_report(text)
        assert report.verdict.label == label
        assert report.verdict.judgment == judgment

    @pytest.mark.parametrize("raw,expected", [
        (150, 100),
        (-5, 0),
        ("65%", 65),
        ("不明", None),
        (None, None),
        (True, None),
        ("1e999", None),
        ("nan", None),
    ])
    def test_strength_score_clamped(self, raw, expected):
        text = make_report_text(material={"strengthScore": raw})
        assert parse_analysis_report(text).material.strength_score == expected

    def test_grounding_citations_win_on_duplicate_url(self):
        grounding = [SourceCitation("検証済みタイトル", "https://example.com/a")]
        report = parse_analysis_report(make_report_text(), grounding)
        assert [s.url for s in report.sources] == ["https://example.com/a", "https://example.com/ir"]
        assert report.sources[0].title == "検証済みタイトル"

    def test_non_web_source_urls_dropped(self):
        sources = [
            {"title": "evil", "url": "javascript:alert(1)"},
            {"title": "data", "url": "data:text/html,<script>alert(1)</script>"},
            {"title": "relative", "url": "/local"},
            {"title": "ok", "url": "https://example.com/ok"},
        ]
        grounding = [SourceCitation("bad", "JavaScript:alert(2)")]
        report = parse_analysis_report(make_report_text(sources=sources), grounding)
        assert [s.url for s in report.sources] == ["https://example.com/ok"]

    def test_missing_sections_default_empty(self):
        report = parse_analysis_report('{"verdict": {"judgment": "売り"}}')
        assert report.basic_info.name == ""
        assert report.risks == []
        assert report.sources == []
        assert report.verdict.judgment == "sell"

    def test_parse_error_message(self):
        with pytest.raises(ParseError) as exc:
            parse_analysis_report("")
        assert exc.value.message == ANALYSIS_PARSE_ERROR


class TestReconciliation:
    def test_merge_keeps_first_and_drops_empty_urls(self):
        merged = merge_citations(
            [SourceCitation("A", "https://x"), SourceCitation("", "")],
            [SourceCitation("B", "https://x"), SourceCitation("C", "https://y")],
        )
        assert merged == [SourceCitation("A", "https://x"), SourceCitation("C", "https://y")]

    def test_drop_overlapping_codes_keeps_order(self):
        from kabu_ai.models import StockRecord

        def rec(code):
            return StockRecord(1, code, "", "", "", "", "")

        kept = drop_overlapping_codes([rec("1")], [rec("3"), rec("1"), rec("2")])
        assert [s.code for s in kept] == ["3", "2"]
