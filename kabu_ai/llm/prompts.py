from __future__ import annotations

import re
from datetime import date

from kabu_ai.models import StockRecord
from kabu_ai.utils.dates import format_jp_long

STOP_HIGH_LIMIT = 20
SOARING_LIMIT = 10
MATERIAL_MAX_CHARS = 30

MATERIAL_UNKNOWN = "材料不明"
NOT_OBTAINED = "取得できなかった"

# Placeholders used when analysis starts from the free-text search box.
SEARCH_PENDING = "取得中"
SEARCH_CHANGE = "+0.00%"
SEARCH_MATERIAL = "個別検索による分析"

_CODE_RE = re.compile(r"^[0-9]{4}$")


def _stock_json_schema(material_hint: str) -> str:
    return f"""{{
      "no": 1,
      "code": "銘柄コード（4桁）",
      "name": "銘柄名",
      "market": "市場区分",
      "price": "終値（円）",
      "change": "前日比（%）",
      "material": "{material_hint}（{MATERIAL_MAX_CHARS}文字以内）"
    }}"""


def build_market_scan_prompt(target_date: date) -> str:
    """Stop-high + soaring (>= +10%) list for one trading day, JSON only."""
    date_str = format_jp_long(target_date)
    return f"""
あなたは日本株の専門アナリストです。
取得対象日（{date_str}）の東京証券取引所の「ストップ高銘柄」と「急騰銘柄（前日比+10%以上）」を、Yahoo!ファイナンスや株探などのサイトから取得してください。

以下のJSON形式で出力してください。他のテキストは一切含めず、JSONのみを出力してください：

{{
  "date": "取得日付",
  "stopHighs": [
    {_stock_json_schema("ストップ高の理由・材料")}
  ],
  "soaring": [
    {_stock_json_schema("急騰の理由・材料")}
  ]
}}

注意事項：
- 取得対象日の実際のデータを取得してください
- ストップ高銘柄は最大{STOP_HIGH_LIMIT}件、急騰銘柄は最大{SOARING_LIMIT}件取得してください
- ストップ高銘柄に含まれる銘柄は急騰銘柄に含めないでください
- materialが不明な場合は「{MATERIAL_UNKNOWN}」と記載してください（省略しないこと）
- JSONのみを出力してください
""".strip()


def build_analysis_prompt(stock: StockRecord, target_date: date) -> str:
    """Fundamental analysis + buy/neutral/sell verdict for one stock, JSON only."""
    date_str = format_jp_long(target_date)
    s = stock
    return f"""
分析対象日（{date_str}）における、以下の銘柄を分析してください：
- 銘柄コード: {s.code}
- 銘柄名: {s.name}
- 市場: {s.market}
- 現在株価: {s.price}円
- 前日比: {s.change_percent}
- ストップ高理由: {s.material}
- 分析日: {date_str}

Yahoo!ファイナンス、株探、みんかぶ、会社のIRページ、EDINET等から以下の情報を取得して分析してください：
1. 最新決算（売上高、営業利益、経常利益、純利益、前年比成長率）
2. 財務指標（自己資本比率、有利子負債、営業CF）
3. バリュエーション（PER、PBR、ROE、配当利回り）
4. 最新ニュース・材料の評価
5. リスク要因

以下のJSON形式のみで出力してください（マークダウンのコードブロック記号は使わないでください）：

{{
  "basicInfo": {{
    "name": "{s.name}",
    "code": "{s.code}",
    "market": "{s.market}",
    "price": "{s.price}",
    "change": "{s.change_percent}",
    "stopHighReason": "ストップ高の詳細な理由"
  }},
  "performance": {{
    "revenue": "売上高（最新期）",
    "operatingProfit": "営業利益",
    "ordinaryProfit": "経常利益",
    "netProfit": "純利益",
    "growthRate": "前年比成長率",
    "operatingMargin": "営業利益率",
    "comment": "業績に関するコメント（100文字程度）"
  }},
  "financial": {{
    "equityRatio": "自己資本比率",
    "interestBearingDebt": "有利子負債",
    "operatingCF": "営業キャッシュフロー",
    "comment": "財務健全性に関するコメント（100文字程度）"
  }},
  "valuation": {{
    "per": "PER",
    "pbr": "PBR",
    "roe": "ROE",
    "dividendYield": "配当利回り",
    "eps": "EPS",
    "bps": "BPS",
    "comment": "バリュエーションに関するコメント（100文字程度）"
  }},
  "material": {{
    "strength": "強い/普通/弱い",
    "strengthScore": 75,
    "continuity": "長期/中期/短期",
    "heatLevel": "過熱/適温/冷静",
    "comment": "材料の評価コメント（100文字程度）"
  }},
  "risks": [
    "リスク要因1",
    "リスク要因2",
    "リスク要因3"
  ],
  "cautions": "注意点（50文字程度）",
  "verdict": {{
    "judgment": "買い または 中立 または 売り",
    "reason1": "判断理由1（50文字程度）",
    "reason2": "判断理由2（50文字程度）",
    "reason3": "判断理由3（50文字程度）",
    "shortTerm": "短期トレードの場合の戦略",
    "longTerm": "中長期投資の場合の戦略",
    "stopLoss": "損切りライン目安",
    "profitTarget": "利確目標の考え方"
  }},
  "sources": [
    {{"title": "参照サイト名", "url": "URL"}}
  ],
  "dataNote": "取得できなかったデータがある場合はここに記載"
}}

重要なルール：
- 必ず事実ベースで分析すること（推測で断定しない）
- データが取得できない場合は「{NOT_OBTAINED}」と明記すること（項目を省略しないこと）
- judgmentは「買い」「中立」「売り」のいずれかのみとすること
- 煽りや過剰な楽観は禁止
- 必ずリスクを明示すること
- JSONのみを出力し、他のテキストは含めないこと
""".strip()


def stock_from_query(query: str) -> StockRecord:
    """
    Build a placeholder record from the search box.

    A 4-digit query is treated as a code, anything else as a company name;
    the model fills in the rest.
    """
    q = (query or "").strip()
    if not q:
        raise ValueError("銘柄コードまたは銘柄名を入力してください。")
    is_code = bool(_CODE_RE.match(q))
    return StockRecord(
        sequence_no=0,
        code=q if is_code else "",
        name="" if is_code else q,
        market=SEARCH_PENDING,
        price=SEARCH_PENDING,
        change_percent=SEARCH_CHANGE,
        material=SEARCH_MATERIAL,
    )
