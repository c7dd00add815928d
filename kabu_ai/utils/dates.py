"""
Market-aware date helpers.

The Tokyo cash session closes at 15:00 and closing prices/limit-hit lists
settle around 15:30, so anything asked before then targets the previous
calendar day.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

MARKET_CLOSE_CUTOFF = time(15, 30)

_WEEKDAYS_JA = ("月", "火", "水", "木", "金", "土", "日")


def market_now(tz_name: str | None = None) -> datetime:
    """Current wall-clock time, in `tz_name` when given, else machine-local."""
    if tz_name:
        return datetime.now(ZoneInfo(tz_name))
    return datetime.now()


def target_trading_date(now: datetime | None = None) -> date:
    """Yesterday before 15:30, today from 15:30 on (calendar days, no holiday logic)."""
    now = now or market_now()
    if now.time() < MARKET_CLOSE_CUTOFF:
        return now.date() - timedelta(days=1)
    return now.date()


def format_jp_long(d: date) -> str:
    """2024年1月10日"""
    return f"{d.year}年{d.month}月{d.day}日"


def format_jp_header(d: date) -> str:
    """2024/01/10(水)"""
    return f"{d.year}/{d.month:02d}/{d.day:02d}({_WEEKDAYS_JA[d.weekday()]})"
