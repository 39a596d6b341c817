"""Report text handed to the narrative summarizer.

Sections are rendered in a fixed order and every missing metric is printed
as the literal "N/A".
"""

from __future__ import annotations

from typing import Any

from tools._helpers import (
    NA,
    _fmt_count,
    _fmt_money,
    _fmt_number,
    _fmt_pct,
    _fmt_price,
    _fmt_ratio_pct,
    _fmt_text,
    _to_float,
    _unwrap,
    _unwrap_list,
    _unwrap_modules,
)
from tools.indicators import STATISTICS_MODULES, IndicatorRecord, Technicals
from tools.recommendation import Recommendation

ANALYST_WEIGHTS: tuple[tuple[str, str, int], ...] = (
    ("strongBuy", "Strong Buy", 5),
    ("buy", "Buy", 4),
    ("hold", "Hold", 3),
    ("sell", "Sell", 2),
    ("strongSell", "Strong Sell", 1),
)

# Facets reported in the comparison availability table, in display order
AVAILABILITY_FACETS: tuple[tuple[str, str], ...] = (
    ("recommendation", "Analyst Recommendations"),
    ("holders", "Insider Holdings"),
    ("score", "Performance Scores"),
    ("financialData", "Financial Data"),
    ("fundPerformance", "Fund Performance"),
    ("analystsOpinions", "Analyst Opinions"),
    ("recommendationTrend", "Recommendation Trends"),
    ("statistics", "Key Statistics"),
    ("earnings", "Earnings"),
    ("analysis", "Analysis"),
    ("feesExpenses", "Fees & Expenses"),
    ("chart", "Price History"),
)

ANALYSIS_REQUEST = """Please provide a comprehensive analysis including:
1. Technical Analysis Summary (considering price action, volume, and market position)
2. Financial Health Assessment (based on margins, ratios, and growth metrics)
3. Market Sentiment (based on analyst recommendations and insider activity)
4. Risk Factors (considering beta, volatility, and market conditions)
5. Future Growth Potential (based on analyst projections and industry trends)
6. Clear Buy/Sell/Hold Recommendation with confidence level"""

COMPARISON_REQUEST = """Please provide:
1. Comparative Technical Analysis
2. Relative Market Position
3. Financial Performance Comparison
4. Analyst Sentiment Comparison
5. Fund Performance Comparison (if applicable)
6. Risk/Reward Analysis
7. Clear recommendation on which stock appears more promising"""


def _trend_counts(payload: Any) -> dict[str, int]:
    record = _unwrap(payload, module="recommendationTrend")
    if isinstance(record.get("trend"), list):
        record = record["trend"][0] if record["trend"] and isinstance(record["trend"][0], dict) else {}
    counts = {}
    for key, _, _ in ANALYST_WEIGHTS:
        num = _to_float(record.get(key))
        counts[key] = int(num) if num is not None and num > 0 else 0
    return counts


def analyst_score(counts: dict[str, int]) -> float | None:
    """Weighted 1-5 analyst score, or None when there are no recommendations."""
    total = sum(counts.get(key, 0) for key, _, _ in ANALYST_WEIGHTS)
    if total == 0:
        return None
    weighted = sum(counts.get(key, 0) * weight for key, _, weight in ANALYST_WEIGHTS)
    return round(weighted / total, 2)


def _share(count: int, total: int) -> str:
    return f"{count / total * 100:.1f}%" if total else NA


def _section(title: str, lines: list[str]) -> str:
    return "\n".join([f"{title}:", *(f"- {line}" for line in lines)])


def _headline(symbol: str, indicators: IndicatorRecord) -> str:
    return f"Current Price for {symbol}: {_fmt_price(indicators.current_price)}"


def _technical_section(indicators: IndicatorRecord, technicals: Technicals | None) -> str:
    technicals = technicals or Technicals()
    rng = indicators.daily_range
    return _section("Technical Indicators", [
        f"Previous Close: {_fmt_price(indicators.previous_close)}",
        f"Daily Range: {_fmt_price(rng.low)} - {_fmt_price(rng.high)}",
        f"Price Change: {_fmt_pct(indicators.price_change_percent)}",
        f"Volume: {_fmt_count(indicators.volume)}",
        f"Avg Volume (10d): {_fmt_count(indicators.average_volume)}",
        f"Market Cap: {_fmt_money(indicators.market_cap)}",
        f"RSI (14): {_fmt_number(technicals.rsi)}",
        f"5-Day MA: {_fmt_price(technicals.ma5)}",
        f"14-Day MA: {_fmt_price(technicals.ma14)}",
    ])


def _financial_section(bundle: dict) -> str:
    fin = _unwrap(bundle.get("financialData"), module="financialData")
    return _section("Financial Metrics", [
        f"Revenue (TTM): {_fmt_money(fin.get('totalRevenue'))}",
        f"Profit Margin: {_fmt_ratio_pct(fin.get('profitMargins'))}",
        f"Operating Margin: {_fmt_ratio_pct(fin.get('operatingMargins'))}",
        f"Return on Equity: {_fmt_ratio_pct(fin.get('returnOnEquity'))}",
        f"Quick Ratio: {_fmt_number(fin.get('quickRatio'))}",
        f"Debt to Equity: {_fmt_number(fin.get('debtToEquity'))}",
    ])


def _analyst_section(bundle: dict) -> str:
    counts = _trend_counts(bundle.get("recommendationTrend"))
    total = sum(counts.values())
    score = analyst_score(counts)
    lines = [f"{label}: {counts[key]} ({_share(counts[key], total)})" for key, label, _ in ANALYST_WEIGHTS]
    lines.append(f"Overall Score: {_fmt_number(score)} / 5.0")
    return _section(f"Analyst Recommendations ({total} analysts)", lines)


def _fund_section(bundle: dict) -> str:
    perf = _unwrap(bundle.get("fundPerformance"), module="fundPerformance")
    return _section("Fund Performance Metrics", [
        f"YTD Return: {_fmt_pct(perf.get('ytd'))}",
        f"1-Year Return: {_fmt_pct(perf.get('oneYear'))}",
        f"3-Year Return: {_fmt_pct(perf.get('threeYear'))}",
        f"5-Year Return: {_fmt_pct(perf.get('fiveYear'))}",
    ])


def _opinions_section(bundle: dict) -> str:
    opinions = _unwrap_list(bundle.get("analystsOpinions"))[:3]
    lines = [
        f"{_fmt_text(op.get('firm'))}: {_fmt_text(op.get('rating'))} ({_fmt_text(op.get('date'))})"
        for op in opinions
    ]
    return _section("Recent Analyst Opinions", lines or [NA])


def _holders_section(bundle: dict) -> str:
    holders = _unwrap(bundle.get("holders"), module="insiderHolders")
    return _section("Insider Holdings", [
        f"Total Insiders: {_fmt_count(holders.get('totalInsiders'))}",
        f"Total Shares Held: {_fmt_money(holders.get('totalShares'))}",
    ])


def _statistics_section(bundle: dict) -> str:
    stats = _unwrap_modules(bundle.get("statistics"), STATISTICS_MODULES)
    return _section("Key Statistics", [
        f"Beta: {_fmt_number(stats.get('beta'))}",
        f"PE Ratio: {_fmt_number(stats.get('forwardPE'))}",
        f"EPS (TTM): {_fmt_number(stats.get('trailingEps'))}",
        f"Dividend Yield: {_fmt_ratio_pct(stats.get('dividendYield'))}",
    ])


def _scores_section(bundle: dict) -> str:
    scores = _unwrap(bundle.get("score"))
    return _section("Performance Scores", [
        f"{label}: {_fmt_number(scores.get(key), 0)}/100"
        for key, label in (
            ("valueScore", "Value Score"),
            ("growthScore", "Growth Score"),
            ("momentumScore", "Momentum Score"),
            ("totalScore", "Overall Score"),
        )
    ])


def _signal_section(recommendation: Recommendation) -> str:
    return _section("Rule-Based Technical Signal", [
        f"Action: {recommendation.action}",
        f"Confidence: {recommendation.confidence}",
        f"Reasoning: {_fmt_text(recommendation.reasoning)}",
    ])


def format_analysis(
    symbol: str,
    indicators: IndicatorRecord,
    bundle: dict,
    technicals: Technicals | None = None,
    recommendation: Recommendation | None = None,
) -> str:
    """Render the single-symbol report."""
    sections = [
        _headline(symbol, indicators),
        _technical_section(indicators, technicals),
        _financial_section(bundle),
        _analyst_section(bundle),
        _fund_section(bundle),
        _opinions_section(bundle),
        _holders_section(bundle),
        _statistics_section(bundle),
        _scores_section(bundle),
    ]
    if recommendation is not None:
        sections.append(_signal_section(recommendation))
    sections.append(ANALYSIS_REQUEST)
    return "\n\n".join(sections)


def _market_block(symbol: str, indicators: IndicatorRecord) -> str:
    return _section(f"{symbol} Market Data", [
        f"Price Change: {_fmt_pct(indicators.price_change_percent)}",
        f"Volume: {_fmt_count(indicators.volume)}",
        f"Market Cap: {_fmt_money(indicators.market_cap)}",
    ])


def _availability_block(symbol: str, bundle: dict) -> str:
    return _section(symbol, [
        f"{label}: {'Available' if bundle.get(facet) else NA}"
        for facet, label in AVAILABILITY_FACETS
    ])


def format_comparison(
    symbol1: str,
    symbol2: str,
    indicators1: IndicatorRecord,
    indicators2: IndicatorRecord,
    bundle1: dict,
    bundle2: dict,
) -> str:
    """Render the two-symbol comparison report."""
    prices = (
        f"{symbol1}: {_fmt_price(indicators1.current_price)} | "
        f"{symbol2}: {_fmt_price(indicators2.current_price)}"
    )
    availability = "\n\n".join([
        "Market Analysis Availability:",
        _availability_block(symbol1, bundle1),
        _availability_block(symbol2, bundle2),
    ])
    return "\n\n".join([
        f"Current Prices:\n{prices}",
        _market_block(symbol1, indicators1),
        _market_block(symbol2, indicators2),
        availability,
        COMPARISON_REQUEST,
    ])
