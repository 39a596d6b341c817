"""Shared test fixtures."""

from __future__ import annotations

import httpx
import pytest
import respx

from gemini_client import GeminiClient
from yahoo_client import YahooFinanceClient

BASE = "https://yahoo-finance166.p.rapidapi.com"
GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/test-model:generateContent"


@pytest.fixture
def yahoo_client():
    """Create a YahooFinanceClient with a test API key."""
    return YahooFinanceClient(api_key="test_key")


@pytest.fixture
def gemini_client():
    return GeminiClient(api_key="test_google_key", model="test-model")


@pytest.fixture
def mock_api():
    """Start respx mock for Yahoo Finance calls."""
    with respx.mock(base_url=BASE, assert_all_called=False) as api:
        yield api


@pytest.fixture
def mock_http():
    """Start respx mock for both Yahoo Finance and Gemini calls (absolute URLs)."""
    with respx.mock(assert_all_called=False) as router:
        yield router


def gemini_reply(text: str) -> dict:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


# --- Sample response data ---

AAPL_PRICE = {"data": [{
    "symbol": "AAPL",
    "regularMarketPrice": 189.84,
    "regularMarketPreviousClose": 187.50,
    "regularMarketDayHigh": 190.50,
    "regularMarketDayLow": 188.50,
    "regularMarketVolume": 55000000,
    "marketCap": 2950000000000,
}]}

AAPL_STATISTICS = {"data": [{
    "averageDailyVolume10Day": 60000000,
    "beta": 1.24,
    "forwardPE": 28.53,
    "trailingEps": 6.42,
    "dividendYield": 0.0051,
}]}

AAPL_RECOMMENDATION_TREND = {"data": [{
    "period": "0m",
    "strongBuy": 2,
    "buy": 3,
    "hold": 1,
    "sell": 0,
    "strongSell": 0,
}]}

AAPL_FINANCIAL_DATA = {"data": [{
    "totalRevenue": 394328000000,
    "profitMargins": 0.2397,
    "operatingMargins": 0.3151,
    "returnOnEquity": 1.5641,
    "quickRatio": 0.745,
    "debtToEquity": 209.06,
}]}

AAPL_FUND_PERFORMANCE = {"data": [{
    "ytd": 12.5,
    "oneYear": 20.1,
    "threeYear": 35.4,
    "fiveYear": 180.2,
}]}

AAPL_ANALYSTS_OPINIONS = {"data": [
    {"firm": "Morgan Stanley", "rating": "Overweight", "date": "2025-01-28"},
    {"firm": "Goldman Sachs", "rating": "Buy", "date": "2025-01-25"},
    {"firm": "Barclays", "rating": "Underweight", "date": "2025-01-20"},
    {"firm": "Jefferies", "rating": "Hold", "date": "2025-01-15"},
]}

AAPL_HOLDERS = {"data": [{"totalInsiders": 12, "totalShares": 1500000000}]}

AAPL_SCORE = {"data": [{
    "valueScore": 45,
    "growthScore": 70,
    "momentumScore": 80,
    "totalScore": 65,
}]}

AAPL_EARNINGS = {"data": [{"quarter": "4Q2024", "actual": 2.40, "estimate": 2.35}]}

AAPL_ANALYSIS = {"data": [{"period": "0q", "growth": 0.1}]}

AAPL_RECOMMENDATION = {"data": [{"symbol": "MSFT", "score": 0.28}]}

AAPL_FEES_EXPENSES = {"data": [{"annualReportExpenseRatio": None}]}

# 20 rising daily closes 100..119: RSI 100, MA5 117, MA14 112.5
AAPL_CHART = {"chart": {"result": [{
    "meta": {"symbol": "AAPL"},
    "timestamp": list(range(1735689600, 1735689600 + 86400 * 20, 86400)),
    "indicators": {"quote": [{"close": [100.0 + i for i in range(20)]}]},
}]}}

FACET_RESPONSES = {
    "price": AAPL_PRICE,
    "statistics": AAPL_STATISTICS,
    "recommendationTrend": AAPL_RECOMMENDATION_TREND,
    "financialData": AAPL_FINANCIAL_DATA,
    "fundPerformance": AAPL_FUND_PERFORMANCE,
    "analystsOpinions": AAPL_ANALYSTS_OPINIONS,
    "holders": AAPL_HOLDERS,
    "score": AAPL_SCORE,
    "earnings": AAPL_EARNINGS,
    "analysis": AAPL_ANALYSIS,
    "recommendation": AAPL_RECOMMENDATION,
    "feesExpenses": AAPL_FEES_EXPENSES,
    "chart": AAPL_CHART,
}

MSFT_PRICE = {"data": [{
    "symbol": "MSFT",
    "regularMarketPrice": 415.20,
    "regularMarketPreviousClose": 420.00,
    "regularMarketVolume": 21000000,
    "marketCap": 3090000000000,
}]}


def _json_responder(payload):
    def respond(request):
        return httpx.Response(200, json=payload)
    return respond


def mock_facets(router, overrides: dict | None = None, base: str = "") -> dict:
    """Register a route per facet.

    Overrides map facet -> JSON payload, httpx.Response, an exception to
    raise, or a side-effect callable taking the request.
    """
    responses = {**FACET_RESPONSES, **(overrides or {})}
    routes = {}
    for facet, path in YahooFinanceClient.FACETS.items():
        value = responses[facet]
        route = router.get(f"{base}{path}")
        if isinstance(value, httpx.Response):
            route.mock(return_value=value)
        elif isinstance(value, Exception) or callable(value):
            route.mock(side_effect=value)
        else:
            route.mock(side_effect=_json_responder(value))
        routes[facet] = route
    return routes


def by_symbol(payloads: dict, default: int = 404):
    """Side effect returning the payload for the request's symbol param."""
    def respond(request):
        payload = payloads.get(request.url.params.get("symbol"))
        if payload is None:
            return httpx.Response(default, text="Not found")
        return httpx.Response(200, json=payload)
    return respond
