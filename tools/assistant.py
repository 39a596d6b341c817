"""Stock question pipeline: symbol extraction, analysis, comparison and narrative tools."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from gemini_client import GeminiError
from tools._errors import AssistantError, InsufficientDataError, NoSymbolFoundError, UpstreamOracleError
from tools.indicators import IndicatorRecord, Technicals, calculate_indicators, calculate_technicals
from tools.recommendation import Recommendation, recommend
from tools.report import format_analysis, format_comparison
from yahoo_client import YahooFinanceError

if TYPE_CHECKING:
    from fastmcp import FastMCP
    from gemini_client import GeminiClient
    from yahoo_client import YahooFinanceClient

logger = logging.getLogger(__name__)

NO_SYMBOL_SENTINEL = "NULL"
MAX_SYMBOLS = 2
TICKER_PATTERN = re.compile(r"^\^?[A-Z0-9][A-Z0-9.\-=]{0,9}$")

SYSTEM_PROMPT = """You are an expert financial advisor AI assistant. Always start your response with the current stock price(s).

For single stock analysis:
- Start with "Current Price: $XX.XX"
- Technical analysis (trends, volume, support/resistance)
- Analyst recommendations and trends
- Fund performance metrics
- Financial data analysis
- Clear Buy/Sell/Hold recommendation with confidence level
- Risk assessment and potential catalysts
- Market sentiment analysis

For stock comparisons:
- Start with both prices: "[Symbol1]: $XX.XX | [Symbol2]: $YY.YY"
- Side-by-side comparison of key metrics
- Relative strength analysis
- Comparative analyst recommendations
- Financial performance comparison
- Risk/reward comparison
- Clear recommendation on which stock appears more promising

Keep responses concise and actionable. Always start with current price(s) and end with a clear recommendation."""

EXTRACTION_PROMPT = """Extract stock symbol(s) from this query: "{query}"
If company names are mentioned, convert them to stock symbols (e.g., "Apple" -> "AAPL", "Microsoft" -> "MSFT").
If it's a comparison query (e.g., "Should I buy X or Y?"), return both symbols.
Return in format: SYMBOL1,SYMBOL2 if comparison, or just SYMBOL if single stock.
Return {sentinel} if no company/symbol is found. Reply with the symbols only."""


@dataclass(frozen=True)
class SymbolExtraction:
    symbols: list[str] = field(default_factory=list)
    is_comparison: bool = False


@dataclass(frozen=True)
class StockAnalysis:
    symbol: str
    bundle: dict
    indicators: IndicatorRecord
    technicals: Technicals
    recommendation: Recommendation
    report: str

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "indicators": self.indicators.to_dict(),
            "technicals": self.technicals.to_dict(),
            "recommendation": self.recommendation.to_dict(),
            "report": self.report,
        }


@dataclass(frozen=True)
class StockComparison:
    symbols: tuple[str, str]
    bundles: tuple[dict, dict]
    indicators: tuple[IndicatorRecord, IndicatorRecord]
    report: str

    def to_dict(self) -> dict:
        return {
            "symbols": list(self.symbols),
            "indicators": {sym: ind.to_dict() for sym, ind in zip(self.symbols, self.indicators)},
            "report": self.report,
        }


# --- Oracles ---


def parse_symbols(text: str) -> SymbolExtraction:
    """Parse an extraction reply ("AAPL", "AAPL,MSFT" or the NULL sentinel).

    Raises:
        ValueError: If a token is not shaped like a ticker symbol
    """
    cleaned = text.strip().strip("`").strip().upper()
    if not cleaned or cleaned == NO_SYMBOL_SENTINEL:
        return SymbolExtraction()
    symbols = []
    for part in cleaned.split(","):
        sym = part.strip().rstrip(".").strip()
        if not sym or sym == NO_SYMBOL_SENTINEL:
            continue
        if not TICKER_PATTERN.match(sym):
            raise ValueError(f"Unparseable symbol reply: {text[:100]!r}")
        if sym not in symbols:
            symbols.append(sym)
    symbols = symbols[:MAX_SYMBOLS]
    return SymbolExtraction(symbols=symbols, is_comparison=len(symbols) == MAX_SYMBOLS)


async def extract_symbols(llm: GeminiClient, query: str) -> SymbolExtraction:
    """Ask the LLM for the ticker(s) mentioned in a query.

    Raises:
        UpstreamOracleError: If the LLM call fails or its reply cannot be parsed
    """
    prompt = EXTRACTION_PROMPT.format(query=query, sentinel=NO_SYMBOL_SENTINEL)
    try:
        reply = await llm.generate([{"role": "user", "content": prompt}])
    except GeminiError as e:
        logger.exception("Symbol extraction failed")
        raise UpstreamOracleError("Failed to extract stock symbols") from e
    try:
        return parse_symbols(reply)
    except ValueError as e:
        logger.warning("Symbol extraction returned an unparseable reply: %s", e)
        raise UpstreamOracleError("Failed to extract stock symbols") from e


async def summarize(
    llm: GeminiClient,
    report: str,
    history: list[dict] | None = None,
    query: str | None = None,
) -> str:
    """Turn a formatted report into narrative prose answering the user's question.

    The prompt is the prior turns, then the question, then the report.

    Raises:
        UpstreamOracleError: If the LLM call fails
    """
    messages = [*(history or [])]
    if query:
        messages.append({"role": "user", "content": query})
    messages.append({"role": "user", "content": report})
    try:
        return await llm.generate(messages, system=SYSTEM_PROMPT)
    except GeminiError as e:
        logger.exception("Narrative summarization failed")
        raise UpstreamOracleError("Failed to generate analysis summary") from e


# --- Pipelines ---


async def analyze_symbol(client: YahooFinanceClient, symbol: str) -> StockAnalysis:
    """Fetch, derive indicators, recommend and format a single symbol.

    Raises:
        InsufficientDataError: If no usable price data was returned
    """
    symbol = symbol.upper().strip()
    try:
        bundle = await client.fetch_facets(symbol)
    except YahooFinanceError as e:
        raise InsufficientDataError(f"Cannot fetch market data for '{symbol}': {e}") from e
    indicators = calculate_indicators(bundle)
    technicals = calculate_technicals(bundle)
    rec = recommend(
        technicals.rsi,
        indicators.current_price,
        technicals.ma5,
        technicals.ma14,
        indicators.price_change_percent,
    )
    report = format_analysis(symbol, indicators, bundle, technicals, rec)
    return StockAnalysis(symbol, bundle, indicators, technicals, rec, report)


async def compare_symbols(client: YahooFinanceClient, symbol1: str, symbol2: str) -> StockComparison:
    """Fetch both symbols concurrently and format a comparison.

    Raises:
        InsufficientDataError: If either symbol lacks usable price data
    """
    sym1, sym2 = symbol1.upper().strip(), symbol2.upper().strip()
    results = await asyncio.gather(
        client.fetch_facets(sym1),
        client.fetch_facets(sym2),
        return_exceptions=True,
    )

    bundles: list[dict] = []
    records: list[IndicatorRecord] = []
    for sym, result in zip((sym1, sym2), results):
        if isinstance(result, BaseException):
            logger.warning("Failed to fetch data bundle for %s: %s", sym, result)
            raise InsufficientDataError(f"Insufficient data for comparison analysis of {sym}") from result
        try:
            records.append(calculate_indicators(result))
        except InsufficientDataError as e:
            raise InsufficientDataError(f"Insufficient data for comparison analysis of {sym}") from e
        bundles.append(result)

    report = format_comparison(sym1, sym2, records[0], records[1], bundles[0], bundles[1])
    return StockComparison((sym1, sym2), (bundles[0], bundles[1]), (records[0], records[1]), report)


async def answer_query(
    client: YahooFinanceClient,
    llm: GeminiClient,
    query: str,
    history: list[dict] | None = None,
) -> dict:
    """Answer a natural-language stock question end to end.

    Raises:
        NoSymbolFoundError: If the query names no ticker
        InsufficientDataError: If price data is missing for a requested symbol
        UpstreamOracleError: If symbol extraction or summarization fails
    """
    extraction = await extract_symbols(llm, query)
    if not extraction.symbols:
        raise NoSymbolFoundError("No valid stock symbols found in query")

    result: dict[str, Any]
    if extraction.is_comparison:
        comparison = await compare_symbols(client, *extraction.symbols)
        report = comparison.report
        result = {"symbols": list(comparison.symbols)}
    else:
        analysis = await analyze_symbol(client, extraction.symbols[0])
        report = analysis.report
        result = {
            "symbols": [analysis.symbol],
            "indicators": analysis.indicators.to_dict(),
            "technicals": analysis.technicals.to_dict(),
            "recommendation": analysis.recommendation.to_dict(),
        }

    content = await summarize(llm, report, history, query)
    return {"role": "assistant", "content": content, **result}


# --- Registration ---


def register(mcp: FastMCP, client: YahooFinanceClient, llm: GeminiClient) -> None:
    @mcp.tool(
        annotations={
            "title": "Stock Analysis",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": True,
        }
    )
    async def stock_analysis(symbol: str) -> dict:
        """Indicators, RSI/moving averages, a rule-based signal and a formatted report for one stock.

        Args:
            symbol: Stock ticker symbol (e.g. "AAPL")
        """
        try:
            analysis = await analyze_symbol(client, symbol)
        except AssistantError as e:
            return e.to_dict()
        result = analysis.to_dict()
        missing = [name for name, payload in analysis.bundle.items() if payload is None]
        if missing:
            result["_warnings"] = [f"{name} data unavailable" for name in missing]
        return result

    @mcp.tool(
        annotations={
            "title": "Stock Comparison",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": True,
        }
    )
    async def stock_comparison(symbol1: str, symbol2: str) -> dict:
        """Side-by-side market data and data availability for two stocks.

        Args:
            symbol1: First ticker symbol (e.g. "MSFT")
            symbol2: Second ticker symbol (e.g. "GOOGL")
        """
        try:
            comparison = await compare_symbols(client, symbol1, symbol2)
        except AssistantError as e:
            return e.to_dict()
        return comparison.to_dict()

    @mcp.tool(
        annotations={
            "title": "Technical Recommendation",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        }
    )
    async def stock_recommendation(
        rsi: float | None = None,
        price: float | None = None,
        ma5: float | None = None,
        ma14: float | None = None,
    ) -> dict:
        """Buy/Sell/Hold signal from RSI and 5/14-day moving averages.

        RSI below 30 is oversold, above 70 overbought. Missing inputs
        never match a rule and fall through to HOLD.

        Args:
            rsi: 14-period Relative Strength Index (0-100)
            price: Current price
            ma5: 5-day simple moving average
            ma14: 14-day simple moving average
        """
        return recommend(rsi, price, ma5, ma14).to_dict()

    @mcp.tool(
        annotations={
            "title": "Ask a Stock Question",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": False,
            "openWorldHint": True,
        }
    )
    async def ask_stock_question(query: str, history: list[dict] | None = None) -> dict:
        """Answer a natural-language stock question ("Compare MSFT and GOOGL", "Should I buy AMD?").

        Extracts the ticker(s), fetches market data, and returns a narrative
        analysis that opens with the current price(s).

        Args:
            query: The user's question
            history: Prior conversation turns as {"role", "content"} dicts
        """
        try:
            return await answer_query(client, llm, query, history)
        except AssistantError as e:
            return e.to_dict()
