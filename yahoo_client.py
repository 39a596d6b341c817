"""Async Yahoo Finance (RapidAPI) client with per-facet partial-failure tolerance."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class YahooFinanceError(Exception):
    """Raised when the Yahoo Finance API returns an error."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class YahooFinanceClient:
    """Async HTTP client for the Yahoo Finance RapidAPI endpoints.

    Features:
    - One request per data facet, dispatched concurrently
    - Failed facets degrade to None instead of failing the bundle
    - RapidAPI key/host header injection
    """

    DEFAULT_HOST = "yahoo-finance166.p.rapidapi.com"

    # Facet name -> API path. Every facet is fetched for every symbol.
    FACETS: dict[str, str] = {
        "price": "/api/stock/get-price",
        "statistics": "/api/stock/get-statistics",
        "recommendationTrend": "/api/stock/get-recommendation-trend",
        "financialData": "/api/stock/get-financial-data",
        "fundPerformance": "/api/stock/get-fund-performance",
        "analystsOpinions": "/api/stock/get-what-analysts-are-saying",
        "holders": "/api/stock/get-insider-holders",
        "score": "/api/stock/get-scores",
        "earnings": "/api/stock/get-earnings",
        "analysis": "/api/stock/get-analysis",
        "recommendation": "/api/stock/get-recommendation-by-symbol",
        "feesExpenses": "/api/stock/get-fees-and-expenses",
        "chart": "/api/stock/get-chart",
    }

    # Extra query params per facet (daily closes for RSI / moving averages)
    FACET_PARAMS: dict[str, dict[str, str]] = {
        "chart": {"range": "1mo", "interval": "1d"},
    }

    def __init__(
        self,
        api_key: str,
        api_host: str = DEFAULT_HOST,
        region: str = "US",
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.api_host = api_host
        self.region = region
        self._client = httpx.AsyncClient(
            base_url=f"https://{api_host}",
            timeout=timeout,
            headers={
                "Accept": "application/json",
                "x-rapidapi-key": api_key,
                "x-rapidapi-host": api_host,
            },
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def get(self, path: str, params: dict | None = None) -> Any:
        """Make a GET request to the Yahoo Finance API.

        Args:
            path: API path (e.g. "/api/stock/get-price")
            params: Query parameters

        Returns:
            Parsed JSON response

        Raises:
            YahooFinanceError: On HTTP errors, network errors or malformed bodies
        """
        try:
            resp = await self._client.get(path, params=params)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise YahooFinanceError(
                f"Yahoo Finance API error {e.response.status_code}: {e.response.text[:200]}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise YahooFinanceError(f"Request failed: {e}") from e

        try:
            return resp.json()
        except ValueError as e:
            raise YahooFinanceError(
                f"Malformed JSON body from {path}", status_code=resp.status_code
            ) from e

    def _facet_params(self, facet: str, symbol: str) -> dict[str, str]:
        return {"symbol": symbol, "region": self.region, **self.FACET_PARAMS.get(facet, {})}

    async def fetch_facet(self, facet: str, symbol: str) -> Any:
        """Fetch a single facet. Never raises; a failed facet returns None."""
        try:
            return await self.get(self.FACETS[facet], params=self._facet_params(facet, symbol))
        except Exception as e:
            logger.warning("Failed to fetch %s data for %s: %s", facet, symbol, e)
            return None

    async def fetch_facets(self, symbol: str) -> dict[str, Any]:
        """Fetch every facet for a symbol concurrently.

        Returns a bundle keyed by facet name. Failed facets map to None;
        the bundle always contains every key in FACETS.

        Raises:
            YahooFinanceError: If the symbol is empty (no request is attempted)
        """
        symbol = (symbol or "").strip().upper()
        if not symbol:
            raise YahooFinanceError("Symbol must be a non-empty string")

        names = list(self.FACETS)
        results = await asyncio.gather(*(self.fetch_facet(name, symbol) for name in names))
        return dict(zip(names, results))
