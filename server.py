"""Stock Assistant - market data, technical signals and narrative stock analysis over MCP."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastmcp import FastMCP

from gemini_client import GeminiClient
from tools import assistant
from yahoo_client import YahooFinanceClient


@asynccontextmanager
async def lifespan(server):
    """Manage client lifecycles."""
    yield
    await client.close()
    await llm.close()


mcp = FastMCP(
    "Stock Assistant",
    instructions=(
        "Stock analysis assistant. Use ask_stock_question for natural-language "
        "questions (single stock or 'X vs Y' comparisons); it returns a narrative "
        "that opens with the current price(s). Use stock_analysis or "
        "stock_comparison for structured indicator data, and stock_recommendation "
        "to evaluate the RSI / moving-average rule table directly."
    ),
    lifespan=lifespan,
)


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "WARNING").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Initialize market data client
api_key = os.environ.get("RAPIDAPI_KEY", "")
if not api_key:
    raise RuntimeError("RAPIDAPI_KEY is required")

client = YahooFinanceClient(
    api_key=api_key,
    api_host=os.environ.get("RAPIDAPI_HOST", YahooFinanceClient.DEFAULT_HOST),
    region=os.environ.get("RAPIDAPI_REGION", "US"),
    timeout=_env_int("HTTP_TIMEOUT", 30),
)

# Initialize LLM client for symbol extraction and summaries
google_api_key = os.environ.get("GOOGLE_API_KEY", "")
if not google_api_key:
    raise RuntimeError("GOOGLE_API_KEY is required")

llm = GeminiClient(
    api_key=google_api_key,
    model=os.environ.get("GEMINI_MODEL", GeminiClient.DEFAULT_MODEL),
    timeout=_env_int("LLM_TIMEOUT", 60),
)

# Register tool modules
assistant.register(mcp, client, llm)


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
