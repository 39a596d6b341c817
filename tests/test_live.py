"""Live integration tests against the real RapidAPI Yahoo Finance and Gemini APIs.

Run examples:
  uv run pytest tests/test_live.py -m live_smoke -q
  uv run pytest tests/test_live.py -m live_full -q
  uv run pytest tests/test_live.py -m live -v -s
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os
from typing import Any, Callable

from dotenv import load_dotenv
import pytest
import pytest_asyncio

from fastmcp import Client, FastMCP
from gemini_client import GeminiClient
from tools import assistant
from yahoo_client import YahooFinanceClient


Validator = Callable[[dict[str, Any]], None]


def resolve_api_key(env_var: str) -> tuple[str, str | None, str | None]:
    """Resolve an API key with deterministic precedence.

    Resolution order:
    1) Process environment
    2) Repo-local .env
    3) Parent .env
    """
    checked_paths: list[str] = [f"process env ({env_var})"]

    key = os.environ.get(env_var)
    if key:
        return key, "process env", None

    repo_root = Path(__file__).resolve().parent.parent
    dotenv_candidates = [repo_root / ".env", repo_root.parent / ".env"]

    for dotenv_path in dotenv_candidates:
        checked_paths.append(str(dotenv_path))
        if not dotenv_path.exists():
            continue

        load_dotenv(dotenv_path=dotenv_path, override=False)
        key = os.environ.get(env_var)
        if key:
            return key, str(dotenv_path), None

    reason = (
        f"{env_var} not found. Resolution order checked: "
        + " -> ".join(checked_paths)
    )
    return "", None, reason


RAPIDAPI_KEY, RAPIDAPI_KEY_SOURCE, RAPIDAPI_KEY_SKIP_REASON = resolve_api_key("RAPIDAPI_KEY")
GOOGLE_API_KEY, GOOGLE_API_KEY_SOURCE, GOOGLE_API_KEY_SKIP_REASON = resolve_api_key("GOOGLE_API_KEY")

pytestmark = [pytest.mark.live]
if not RAPIDAPI_KEY:
    pytestmark.append(pytest.mark.skip(reason=RAPIDAPI_KEY_SKIP_REASON or "RAPIDAPI_KEY not set"))

requires_gemini = pytest.mark.skipif(
    not GOOGLE_API_KEY,
    reason=GOOGLE_API_KEY_SKIP_REASON or "GOOGLE_API_KEY not set",
)


@dataclass(frozen=True)
class ToolCase:
    tool_name: str
    args: dict[str, Any]
    required_keys: tuple[str, ...]
    marker_set: str  # "live_smoke" or "live_full"
    validator: Validator | None = None


def _as_param(case: ToolCase) -> Any:
    marks: list[Any] = [pytest.mark.live_full]
    if case.marker_set == "live_smoke":
        marks.append(pytest.mark.live_smoke)
    return pytest.param(case, id=f"{case.tool_name}-{'-'.join(str(v) for v in case.args.values())}", marks=marks)


def _validate_analysis(data: dict[str, Any]) -> None:
    assert data["indicators"]["current_price"] > 0
    assert data["report"].startswith(f"Current Price for {data['symbol']}: $")
    assert data["recommendation"]["action"] in {"BUY", "SELL", "HOLD"}
    if "_warnings" in data:
        assert isinstance(data["_warnings"], list)


def _validate_comparison(data: dict[str, Any]) -> None:
    for sym in data["symbols"]:
        assert data["indicators"][sym]["current_price"] > 0
    assert "Market Analysis Availability:" in data["report"]


CANONICAL_CASES = [
    ToolCase(
        "stock_analysis",
        {"symbol": "AAPL"},
        ("symbol", "indicators", "technicals", "recommendation", "report"),
        "live_smoke",
        _validate_analysis,
    ),
    ToolCase(
        "stock_analysis",
        {"symbol": "SPY"},
        ("symbol", "indicators", "technicals", "recommendation", "report"),
        "live_full",
        _validate_analysis,
    ),
    ToolCase(
        "stock_comparison",
        {"symbol1": "MSFT", "symbol2": "GOOGL"},
        ("symbols", "indicators", "report"),
        "live_smoke",
        _validate_comparison,
    ),
]


@pytest_asyncio.fixture
async def live_server() -> FastMCP:
    """Create one FastMCP instance with the assistant tools registered."""
    mcp = FastMCP("Live E2E")
    client = YahooFinanceClient(api_key=RAPIDAPI_KEY)
    llm = GeminiClient(api_key=GOOGLE_API_KEY)

    assistant.register(mcp, client, llm)

    try:
        yield mcp
    finally:
        await client.close()
        await llm.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("case", [_as_param(c) for c in CANONICAL_CASES])
async def test_live_tool_contracts(live_server: FastMCP, case: ToolCase) -> None:
    async with Client(live_server) as c:
        result = await c.call_tool(case.tool_name, case.args)

    data = result.data
    assert isinstance(data, dict), f"{case.tool_name} must return dict data"
    assert "error" not in data, f"{case.tool_name} returned error: {data.get('error')}"

    for key in case.required_keys:
        assert key in data, f"{case.tool_name} missing required key '{key}'"

    if case.validator is not None:
        case.validator(data)


@pytest.mark.asyncio
@pytest.mark.live_full
async def test_live_unknown_symbol_is_insufficient_data(live_server: FastMCP) -> None:
    async with Client(live_server) as c:
        result = await c.call_tool("stock_analysis", {"symbol": "ZZZZZZZZ"})

    data = result.data
    assert isinstance(data, dict)
    assert data.get("kind") == "insufficient_data"


@requires_gemini
@pytest.mark.asyncio
@pytest.mark.live_full
@pytest.mark.parametrize(
    ("query", "expected_symbols"),
    [
        pytest.param("Should I buy Apple?", ["AAPL"], id="single"),
        pytest.param("Compare Microsoft and Alphabet (GOOGL)", ["MSFT", "GOOGL"], id="comparison"),
    ],
)
async def test_live_ask_stock_question(live_server: FastMCP, query: str, expected_symbols: list[str]) -> None:
    async with Client(live_server) as c:
        result = await c.call_tool("ask_stock_question", {"query": query})

    data = result.data
    assert isinstance(data, dict)
    assert "error" not in data, f"ask_stock_question returned error: {data.get('error')}"
    assert data["role"] == "assistant"
    assert data["symbols"] == expected_symbols
    assert data["content"].strip()


@requires_gemini
@pytest.mark.asyncio
@pytest.mark.live_full
async def test_live_no_symbol(live_server: FastMCP) -> None:
    async with Client(live_server) as c:
        result = await c.call_tool("ask_stock_question", {"query": "What's a good pasta recipe?"})

    assert result.data.get("kind") == "no_symbol_found"
