"""Indicator derivation from a facet bundle.

Source payloads expose the same concept under different field names, so each
indicator field is resolved from an ordered list of candidates; the first
field that coerces to a number wins.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from tools._errors import InsufficientDataError
from tools._helpers import _as_record, _first_present, _to_float, _unwrap, _unwrap_modules

# Candidate field names per indicator, highest priority first
PRICE_FIELDS: dict[str, tuple[str, ...]] = {
    "current_price": ("regularMarketPrice", "close"),
    "previous_close": ("regularMarketPreviousClose", "previousClose"),
    "day_high": ("regularMarketDayHigh", "high"),
    "day_low": ("regularMarketDayLow", "low"),
    "volume": ("regularMarketVolume", "volume"),
    "market_cap": ("marketCap",),
}

# quoteSummary modules carrying statistics fields, most specific first
STATISTICS_MODULES = ("summaryDetail", "defaultKeyStatistics")

STATISTICS_FIELDS: dict[str, tuple[str, ...]] = {
    "average_volume": ("averageDailyVolume10Day", "volume"),
}

RSI_PERIOD = 14
SHORT_MA_PERIOD = 5
LONG_MA_PERIOD = 14


@dataclass(frozen=True)
class DailyRange:
    high: float | None = None
    low: float | None = None


@dataclass(frozen=True)
class IndicatorRecord:
    current_price: float
    previous_close: float | None = None
    daily_range: DailyRange = field(default_factory=DailyRange)
    price_change_percent: float | None = None
    volume: float | None = None
    average_volume: float | None = None
    market_cap: float | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Technicals:
    rsi: float | None = None
    ma5: float | None = None
    ma14: float | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def _price_change_percent(current: float | None, previous: float | None) -> float | None:
    if current is None or previous is None or previous == 0:
        return None
    return (current - previous) / previous * 100


def calculate_indicators(bundle: dict[str, Any]) -> IndicatorRecord:
    """Build an IndicatorRecord from a facet bundle.

    Raises:
        InsufficientDataError: If the price facet is missing or has no usable price
    """
    if not bundle.get("price"):
        raise InsufficientDataError("No price data available; cannot analyze this symbol right now")

    price = _unwrap(bundle["price"], module="price")
    statistics = _unwrap_modules(bundle.get("statistics"), STATISTICS_MODULES)

    fields = {name: _first_present(price, candidates) for name, candidates in PRICE_FIELDS.items()}
    fields.update({name: _first_present(statistics, candidates) for name, candidates in STATISTICS_FIELDS.items()})

    current = fields["current_price"]
    if current is None:
        raise InsufficientDataError("No current price in price data; cannot analyze this symbol right now")

    return IndicatorRecord(
        current_price=current,
        previous_close=fields["previous_close"],
        daily_range=DailyRange(high=fields["day_high"], low=fields["day_low"]),
        price_change_percent=_price_change_percent(current, fields["previous_close"]),
        volume=fields["volume"],
        average_volume=fields["average_volume"],
        market_cap=fields["market_cap"],
    )


# --- Technicals from the chart facet ---


def _chart_closes(payload: Any) -> list[float]:
    """Extract daily closes (oldest first) from a chart payload.

    Supports the Yahoo chart envelope, a {"data": [bar, ...]} list and a bare
    list of bars. Null closes are skipped.
    """
    raw: list = []
    if isinstance(payload, dict) and isinstance(payload.get("chart"), dict):
        result = _as_record(payload["chart"].get("result"))
        quote = (result.get("indicators") or {}).get("quote")
        raw = _as_record(quote).get("close") or []
    else:
        bars = payload.get("data") if isinstance(payload, dict) else payload
        if isinstance(bars, list):
            raw = [bar.get("close") if isinstance(bar, dict) else bar for bar in bars]

    closes = []
    for value in raw:
        num = _to_float(value)
        if num is not None:
            closes.append(num)
    return closes


def simple_moving_average(closes: list[float], period: int) -> float | None:
    if period <= 0 or len(closes) < period:
        return None
    window = closes[-period:]
    return sum(window) / period


def relative_strength_index(closes: list[float], period: int = RSI_PERIOD) -> float | None:
    """RSI over the last `period` price changes using simple average gain/loss."""
    if len(closes) < period + 1:
        return None
    deltas = [closes[i] - closes[i - 1] for i in range(len(closes) - period, len(closes))]
    avg_gain = sum(d for d in deltas if d > 0) / period
    avg_loss = sum(-d for d in deltas if d < 0) / period
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100 - (100 / (1 + rs))


def calculate_technicals(bundle: dict[str, Any]) -> Technicals:
    """Derive RSI and the 5/14-day moving averages from the chart facet."""
    closes = _chart_closes(bundle.get("chart"))
    return Technicals(
        rsi=relative_strength_index(closes),
        ma5=simple_moving_average(closes, SHORT_MA_PERIOD),
        ma14=simple_moving_average(closes, LONG_MA_PERIOD),
    )
