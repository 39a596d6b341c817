"""Rule-based Buy/Sell/Hold recommendation from RSI and moving averages.

Rules are evaluated top to bottom and the first match wins. Missing or
non-numeric inputs become NaN, and every comparison against NaN is false,
so a rule can only fire on the inputs it actually compares.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any

from tools._helpers import _fmt_number, _to_float

OVERSOLD_RSI = 30
OVERBOUGHT_RSI = 70

BUY = "BUY"
SELL = "SELL"
HOLD = "HOLD"

HIGH = "HIGH"
MEDIUM = "MEDIUM"
NEUTRAL = "NEUTRAL"


@dataclass(frozen=True)
class Recommendation:
    action: str
    confidence: str
    reasoning: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Signals:
    rsi: float
    price: float
    ma5: float
    ma14: float

    @property
    def oversold(self) -> bool:
        return self.rsi < OVERSOLD_RSI

    @property
    def overbought(self) -> bool:
        return self.rsi > OVERBOUGHT_RSI

    @property
    def uptrend(self) -> bool:
        return self.ma5 > self.ma14

    @property
    def downtrend(self) -> bool:
        # Not `not uptrend`: NaN averages must fail this comparison too
        return self.ma5 <= self.ma14


@dataclass(frozen=True)
class Rule:
    name: str
    predicate: Callable[[Signals], bool]
    action: str
    confidence: str
    reasoning: str


RULES: tuple[Rule, ...] = (
    Rule(
        "oversold_uptrend",
        lambda s: s.oversold and s.uptrend,
        BUY,
        HIGH,
        "Strong buy signal with RSI showing oversold conditions ({rsi}) and a positive "
        "moving average trend (5-day {ma5} above 14-day {ma14}). Price appears to be "
        "at a potential support level.",
    ),
    Rule(
        "overbought_downtrend",
        lambda s: s.overbought and s.downtrend,
        SELL,
        HIGH,
        "Technical indicators suggest overbought conditions with RSI at {rsi} and a weakening "
        "moving average trend (5-day {ma5} at or below 14-day {ma14}). Consider taking profits.",
    ),
    Rule(
        "oversold",
        lambda s: s.oversold,
        BUY,
        MEDIUM,
        "RSI indicates oversold conditions ({rsi}), suggesting a potential bounce, but watch "
        "moving averages for confirmation.",
    ),
    Rule(
        "overbought",
        lambda s: s.overbought,
        SELL,
        MEDIUM,
        "RSI shows overbought levels ({rsi}). Technical indicators suggest taking some profits.",
    ),
    Rule(
        "above_rising_averages",
        lambda s: s.uptrend and s.price > s.ma5 and s.price > s.ma14,
        BUY,
        MEDIUM,
        "Price ({price}) is above both the 5-day ({ma5}) and 14-day ({ma14}) moving "
        "averages with a positive trend. Shows good momentum despite neutral RSI ({rsi}).",
    ),
)

FALLBACK = Rule(
    "no_signal",
    lambda s: True,
    HOLD,
    NEUTRAL,
    "No strong technical signal: RSI {rsi}, price {price}, 5-day MA {ma5}, "
    "14-day MA {ma14}. Holding is suggested until a clearer trend emerges.",
)


def _num(value: Any) -> float:
    num = _to_float(value)
    return math.nan if num is None else num


def match_rule(signals: Signals) -> Rule:
    """Return the first rule whose predicate holds, or FALLBACK."""
    for rule in RULES:
        if rule.predicate(signals):
            return rule
    return FALLBACK


def recommend(
    rsi: Any,
    current_price: Any,
    ma5: Any,
    ma14: Any,
    price_change: Any = None,  # noqa: ARG001
) -> Recommendation:
    """Map RSI and moving averages to an action, confidence and reasoning.

    Never raises: absent or non-numeric inputs fall through to HOLD/NEUTRAL
    unless another input alone satisfies a rule.
    """
    signals = Signals(rsi=_num(rsi), price=_num(current_price), ma5=_num(ma5), ma14=_num(ma14))
    rule = match_rule(signals)
    values = {name: _fmt_number(getattr(signals, name)) for name in ("rsi", "price", "ma5", "ma14")}
    reasoning = rule.reasoning.format(**values)
    return Recommendation(action=rule.action, confidence=rule.confidence, reasoning=reasoning)
