"""Shared helpers for facet payload normalization and report formatting."""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Any

NA = "N/A"


def _to_float(value: Any) -> float | None:
    """Coerce a numeric-looking value to float.

    Accepts ints/floats, numeric strings (thousands separators and a trailing
    "%" tolerated) and Yahoo {"raw": x, "fmt": "..."} wrappers. Anything else,
    including NaN and bools, is treated as absent.
    """
    if isinstance(value, dict) and "raw" in value:
        value = value["raw"]
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        text = value.strip().replace(",", "").rstrip("%").strip()
        if not text:
            return None
        try:
            result = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def _as_record(value: Any) -> dict:
    """Return value if it is a dict, the first dict if it is a list, else {}."""
    if isinstance(value, dict):
        return value
    if isinstance(value, list):
        return value[0] if value and isinstance(value[0], dict) else {}
    return {}


def _quote_summary_record(payload: dict, module: str | None) -> dict | None:
    summary = payload.get("quoteSummary")
    if not isinstance(summary, dict):
        return None
    result = _as_record(summary.get("result"))
    if module and isinstance(result.get(module), dict):
        return result[module]
    return result or None


def _unwrap(payload: Any, module: str | None = None) -> dict:
    """Extract the record dict from a facet payload.

    Envelopes are tried in order:
    1. {"data": [record, ...]} -> first record
    2. {"quoteSummary": {"result": [{module: record}]}} -> record
    3. the payload itself
    """
    if payload is None:
        return {}
    if isinstance(payload, list):
        return _as_record(payload)
    if not isinstance(payload, dict):
        return {}

    data = payload.get("data")
    if isinstance(data, list):
        return _as_record(data)
    if isinstance(data, dict):
        return data

    record = _quote_summary_record(payload, module)
    if record is not None:
        return record
    return payload


def _unwrap_modules(payload: Any, modules: Iterable[str]) -> dict:
    """Merge the records of several quoteSummary modules; earlier modules win."""
    merged: dict = {}
    for module in reversed(list(modules)):
        merged.update(_unwrap(payload, module))
    return merged


def _unwrap_list(payload: Any) -> list[dict]:
    """Extract a list of record dicts from a facet payload."""
    if isinstance(payload, dict):
        payload = payload.get("data", [])
    if not isinstance(payload, list):
        return []
    return [item for item in payload if isinstance(item, dict)]


def _first_present(record: dict, candidates: Iterable[str]) -> float | None:
    """Return the first candidate field that coerces to a number."""
    for name in candidates:
        value = _to_float(record.get(name))
        if value is not None:
            return value
    return None


# --- Formatting ---


def _fmt_money(value: Any) -> str:
    """Format a currency magnitude with T/B/M suffixes."""
    num = _to_float(value)
    if num is None:
        return NA
    if num >= 1e12:
        return f"${num / 1e12:.2f}T"
    if num >= 1e9:
        return f"${num / 1e9:.2f}B"
    if num >= 1e6:
        return f"${num / 1e6:.2f}M"
    return f"${num:,.2f}"


def _fmt_price(value: Any) -> str:
    num = _to_float(value)
    return f"${num:.2f}" if num is not None else NA


def _fmt_number(value: Any, decimals: int = 2) -> str:
    num = _to_float(value)
    return f"{num:.{decimals}f}" if num is not None else NA


def _fmt_count(value: Any) -> str:
    num = _to_float(value)
    return f"{round(num):,}" if num is not None else NA


def _fmt_pct(value: Any) -> str:
    """Format a value already expressed in percent."""
    num = _to_float(value)
    return f"{num:.2f}%" if num is not None else NA


def _fmt_ratio_pct(value: Any) -> str:
    """Format a fraction (0.25) as a percentage (25.00%)."""
    num = _to_float(value)
    return f"{num * 100:.2f}%" if num is not None else NA


def _fmt_text(value: Any) -> str:
    if value is None:
        return NA
    text = str(value).strip()
    return text or NA
