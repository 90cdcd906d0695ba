"""Display formatting shared by the list, summary and dialog views.

Everything here is a pure function of its arguments: dates, currency amounts,
status and type strings and long free-text fields are turned into
display strings and style descriptors. The only side effect is the warning
logged when an unexpected transaction status comes back from the API.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Optional, Tuple

import pandas as pd

from .constants import (
    CURRENCY_SYMBOLS,
    PERCENTAGE_DECIMALS,
    TRUNCATION_THRESHOLDS,
    ZERO_DECIMAL_CURRENCIES,
)
from .logging import get_logger


logger = get_logger("herdbook.formatting")


@dataclass(frozen=True)
class StatusStyle:
    key: str
    color: str  # Streamlit markdown color name
    hex: str


@dataclass(frozen=True)
class TypeStyle:
    gradient: Tuple[str, str]
    icon: str


STATUS_STYLES = {
    "completed": StatusStyle("completed", "green", "#10b981"),
    "pending": StatusStyle("pending", "orange", "#f59e0b"),
    "cancelled": StatusStyle("cancelled", "red", "#ef4444"),
    "processing": StatusStyle("processing", "blue", "#3b82f6"),
    "refunded": StatusStyle("refunded", "violet", "#8b5cf6"),
    "unknown": StatusStyle("unknown", "gray", "#6b7280"),
}

# Spellings the API and the form use for the same bucket.
STATUS_ALIASES = {
    "canceled": "cancelled",
    "in_progress": "processing",
}

TYPE_STYLES = {
    "sale": TypeStyle(("#3b82f6", "#2563eb"), "💵"),
    "purchase": TypeStyle(("#10b981", "#059669"), "👛"),
    "transfer": TypeStyle(("#f59e0b", "#d97706"), "🔁"),
    "service": TypeStyle(("#8b5cf6", "#7c3aed"), "🩺"),
}
DEFAULT_TYPE_STYLE = TypeStyle(("#6b7280", "#4b5563"), "🏷️")


# ---- Dates ----
def _parse_timestamp(value: Optional[str]) -> Optional[pd.Timestamp]:
    if not value:
        return None
    ts = pd.to_datetime(value, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    return ts


def _ordinal(day: int) -> str:
    if 11 <= day % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"


def format_date(value: Optional[str]) -> str:
    """Medium date, e.g. ``Jan 5, 2024``. Unparsable input is returned as-is."""
    ts = _parse_timestamp(value)
    if ts is None:
        return value or "N/A"
    return f"{ts:%b} {ts.day}, {ts.year}"


def format_long_date(value: Optional[str]) -> str:
    """Long date with an ordinal day, e.g. ``January 5th, 2024``."""
    ts = _parse_timestamp(value)
    if ts is None:
        return value or "N/A"
    return f"{ts:%B} {_ordinal(ts.day)}, {ts.year}"


# ---- Money ----
def to_float(amount) -> Optional[float]:
    """Parse an API amount (number, Decimal or decimal string); None if unusable."""
    if amount is None:
        return None
    try:
        value = float(amount)
    except (TypeError, ValueError):
        return None
    if math.isnan(value):
        return None
    return value


def format_currency(amount, currency: Optional[str] = "USD") -> str:
    value = to_float(amount)
    if value is None:
        return "N/A"
    code = (currency or "USD").upper()
    decimals = 0 if code in ZERO_DECIMAL_CURRENCIES else 2
    body = f"{abs(value):,.{decimals}f}"
    sign = "-" if value < 0 else ""
    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol:
        return f"{sign}{symbol}{body}"
    return f"{sign}{code} {body}"


def format_file_size(size: Optional[int]) -> str:
    return f"{(size or 0) / 1024:.2f} KB"


# ---- Labels ----
def capitalize_first(text: Optional[str]) -> str:
    if not text:
        return ""
    return text[:1].upper() + text[1:]


def humanize_field(field: str) -> str:
    """``terms_and_conditions`` -> ``Terms And Conditions``."""
    return re.sub(r"\b\w", lambda m: m.group().upper(), field.replace("_", " "))


# ---- Status / type ----
def normalize_status(status: Optional[str]) -> str:
    normalized = (status or "").lower().strip()
    return normalized or "unknown"


def canonical_status(status: Optional[str]) -> str:
    """Normalized status with spelling aliases resolved, e.g. ``in_progress`` -> ``processing``."""
    key = normalize_status(status)
    return STATUS_ALIASES.get(key, key)


def status_style(status: Optional[str]) -> StatusStyle:
    """Look up the badge style for a raw status; unexpected values fall back to unknown."""
    key = canonical_status(status)
    style = STATUS_STYLES.get(key)
    if style is None:
        logger.warning("Unexpected transaction status %r; rendering as unknown", status)
        return STATUS_STYLES["unknown"]
    return style


def status_badge(status: Optional[str]) -> str:
    """Markdown badge for a status, e.g. ``:green-background[Completed]``."""
    style = status_style(status)
    label = humanize_field(normalize_status(status)) if style.key != "unknown" else "Unknown"
    return f":{style.color}-background[{label}]"


def type_style(transaction_type: Optional[str]) -> TypeStyle:
    return TYPE_STYLES.get((transaction_type or "").lower(), DEFAULT_TYPE_STYLE)


# ---- Long text ----
def truncation_threshold(context: str = "list") -> int:
    try:
        return TRUNCATION_THRESHOLDS[context]
    except KeyError:
        raise ValueError(f"Unknown truncation context: {context!r}")


def is_long(text: Optional[str], context: str = "list", limit: Optional[int] = None) -> bool:
    limit = truncation_threshold(context) if limit is None else limit
    return len(text or "") > limit


def truncate_text(text: Optional[str], context: str = "list", limit: Optional[int] = None) -> str:
    """Cut to the context threshold and append ``...``; short text is returned unchanged."""
    if text is None:
        return ""
    limit = truncation_threshold(context) if limit is None else limit
    if len(text) <= limit:
        return text
    return f"{text[:limit]}..."


# ---- Percentages ----
def percentage(count: Optional[float], total: Optional[float], decimals: int = PERCENTAGE_DECIMALS) -> float:
    if not total or total <= 0:
        return 0.0
    return round((count or 0) / total * 100, decimals)


def format_percentage(value: float, decimals: int = PERCENTAGE_DECIMALS) -> str:
    return f"{value:.{decimals}f}%"
