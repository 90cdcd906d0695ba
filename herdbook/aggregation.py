from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Sequence, TypeVar

import pandas as pd

from .constants import RECENT_TRANSACTIONS_CAP
from .formatting import canonical_status, capitalize_first, format_currency, percentage
from .logging import get_logger
from .models import MonthlyTrend, Transaction, TransactionSummary


logger = get_logger("herdbook.aggregation")

T = TypeVar("T")

STATUS_COLUMNS = ["status", "label", "count", "percentage"]
TREND_COLUMNS = ["month", "transaction_count", "total_amount"]


# ---- Summary shaping ----
def summary_is_empty(summary: Optional[TransactionSummary]) -> bool:
    return summary is None or summary.overview.total_transactions == 0


def status_distribution_frame(distribution: Mapping[str, Any], total_transactions: int) -> pd.DataFrame:
    """Status counts with their share of ``total_transactions``, one decimal place.

    The same percentage column feeds both the chart slices and the legend.
    """
    rows = []
    for status, count in (distribution or {}).items():
        count = int(count or 0)
        rows.append({
            "status": status,
            "label": capitalize_first(status),
            "count": count,
            "percentage": percentage(count, total_transactions),
        })
    return pd.DataFrame(rows, columns=STATUS_COLUMNS)


def monthly_trend_frame(trends: Iterable[Any]) -> pd.DataFrame:
    """Chart-ready monthly series; missing months become "Unknown" and missing numbers 0."""
    rows = []
    for trend in trends or []:
        if isinstance(trend, MonthlyTrend):
            trend = trend.model_dump()
        trend = trend or {}
        rows.append({
            "month": trend.get("month") or "Unknown",
            "transaction_count": trend.get("transaction_count") or 0,
            "total_amount": trend.get("total_amount"),
        })
    df = pd.DataFrame(rows, columns=TREND_COLUMNS)
    df["transaction_count"] = pd.to_numeric(df["transaction_count"], errors="coerce").fillna(0).astype(int)
    df["total_amount"] = pd.to_numeric(df["total_amount"], errors="coerce").fillna(0.0).astype(float)
    return df


def recent_window(items: Sequence[T], cap: Optional[int] = RECENT_TRANSACTIONS_CAP) -> List[T]:
    """First ``cap`` entries in the order delivered; ``cap=None`` keeps them all."""
    items = list(items or [])
    if cap is None:
        return items
    return items[:cap]


@dataclass(frozen=True)
class StatCard:
    label: str
    value: str
    caption: str


def overview_cards(summary: TransactionSummary) -> List[StatCard]:
    overview = summary.overview
    currency = summary.currency
    return [
        StatCard(
            "Transactions",
            str(overview.total_transactions or 0),
            f"{overview.completed_transactions or 0} completed",
        ),
        StatCard(
            "Total Value",
            format_currency(overview.total_value, currency),
            f"{format_currency(overview.average_transaction_value, currency)} avg per transaction",
        ),
        StatCard(
            "Pending Amount",
            format_currency(overview.pending_amount, currency),
            "Awaiting completion",
        ),
        StatCard(
            "Highest Value",
            format_currency(overview.highest_transaction, currency),
            f"{format_currency(overview.lowest_transaction, currency)} lowest",
        ),
    ]


def total_amount_mismatches(transactions: Iterable[Transaction]) -> List[str]:
    """Ids whose stored total differs from price + tax. Totals are never corrected."""
    mismatched = []
    for tx in transactions:
        if tx.price is None:
            continue
        expected = tx.price + (tx.tax_amount or Decimal("0"))
        if expected != tx.total_amount:
            mismatched.append(tx.id)
    if mismatched:
        logger.warning("Transactions with total_amount != price + tax_amount: %s", mismatched)
    return mismatched


# ---- List view derived state ----
def _as_timestamp(value: Optional[str]) -> Optional[pd.Timestamp]:
    if not value:
        return None
    # Offsets are mixed across records; compare everything in UTC.
    ts = pd.to_datetime(value, errors="coerce", utc=True)
    if pd.isna(ts):
        return None
    return ts


def _as_date(value: Optional[str]) -> Optional[date]:
    ts = _as_timestamp(value)
    return ts.date() if ts is not None else None


def filter_transactions(
    transactions: Iterable[Transaction],
    status: Optional[str] = None,
    transaction_type: Optional[str] = None,
    query: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[Transaction]:
    """Filter by status (aliases resolved), type, free text (parties, details, reference) and date range."""
    wanted_status = canonical_status(status) if status else None
    wanted_type = transaction_type.lower() if transaction_type else None
    needle = (query or "").strip().lower()

    result = []
    for tx in transactions:
        if wanted_status and canonical_status(tx.transaction_status) != wanted_status:
            continue
        if wanted_type and (tx.transaction_type or "").lower() != wanted_type:
            continue
        if needle:
            haystack = " ".join(
                value for value in (
                    tx.seller_name, tx.buyer_name, tx.details, tx.payment_reference, tx.transaction_type,
                ) if value
            ).lower()
            if needle not in haystack:
                continue
        if start_date or end_date:
            tx_date = _as_date(tx.transaction_date)
            if tx_date is None:
                continue
            if start_date and tx_date < start_date:
                continue
            if end_date and tx_date > end_date:
                continue
        result.append(tx)
    return result


SORT_KEYS = {
    "transaction_date": lambda tx: _as_date(tx.transaction_date),
    "total_amount": lambda tx: tx.total_amount,
    "created_at": lambda tx: _as_timestamp(tx.created_at),
}


def sort_transactions(
    transactions: Iterable[Transaction],
    key: str = "transaction_date",
    descending: bool = True,
) -> List[Transaction]:
    """Stable sort on ``key``; records without a value always go last."""
    if key not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {key!r}")
    getter = SORT_KEYS[key]
    present, missing = [], []
    for tx in transactions:
        value = getter(tx)
        if value is None:
            missing.append(tx)
        else:
            present.append((value, tx))
    present.sort(key=lambda pair: pair[0], reverse=descending)
    return [tx for _, tx in present] + missing


@dataclass(frozen=True)
class Page:
    items: list
    page: int
    total_pages: int
    total_items: int

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def paginate(items: Sequence[T], page: int = 1, page_size: int = 9) -> Page:
    """Slice ``items`` into 1-based pages; out-of-range pages are clamped."""
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    total_items = len(items)
    total_pages = max(1, -(-total_items // page_size))
    page = min(max(1, page), total_pages)
    start = (page - 1) * page_size
    return Page(list(items[start:start + page_size]), page, total_pages, total_items)
