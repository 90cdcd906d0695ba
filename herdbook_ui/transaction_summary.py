from __future__ import annotations

from typing import List, Optional, Sequence

import plotly.express as px
import plotly.graph_objects as go
import streamlit as st
from plotly.subplots import make_subplots

from herdbook.aggregation import (
    monthly_trend_frame,
    overview_cards,
    recent_window,
    status_distribution_frame,
    summary_is_empty,
)
from herdbook.constants import CURRENCY_SYMBOLS, RECENT_TRANSACTIONS_CAP
from herdbook.formatting import (
    capitalize_first,
    format_currency,
    format_date,
    format_percentage,
    status_badge,
    status_style,
    type_style,
)
from herdbook.logging import get_logger
from herdbook.models import RecentTransaction, TransactionSummary
from herdbook.page_state import TransactionsPageState
from herdbook.routes import edit_transaction_path

from .empty_state import render_empty_state
from .navigation import navigate


logger = get_logger("herdbook.ui.summary")

CHART_COLORS = {
    "amount": "rgba(59, 130, 246, 0.8)",
    "amount_fill": "rgba(59, 130, 246, 0.2)",
    "count": "rgba(16, 185, 129, 0.9)",
    "grid": "rgba(128, 128, 128, 0.2)",
}


def render_stat_cards(summary: TransactionSummary) -> None:
    cards = overview_cards(summary)
    for column, card in zip(st.columns(len(cards)), cards):
        with column:
            st.metric(label=card.label, value=card.value)
            st.caption(card.caption)


def render_monthly_trends(summary: TransactionSummary) -> None:
    st.markdown("#### 📈 Monthly Trends")
    df = monthly_trend_frame(summary.monthly_trends)
    if df.empty:
        st.info("No monthly trend data available")
        return

    symbol = CURRENCY_SYMBOLS.get(summary.currency, f"{summary.currency} ")
    fig = make_subplots(rows=1, cols=1, specs=[[{"secondary_y": True}]])
    fig.add_trace(
        go.Scatter(x=df["month"], y=df["total_amount"], name="Amount",
                   mode="lines", fill="tozeroy",
                   line=dict(color=CHART_COLORS["amount"], width=2),
                   fillcolor=CHART_COLORS["amount_fill"],
                   hovertemplate=f"<b>%{{x}}</b><br>Amount: {symbol}%{{y:,.2f}}<extra></extra>"),
        secondary_y=False,
    )
    fig.add_trace(
        go.Scatter(x=df["month"], y=df["transaction_count"], name="Transactions",
                   mode="lines+markers",
                   line=dict(color=CHART_COLORS["count"], width=2),
                   marker=dict(size=6, color=CHART_COLORS["count"]),
                   hovertemplate="<b>%{x}</b><br>Transactions: %{y}<extra></extra>"),
        secondary_y=True,
    )
    fig.update_yaxes(title_text=f"Amount ({symbol.strip()})", secondary_y=False)
    fig.update_yaxes(title_text="Transactions", secondary_y=True, showgrid=False)
    fig.update_layout(
        height=360,
        margin=dict(l=20, r=20, t=30, b=20),
        hovermode="x unified",
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
        plot_bgcolor="rgba(0,0,0,0)",
        paper_bgcolor="rgba(0,0,0,0)",
    )
    fig.update_xaxes(showgrid=True, gridwidth=1, gridcolor=CHART_COLORS["grid"])
    st.plotly_chart(fig, use_container_width=True)


def render_status_distribution(summary: TransactionSummary) -> None:
    st.markdown("#### 🥧 Status Distribution")
    df = status_distribution_frame(summary.status_distribution, summary.overview.total_transactions)
    if df.empty:
        st.info("No status distribution data available")
        return

    df["legend"] = [
        f"{label} ({format_percentage(pct)})" for label, pct in zip(df["label"], df["percentage"])
    ]
    color_map = {
        legend: status_style(status).hex for legend, status in zip(df["legend"], df["status"])
    }
    fig = px.pie(df, names="legend", values="count", hole=0.6,
                 color="legend", color_discrete_map=color_map,
                 custom_data=["percentage"])
    fig.update_traces(
        textinfo="none",
        hovertemplate="<b>%{label}</b><br>%{value} transactions (%{customdata[0]:.1f}%)<extra></extra>",
    )
    fig.update_layout(height=360, margin=dict(l=20, r=20, t=30, b=20),
                      legend=dict(orientation="h", yanchor="top", y=-0.05))
    st.plotly_chart(fig, use_container_width=True)


def render_recent_transactions(
    items: Sequence[RecentTransaction],
    animal_id: str,
    currency: str = "USD",
    cap: Optional[int] = None,
    key_prefix: str = "recent",
    last_updated: Optional[str] = None,
) -> List[RecentTransaction]:
    """Recent entries in the order the API sent them, optionally capped."""
    recent = recent_window(items, cap)
    st.markdown("#### 🕒 Recent Transactions")
    st.caption("Latest transaction entries")
    if not recent:
        st.info("No recent transactions to display")
    for tx in recent:
        with st.container(border=True):
            icon = type_style(tx.transaction_type).icon
            st.markdown(
                f"{icon} **{capitalize_first(tx.transaction_type)}** "
                f"{status_badge(tx.transaction_status)} · {format_date(tx.transaction_date)}"
            )
            st.markdown(
                f"Amount {format_currency(tx.total_amount, currency)} · "
                f"Balance {format_currency(tx.balance_due, currency)}"
            )
            st.caption(f"{tx.seller_name or 'Unknown'} → {tx.buyer_name or 'Unknown'}")
            if tx.payment_progress is not None:
                st.progress(min(max(tx.payment_progress, 0.0), 100.0) / 100.0)
            if st.button("View Details", key=f"{key_prefix}_view_{tx.id}"):
                navigate(edit_transaction_path(animal_id, tx.id))
    if last_updated:
        st.caption(f"Last updated: {format_date(last_updated)}")
    return recent


def render_compact_recent(state: TransactionsPageState) -> List[RecentTransaction]:
    """Sidebar panel: the first five recent entries of the loaded summary."""
    if summary_is_empty(state.summary):
        return []
    return render_recent_transactions(
        state.summary.recent_transactions,
        state.animal_id,
        currency=state.summary.currency,
        cap=RECENT_TRANSACTIONS_CAP,
        key_prefix="sidebar_recent",
    )


def render_summary_view(state: TransactionsPageState) -> None:
    summary = state.summary
    if summary_is_empty(summary):
        render_empty_state(state.animal_id, "summary")
        return

    try:
        render_stat_cards(summary)
        trends_col, status_col = st.columns([2, 1])
        with trends_col:
            render_monthly_trends(summary)
        with status_col:
            render_status_distribution(summary)
        render_recent_transactions(
            summary.recent_transactions,
            state.animal_id,
            currency=summary.currency,
            key_prefix="summary_recent",
            last_updated=summary.last_updated,
        )
    except Exception as exc:
        logger.exception("Failed to render summary for animal %s", state.animal_id)
        st.error(f"An error occurred while rendering the summary: {exc}")

