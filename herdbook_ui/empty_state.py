from __future__ import annotations

import streamlit as st

from herdbook.routes import new_transaction_path

from .navigation import navigate


EMPTY_STATES = {
    "list": (
        "📋",
        "No Transactions Recorded",
        "Start tracking transactions by adding your first entry to monitor sales and purchases.",
    ),
    "summary": (
        "📈",
        "No Data to Summarize",
        "Add transactions to generate insights and visualize financial activity.",
    ),
}


def render_empty_state(animal_id: str, mode: str) -> None:
    """Placeholder card for an animal without transactions, with a shortcut to the form."""
    icon, title, text = EMPTY_STATES[mode]
    with st.container(border=True):
        st.markdown(f"### {icon} {title}")
        st.caption(text)
        if st.button("➕ Add First Transaction", key=f"add_first_transaction_{mode}", type="primary"):
            navigate(new_transaction_path(animal_id))
