from __future__ import annotations

import json

import streamlit as st
import streamlit.components.v1 as components

from herdbook.formatting import capitalize_first, format_long_date, humanize_field
from herdbook.page_state import DialogContent, TransactionsPageState
from herdbook.routes import edit_transaction_path

from .navigation import navigate


def dialog_title(content: DialogContent) -> str:
    return f"{capitalize_first(content.transaction_type)} - {humanize_field(content.field)}"


def copy_to_clipboard(text: str, field: str) -> None:
    """Write ``text`` to the browser clipboard from a zero-height component frame."""
    payload = json.dumps(text).replace("</", "<\\/")
    components.html(
        f"<script>window.parent.navigator.clipboard.writeText({payload});</script>",
        height=0,
    )
    st.toast(f"{humanize_field(field)} copied to clipboard")


def render_detail_dialog(state: TransactionsPageState) -> None:
    """Open the full-text dialog for whatever field the page last asked to show.

    Streamlit keeps a dialog open across its own reruns, so the page state is
    cleared as soon as the dialog is handed over. Dismissing it then leaves
    nothing behind to reopen.
    """
    content = state.dialog
    if content is None:
        return
    state.close_dialog()

    @st.dialog(dialog_title(content), width="large")
    def _show():
        st.caption(f"📅 Recorded on {format_long_date(content.transaction_date)}")
        with st.container(border=True):
            st.text(content.content)

        copy_col, edit_col, close_col = st.columns(3)
        with copy_col:
            if st.button("📋 Copy Text", key="dialog_copy", use_container_width=True):
                copy_to_clipboard(content.content, content.field)
        with edit_col:
            if st.button("✏️ Edit", key="dialog_edit", use_container_width=True):
                navigate(edit_transaction_path(state.animal_id, content.transaction_id))
        with close_col:
            if st.button("Close", key="dialog_close", type="primary", use_container_width=True):
                st.rerun()

    _show()
