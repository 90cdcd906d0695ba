from __future__ import annotations

from typing import Callable, Optional

import streamlit as st

from herdbook.aggregation import SORT_KEYS, filter_transactions, paginate, sort_transactions
from herdbook.constants import (
    DOCUMENT_PREVIEW_COUNT,
    TRANSACTION_STATUS_LABELS,
    TRANSACTION_STATUS_OPTIONS,
    TRANSACTION_TYPE_LABELS,
    TRANSACTION_TYPES,
)
from herdbook.formatting import (
    capitalize_first,
    format_currency,
    format_date,
    format_file_size,
    humanize_field,
    is_long,
    status_badge,
    truncate_text,
    type_style,
)
from herdbook.models import Transaction
from herdbook.page_state import TransactionsPageState
from herdbook.routes import edit_transaction_path

from .empty_state import render_empty_state
from .navigation import navigate


ALL = "all"

SORT_LABELS = {
    "transaction_date": "Transaction date",
    "total_amount": "Total amount",
    "created_at": "Date recorded",
}


def _field_row(label: str, value: Optional[str]) -> None:
    if value:
        st.markdown(f"**{label}:** {value}")


def _party_contact(prefix: str, transaction: Transaction) -> Optional[str]:
    parts = [
        getattr(transaction, f"{prefix}_company"),
        getattr(transaction, f"{prefix}_email"),
        getattr(transaction, f"{prefix}_phone"),
    ]
    parts = [p for p in parts if p]
    return " · ".join(parts) if parts else None


def render_detail_field(
    state: TransactionsPageState,
    transaction: Transaction,
    field: str,
    context: str = "list",
) -> None:
    """Preview of a long-text field; a Read More button opens the full text in the dialog."""
    text = getattr(transaction, field)
    if not text:
        return
    st.markdown(f"**{humanize_field(field)}**")
    st.write(truncate_text(text, context))
    if is_long(text, context):
        if st.button("Read More", key=f"read_more_{field}_{transaction.id}"):
            state.open_dialog(transaction, field)
            st.rerun()


def render_documents(state: TransactionsPageState, transaction: Transaction) -> None:
    documents = transaction.attached_documents
    if not documents:
        return
    st.markdown(f"**Documents ({len(documents)})**")
    for doc in state.visible_documents(transaction):
        st.markdown(f"📎 [{doc.name}]({doc.url}) · {format_file_size(doc.size)}")
    if len(documents) > DOCUMENT_PREVIEW_COUNT:
        label = "Show Less" if state.documents_expanded(transaction.id) else "Show More"
        if st.button(label, key=f"documents_{transaction.id}"):
            state.toggle_documents(transaction.id)
            st.rerun()


def render_additional_details(state: TransactionsPageState, transaction: Transaction, context: str) -> None:
    render_detail_field(state, transaction, "terms_and_conditions", context)
    render_detail_field(state, transaction, "special_conditions", context)
    _field_row("Payment method", capitalize_first((transaction.payment_method or "").replace("_", " ")) or None)
    _field_row("Payment reference", transaction.payment_reference)
    if transaction.deposit_amount is not None:
        _field_row("Deposit", format_currency(transaction.deposit_amount, transaction.currency))
    _field_row("Payment due", format_date(transaction.payment_due_date) if transaction.payment_due_date else None)
    _field_row("Delivery date", format_date(transaction.delivery_date) if transaction.delivery_date else None)
    if transaction.insurance_amount is not None:
        _field_row("Insurance", format_currency(transaction.insurance_amount, transaction.currency))
    _field_row("Insurance policy", transaction.insurance_policy_number)
    _field_row("Health certificate", transaction.health_certificate_number)
    _field_row("Transport license", transaction.transport_license_number)
    _field_row("Seller contact", _party_contact("seller", transaction))
    _field_row("Buyer contact", _party_contact("buyer", transaction))
    render_documents(state, transaction)


def render_transaction_card(
    state: TransactionsPageState,
    transaction: Transaction,
    on_delete: Callable[[str], None],
    context: str = "list",
) -> None:
    style = type_style(transaction.transaction_type)
    currency = transaction.currency
    with st.container(border=True):
        st.markdown(
            f"#### {style.icon} {capitalize_first(transaction.transaction_type)} "
            f"{status_badge(transaction.transaction_status)}"
        )
        st.caption(f"📅 {format_date(transaction.transaction_date)}")

        total_col, balance_col = st.columns(2)
        with total_col:
            st.markdown(f"**Total**  \n{format_currency(transaction.total_amount, currency)}")
        with balance_col:
            st.markdown(f"**Balance due**  \n{format_currency(transaction.balance_due, currency)}")
        if transaction.price is not None:
            st.caption(
                f"Price {format_currency(transaction.price, currency)} + "
                f"tax {format_currency(transaction.tax_amount or 0, currency)}"
            )
        st.markdown(f"{transaction.seller_name or 'Unknown'} → {transaction.buyer_name or 'Unknown'}")

        render_detail_field(state, transaction, "details", context)
        render_detail_field(state, transaction, "delivery_instructions", context)

        expanded = st.toggle(
            "Additional details",
            value=state.card_expanded(transaction.id),
            key=f"card_details_{transaction.id}",
        )
        if expanded != state.card_expanded(transaction.id):
            state.toggle_card(transaction.id)
        if expanded:
            render_additional_details(state, transaction, context)

        edit_col, delete_col = st.columns(2)
        with edit_col:
            if st.button("✏️ Edit", key=f"edit_{transaction.id}", use_container_width=True):
                navigate(edit_transaction_path(state.animal_id, transaction.id))
        with delete_col:
            with st.popover("🗑️ Delete", use_container_width=True):
                st.write("Delete this transaction? This cannot be undone.")
                if st.button("Confirm delete", key=f"delete_{transaction.id}", type="primary"):
                    on_delete(transaction.id)
                    st.rerun()


def render_list_view(
    state: TransactionsPageState,
    on_delete: Callable[[str], None],
    page_size: int = 9,
    columns: int = 3,
) -> None:
    if not state.transactions:
        render_empty_state(state.animal_id, "list")
        return

    status_col, type_col, search_col, sort_col = st.columns(4)
    with status_col:
        status = st.selectbox(
            "Status",
            [ALL] + TRANSACTION_STATUS_OPTIONS,
            format_func=lambda s: "All statuses" if s == ALL else TRANSACTION_STATUS_LABELS.get(s, s),
            key="list_status_filter",
        )
    with type_col:
        transaction_type = st.selectbox(
            "Type",
            [ALL] + TRANSACTION_TYPES,
            format_func=lambda t: "All types" if t == ALL else TRANSACTION_TYPE_LABELS.get(t, t),
            key="list_type_filter",
        )
    with search_col:
        query = st.text_input("Search", placeholder="Party, details, reference", key="list_search")
    with sort_col:
        sort_key = st.selectbox(
            "Sort by",
            list(SORT_KEYS),
            format_func=SORT_LABELS.get,
            key="list_sort_key",
        )
    compact = st.toggle("Compact cards", value=False, key="list_compact")

    filtered = filter_transactions(
        state.transactions,
        status=None if status == ALL else status,
        transaction_type=None if transaction_type == ALL else transaction_type,
        query=query,
    )
    ordered = sort_transactions(filtered, key=sort_key)
    if not ordered:
        st.info("No transactions match the current filters.")
        return

    page_number = st.session_state.get("list_page", 1)
    page = paginate(ordered, page_number, page_size)
    st.caption(f"Showing {len(page.items)} of {page.total_items} transactions")

    grid = st.columns(columns)
    context = "animal" if compact else "list"
    for index, transaction in enumerate(page.items):
        with grid[index % columns]:
            render_transaction_card(state, transaction, on_delete, context)

    if page.total_pages > 1:
        prev_col, label_col, next_col = st.columns([1, 2, 1])
        with prev_col:
            if st.button("← Previous", key="list_prev", disabled=not page.has_previous):
                st.session_state["list_page"] = page.page - 1
                st.rerun()
        with label_col:
            st.caption(f"Page {page.page} of {page.total_pages}")
        with next_col:
            if st.button("Next →", key="list_next", disabled=not page.has_next):
                st.session_state["list_page"] = page.page + 1
                st.rerun()
