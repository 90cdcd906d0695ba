from __future__ import annotations

from datetime import date
from typing import Any, Callable, Dict, List, Optional

import pandas as pd
import streamlit as st

from herdbook.constants import (
    CURRENCIES,
    CURRENCY_LABELS,
    PAYMENT_METHOD_LABELS,
    PAYMENT_METHODS,
    TRANSACTION_STATUS_LABELS,
    TRANSACTION_STATUS_OPTIONS,
    TRANSACTION_TYPE_LABELS,
    TRANSACTION_TYPES,
)
from herdbook.errors import TransactionApiError, ValidationError
from herdbook.formatting import format_currency, humanize_field
from herdbook.logging import get_logger
from herdbook.models import Transaction, TransactionFormData
from herdbook.routes import transactions_path

from .navigation import navigate


logger = get_logger("herdbook.ui.form")

ERRORS_KEY = "transaction_form_errors"

LONG_TEXT_FIELDS = (
    "details",
    "delivery_instructions",
    "terms_and_conditions",
    "special_conditions",
)
TEXT_FIELDS = ("payment_reference", "seller_name", "buyer_name") + LONG_TEXT_FIELDS


def _initial_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    ts = pd.to_datetime(value, errors="coerce")
    return None if pd.isna(ts) else ts.date()


def _index_of(options, value, default: int = 0) -> int:
    try:
        return options.index(value)
    except ValueError:
        return default


def _options_with(options: List[str], value: Optional[str]) -> List[str]:
    """Option list that also offers a stored value the form does not list."""
    options = list(options)
    if value and value not in options:
        options.append(value)
    return options


def _labeller(labels: Dict[str, str]) -> Callable[[str], str]:
    return lambda value: labels.get(value) or (humanize_field(value) if value else "Not set")


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def _initial_values(tx: Transaction) -> Dict[str, Any]:
    """Stored values in the shape the widgets return them."""
    values: Dict[str, Any] = {
        "transaction_type": tx.transaction_type,
        "transaction_status": tx.transaction_status,
        "price": float(tx.price) if tx.price is not None else 0.0,
        "tax_amount": float(tx.tax_amount) if tx.tax_amount is not None else 0.0,
        "currency": tx.currency,
        "transaction_date": _iso(_initial_date(tx.transaction_date)),
        "delivery_date": _iso(_initial_date(tx.delivery_date)),
        "payment_due_date": _iso(_initial_date(tx.payment_due_date)),
        "payment_method": tx.payment_method or "",
        "deposit_amount": float(tx.deposit_amount) if tx.deposit_amount is not None else None,
        "seller_id": str(tx.seller_id) if tx.seller_id else "",
        "buyer_id": str(tx.buyer_id) if tx.buyer_id else "",
    }
    for name in TEXT_FIELDS:
        values[name] = getattr(tx, name) or ""
    return values


def _show_field_error(errors: Dict[str, str], name: str) -> None:
    if name in errors:
        st.error(f"{humanize_field(name)}: {errors[name]}")


def render_transaction_form(
    animal_id: str,
    submit: Callable[[TransactionFormData], Transaction],
    transaction: Optional[Transaction] = None,
    default_currency: str = "USD",
) -> None:
    """Create form, or edit form when ``transaction`` is given.

    ``submit`` performs the API call. Field errors from a rejected submission
    are kept in session state and shown under the matching inputs. An edit
    submits only the fields the user changed, so values the form cannot
    represent are never written back.
    """
    tx = transaction
    errors: Dict[str, str] = st.session_state.get(ERRORS_KEY) or {}
    editing = tx is not None

    st.markdown(f"### {'✏️ Edit Transaction' if editing else '➕ New Transaction'}")
    if errors:
        st.error(errors.get("form", "Please correct the fields marked below."))

    with st.form(key="transaction_form"):
        type_col, status_col = st.columns(2)
        with type_col:
            type_options = _options_with(TRANSACTION_TYPES, tx.transaction_type if tx else None)
            transaction_type = st.selectbox(
                "Transaction type",
                type_options,
                index=_index_of(type_options, tx.transaction_type if tx else "sale"),
                format_func=_labeller(TRANSACTION_TYPE_LABELS),
            )
            _show_field_error(errors, "transaction_type")
        with status_col:
            status_options = _options_with(TRANSACTION_STATUS_OPTIONS, tx.transaction_status if tx else None)
            transaction_status = st.selectbox(
                "Status",
                status_options,
                index=_index_of(status_options, tx.transaction_status if tx else "pending"),
                format_func=_labeller(TRANSACTION_STATUS_LABELS),
            )
            _show_field_error(errors, "transaction_status")

        price_col, tax_col, currency_col = st.columns(3)
        with price_col:
            price = st.number_input(
                "Price", min_value=0.0, step=0.01, format="%.2f",
                value=float(tx.price) if tx and tx.price is not None else 0.0,
            )
            _show_field_error(errors, "price")
        with tax_col:
            tax_amount = st.number_input(
                "Tax amount", min_value=0.0, step=0.01, format="%.2f",
                value=float(tx.tax_amount) if tx and tx.tax_amount is not None else 0.0,
            )
            _show_field_error(errors, "tax_amount")
        with currency_col:
            currency_options = _options_with(CURRENCIES, tx.currency if tx else default_currency)
            currency = st.selectbox(
                "Currency",
                currency_options,
                index=_index_of(currency_options, tx.currency if tx else default_currency),
                format_func=_labeller(CURRENCY_LABELS),
            )
            _show_field_error(errors, "currency")
        if tx is not None:
            st.caption(f"Current total: {format_currency(tx.total_amount, tx.currency)}")

        date_col, delivery_col, due_col = st.columns(3)
        with date_col:
            transaction_date = st.date_input(
                "Transaction date",
                value=_initial_date(tx.transaction_date) if tx else date.today(),
            )
            _show_field_error(errors, "transaction_date")
        with delivery_col:
            delivery_date = st.date_input("Delivery date", value=_initial_date(tx.delivery_date) if tx else None)
            _show_field_error(errors, "delivery_date")
        with due_col:
            payment_due_date = st.date_input(
                "Payment due date", value=_initial_date(tx.payment_due_date) if tx else None,
            )
            _show_field_error(errors, "payment_due_date")

        method_col, reference_col, deposit_col = st.columns(3)
        with method_col:
            method_options = _options_with(PAYMENT_METHODS, tx.payment_method if tx else None)
            if tx is not None and not tx.payment_method:
                method_options.insert(0, "")
            stored_method = (tx.payment_method or "") if tx else "bank_transfer"
            payment_method = st.selectbox(
                "Payment method",
                method_options,
                index=_index_of(method_options, stored_method),
                format_func=_labeller(PAYMENT_METHOD_LABELS),
            )
            _show_field_error(errors, "payment_method")
        with reference_col:
            payment_reference = st.text_input("Payment reference", value=(tx.payment_reference if tx else "") or "")
            _show_field_error(errors, "payment_reference")
        with deposit_col:
            deposit_amount = st.number_input(
                "Deposit amount", min_value=0.0, step=0.01, format="%.2f",
                value=float(tx.deposit_amount) if tx and tx.deposit_amount is not None else None,
            )
            _show_field_error(errors, "deposit_amount")

        seller_col, buyer_col = st.columns(2)
        with seller_col:
            seller_name = st.text_input("Seller name", value=(tx.seller_name if tx else "") or "")
            _show_field_error(errors, "seller_name")
            seller_id = st.text_input("Seller ID", value=str(tx.seller_id) if tx and tx.seller_id else "")
            _show_field_error(errors, "seller_id")
        with buyer_col:
            buyer_name = st.text_input("Buyer name", value=(tx.buyer_name if tx else "") or "")
            _show_field_error(errors, "buyer_name")
            buyer_id = st.text_input("Buyer ID", value=str(tx.buyer_id) if tx and tx.buyer_id else "")
            _show_field_error(errors, "buyer_id")

        texts = {}
        for name in LONG_TEXT_FIELDS:
            texts[name] = st.text_area(humanize_field(name), value=(getattr(tx, name) if tx else "") or "")
            _show_field_error(errors, name)

        submitted = st.form_submit_button(
            "Save Changes" if editing else "Create Transaction", type="primary",
        )

    if st.button("Cancel", key="transaction_form_cancel"):
        st.session_state[ERRORS_KEY] = {}
        navigate(transactions_path(animal_id))

    if not submitted:
        return

    values: Dict[str, Any] = {
        "transaction_type": transaction_type,
        "transaction_status": transaction_status,
        "price": price,
        "tax_amount": tax_amount,
        "currency": currency,
        "transaction_date": _iso(transaction_date),
        "delivery_date": _iso(delivery_date),
        "payment_due_date": _iso(payment_due_date),
        "payment_method": payment_method,
        "payment_reference": payment_reference,
        "deposit_amount": deposit_amount,
        "seller_name": seller_name,
        "seller_id": seller_id,
        "buyer_name": buyer_name,
        "buyer_id": buyer_id,
        **texts,
    }
    if editing:
        initial = _initial_values(tx)
        values = {name: value for name, value in values.items() if value != initial.get(name)}
    form_data = TransactionFormData(**values)
    try:
        submit(form_data)
    except ValidationError as exc:
        logger.warning("Transaction form rejected: %s", exc.field_errors)
        st.session_state[ERRORS_KEY] = exc.field_errors or {"form": exc.message}
        st.rerun()
    except TransactionApiError as exc:
        st.error(f"Failed to save transaction: {exc.message}")
        return

    st.session_state[ERRORS_KEY] = {}
    st.toast("Transaction updated successfully" if editing else "Transaction created successfully")
    navigate(transactions_path(animal_id))
