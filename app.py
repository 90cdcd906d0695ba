from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import streamlit as st

from herdbook.api_client import TransactionApiClient
from herdbook.config import AppConfig, load_config
from herdbook.errors import NotFoundError, TransactionApiError
from herdbook.logging import configure_logging, get_logger
from herdbook.models import TransactionFormData
from herdbook.page_state import TransactionsPageState, ViewMode, delete_and_refresh, load_page
from herdbook.routes import parse_route, transactions_path
from herdbook.session import AuthSession
from herdbook_ui.navigation import current_path, navigate
from herdbook_ui.transaction_dialog import render_detail_dialog
from herdbook_ui.transaction_form import render_transaction_form
from herdbook_ui.transaction_list import render_list_view
from herdbook_ui.transaction_summary import render_compact_recent, render_summary_view


APP_NAME: str = "Herdbook"
TAGLINE: str = "Livestock transactions at a glance"

VIEW_LABELS = {
    ViewMode.LIST.value: "📋 List View",
    ViewMode.SUMMARY.value: "📈 Summary View",
}

T = TypeVar("T")

logger = get_logger("herdbook.app")


def set_page_config() -> None:
    """Configure Streamlit page settings early to avoid layout shifts."""
    st.set_page_config(
        page_title=f"{APP_NAME} · Transactions",
        page_icon="🐄",
        layout="wide",
        initial_sidebar_state="expanded",
    )


def init_session_state(config: AppConfig) -> None:
    """Initialize Streamlit session state variables used across the app."""
    defaults = {
        "config": config,
        "auth_session": AuthSession(config.auth_token, csrf_ttl_seconds=config.csrf_ttl_seconds),
        "page_state": None,
        "animal_id": "",
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def run_api(operation: Callable[[TransactionApiClient], Awaitable[T]]) -> T:
    """Run one async API operation against a client bound to this browser session."""
    config: AppConfig = st.session_state["config"]
    session: AuthSession = st.session_state["auth_session"]

    async def _run():
        async with TransactionApiClient(config, session, notify=st.toast) as api:
            return await operation(api)

    return asyncio.run(_run())


def get_page_state(animal_id: str) -> TransactionsPageState:
    """Page state for ``animal_id``; a different animal starts from a clean slate."""
    state: Optional[TransactionsPageState] = st.session_state.get("page_state")
    if state is None or state.animal_id != animal_id:
        if state is not None:
            # Responses still tagged with the old generation are dropped.
            state.begin_load()
        state = TransactionsPageState(animal_id=animal_id)
        st.session_state["page_state"] = state
        st.session_state["list_page"] = 1
    return state


def reload_page(state: TransactionsPageState) -> None:
    with st.spinner("Loading transactions..."):
        run_api(lambda api: load_page(api, state, notify=st.toast))


def render_header() -> None:
    """Render the application header with title and tagline."""
    st.markdown(
        f"""
        <div style="display:flex; align-items:center; gap:12px;">
            <div style="font-size:1.8rem">🐄</div>
            <div>
                <div style="font-size:1.6rem; font-weight:700; letter-spacing:0.2px;">{APP_NAME}</div>
                <div style="opacity:0.8; margin-top:2px;">{TAGLINE}</div>
            </div>
        </div>
        """,
        unsafe_allow_html=True,
    )
    st.divider()


def render_sidebar(animal_id: str) -> None:
    """Render the animal picker, API credentials and the compact recent panel."""
    session: AuthSession = st.session_state["auth_session"]
    with st.sidebar:
        st.markdown("### Animal")
        chosen = st.text_input("Animal ID", value=animal_id).strip()
        if chosen and chosen != animal_id:
            st.session_state["animal_id"] = chosen
            navigate(transactions_path(chosen))

        st.markdown("---")
        st.markdown("### API Access")
        token = st.text_input("Bearer token", value=session.token or "", type="password")
        session.set_token(token)
        if st.button("🚪 Sign out", use_container_width=True):
            session.clear()
            st.session_state["page_state"] = None
            st.rerun()

        state: Optional[TransactionsPageState] = st.session_state.get("page_state")
        if state is not None and state.animal_id == animal_id:
            st.markdown("---")
            if st.button("🔄 Refresh", use_container_width=True):
                reload_page(state)
                st.rerun()
            render_compact_recent(state)


def render_transactions_page(animal_id: str) -> None:
    config: AppConfig = st.session_state["config"]
    state = get_page_state(animal_id)
    if not state.loaded:
        reload_page(state)

    title_col, toggle_col = st.columns([3, 2])
    with title_col:
        st.markdown("### 📊 Transaction Records")
    with toggle_col:
        mode = st.radio(
            "View",
            list(VIEW_LABELS),
            index=list(VIEW_LABELS).index(state.view_mode.value),
            format_func=VIEW_LABELS.get,
            horizontal=True,
            label_visibility="collapsed",
            key="view_mode",
        )
    # Both datasets are already loaded; switching views is local.
    state.set_view_mode(mode)

    def on_delete(transaction_id: str) -> None:
        run_api(lambda api: delete_and_refresh(api, state, transaction_id, notify=st.toast))

    if state.view_mode is ViewMode.LIST:
        render_list_view(state, on_delete, page_size=config.page_size)
    else:
        render_summary_view(state)
    render_detail_dialog(state)


def _invalidate_loaded_page(animal_id: str) -> None:
    state: Optional[TransactionsPageState] = st.session_state.get("page_state")
    if state is not None and state.animal_id == animal_id:
        state.loaded = False


def render_new_transaction_page(animal_id: str) -> None:
    config: AppConfig = st.session_state["config"]

    def submit(form_data: TransactionFormData):
        created = run_api(lambda api: api.create_transaction(animal_id, form_data))
        _invalidate_loaded_page(animal_id)
        return created

    render_transaction_form(animal_id, submit, default_currency=config.currency)


def render_edit_transaction_page(animal_id: str, transaction_id: str) -> None:
    try:
        transaction = run_api(lambda api: api.fetch_transaction(animal_id, transaction_id))
    except NotFoundError as exc:
        st.error(exc.message)
        if st.button("← Back to transactions"):
            navigate(transactions_path(animal_id))
        return
    except TransactionApiError as exc:
        st.error(f"Failed to load transaction: {exc.message}")
        return

    def submit(form_data: TransactionFormData):
        updated = run_api(lambda api: api.update_transaction(animal_id, transaction_id, form_data))
        _invalidate_loaded_page(animal_id)
        return updated

    render_transaction_form(animal_id, submit, transaction=transaction)


def render_footer() -> None:
    """Render a subtle footer."""
    st.divider()
    st.caption("Built with Streamlit.")


def main() -> None:
    """Application entry point."""
    set_page_config()

    config = load_config()
    configure_logging(json_output=config.json_logs)
    init_session_state(config)

    route = parse_route(current_path())
    animal_id = route.animal_id if route else st.session_state.get("animal_id", "")
    if route:
        st.session_state["animal_id"] = animal_id

    render_header()
    logger.debug("Rendering route %s", route)

    if route is None:
        if animal_id:
            navigate(transactions_path(animal_id))
        st.info("Enter an animal ID in the sidebar to view its transactions.")
    elif route.name == "new":
        render_new_transaction_page(route.animal_id)
    elif route.name == "edit":
        render_edit_transaction_page(route.animal_id, route.transaction_id)
    else:
        render_transactions_page(route.animal_id)

    # Rendered last so the recent panel sees data loaded by this run.
    render_sidebar(animal_id)
    render_footer()


if __name__ == "__main__":
    main()
