"""State of the animal transactions page and the loaders that fill it.

The page shows one animal's transactions either as a list of cards or as an
aggregate summary. Both datasets are fetched together up front, so switching
views never goes back to the API. Each load bumps a generation counter and a
response is only applied while its generation is still current; a response
that arrives after the page moved on (another animal, a newer load) is
dropped.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from .aggregation import total_amount_mismatches
from .constants import DOCUMENT_PREVIEW_COUNT
from .errors import TransactionApiError
from .logging import get_logger
from .models import AttachedDocument, DetailField, Transaction, TransactionSummary


logger = get_logger("herdbook.page")


class ViewMode(str, Enum):
    LIST = "list"
    SUMMARY = "summary"


@dataclass(frozen=True)
class DialogContent:
    transaction_id: str
    field: DetailField
    content: str
    transaction_type: str
    transaction_date: Optional[str]


@dataclass
class TransactionsPageState:
    animal_id: str
    transactions: List[Transaction] = field(default_factory=list)
    summary: Optional[TransactionSummary] = None
    view_mode: ViewMode = ViewMode.LIST
    is_loading: bool = False
    loaded: bool = False
    expanded_cards: Dict[str, bool] = field(default_factory=dict)
    expanded_documents: Dict[str, bool] = field(default_factory=dict)
    dialog: Optional[DialogContent] = None
    generation: int = 0

    # ---- View selection ----
    def set_view_mode(self, mode) -> None:
        self.view_mode = ViewMode(mode)

    # ---- Per-card state ----
    def toggle_card(self, transaction_id: str) -> bool:
        self.expanded_cards[transaction_id] = not self.expanded_cards.get(transaction_id, False)
        return self.expanded_cards[transaction_id]

    def card_expanded(self, transaction_id: str) -> bool:
        return self.expanded_cards.get(transaction_id, False)

    def toggle_documents(self, transaction_id: str) -> bool:
        self.expanded_documents[transaction_id] = not self.expanded_documents.get(transaction_id, False)
        return self.expanded_documents[transaction_id]

    def documents_expanded(self, transaction_id: str) -> bool:
        return self.expanded_documents.get(transaction_id, False)

    def visible_documents(self, transaction: Transaction) -> List[AttachedDocument]:
        documents = transaction.attached_documents
        if self.documents_expanded(transaction.id):
            return list(documents)
        return list(documents[:DOCUMENT_PREVIEW_COUNT])

    # ---- Detail dialog ----
    def open_dialog(self, transaction: Transaction, field_name: DetailField) -> DialogContent:
        """Show one long-text field in full; replaces whatever dialog was open."""
        self.dialog = DialogContent(
            transaction_id=transaction.id,
            field=field_name,
            content=getattr(transaction, field_name) or "",
            transaction_type=transaction.transaction_type,
            transaction_date=transaction.transaction_date,
        )
        return self.dialog

    def close_dialog(self) -> None:
        self.dialog = None

    # ---- Loading ----
    def begin_load(self) -> int:
        self.generation += 1
        self.is_loading = True
        return self.generation

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    def finish_load(self, generation: int) -> None:
        if self.is_current(generation):
            self.is_loading = False
            self.loaded = True

    def apply_transactions(self, generation: int, transactions: List[Transaction]) -> bool:
        if not self.is_current(generation):
            logger.info("Discarding stale transactions response (generation %s)", generation)
            return False
        self.transactions = list(transactions)
        known = {tx.id for tx in self.transactions}
        self.expanded_cards = {k: v for k, v in self.expanded_cards.items() if k in known}
        self.expanded_documents = {k: v for k, v in self.expanded_documents.items() if k in known}
        return True

    def apply_summary(self, generation: int, summary: TransactionSummary) -> bool:
        if not self.is_current(generation):
            logger.info("Discarding stale summary response (generation %s)", generation)
            return False
        self.summary = summary
        return True

    def remove_transaction(self, transaction_id: str) -> None:
        self.transactions = [tx for tx in self.transactions if tx.id != transaction_id]
        self.expanded_cards.pop(transaction_id, None)
        self.expanded_documents.pop(transaction_id, None)
        if self.dialog is not None and self.dialog.transaction_id == transaction_id:
            self.dialog = None


Notify = Callable[[str], None]


def _notify(notify: Optional[Notify], message: str) -> None:
    if notify is not None:
        notify(message)


def _load_failed(exc: BaseException, what: str, animal_id: str, notify: Optional[Notify]) -> None:
    # The API client has already toasted its own failures.
    if isinstance(exc, TransactionApiError):
        logger.error("Failed to load %s for animal %s: %s", what, animal_id, exc)
        return
    if not isinstance(exc, ValueError):
        raise exc
    logger.error("Failed to load %s for animal %s: %s", what, animal_id, exc)
    _notify(notify, f"Failed to load {what}: {exc}")


async def load_page(api, state: TransactionsPageState, notify: Optional[Notify] = None) -> TransactionsPageState:
    """Fetch the list and the summary concurrently and apply whatever is still current."""
    generation = state.begin_load()
    animal_id = state.animal_id
    transactions, summary = await asyncio.gather(
        api.fetch_transactions(animal_id),
        api.fetch_transaction_summary(animal_id),
        return_exceptions=True,
    )

    if isinstance(transactions, BaseException):
        _load_failed(transactions, "transactions", animal_id, notify)
    elif state.apply_transactions(generation, transactions):
        total_amount_mismatches(state.transactions)

    if isinstance(summary, BaseException):
        _load_failed(summary, "transaction summary", animal_id, notify)
    else:
        state.apply_summary(generation, summary)

    state.finish_load(generation)
    return state


async def refresh_summary(api, state: TransactionsPageState) -> bool:
    """Reload the summary only; the API client reports a failure itself."""
    generation = state.generation
    try:
        summary = await api.fetch_transaction_summary(state.animal_id)
    except TransactionApiError as exc:
        logger.error("Failed to reload transaction summary for animal %s: %s", state.animal_id, exc)
        return False
    return state.apply_summary(generation, summary)


async def delete_and_refresh(
    api,
    state: TransactionsPageState,
    transaction_id: str,
    notify: Optional[Notify] = None,
) -> bool:
    """Delete one transaction, drop it locally, then reload the summary.

    The summary reload is best effort: when it fails the list no longer shows
    the record while the summary may still count it.
    """
    try:
        await api.delete_transaction(state.animal_id, transaction_id)
    except TransactionApiError as exc:
        logger.error("Failed to delete transaction %s: %s", transaction_id, exc)
        return False
    except ValueError as exc:
        logger.error("Failed to delete transaction %s: %s", transaction_id, exc)
        _notify(notify, f"Failed to delete transaction: {exc}")
        return False

    state.remove_transaction(transaction_id)
    _notify(notify, "Transaction deleted successfully")
    await refresh_summary(api, state)
    return True
