"""Client for the animal transactions endpoints of the livestock API."""

from __future__ import annotations

import asyncio
import json
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import httpx
from pydantic import ValidationError as SchemaError

from .config import AppConfig
from .errors import FetchError, NotFoundError, TransactionApiError, ValidationError
from .logging import get_logger
from .models import Transaction, TransactionFormData, TransactionSummary
from .session import AuthSession


logger = get_logger("herdbook.api")

Notify = Callable[[str], None]

MONEY_FIELDS = ("price", "tax_amount")
PARTY_ID_FIELDS = ("seller_id", "buyer_id")


# ---- Envelopes ----
def unwrap_collection(payload: Any) -> List[Any]:
    """Flatten ``[...]``, ``{"data": [...]}`` and ``{"data": {"data": [...]}}`` to a list."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(data, list):
            return data
        if isinstance(data, dict) and isinstance(data.get("data"), list):
            return data["data"]
    return []


def unwrap_record(payload: Any) -> Dict[str, Any]:
    """Return the object inside ``{"data": {...}}`` (nested once at most) or the bare object."""
    record = payload
    for _ in range(2):
        if isinstance(record, dict) and isinstance(record.get("data"), dict):
            record = record["data"]
    return record if isinstance(record, dict) else {}


# ---- Payloads ----
def _to_number(value: Any, integral: bool = False) -> Optional[Union[int, float]]:
    if value is None or isinstance(value, bool):
        return value
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    if integral and number == number.to_integral_value():
        return int(number)
    return float(number)


def normalize_payload(data: Union[TransactionFormData, Mapping[str, Any]]) -> Dict[str, Any]:
    """Prepare a form payload for the API.

    Empty strings become ``None`` and the numeric fields are coerced to numbers.
    For a ``TransactionFormData`` only explicitly set fields are sent, which is
    what makes PATCH a partial update.
    """
    if isinstance(data, TransactionFormData):
        raw = data.model_dump(exclude_unset=True)
    else:
        raw = dict(data)

    normalized: Dict[str, Any] = {key: (None if value == "" else value) for key, value in raw.items()}

    for key in MONEY_FIELDS:
        if key in normalized:
            normalized[key] = _to_number(normalized[key])
    if normalized.get("deposit_amount") is not None:
        normalized["deposit_amount"] = _to_number(normalized["deposit_amount"])
    for key in PARTY_ID_FIELDS:
        if key in normalized:
            normalized[key] = _to_number(normalized[key], integral=True)

    for key, value in normalized.items():
        if isinstance(value, Decimal):
            normalized[key] = float(value)
    return normalized


def _require_id(value: Optional[str], kind: str) -> str:
    if value is None or not str(value).strip() or str(value) == "undefined":
        raise ValueError(f"Invalid {kind} ID")
    return str(value)


class TransactionApiClient:
    """Async client for ``{api_url}/animals/{animal_id}/transactions``.

    Every request goes out with the session's bearer token and XSRF header.
    The CSRF cookie is refreshed first whenever the session reports it stale;
    concurrent requests wait on the same refresh. Failures are logged and
    re-raised; read and delete failures are also passed to ``notify``.
    """

    def __init__(
        self,
        config: AppConfig,
        session: AuthSession,
        client: Optional[httpx.AsyncClient] = None,
        notify: Optional[Notify] = None,
    ):
        self.config = config
        self.session = session
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=config.request_timeout)
        self._client.cookies.update(session.cookies)
        self._notify = notify
        self._csrf_lock = asyncio.Lock()

    async def __aenter__(self) -> "TransactionApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self.session.remember_cookies({cookie.name: cookie.value for cookie in self._client.cookies.jar})
        if self._owns_client:
            await self._client.aclose()

    # ---- Plumbing ----
    def _toast(self, message: str) -> None:
        if self._notify is not None:
            self._notify(message)

    async def _ensure_csrf(self) -> None:
        async with self._csrf_lock:
            if not self.session.csrf_is_stale():
                return
            try:
                response = await self._client.get(self.config.csrf_url, headers={"Accept": "application/json"})
                if response.status_code >= 400:
                    raise FetchError(f"Failed to fetch CSRF token: {response.status_code}", response.status_code)
            except (httpx.HTTPError, FetchError) as exc:
                # Best-effort; the request still goes out.
                logger.warning("CSRF fetch failed: %s", exc)
                return
            self.session.mark_csrf_refreshed({cookie.name: cookie.value for cookie in self._client.cookies.jar})
            logger.info("CSRF token refreshed")

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        allow_empty: bool = False,
        not_found_message: Optional[str] = None,
    ) -> Any:
        await self._ensure_csrf()
        url = f"{self.config.animals_url}/{path}"
        try:
            response = await self._client.request(method, url, headers=self.session.headers(), json=body)
        except httpx.HTTPError as exc:
            raise FetchError(f"Network error: {exc}") from exc

        status = response.status_code
        logger.info("%s %s -> %s %s", method, url, status, response.reason_phrase)

        if status == 404 and not_found_message:
            raise NotFoundError(not_found_message, status)
        if status == 419:
            self.session.invalidate()

        text = response.text
        if not text.strip() and allow_empty:
            payload: Any = {}
        else:
            try:
                payload = json.loads(text)
            except ValueError as exc:
                logger.error("JSON parse error for %s %s: %s", method, url, exc)
                raise FetchError("Failed to parse server response", status) from exc
        logger.debug("Raw %s %s payload: %s", method, url, payload)

        if response.is_error:
            message = payload.get("message") if isinstance(payload, dict) else None
            message = message or f"API error: {status} {response.reason_phrase}"
            errors = payload.get("errors") if isinstance(payload, dict) else None
            if status < 500 and isinstance(errors, dict):
                raise ValidationError(message, errors, status)
            raise FetchError(message, status)
        return payload

    @staticmethod
    def _parse(model, data: Any, what: str):
        try:
            return model.model_validate(data)
        except SchemaError as exc:
            raise FetchError(f"Invalid {what} data received from server") from exc

    # ---- Operations ----
    async def fetch_transactions(self, animal_id: str) -> List[Transaction]:
        animal_id = _require_id(animal_id, "animal")
        try:
            payload = await self._request("GET", f"{animal_id}/transactions")
            items = unwrap_collection(payload)
            transactions = [self._parse(Transaction, item, "transaction") for item in items]
        except TransactionApiError as exc:
            logger.error("Error fetching transactions for animal %s: %s", animal_id, exc)
            self._toast(f"Failed to fetch transactions: {exc}")
            raise
        logger.info("Fetched %d transactions for animal %s", len(transactions), animal_id)
        return transactions

    async def fetch_transaction_summary(self, animal_id: str) -> TransactionSummary:
        animal_id = _require_id(animal_id, "animal")
        try:
            payload = await self._request("GET", f"{animal_id}/transactions/summary")
            summary = self._parse(TransactionSummary, unwrap_record(payload), "summary")
        except TransactionApiError as exc:
            logger.error("Error fetching transaction summary for animal %s: %s", animal_id, exc)
            self._toast(f"Failed to fetch transaction summary: {exc}")
            raise
        return summary

    async def fetch_transaction(self, animal_id: str, transaction_id: str) -> Transaction:
        animal_id = _require_id(animal_id, "animal")
        transaction_id = _require_id(transaction_id, "transaction")
        try:
            payload = await self._request(
                "GET",
                f"{animal_id}/transactions/{transaction_id}",
                not_found_message=f"Transaction with ID {transaction_id} not found",
            )
            record = unwrap_record(payload)
            if not record.get("id"):
                raise FetchError("Invalid transaction data received from server")
            transaction = self._parse(Transaction, record, "transaction")
        except TransactionApiError as exc:
            logger.error("Error fetching transaction %s for animal %s: %s", transaction_id, animal_id, exc)
            raise
        return transaction

    async def create_transaction(
        self, animal_id: str, data: Union[TransactionFormData, Mapping[str, Any]]
    ) -> Transaction:
        animal_id = _require_id(animal_id, "animal")
        body = normalize_payload(data)
        logger.debug("Normalized transaction data: %s", body)
        try:
            payload = await self._request("POST", f"{animal_id}/transactions", body=body)
            transaction = self._parse(Transaction, unwrap_record(payload), "transaction")
        except TransactionApiError as exc:
            logger.error("Error creating transaction for animal %s: %s", animal_id, exc)
            raise
        logger.info("Created transaction %s for animal %s", transaction.id, animal_id)
        return transaction

    async def update_transaction(
        self,
        animal_id: str,
        transaction_id: str,
        data: Union[TransactionFormData, Mapping[str, Any]],
    ) -> Transaction:
        animal_id = _require_id(animal_id, "animal")
        transaction_id = _require_id(transaction_id, "transaction")
        body = normalize_payload(data)
        logger.debug("Normalized transaction data for update: %s", body)
        try:
            payload = await self._request("PATCH", f"{animal_id}/transactions/{transaction_id}", body=body)
            transaction = self._parse(Transaction, unwrap_record(payload), "transaction")
        except TransactionApiError as exc:
            logger.error("Error updating transaction %s for animal %s: %s", transaction_id, animal_id, exc)
            raise
        return transaction

    async def delete_transaction(self, animal_id: str, transaction_id: str) -> None:
        animal_id = _require_id(animal_id, "animal")
        transaction_id = _require_id(transaction_id, "transaction")
        try:
            await self._request("DELETE", f"{animal_id}/transactions/{transaction_id}", allow_empty=True)
        except TransactionApiError as exc:
            logger.error("Error deleting transaction %s for animal %s: %s", transaction_id, animal_id, exc)
            self._toast(f"Failed to delete transaction: {exc}")
            raise
        logger.info("Deleted transaction %s for animal %s", transaction_id, animal_id)
