"""Transaction API client tests against an in-memory transport."""

from __future__ import annotations

import json

import httpx
import pytest

from herdbook.api_client import TransactionApiClient, normalize_payload, unwrap_collection, unwrap_record
from herdbook.config import AppConfig
from herdbook.errors import FetchError, NotFoundError, ValidationError
from herdbook.models import TransactionFormData
from herdbook.session import AuthSession

CSRF_PATH = "/csrf"
BASE = "/api/animals/7/transactions"


def csrf_ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(204, headers={"Set-Cookie": "XSRF-TOKEN=abc%3D; Path=/"})


def build(handler, csrf=csrf_ok, session=None, notify=None, config=None):
    seen: list[httpx.Request] = []

    def dispatch(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == CSRF_PATH:
            return csrf(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(dispatch))
    api = TransactionApiClient(
        config or AppConfig(),
        session or AuthSession("tok"),
        client=client,
        notify=notify,
    )
    return api, seen


def api_requests(seen):
    return [r for r in seen if r.url.path != CSRF_PATH]


def csrf_requests(seen):
    return [r for r in seen if r.url.path == CSRF_PATH]


@pytest.mark.parametrize(
    "envelope",
    [
        lambda items: items,
        lambda items: {"data": items},
        lambda items: {"data": {"data": items, "meta": {"total": len(items)}}},
    ],
    ids=["bare", "data", "nested"],
)
@pytest.mark.asyncio
async def test_fetch_transactions_accepts_every_envelope(envelope, transaction_payload):
    body = envelope([transaction_payload()])
    api, seen = build(lambda request: httpx.Response(200, json=body))

    transactions = await api.fetch_transactions("7")

    assert len(transactions) == 1
    assert transactions[0].id == "1"
    assert str(transactions[0].total_amount) == "1080.00"
    assert api_requests(seen)[0].url.path == BASE


def test_unwrap_helpers_fall_back_to_empty():
    assert unwrap_collection({"data": "nope"}) == []
    assert unwrap_collection(None) == []
    assert unwrap_record({"data": {"data": {"id": 3}}}) == {"id": 3}
    assert unwrap_record({"id": 4}) == {"id": 4}
    assert unwrap_record([1, 2]) == {}


@pytest.mark.asyncio
async def test_requests_carry_bearer_and_xsrf_headers(transaction_payload):
    api, seen = build(lambda request: httpx.Response(200, json={"data": []}))

    await api.fetch_transactions("7")

    request = api_requests(seen)[0]
    assert request.headers["Authorization"] == "Bearer tok"
    assert request.headers["X-XSRF-TOKEN"] == "abc="
    assert request.headers["Accept"] == "application/json"


@pytest.mark.asyncio
async def test_csrf_refreshed_only_when_stale():
    now = [1000.0]
    session = AuthSession("tok", csrf_ttl_seconds=300, clock=lambda: now[0])
    api, seen = build(lambda request: httpx.Response(200, json=[]), session=session)

    await api.fetch_transactions("7")
    await api.fetch_transactions("7")
    assert len(csrf_requests(seen)) == 1

    now[0] += 301
    await api.fetch_transactions("7")
    assert len(csrf_requests(seen)) == 2


@pytest.mark.asyncio
async def test_zero_ttl_refreshes_before_every_call():
    session = AuthSession("tok", csrf_ttl_seconds=0)
    api, seen = build(lambda request: httpx.Response(200, json=[]), session=session)

    await api.fetch_transactions("7")
    await api.fetch_transactions("7")

    assert len(csrf_requests(seen)) == 2


@pytest.mark.asyncio
async def test_csrf_failure_does_not_block_request(herdbook_logs):
    api, seen = build(
        lambda request: httpx.Response(200, json=[]),
        csrf=lambda request: httpx.Response(500, text="down"),
    )

    assert await api.fetch_transactions("7") == []
    assert len(api_requests(seen)) == 1
    assert "X-XSRF-TOKEN" not in api_requests(seen)[0].headers
    assert any("CSRF fetch failed" in r.getMessage() for r in herdbook_logs)


@pytest.mark.asyncio
async def test_419_marks_csrf_stale():
    session = AuthSession("tok")
    api, seen = build(
        lambda request: httpx.Response(419, json={"message": "CSRF token mismatch."}),
        session=session,
    )

    with pytest.raises(FetchError) as excinfo:
        await api.fetch_transactions("7")

    assert excinfo.value.status_code == 419
    assert session.csrf_is_stale()


@pytest.mark.asyncio
async def test_fetch_transaction_not_found():
    api, _ = build(lambda request: httpx.Response(404, json={"message": "Not found"}))

    with pytest.raises(NotFoundError) as excinfo:
        await api.fetch_transaction("7", "9")

    assert excinfo.value.message == "Transaction with ID 9 not found"


@pytest.mark.asyncio
async def test_fetch_transaction_without_id_is_rejected(transaction_payload):
    payload = transaction_payload()
    payload.pop("id")
    api, _ = build(lambda request: httpx.Response(200, json={"data": payload}))

    with pytest.raises(FetchError, match="Invalid transaction data received from server"):
        await api.fetch_transaction("7", "1")


@pytest.mark.asyncio
async def test_unparsable_body_raises_fetch_error():
    api, _ = build(lambda request: httpx.Response(200, text="<html>oops</html>"))

    with pytest.raises(FetchError, match="Failed to parse server response"):
        await api.fetch_transactions("7")


@pytest.mark.asyncio
async def test_network_error_raises_fetch_error():
    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    api, _ = build(boom)

    with pytest.raises(FetchError, match="Network error"):
        await api.fetch_transactions("7")


@pytest.mark.asyncio
async def test_read_failure_notifies_and_reraises():
    messages = []
    api, _ = build(
        lambda request: httpx.Response(500, json={"message": "Server exploded"}),
        notify=messages.append,
    )

    with pytest.raises(FetchError) as excinfo:
        await api.fetch_transactions("7")

    assert excinfo.value.status_code == 500
    assert messages == ["Failed to fetch transactions: Server exploded"]


@pytest.mark.asyncio
async def test_error_without_message_uses_status_line():
    api, _ = build(lambda request: httpx.Response(503, json={}))

    with pytest.raises(FetchError, match="API error: 503 Service Unavailable"):
        await api.fetch_transaction_summary("7")


@pytest.mark.asyncio
async def test_create_validation_errors_are_structured():
    body = {
        "message": "The given data was invalid.",
        "errors": {"price": ["The price field is required.", "Must be numeric."], "currency": ["Bad currency."]},
    }
    api, _ = build(lambda request: httpx.Response(422, json=body))

    with pytest.raises(ValidationError) as excinfo:
        await api.create_transaction("7", TransactionFormData(transaction_type="sale"))

    assert excinfo.value.status_code == 422
    assert excinfo.value.field_errors == {
        "price": "The price field is required.",
        "currency": "Bad currency.",
    }


@pytest.mark.asyncio
async def test_create_posts_normalized_body(transaction_payload):
    captured = {}

    def handler(request):
        captured["method"] = request.method
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json={"data": transaction_payload(id=55)})

    api, _ = build(handler)
    created = await api.create_transaction(
        "7",
        TransactionFormData(price="1000", tax_amount="", seller_id="42", details=""),
    )

    assert created.id == "55"
    assert captured["method"] == "POST"
    assert captured["body"] == {"price": 1000.0, "tax_amount": None, "seller_id": 42, "details": None}


@pytest.mark.asyncio
async def test_update_sends_patch_with_only_set_fields(transaction_payload):
    captured = {}

    def handler(request):
        captured["method"] = request.method
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json=transaction_payload(transaction_status="pending"))

    api, _ = build(handler)
    updated = await api.update_transaction("7", "1", TransactionFormData(transaction_status="pending"))

    assert captured == {"method": "PATCH", "path": f"{BASE}/1", "body": {"transaction_status": "pending"}}
    assert updated.transaction_status == "pending"


@pytest.mark.asyncio
async def test_delete_accepts_empty_body():
    api, seen = build(lambda request: httpx.Response(204))

    await api.delete_transaction("7", "1")

    request = api_requests(seen)[0]
    assert request.method == "DELETE"
    assert request.url.path == f"{BASE}/1"


@pytest.mark.asyncio
async def test_delete_failure_notifies():
    messages = []
    api, _ = build(lambda request: httpx.Response(500, json={"message": "nope"}), notify=messages.append)

    with pytest.raises(FetchError):
        await api.delete_transaction("7", "1")

    assert messages == ["Failed to delete transaction: nope"]


@pytest.mark.asyncio
async def test_summary_tolerates_nulls():
    body = {
        "data": {
            "overview": {"total_transactions": None, "total_value": 120.5},
            "status_distribution": None,
            "monthly_trends": None,
            "recent_transactions": None,
        }
    }
    api, _ = build(lambda request: httpx.Response(200, json=body))

    summary = await api.fetch_transaction_summary("7")

    assert summary.overview.total_transactions == 0
    assert summary.overview.total_value == "120.5"
    assert summary.status_distribution == {}
    assert summary.monthly_trends == []
    assert summary.recent_transactions == []


@pytest.mark.asyncio
async def test_invalid_animal_id_is_rejected_before_any_request():
    api, seen = build(lambda request: httpx.Response(200, json=[]))

    with pytest.raises(ValueError, match="Invalid animal ID"):
        await api.fetch_transactions("undefined")

    assert seen == []


@pytest.mark.asyncio
async def test_aclose_keeps_cookies_on_the_session():
    session = AuthSession("tok")
    api, _ = build(lambda request: httpx.Response(200, json=[]), session=session)

    async with api:
        await api.fetch_transactions("7")

    assert session.xsrf_token() == "abc="


def test_normalize_payload_from_mapping():
    body = normalize_payload({"price": "12.50", "deposit_amount": "", "buyer_id": "7.5", "details": "ok"})

    assert body == {"price": 12.5, "deposit_amount": None, "buyer_id": 7.5, "details": "ok"}
