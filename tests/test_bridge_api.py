"""Tests for the bridge's JSON API."""

from __future__ import annotations

import asyncio
from http import HTTPStatus

import pytest
from httpx import AsyncClient

from mcp_wallet_signer.bridge.app import CORS_HEADERS
from mcp_wallet_signer.pending.models import ErrorResult, SuccessResult
from mcp_wallet_signer.pending.store import PendingStore, RequestTimeoutError

UNKNOWN_ID = "00000000-0000-0000-0000-000000000000"


async def test_health(client: AsyncClient, store: PendingStore):
    response = await client.get("/api/health")

    assert response.status_code == HTTPStatus.OK
    assert response.json() == {"status": "ok", "pendingRequests": 0}

    store.create_connect_request()
    store.create_connect_request()
    response = await client.get("/api/health")
    assert response.json() == {"status": "ok", "pendingRequests": 2}


async def test_connect_round_trip(client: AsyncClient, store: PendingStore):
    handle = store.create_connect_request(1)

    response = await client.get(f"/api/pending/{handle.id}")
    assert response.status_code == HTTPStatus.OK
    request = response.json()["request"]
    assert request["id"] == handle.id
    assert request["type"] == "connect"
    assert request["chainId"] == 1
    assert isinstance(request["createdAt"], int)

    response = await client.post(f"/api/complete/{handle.id}", json={"success": True, "result": "0xABC"})
    assert response.status_code == HTTPStatus.OK
    assert response.json() == {"ok": True}

    assert await asyncio.wait_for(handle.future, timeout=2) == SuccessResult(result="0xABC")


async def test_pending_payload_is_camel_case_without_unset_fields(client: AsyncClient, store: PendingStore):
    handle = store.create_send_transaction_request(to="0xdead", value="1", max_fee_per_gas="2")

    request = (await client.get(f"/api/pending/{handle.id}")).json()["request"]

    assert request == {
        "id": handle.id,
        "type": "send_transaction",
        "createdAt": request["createdAt"],
        "to": "0xdead",
        "value": "1",
        "maxFeePerGas": "2",
    }


async def test_pending_unknown_id(client: AsyncClient):
    response = await client.get(f"/api/pending/{UNKNOWN_ID}")

    assert response.status_code == HTTPStatus.NOT_FOUND
    assert response.json() == {"error": "Request not found"}


async def test_pending_is_read_only(client: AsyncClient, store: PendingStore):
    handle = store.create_connect_request()

    for _ in range(3):
        assert (await client.get(f"/api/pending/{handle.id}")).status_code == HTTPStatus.OK

    assert store.has(handle.id)
    assert not handle.future.done()


async def test_pending_404_after_completion(client: AsyncClient, store: PendingStore):
    handle = store.create_connect_request()
    store.complete(handle.id, SuccessResult(result="0x1"))

    response = await client.get(f"/api/pending/{handle.id}")

    assert response.status_code == HTTPStatus.NOT_FOUND
    await handle.future


async def test_complete_missing_success_is_rejected(client: AsyncClient, store: PendingStore):
    handle = store.create_connect_request()

    response = await client.post(f"/api/complete/{handle.id}", json={"result": "x"})

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json() == {"error": "Invalid request body"}
    assert store.has(handle.id)
    assert not handle.future.done()


@pytest.mark.parametrize(
    "body",
    [
        {"success": "true", "result": "x"},
        {"success": 1, "result": "x"},
        {"success": None},
        {"success": True, "result": 42},
        [True],
        "success",
    ],
)
async def test_complete_structurally_wrong_body(client: AsyncClient, store: PendingStore, body):
    handle = store.create_connect_request()

    response = await client.post(f"/api/complete/{handle.id}", json=body)

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json() == {"error": "Invalid request body"}
    assert store.has(handle.id)


async def test_complete_malformed_json(client: AsyncClient, store: PendingStore):
    handle = store.create_connect_request()

    response = await client.post(
        f"/api/complete/{handle.id}",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json() == {"error": "Invalid JSON"}
    assert store.has(handle.id)


async def test_complete_failure_result(client: AsyncClient, store: PendingStore):
    handle = store.create_sign_message_request(message="hi")

    response = await client.post(
        f"/api/complete/{handle.id}",
        json={"success": False, "error": "User rejected the request"},
    )

    assert response.status_code == HTTPStatus.OK
    assert await handle.future == ErrorResult(error="User rejected the request")


async def test_complete_defaults(client: AsyncClient, store: PendingStore):
    ok = store.create_connect_request()
    failed = store.create_connect_request()

    await client.post(f"/api/complete/{ok.id}", json={"success": True})
    await client.post(f"/api/complete/{failed.id}", json={"success": False})

    assert await ok.future == SuccessResult(result="")
    assert await failed.future == ErrorResult(error="Unknown error")


async def test_complete_twice_second_is_404(client: AsyncClient, store: PendingStore):
    handle = store.create_connect_request()

    first = await client.post(f"/api/complete/{handle.id}", json={"success": True, "result": "0x1"})
    second = await client.post(f"/api/complete/{handle.id}", json={"success": True, "result": "0x2"})

    assert first.status_code == HTTPStatus.OK
    assert second.status_code == HTTPStatus.NOT_FOUND
    assert second.json() == {"error": "Request not found"}
    assert await handle.future == SuccessResult(result="0x1")


async def test_complete_unknown_id(client: AsyncClient):
    response = await client.post(f"/api/complete/{UNKNOWN_ID}", json={"success": True, "result": "0x"})

    assert response.status_code == HTTPStatus.NOT_FOUND
    assert response.json() == {"error": "Request not found"}


async def test_complete_after_timeout_is_404(web_dist):
    from httpx import ASGITransport

    from mcp_wallet_signer.bridge.app import create_app

    store = PendingStore(timeout_seconds=0.05)
    app = create_app(store, web_dist_dir=web_dist)
    handle = store.create_connect_request()

    with pytest.raises(RequestTimeoutError):
        await asyncio.wait_for(handle.future, timeout=2)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        response = await client.post(f"/api/complete/{handle.id}", json={"success": True, "result": "0x"})

    assert response.status_code == HTTPStatus.NOT_FOUND


async def test_typed_data_round_trip(client: AsyncClient, store: PendingStore):
    domain = {
        "name": "Ether Mail",
        "version": "1",
        "chainId": 1,
        "verifyingContract": "0xCcCCccccCCCCcCCCCCCcCcCccCcCCCcCcccccccC",
    }
    types = {
        "Person": [
            {"name": "name", "type": "string"},
            {"name": "wallet", "type": "address"},
        ],
        "Mail": [
            {"name": "from", "type": "Person"},
            {"name": "to", "type": "Person"},
            {"name": "contents", "type": "string"},
        ],
    }
    message = {
        "from": {"name": "Cow", "wallet": "0xCD2a3d9F938E13CD947Ec05AbC7FE734Df8DD826"},
        "to": {"name": "Bob", "wallet": "0xbBbBBBBbbBBBbbbBbbBbbbbBBbBbbbbBbBbbBBbB"},
        "contents": "Hello, Bob!",
        "tags": ["a", "b"],
        "amount": 12345678901234567890,
    }
    handle = store.create_sign_typed_data_request(
        domain=domain, types=types, primary_type="Mail", message=message, chain_id=1
    )

    request = (await client.get(f"/api/pending/{handle.id}")).json()["request"]

    assert request["type"] == "sign_typed_data"
    assert request["domain"] == domain
    assert request["types"] == types
    assert request["primaryType"] == "Mail"
    assert request["message"] == message


async def test_non_uuid_shaped_id_is_not_found(client: AsyncClient):
    response = await client.get("/api/pending/NOT-A-UUID")

    assert response.status_code == HTTPStatus.NOT_FOUND
    assert response.json() == {"error": "Not found"}


async def test_unknown_api_path(client: AsyncClient):
    response = await client.get("/api/nope")

    assert response.status_code == HTTPStatus.NOT_FOUND
    assert response.json() == {"error": "Not found"}


async def test_wrong_method_on_known_path(client: AsyncClient, store: PendingStore):
    handle = store.create_connect_request()

    response = await client.post(f"/api/pending/{handle.id}", json={})

    assert response.status_code == HTTPStatus.NOT_FOUND
    assert store.has(handle.id)


async def test_cors_headers_on_api_responses(client: AsyncClient):
    response = await client.get("/api/health")

    for name, value in CORS_HEADERS.items():
        assert response.headers[name] == value


async def test_cors_preflight(client: AsyncClient, store: PendingStore):
    handle = store.create_connect_request()

    response = await client.options(
        f"/api/complete/{handle.id}",
        headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "POST"},
    )

    assert response.status_code == HTTPStatus.NO_CONTENT
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert "POST" in response.headers["Access-Control-Allow-Methods"]
    assert store.has(handle.id)


async def test_test_endpoints_disabled_by_default(client: AsyncClient):
    response = await client.post("/api/test/create-request", json={"type": "connect"})

    assert response.status_code == HTTPStatus.NOT_FOUND


async def test_test_endpoints_create_and_result(client_with_test_api: AsyncClient, store: PendingStore):
    client = client_with_test_api
    response = await client.post(
        "/api/test/create-request",
        json={"type": "send_transaction", "to": "0xdead", "value": "5", "chainId": 11155111},
    )
    assert response.status_code == HTTPStatus.OK
    request_id = response.json()["id"]

    assert store.get(request_id).chain_id == 11155111
    assert (await client.get(f"/api/test/result/{request_id}")).json() == {"pending": True}

    await client.post(f"/api/complete/{request_id}", json={"success": True, "result": "0xhash"})
    await asyncio.sleep(0)

    response = await client.get(f"/api/test/result/{request_id}")
    assert response.json() == {"success": True, "result": "0xhash"}


async def test_test_endpoints_record_cancellation(client_with_test_api: AsyncClient, store: PendingStore):
    client = client_with_test_api
    request_id = (await client.post("/api/test/create-request", json={"type": "connect"})).json()["id"]

    store.cancel(request_id, "User closed the window")
    await asyncio.sleep(0)

    response = await client.get(f"/api/test/result/{request_id}")
    assert response.json() == {"success": False, "error": "User closed the window"}


async def test_test_endpoints_validation(client_with_test_api: AsyncClient):
    client = client_with_test_api

    bad_type = await client.post("/api/test/create-request", json={"type": "launch_rocket"})
    missing_field = await client.post("/api/test/create-request", json={"type": "sign_message"})
    unknown = await client.get(f"/api/test/result/{UNKNOWN_ID}")

    assert bad_type.status_code == HTTPStatus.BAD_REQUEST
    assert bad_type.json() == {"error": "Invalid request type"}
    assert missing_field.status_code == HTTPStatus.BAD_REQUEST
    assert missing_field.json() == {"error": "Invalid request body"}
    assert unknown.status_code == HTTPStatus.NOT_FOUND
    assert unknown.json() == {"error": "Result not found"}
