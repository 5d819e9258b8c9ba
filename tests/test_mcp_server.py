from __future__ import annotations

from fastmcp import Client

from mcp_wallet_signer.mcp_server import create_mcp_server
from mcp_wallet_signer.pending.models import ErrorResult, SuccessResult
from mcp_wallet_signer.pending.store import PendingStore
from mcp_wallet_signer.signer import WalletSigner


class _IdleBridge:
    async def ensure_running(self) -> int:
        return 3847


class _Approver:
    """Answers each opened approval page with a fixed outcome."""

    def __init__(self, store: PendingStore, outcome) -> None:
        self.store = store
        self.outcome = outcome
        self.requests = []

    async def __call__(self, url: str) -> None:
        request_id = url.rsplit("/", 1)[-1]
        self.requests.append(self.store.get(request_id))
        self.store.complete(request_id, self.outcome)


async def test_exposes_wallet_tools(store: PendingStore):
    mcp = create_mcp_server(WalletSigner(store, _IdleBridge(), opener=None))

    async with Client(mcp) as client:
        tools = {tool.name: tool for tool in await client.list_tools()}

    assert set(tools) == {
        "connect_wallet",
        "send_transaction",
        "sign_message",
        "sign_typed_data",
        "get_balance",
    }
    assert "browser" in tools["connect_wallet"].description
    assert tools["send_transaction"].inputSchema["required"] == ["to"]
    assert set(tools["send_transaction"].inputSchema["properties"]) == {
        "to",
        "value",
        "data",
        "chain_id",
        "gas_limit",
        "max_fee_per_gas",
        "max_priority_fee_per_gas",
    }
    assert set(tools["sign_typed_data"].inputSchema["required"]) == {
        "domain",
        "types",
        "primary_type",
        "message",
    }


async def test_rejected_connect_is_a_tool_error(store: PendingStore):
    approver = _Approver(store, ErrorResult(error="User rejected the request"))
    mcp = create_mcp_server(WalletSigner(store, _IdleBridge(), opener=approver))

    async with Client(mcp) as client:
        result = await client.call_tool("connect_wallet", {"chain_id": 1}, raise_on_error=False)

    assert result.is_error
    text = result.content[0].text
    assert "Approval URL: http://127.0.0.1:3847/connect/" in text
    assert "Failed to connect wallet: User rejected the request" in text
    assert store.size == 0


async def test_sign_typed_data_passes_camel_case_domain(store: PendingStore):
    approver = _Approver(store, SuccessResult(result="0xsig"))
    mcp = create_mcp_server(WalletSigner(store, _IdleBridge(), opener=approver))
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
    }
    message = {"name": "Bob", "wallet": "0xbBbBBBBbbBBBbbbBbbBbbbbBBbBbbbbBbBbbBBbB"}

    async with Client(mcp) as client:
        result = await client.call_tool(
            "sign_typed_data",
            {"domain": domain, "types": types, "primary_type": "Person", "message": message},
        )

    assert not result.is_error
    assert "Typed data signed successfully!\nSignature: 0xsig" in result.content[0].text
    request = approver.requests[0]
    assert request.domain == domain
    assert request.types == types
    assert request.primary_type == "Person"
    assert request.message == message
