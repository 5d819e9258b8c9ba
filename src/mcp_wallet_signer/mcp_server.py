"""MCP stdio server exposing the wallet tools to an agent."""

from __future__ import annotations

import logging
from typing import Annotated, Any, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

from mcp_wallet_signer.browser import open_browser
from mcp_wallet_signer.bridge.server import BridgeServer
from mcp_wallet_signer.config import SignerConfig
from mcp_wallet_signer.pending.models import TypedDataDomain, TypedDataField
from mcp_wallet_signer.pending.store import PendingStore
from mcp_wallet_signer.provider import Web3Provider
from mcp_wallet_signer.signer import WalletRequestError, WalletSigner

logger = logging.getLogger("mcp_wallet_signer.mcp")

SERVER_NAME = "mcp-wallet-signer"

_BROWSER_NOTE = (
    "IMPORTANT: This tool opens a browser window where the user must {action}. "
    "Tell the user to switch to their browser window to approve. "
    "This tool blocks until the user acts or the request times out (5 min)."
)

ChainId = Annotated[
    Optional[int],
    Field(description="Chain ID (defaults to the configured chain, Ethereum mainnet unless changed)"),
]


def create_mcp_server(signer: WalletSigner) -> FastMCP:
    """Build the MCP server with one tool per wallet operation."""
    mcp = FastMCP(SERVER_NAME)

    @mcp.tool(
        name="connect_wallet",
        description=(
            "Connect to a browser wallet and get the wallet address. "
            + _BROWSER_NOTE.format(action="approve the connection")
        ),
    )
    async def connect_wallet(chain_id: ChainId = None) -> str:
        try:
            return await signer.connect_wallet(chain_id)
        except WalletRequestError as e:
            raise ToolError(str(e)) from e

    @mcp.tool(
        name="send_transaction",
        description=(
            "Send a transaction (ETH transfer or contract call) via the connected browser wallet. "
            + _BROWSER_NOTE.format(action="review and approve the transaction")
        ),
    )
    async def send_transaction(
        to: Annotated[str, Field(description="Recipient address (0x...)")],
        value: Annotated[Optional[str], Field(description="Amount in wei to send (optional for contract calls)")] = None,
        data: Annotated[Optional[str], Field(description="Contract call data, hex encoded (optional)")] = None,
        chain_id: ChainId = None,
        gas_limit: Annotated[Optional[str], Field(description="Gas limit (estimated if not provided)")] = None,
        max_fee_per_gas: Annotated[Optional[str], Field(description="Max fee per gas in wei")] = None,
        max_priority_fee_per_gas: Annotated[Optional[str], Field(description="Max priority fee per gas in wei")] = None,
    ) -> str:
        try:
            return await signer.send_transaction(
                to=to,
                value=value,
                data=data,
                chain_id=chain_id,
                gas_limit=gas_limit,
                max_fee_per_gas=max_fee_per_gas,
                max_priority_fee_per_gas=max_priority_fee_per_gas,
            )
        except WalletRequestError as e:
            raise ToolError(str(e)) from e

    @mcp.tool(
        name="sign_message",
        description=(
            "Sign an arbitrary message using personal_sign. "
            + _BROWSER_NOTE.format(action="approve the signature")
        ),
    )
    async def sign_message(
        message: Annotated[str, Field(description="Message to sign")],
        address: Annotated[Optional[str], Field(description="Address to sign with (uses connected address if not specified)")] = None,
        chain_id: ChainId = None,
    ) -> str:
        try:
            return await signer.sign_message(message=message, address=address, chain_id=chain_id)
        except WalletRequestError as e:
            raise ToolError(str(e)) from e

    @mcp.tool(
        name="sign_typed_data",
        description=(
            "Sign EIP-712 typed data. "
            + _BROWSER_NOTE.format(action="review and approve the signature")
        ),
    )
    async def sign_typed_data(
        domain: Annotated[TypedDataDomain, Field(description="EIP-712 domain (name, version, chainId, verifyingContract, salt)")],
        types: Annotated[
            dict[str, list[TypedDataField]],
            Field(description="Type definitions (e.g. {Person: [{name: 'name', type: 'string'}]})"),
        ],
        primary_type: Annotated[str, Field(description="Primary type name")],
        message: Annotated[dict[str, Any], Field(description="Message data to sign")],
        address: Annotated[Optional[str], Field(description="Address to sign with")] = None,
        chain_id: ChainId = None,
    ) -> str:
        try:
            return await signer.sign_typed_data(
                domain=domain.to_wire(),
                types={name: [f.to_wire() for f in fields] for name, fields in types.items()},
                primary_type=primary_type,
                message=message,
                address=address,
                chain_id=chain_id,
            )
        except WalletRequestError as e:
            raise ToolError(str(e)) from e

    @mcp.tool(
        name="get_balance",
        description=(
            "Get the native token balance of an address. Does not require browser "
            "interaction - reads directly from the blockchain."
        ),
    )
    async def get_balance(
        address: Annotated[str, Field(description="Address to get balance for (0x...)")],
        chain_id: ChainId = None,
    ) -> str:
        try:
            return await signer.get_balance(address=address, chain_id=chain_id)
        except WalletRequestError as e:
            raise ToolError(str(e)) from e

    return mcp


async def run_server(config: SignerConfig, log_level: str = "warning") -> None:
    """Run the MCP server over stdio until the client disconnects.

    *log_level* is handed to uvicorn for the embedded bridge.
    """
    store = PendingStore(timeout_seconds=config.request_timeout_seconds)
    bridge = BridgeServer(
        store,
        host=config.server.host,
        port=config.server.port,
        web_dist_dir=config.server.web_dist_dir,
        enable_test_endpoints=config.server.enable_test_endpoints,
        log_level=log_level,
    )
    signer = WalletSigner(
        store,
        bridge,
        provider=Web3Provider(config.rpc_urls),
        default_chain_id=config.default_chain_id,
        opener=open_browser if config.open_browser else None,
    )
    mcp = create_mcp_server(signer)

    logger.info("MCP server started")
    try:
        await mcp.run_async(transport="stdio")
    finally:
        cancelled = store.cancel_all("Server shutting down")
        if cancelled:
            logger.warning(f"Cancelled {cancelled} pending request(s) on shutdown")
        await bridge.stop()
