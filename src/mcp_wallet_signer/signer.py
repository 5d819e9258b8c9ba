"""Agent-facing wallet operations.

Each operation parks a request in the registry, sends the operator to the
approval page, waits for the browser's verdict and turns it into a short text
report. The agent never sees keys; it only gets addresses, hashes and
signatures back.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Protocol

from mcp_wallet_signer.browser import build_connect_url, build_sign_url, open_browser
from mcp_wallet_signer.chains import CHAINS, explorer_tx_url
from mcp_wallet_signer.config import DEFAULT_CHAIN_ID
from mcp_wallet_signer.pending.models import ErrorResult, RequestResult
from mcp_wallet_signer.pending.store import PendingHandle, PendingStore, RequestCancelledError
from mcp_wallet_signer.provider import Web3Provider, format_ether

logger = logging.getLogger("mcp_wallet_signer.signer")

Opener = Callable[[str], Awaitable[None]]


class Bridge(Protocol):
    async def ensure_running(self) -> int: ...


class WalletRequestError(Exception):
    """A wallet operation ended without a usable result.

    The message is the full user-facing report, ready to hand to the agent.
    """


class WalletSigner:
    """Orchestrates registry, bridge and browser for one wallet operation."""

    def __init__(
        self,
        store: PendingStore,
        bridge: Bridge,
        *,
        provider: Web3Provider | None = None,
        default_chain_id: int = DEFAULT_CHAIN_ID,
        opener: Opener | None = open_browser,
    ) -> None:
        self.store = store
        self.bridge = bridge
        self.provider = provider or Web3Provider()
        self.default_chain_id = default_chain_id
        self._opener = opener

    def _chain(self, chain_id: int | None) -> int:
        return chain_id or self.default_chain_id

    async def _await_decision(
        self,
        create: Callable[[], PendingHandle],
        build_url: Callable[[int, str], str],
    ) -> tuple[str, RequestResult]:
        port = await self.bridge.ensure_running()
        handle = create()
        url = build_url(port, handle.id)
        logger.info(f"Waiting for browser approval at {url}")

        if self._opener is not None:
            await self._opener(url)

        try:
            result = await handle.future
        except RequestCancelledError as e:
            result = ErrorResult(error=str(e))
        return url, result

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def connect_wallet(self, chain_id: int | None = None) -> str:
        """Ask the operator to connect a wallet; returns the report text."""
        url, result = await self._await_decision(
            lambda: self.store.create_connect_request(self._chain(chain_id)),
            build_connect_url,
        )
        if not result.success:
            raise WalletRequestError(f"Approval URL: {url}\nFailed to connect wallet: {result.error}")
        return f"Approval URL: {url}\nWallet connected successfully!\nAddress: {result.result}"

    async def send_transaction(
        self,
        to: str,
        value: str | None = None,
        data: str | None = None,
        chain_id: int | None = None,
        gas_limit: str | None = None,
        max_fee_per_gas: str | None = None,
        max_priority_fee_per_gas: str | None = None,
    ) -> str:
        chain = self._chain(chain_id)
        url, result = await self._await_decision(
            lambda: self.store.create_send_transaction_request(
                to=to,
                value=value,
                data=data,
                chain_id=chain,
                gas_limit=gas_limit,
                max_fee_per_gas=max_fee_per_gas,
                max_priority_fee_per_gas=max_priority_fee_per_gas,
            ),
            build_sign_url,
        )
        if not result.success:
            raise WalletRequestError(f"Approval URL: {url}\nTransaction failed: {result.error}")

        text = f"Approval URL: {url}\nTransaction sent successfully!\nTransaction Hash: {result.result}"
        explorer = explorer_tx_url(chain, result.result)
        if explorer:
            text += f"\nExplorer: {explorer}"
        return text

    async def sign_message(
        self,
        message: str,
        address: str | None = None,
        chain_id: int | None = None,
    ) -> str:
        url, result = await self._await_decision(
            lambda: self.store.create_sign_message_request(
                message=message,
                address=address,
                chain_id=self._chain(chain_id),
            ),
            build_sign_url,
        )
        if not result.success:
            raise WalletRequestError(f"Approval URL: {url}\nSigning failed: {result.error}")
        return f"Approval URL: {url}\nMessage signed successfully!\nSignature: {result.result}"

    async def sign_typed_data(
        self,
        domain: dict[str, Any],
        types: dict[str, list[dict[str, Any]]],
        primary_type: str,
        message: dict[str, Any],
        address: str | None = None,
        chain_id: int | None = None,
    ) -> str:
        url, result = await self._await_decision(
            lambda: self.store.create_sign_typed_data_request(
                domain=domain,
                types=types,
                primary_type=primary_type,
                message=message,
                address=address,
                chain_id=self._chain(chain_id),
            ),
            build_sign_url,
        )
        if not result.success:
            raise WalletRequestError(f"Approval URL: {url}\nSigning failed: {result.error}")
        return f"Approval URL: {url}\nTyped data signed successfully!\nSignature: {result.result}"

    async def get_balance(self, address: str, chain_id: int | None = None) -> str:
        """Read the native balance directly from the chain; no browser involved."""
        chain = self._chain(chain_id)
        if self.provider.rpc_url(chain) is None:
            raise WalletRequestError(f"Unknown chain ID: {chain}. No RPC URL configured.")

        wei = await asyncio.to_thread(self.provider.get_balance_wei, address, chain)
        info = CHAINS.get(chain)
        symbol = info.native_symbol if info else "ETH"
        return f"Balance: {format_ether(wei)} {symbol}\nWei: {wei}"
