"""Read-only Web3 access for balance lookups.

Signing never happens here; the browser wallet holds the keys.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from web3 import Web3

from mcp_wallet_signer.chains import CHAINS

logger = logging.getLogger("mcp_wallet_signer.provider")


class Web3Provider:
    """Manages Web3 connections across the configured EVM chains."""

    def __init__(self, rpc_overrides: dict[int, str] | None = None) -> None:
        self._rpc_overrides = dict(rpc_overrides or {})
        self._instances: dict[int, Web3] = {}

    def rpc_url(self, chain_id: int) -> Optional[str]:
        """RPC endpoint for *chain_id*: configured override, then built-in."""
        if chain_id in self._rpc_overrides:
            return self._rpc_overrides[chain_id]
        chain = CHAINS.get(chain_id)
        return chain.rpc_url if chain else None

    def get_web3(self, chain_id: int) -> Web3:
        """Return a (cached) Web3 instance for the given chain.

        Raises ``KeyError`` if no RPC URL is known for the chain.
        """
        if chain_id in self._instances:
            return self._instances[chain_id]

        url = self.rpc_url(chain_id)
        if url is None:
            raise KeyError(f"No RPC URL configured for chain ID {chain_id}")
        w3 = Web3(Web3.HTTPProvider(url))
        self._instances[chain_id] = w3
        return w3

    def get_balance_wei(self, address: str, chain_id: int) -> int:
        """Native token balance of *address* in wei."""
        w3 = self.get_web3(chain_id)
        checksum = Web3.to_checksum_address(address)
        balance = w3.eth.get_balance(checksum)
        logger.debug(f"Balance of {checksum} on chain {chain_id}: {balance} wei")
        return int(balance)


def format_ether(wei: int) -> str:
    """Human-readable ether amount without trailing zeros, e.g. ``1.5``."""
    value = Decimal(str(Web3.from_wei(wei, "ether")))
    return format(value.normalize(), "f")
