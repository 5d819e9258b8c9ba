"""Chain definitions for supported EVM networks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Chain:
    """An EVM-compatible blockchain network."""

    chain_id: int
    name: str
    rpc_url: str
    native_symbol: str
    explorer_url: Optional[str] = None


CHAINS: dict[int, Chain] = {
    1: Chain(
        chain_id=1,
        name="Ethereum",
        rpc_url="https://eth.llamarpc.com",
        native_symbol="ETH",
        explorer_url="https://etherscan.io",
    ),
    11155111: Chain(
        chain_id=11155111,
        name="Sepolia",
        rpc_url="https://rpc.sepolia.org",
        native_symbol="ETH",
        explorer_url="https://sepolia.etherscan.io",
    ),
    137: Chain(
        chain_id=137,
        name="Polygon",
        rpc_url="https://polygon-rpc.com",
        native_symbol="MATIC",
        explorer_url="https://polygonscan.com",
    ),
    42161: Chain(
        chain_id=42161,
        name="Arbitrum One",
        rpc_url="https://arb1.arbitrum.io/rpc",
        native_symbol="ETH",
        explorer_url="https://arbiscan.io",
    ),
    10: Chain(
        chain_id=10,
        name="Optimism",
        rpc_url="https://mainnet.optimism.io",
        native_symbol="ETH",
        explorer_url="https://optimistic.etherscan.io",
    ),
    8453: Chain(
        chain_id=8453,
        name="Base",
        rpc_url="https://mainnet.base.org",
        native_symbol="ETH",
        explorer_url="https://basescan.org",
    ),
    43114: Chain(
        chain_id=43114,
        name="Avalanche",
        rpc_url="https://api.avax.network/ext/bc/C/rpc",
        native_symbol="AVAX",
        explorer_url="https://snowtrace.io",
    ),
    56: Chain(
        chain_id=56,
        name="BNB Smart Chain",
        rpc_url="https://bsc-dataseed.binance.org",
        native_symbol="BNB",
        explorer_url="https://bscscan.com",
    ),
}


def explorer_tx_url(chain_id: int, tx_hash: str) -> Optional[str]:
    """Block explorer link for a transaction, or ``None`` if unknown."""
    chain = CHAINS.get(chain_id)
    if chain is None or not chain.explorer_url:
        return None
    return f"{chain.explorer_url}/tx/{tx_hash}"
