"""Local HTTP bridge between the pending-request registry and the browser."""

from mcp_wallet_signer.bridge.app import CORS_HEADERS, create_app
from mcp_wallet_signer.bridge.server import BridgeServer, run_bridge

__all__ = ["CORS_HEADERS", "BridgeServer", "create_app", "run_bridge"]
