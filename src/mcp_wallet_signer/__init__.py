"""MCP Wallet Signer - let agents request wallet actions that a human approves in the browser."""

__version__ = "0.1.0"
