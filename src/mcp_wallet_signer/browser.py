"""Open approval pages in the operator's browser."""

from __future__ import annotations

import asyncio
import logging
import webbrowser

logger = logging.getLogger("mcp_wallet_signer.browser")


async def open_browser(url: str) -> None:
    """Open *url* in the default browser.

    Never raises: if the browser can't be launched the operator can still
    open the URL by hand, so we only log it.
    """
    try:
        opened = await asyncio.to_thread(webbrowser.open, url)
    except Exception as e:
        logger.error(f"Failed to open browser: {e}")
        logger.error(f"Please open this URL manually: {url}")
        return
    if not opened:
        logger.warning(f"No browser available. Please open this URL manually: {url}")


def build_sign_url(port: int, request_id: str) -> str:
    """URL of the approval page for a signing or transaction request."""
    return f"http://127.0.0.1:{port}/sign/{request_id}"


def build_connect_url(port: int, request_id: str) -> str:
    """URL of the approval page for a wallet connection request."""
    return f"http://127.0.0.1:{port}/connect/{request_id}"
