"""Serving the prebuilt web UI bundle with single-page-app fallback."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath

from fastapi.responses import FileResponse, PlainTextResponse, Response

logger = logging.getLogger("mcp_wallet_signer.bridge.static")

PACKAGED_WEB_DIR = Path(__file__).resolve().parent.parent / "web"
_NO_CACHE = {"Cache-Control": "no-cache"}


def resolve_web_dist(configured: str | Path | None = None) -> Path:
    """Pick the UI bundle directory.

    An explicitly configured directory wins; otherwise the bundle shipped
    inside the package, then ``./web/dist`` for development checkouts. If
    neither exists the packaged path is returned and requests will 404.
    """
    if configured:
        return Path(configured)
    if PACKAGED_WEB_DIR.is_dir():
        return PACKAGED_WEB_DIR
    dev_dir = Path.cwd() / "web" / "dist"
    if dev_dir.is_dir():
        return dev_dir
    return PACKAGED_WEB_DIR


def serve_static_file(path: str, web_dist: Path) -> Response:
    """Resolve a request path against *web_dist*."""
    rel = path.lstrip("/") or "index.html"
    root = web_dist.resolve()
    candidate = (root / rel).resolve()

    if not candidate.is_relative_to(root):
        logger.warning(f"Rejected static path outside bundle: {path!r}")
        return PlainTextResponse("Not found", status_code=404)

    if candidate.is_file():
        return FileResponse(candidate, headers=_NO_CACHE)

    # Client-side routes like /sign/<id> have no extension
    if not PurePosixPath(rel).suffix:
        index = root / "index.html"
        if index.is_file():
            return FileResponse(index, media_type="text/html", headers=_NO_CACHE)
        return PlainTextResponse(
            "Web UI not found. Build the web bundle first.", status_code=404
        )

    return PlainTextResponse("Not found", status_code=404)
