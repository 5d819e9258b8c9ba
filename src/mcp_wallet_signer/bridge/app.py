"""FastAPI application exposing the pending-request registry to the browser."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from mcp_wallet_signer.bridge.static import resolve_web_dist, serve_static_file
from mcp_wallet_signer.pending.models import CompleteApiRequest, RequestType
from mcp_wallet_signer.pending.store import PendingStore, RequestCancelledError

logger = logging.getLogger("mcp_wallet_signer.bridge")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

_ID_RE = re.compile(r"[a-f0-9-]+")


def _json(content: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content, status_code=status_code, headers=CORS_HEADERS)


def _error(message: str, status_code: int) -> JSONResponse:
    return _json({"error": message}, status_code=status_code)


def get_store(request: Request) -> PendingStore:
    return request.app.state.store


# ------------------------------------------------------------------
# API routes
# ------------------------------------------------------------------

api = APIRouter(prefix="/api")


@api.options("/{path:path}")
async def api_preflight(path: str):
    return Response(status_code=204, headers=CORS_HEADERS)


@api.get("/health")
async def api_health(store: PendingStore = Depends(get_store)):
    return _json({"status": "ok", "pendingRequests": store.size})


@api.get("/pending/{request_id}")
async def api_pending(request_id: str, store: PendingStore = Depends(get_store)):
    if not _ID_RE.fullmatch(request_id):
        return _error("Not found", 404)
    pending = store.get(request_id)
    if pending is None:
        return _error("Request not found", 404)
    return _json({"request": pending.to_wire()})


@api.post("/complete/{request_id}")
async def api_complete(
    request_id: str,
    request: Request,
    store: PendingStore = Depends(get_store),
):
    if not _ID_RE.fullmatch(request_id):
        return _error("Not found", 404)
    if not store.has(request_id):
        return _error("Request not found", 404)

    try:
        body = await request.json()
    except ValueError:
        return _error("Invalid JSON", 400)

    try:
        data = CompleteApiRequest.model_validate(body)
    except ValidationError:
        return _error("Invalid request body", 400)

    # complete() is the atomic check-and-remove; losing to the timeout
    # between has() and here is just another "not found".
    if not store.complete(request_id, data.to_result()):
        return _error("Request not found", 404)
    return _json({"ok": True})


# ------------------------------------------------------------------
# Test endpoints (browser e2e runs without an agent)
# ------------------------------------------------------------------

test_api = APIRouter(prefix="/api/test")


@test_api.post("/create-request")
async def api_test_create(request: Request, store: PendingStore = Depends(get_store)):
    try:
        body = await request.json()
    except ValueError:
        return _error("Invalid JSON", 400)
    if not isinstance(body, dict):
        return _error("Invalid request body", 400)

    try:
        request_type = RequestType(body.get("type"))
    except ValueError:
        return _error("Invalid request type", 400)

    fields = {k: v for k, v in body.items() if k != "type"}
    try:
        handle = store.create(request_type, **fields)
    except ValidationError:
        return _error("Invalid request body", 400)

    results: dict[str, dict] = request.app.state.test_results

    def _record(future) -> None:
        if future.cancelled():
            results[handle.id] = {"success": False, "error": "Request cancelled"}
        elif isinstance(future.exception(), RequestCancelledError):
            results[handle.id] = {"success": False, "error": str(future.exception())}
        else:
            results[handle.id] = future.result().to_wire()

    handle.future.add_done_callback(_record)
    return _json({"id": handle.id})


@test_api.get("/result/{request_id}")
async def api_test_result(
    request_id: str,
    request: Request,
    store: PendingStore = Depends(get_store),
):
    result = request.app.state.test_results.get(request_id)
    if result is not None:
        return _json(result)
    if store.has(request_id):
        return _json({"pending": True})
    return _error("Result not found", 404)


# ------------------------------------------------------------------
# App factory
# ------------------------------------------------------------------


def create_app(
    store: PendingStore,
    *,
    web_dist_dir: str | Path | None = None,
    enable_test_endpoints: bool = False,
) -> FastAPI:
    """Build the bridge application around an existing registry."""
    app = FastAPI(title="MCP Wallet Signer Bridge", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.store = store
    app.state.web_dist = resolve_web_dist(web_dist_dir)
    app.state.test_results = {}

    if enable_test_endpoints:
        logger.warning("Test endpoints enabled: requests can be created over HTTP")
        app.include_router(test_api)
    app.include_router(api)

    @app.api_route("/api/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
    async def api_not_found(path: str):
        return _error("Not found", 404)

    @app.get("/{path:path}")
    async def static_files(path: str, request: Request):
        return serve_static_file(path, request.app.state.web_dist)

    return app
