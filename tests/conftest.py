"""Shared fixtures: an isolated registry per test and an HTTP client on the bridge."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from mcp_wallet_signer.bridge.app import create_app
from mcp_wallet_signer.pending.store import PendingStore


@pytest.fixture
def store() -> PendingStore:
    return PendingStore()


@pytest.fixture
def web_dist(tmp_path: Path) -> Path:
    dist = tmp_path / "dist"
    (dist / "assets").mkdir(parents=True)
    (dist / "index.html").write_text("<!doctype html><div id=app></div>", encoding="utf-8")
    (dist / "assets" / "app.js").write_text("console.log('wallet ui');", encoding="utf-8")
    return dist


@pytest_asyncio.fixture
async def client(store: PendingStore, web_dist: Path) -> AsyncGenerator[AsyncClient]:
    app = create_app(store, web_dist_dir=web_dist)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client
    store.cancel_all("test teardown")


@pytest_asyncio.fixture
async def client_with_test_api(store: PendingStore, web_dist: Path) -> AsyncGenerator[AsyncClient]:
    """Client on a bridge with the /api/test endpoints enabled."""
    app = create_app(store, web_dist_dir=web_dist, enable_test_endpoints=True)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client
    store.cancel_all("test teardown")
