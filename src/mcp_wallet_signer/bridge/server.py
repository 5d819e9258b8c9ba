"""Running the bridge under uvicorn, embedded or standalone."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import uvicorn

from mcp_wallet_signer.bridge.app import create_app
from mcp_wallet_signer.config import DEFAULT_PORT
from mcp_wallet_signer.pending.store import PendingStore

logger = logging.getLogger("mcp_wallet_signer.bridge.server")


async def _serve(server: uvicorn.Server) -> None:
    # uvicorn exits the process when it can't bind; keep that inside the task.
    try:
        await server.serve()
    except SystemExit as e:
        logger.error(f"HTTP bridge exited during startup (code {e.code})")


class BridgeServer:
    """Lazily started HTTP bridge sharing the caller's event loop.

    The registry's futures live on the loop that created them, so the bridge
    runs as a task on that same loop instead of in its own thread.
    uvicorn keeps no logging config of its own; its loggers propagate to
    the root handler on stderr so stdout stays free for the MCP stream.
    """

    def __init__(
        self,
        store: PendingStore,
        host: str = "127.0.0.1",
        port: int = DEFAULT_PORT,
        web_dist_dir: str | Path | None = None,
        enable_test_endpoints: bool = False,
        log_level: str = "warning",
    ) -> None:
        self.host = host
        self.requested_port = port
        self.log_level = log_level
        self.app = create_app(
            store,
            web_dist_dir=web_dist_dir,
            enable_test_endpoints=enable_test_endpoints,
        )
        self._server: Optional[uvicorn.Server] = None
        self._task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()
        self.port: Optional[int] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done() and self.port is not None

    async def ensure_running(self) -> int:
        """Start the server if needed and return the bound port."""
        async with self._lock:
            if self.running:
                return self.port

            config = uvicorn.Config(
                self.app,
                host=self.host,
                port=self.requested_port,
                log_level=self.log_level,
                log_config=None,
                lifespan="off",
            )
            server = uvicorn.Server(config)
            task = asyncio.create_task(_serve(server), name="wallet-signer-bridge")

            while not server.started:
                if task.done():
                    raise RuntimeError(
                        f"HTTP bridge failed to start on {self.host}:{self.requested_port}"
                    ) from task.exception()
                await asyncio.sleep(0.01)

            self._server = server
            self._task = task
            # Port 0 asks the OS for a free port; read back what it chose.
            self.port = server.servers[0].sockets[0].getsockname()[1]
            logger.info(f"HTTP bridge running on http://{self.host}:{self.port}")
            return self.port

    async def stop(self) -> None:
        """Shut the server down if it is running."""
        async with self._lock:
            if self._server is None or self._task is None:
                return
            self._server.should_exit = True
            await self._task
            self._server = None
            self._task = None
            self.port = None
            logger.info("HTTP bridge stopped")


def run_bridge(
    store: PendingStore,
    host: str = "127.0.0.1",
    port: int = DEFAULT_PORT,
    web_dist_dir: str | Path | None = None,
    enable_test_endpoints: bool = False,
    log_level: str = "info",
) -> None:
    """Serve the bridge in the foreground until interrupted."""
    app = create_app(
        store,
        web_dist_dir=web_dist_dir,
        enable_test_endpoints=enable_test_endpoints,
    )
    uvicorn.run(app, host=host, port=port, log_level=log_level, log_config=None)
