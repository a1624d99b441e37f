"""
Status API of the owning supervisor.

Provides HTTP endpoints for:
- /health - Liveness check
- /status - Supervisor phase and per-role process state as JSON
- /metrics - Prometheus metrics

Binds to localhost only. A second supervisor invocation reads /status to show
what the owner is running.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from aiohttp import web

from eth_supervisor.metrics import generate_metrics
from eth_supervisor.settings import DEFAULT_STATUS_PORT

logger = logging.getLogger(__name__)

StatusProvider = Callable[[], dict[str, Any]]
"""Returns the current status document."""


def _empty_status() -> dict[str, Any]:
    return {"phase": "IDLE", "shutdownReason": None, "roles": []}


async def _handle_health(_request: web.Request) -> web.Response:
    """Handle health check endpoint."""
    return web.json_response({"status": "healthy", "service": "eth-supervisor"})


async def _handle_metrics(_request: web.Request) -> web.Response:
    """Handle Prometheus metrics endpoint."""
    return web.Response(
        body=generate_metrics(),
        content_type="text/plain; version=0.0.4",
        charset="utf-8",
    )


@dataclass(frozen=True, slots=True)
class StatusServerConfig:
    """Configuration for the status server."""

    host: str = "127.0.0.1"
    """Host address to bind to."""

    port: int = DEFAULT_STATUS_PORT
    """Port to listen on."""

    enabled: bool = True
    """Whether the status server is enabled."""


@dataclass(slots=True)
class StatusServer:
    """HTTP server exposing supervisor status and metrics."""

    config: StatusServerConfig
    """Server configuration."""

    status_provider: StatusProvider = _empty_status
    """Callable producing the /status document."""

    _runner: web.AppRunner | None = field(default=None, init=False)
    """The aiohttp application runner."""

    _site: web.TCPSite | None = field(default=None, init=False)
    """The TCP site for the server."""

    def build_app(self) -> web.Application:
        """Create the aiohttp application with all routes."""
        app = web.Application()
        app.add_routes(
            [
                web.get("/health", _handle_health),
                web.get("/status", self._handle_status),
                web.get("/metrics", _handle_metrics),
            ]
        )
        return app

    async def start(self) -> None:
        """Start the server in the background."""
        if not self.config.enabled:
            logger.info("Status server is disabled")
            return

        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self.config.host, self.config.port)
        await self._site.start()

        logger.info("Status server listening on %s:%d", self.config.host, self.config.port)

    async def stop(self) -> None:
        """Stop the server. Safe to call when not started."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
            logger.info("Status server stopped")

    @property
    def running(self) -> bool:
        return self._runner is not None

    async def _handle_status(self, _request: web.Request) -> web.Response:
        """Handle the status endpoint."""
        return web.json_response(self.status_provider())

