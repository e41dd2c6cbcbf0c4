"""Production server.

Multi-worker pounce with structured lifecycle logging. Each worker
builds its own cached route table during ``App._freeze()``; use the
Redis session backend when running more than one worker.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from zen.app import App


def run_production_server(
    app: App,
    host: str = "0.0.0.0",
    port: int = 8000,
    workers: int = 0,  # 0 = auto-detect from CPU count
    *,
    lifecycle_logging: bool = True,
    log_format: str = "json",
    log_level: str = "info",
    max_connections: int = 1000,
    backlog: int = 2048,
    keep_alive_timeout: float = 5.0,
    request_timeout: float = 30.0,
    ssl_certfile: str | None = None,
    ssl_keyfile: str | None = None,
) -> None:
    """Run a zen app in production mode.

    Args:
        app: Zen App instance.
        host: Bind address (default: all interfaces).
        port: Bind port.
        workers: Worker count (0 = auto-detect from CPU count).
        lifecycle_logging: Structured connection lifecycle events.
        log_format: ``"json"`` or ``"text"``.
        log_level: debug, info, warning, error, critical.
        max_connections: Maximum concurrent connections.
        backlog: TCP listen backlog.
        keep_alive_timeout: Keep-alive timeout (seconds).
        request_timeout: Per-request timeout (seconds).
        ssl_certfile: TLS certificate (enables HTTPS).
        ssl_keyfile: TLS private key.

    Example:
        >>> from site_app import app
        >>> from zen.server.production import run_production_server
        >>> run_production_server(app, workers=4)
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = ServerConfig(
        host=host,
        port=port,
        workers=workers,
        lifecycle_logging=lifecycle_logging,
        log_format=log_format,
        log_level=log_level,
        max_connections=max_connections,
        backlog=backlog,
        keep_alive_timeout=keep_alive_timeout,
        request_timeout=request_timeout,
        ssl_certfile=ssl_certfile,
        ssl_keyfile=ssl_keyfile,
    )
    Server(config, app).run()
