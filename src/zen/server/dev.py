"""Development server.

Runs a single pounce worker with the live ``App`` object. Pages and
actions are picked up from disk by the app itself (live route table,
``/__reload`` channel), so pounce's own process reload stays off unless
asked for: it is only needed when framework or model code changes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from zen.app import App


def run_dev_server(
    app: App,
    host: str,
    port: int,
    *,
    log_level: str = "info",
    reload: bool = False,
    reload_dirs: tuple[str, ...] = (),
) -> None:
    """Start a pounce dev server with the given zen App.

    Pounce's ``run()`` takes an import string (``"site:app"``), but zen
    has a live ``App``: ``pounce.Server`` is used directly with the
    ASGI callable.
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = ServerConfig(
        host=host,
        port=port,
        workers=1,
        log_level=log_level,
        reload=reload,
        reload_dirs=reload_dirs,
    )
    Server(config, app).run()
