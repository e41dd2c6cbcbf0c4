"""Error handling pipeline for zen requests.

The outer boundary of ``handle_request``: ``HTTPError`` raised anywhere
(router misses, handlers) and unexpected exceptions become responses
here. Page handlers never get this far: their failures are rendered
through the nearest ``_500`` template at the page boundary. Everything
else (actions, the reload channel) ends up with a minimal fragment.
"""

import logging
from collections.abc import Awaitable, Callable

from zen.errors import HTTPError
from zen.http.request import Request
from zen.http.response import Response
from zen.server.terminal_errors import log_error

logger = logging.getLogger("zen.server")

ACTION_PREFIX = "/@/"

type NotFoundRenderer = Callable[[Request], Awaitable[Response]]


def default_fragment_error(status: int, detail: str) -> str:
    """Minimal HTML snippet for error responses."""
    return f'<div class="zen-error" data-status="{status}">{detail}</div>'


def is_action_request(request: Request) -> bool:
    return request.path.startswith(ACTION_PREFIX)


def _with_action_error_header(response: Response, request: Request) -> Response:
    """Action errors carry ``z-error`` so the client shows them, not swaps them."""
    if not is_action_request(request):
        return response
    return response.with_z_error()


async def handle_http_error(
    exc: HTTPError,
    request: Request,
    *,
    render_not_found: NotFoundRenderer | None = None,
    debug: bool = False,
) -> Response:
    """Map an HTTPError to a Response.

    A page 404 (GET outside ``/@/``) goes through *render_not_found*,
    which renders the nearest ``_404`` template.
    """
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)

    if (
        exc.status == 404
        and render_not_found is not None
        and request.method in ("GET", "HEAD")
        and not is_action_request(request)
    ):
        return await render_not_found(request)

    detail = exc.detail or f"Error {exc.status}"
    if debug and exc.detail:
        detail = f"{exc.status}: {exc.detail}"

    response = Response(body=default_fragment_error(exc.status, detail), status=exc.status)
    for name, value in exc.headers:
        response = response.with_header(name, value)
    return _with_action_error_header(response, request)


async def handle_internal_error(exc: Exception, request: Request) -> Response:
    """Handle unexpected exceptions as 500 errors."""
    log_error(exc, request)
    response = Response(body=default_fragment_error(500, "Internal Server Error"), status=500)
    return _with_action_error_header(response, request)
