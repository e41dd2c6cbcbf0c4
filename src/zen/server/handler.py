"""ASGI handler: translates ASGI scope/messages to zen types.

The only component that touches raw ASGI HTTP messages. Converts the
scope to a typed Request, dispatches through middleware and routing,
and sends the Response back through ASGI ``send()``.
"""

from collections.abc import Callable
from contextvars import Token
from typing import Any

from zen._internal.asgi import Receive, Scope, Send
from zen._internal.invoke import invoke
from zen.context import request_var
from zen.errors import HTTPError
from zen.http.request import Request
from zen.http.response import SSEResponse
from zen.middleware.protocol import AnyResponse, Next
from zen.routing.router import Router
from zen.server.errors import NotFoundRenderer, handle_http_error, handle_internal_error
from zen.server.sender import send_response


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    middleware: tuple[Callable[..., Any], ...],
    render_not_found: NotFoundRenderer | None = None,
    debug: bool = False,
    db: Any = None,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)
    token: Token[Request] = request_var.set(request)

    # The lifespan sets the database only in its own task
    db_token: Token[Any] | None = None
    if db is not None:
        from zen.data.database import _db_var

        db_token = _db_var.set(db)

    try:

        async def dispatch(req: Request) -> AnyResponse:
            match = router.match(req.method, req.path)
            return await invoke(match.route.handler, req.with_path_params(match.path_params))

        handler: Next = dispatch
        for mw in reversed(middleware):

            async def make_next(req: Request, _mw: Any = mw, _next: Next = handler) -> AnyResponse:
                return await _mw(req, _next)

            handler = make_next

        response = await handler(request)

    except HTTPError as exc:
        response = await handle_http_error(exc, request, render_not_found=render_not_found, debug=debug)
    except Exception as exc:
        response = await handle_internal_error(exc, request)
    finally:
        if db_token is not None:
            from zen.data.database import _db_var

            _db_var.reset(db_token)
        request_var.reset(token)

    if isinstance(response, SSEResponse):
        from zen.realtime.sse import handle_sse

        extra = [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in response.headers]
        await handle_sse(response.event_stream, send, receive, extra_headers=extra)
    else:
        await send_response(response, send)
