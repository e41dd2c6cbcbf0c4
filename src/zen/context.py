"""Request-scoped context via ContextVar.

``request_var`` holds the current ``Request`` for the running task. It
is set by the ASGI handler before dispatch and reset afterwards, so
helpers deep in user code can reach the request without threading it
through every call.
"""

from contextvars import ContextVar

from zen.http.request import Request

request_var: ContextVar[Request] = ContextVar("zen_request")


def get_request() -> Request:
    """Return the current request.

    Raises ``LookupError`` outside a request.
    """
    return request_var.get()
