"""Zen: file-based pages and server actions for HTML-first sites.

A page is a template under ``pages/``; its ``z-init`` directives name
Python handlers under ``actions/`` that load data before rendering.
Elements post back to ``/@/<module>?<method>`` and the server answers
with just the elements the action re-rendered.

Basic usage::

    from zen import App, AppConfig

    app = App(AppConfig(dev=True, secret_key="s3cr3t"))
    app.run()

Data access::

    from zen.data import Database, Model
    db = Database("sqlite:///site.db")
    books = db.collection("books")
"""

__version__ = "0.1.0-dev"
__all__ = [
    "ActionContext",
    "AnyResponse",
    "App",
    "AppConfig",
    "ConfigurationError",
    "HTTPError",
    "Middleware",
    "Next",
    "NotFound",
    "PageContext",
    "Redirect",
    "Request",
    "Response",
    "ZenError",
    "get_request",
    "get_session",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import zen`` fast while providing a clean top-level API.
    """
    if name == "App":
        from zen.app import App

        return App

    if name == "AppConfig":
        from zen.config import AppConfig

        return AppConfig

    if name == "Request":
        from zen.http.request import Request

        return Request

    if name in ("Response", "Redirect"):
        from zen.http import response as _resp

        return getattr(_resp, name)

    if name in ("PageContext", "ActionContext"):
        from zen.pages import context as _ctx

        return getattr(_ctx, name)

    if name in ("AnyResponse", "Middleware", "Next"):
        from zen.middleware import protocol as _mw

        return getattr(_mw, name)

    if name == "get_request":
        from zen.context import get_request

        return get_request

    if name == "get_session":
        from zen.middleware.sessions import get_session

        return get_session

    if name in ("ZenError", "ConfigurationError", "HTTPError", "NotFound"):
        from zen import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
