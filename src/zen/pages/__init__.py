"""File-based pages and actions.

Conventions::

    pages/
      index.html         # GET /
      _404.html          # nearest-ancestor error pages
      _500.html
      books/
        index.html       # GET /books
        +id.html         # GET /books/42 (meta.params.id == "42")
        _partials/       # hidden: never routed
    actions/
      books.py           # z-init="books", POST /@/books?<method>

A page's ``z-init`` directives build its init stack; the last handler
renders. Cached mode (``CachedRouteTable``) walks both trees once at
startup; dev mode (``LiveRouteTable``) reads them from disk per request.
"""

from zen.pages.context import ActionContext, ElementModifier, PageContext
from zen.pages.discovery import CachedRouteTable, LiveRouteTable, RouteTable
from zen.pages.types import ActionsModule, Page, ResolvedPage

__all__ = [
    "ActionContext",
    "ActionsModule",
    "CachedRouteTable",
    "ElementModifier",
    "LiveRouteTable",
    "Page",
    "PageContext",
    "ResolvedPage",
    "RouteTable",
]
