"""Build and run the init-handler chain declared by ``z-init``.

A page declares what runs before its first render::

    <section z-init="books">            -> actions/books.py: _(ctx, data)
    <aside z-init="books.sidebar">      -> actions/books.py: _sidebar(ctx, data)

Handlers run in document order. Each one either finishes the response
(``ctx.render()``, ``ctx.redirect()``, ...) or hands over with
``await ctx.next()``. Broken directives never fail the request: they
log an error and fall back to a plain render.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from zen._internal.invoke import invoke
from zen._internal.types import Handler
from zen.pages.types import ActionsLookup
from zen.templating.dom import parse_html, select_with_attribute

if TYPE_CHECKING:
    from zen.pages.context import PageContext

logger = logging.getLogger("zen.pages")

INIT_ATTRIBUTE = "z-init"


def default_render(ctx: PageContext, data: dict[str, Any]) -> None:
    """Init handler used when a page declares none (or a broken one)."""
    ctx.render()


def handler_name(directive: str) -> tuple[str, str]:
    """``"books"`` -> ``("books", "_")``; ``"books.sidebar"`` -> ``("books", "_sidebar")``."""
    module, _, custom = directive.partition(".")
    return module, f"_{custom}" if custom else "_"


def build_init_stack(template_text: str, lookup: ActionsLookup) -> tuple[Handler, ...]:
    """Collect init handlers for every ``z-init`` tag, in document order."""
    tags = select_with_attribute(parse_html(template_text), INIT_ATTRIBUTE)
    if not tags:
        return (default_render,)

    stack: list[Handler] = []
    for tag in tags:
        directive = str(tag.get(INIT_ATTRIBUTE, "")).strip()
        if not directive:
            logger.error("Empty %s directive on <%s>, using default render", INIT_ATTRIBUTE, tag.name)
            stack.append(default_render)
            continue

        module_name, name = handler_name(directive)
        module = lookup(module_name)
        if module is None:
            logger.error("%s=%r: actions module %r not found", INIT_ATTRIBUTE, directive, module_name)
            stack.append(default_render)
            continue

        handler = module.get(name)
        if handler is None:
            logger.error("%s=%r: no %s() in actions module %r", INIT_ATTRIBUTE, directive, name, module_name)
            stack.append(default_render)
            continue

        stack.append(handler)
    return tuple(stack)


class InitChain:
    """An init stack plus a cursor.

    ``advance()`` runs the handler under the cursor and moves past it.
    Asking for more once the stack is spent is a terminal error: the
    context answers with a 500.
    """

    __slots__ = ("_cursor", "_stack")

    def __init__(self, stack: tuple[Handler, ...]) -> None:
        self._stack = stack
        self._cursor = 0

    @property
    def exhausted(self) -> bool:
        return self._cursor >= len(self._stack)

    @property
    def position(self) -> int:
        return self._cursor

    async def advance(self, ctx: PageContext) -> None:
        if self.exhausted:
            ctx.server_error("ctx.next() failed", "No next init function in stack.")
            return
        handler = self._stack[self._cursor]
        self._cursor += 1
        await invoke(handler, ctx, ctx.data)
