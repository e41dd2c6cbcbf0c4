"""Page and action contexts: what handlers receive as ``ctx``.

Every handler is called as ``handler(ctx, data)``, where ``data`` is the
context's data bag (``ctx.data``). A handler answers by calling one of
the context's terminal methods::

    async def _(ctx, data):              # init handler, GET /books/42
        data["book"] = await Book.read(ctx.params["id"])
        if data["book"] is None:
            return ctx.not_found()
        await ctx.next()                 # or ctx.render()

    def toggle(ctx, data):               # action, POST /@/books?toggle
        data["open"] = not data.get("open")
        ctx.with_element("#panel").add_class("open")
        ctx.render("#panel")

Terminal methods record a ``Response``; the app sends whatever was
recorded last, with every ``set_header()`` applied on top.
"""

from __future__ import annotations

import json as json_module
import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from zen.http.request import Request
from zen.http.response import Redirect, Response
from zen.middleware.sessions import Session
from zen.pages.init_stack import InitChain
from zen.pages.meta import RequestMeta
from zen.pages.snapshot import Snapshot, load_snapshot
from zen.pages.types import Page
from zen.templating.dom import get_element_by_id, outer_html
from zen.templating.modifiers import ElementModification, Operation
from zen.templating.pipeline import Renderer
from zen.templating.styles import STYLE_ELEMENT_ID

logger = logging.getLogger("zen.pages")
request_logger = logging.getLogger("zen.request")

ELEMENT_ID_RE = re.compile(r"^#[A-Za-z]+[\w\-:.]*$")

NOT_FOUND_TITLE = "Not Found"
SERVER_ERROR_TITLE = "Internal Server Error"


def _as_strings(values: str | Iterable[str]) -> tuple[str, ...]:
    if isinstance(values, str):
        return (values,)
    return tuple(str(v) for v in values)


class ElementModifier:
    """Chainable edits for one element, applied at the next render.

    ::

        ctx.with_element("#save").set_attr("disabled").add_class(["muted", "busy"])
    """

    __slots__ = ("_queue",)

    def __init__(self, queue: list[ElementModification]) -> None:
        self._queue = queue

    def _push(self, operation: Operation, data: tuple[str, ...]) -> ElementModifier:
        self._queue.append(ElementModification(operation, data))
        return self

    def add_class(self, classes: str | Iterable[str]) -> ElementModifier:
        return self._push(Operation.ADD_CLASS, _as_strings(classes))

    def remove_class(self, classes: str | Iterable[str]) -> ElementModifier:
        return self._push(Operation.REMOVE_CLASS, _as_strings(classes))

    def set_attr(self, name: str, value: Any = "") -> ElementModifier:
        return self._push(Operation.SET_ATTR, (name, str(value)))

    def remove_attr(self, name: str) -> ElementModifier:
        return self._push(Operation.REMOVE_ATTR, (name,))


class RenderContext:
    """State and behaviour shared by page and action contexts."""

    __slots__ = ("_headers", "_renderer", "_response", "data", "meta", "modifications", "page", "session")

    def __init__(
        self,
        *,
        data: dict[str, Any],
        meta: RequestMeta,
        page: Page,
        session: Session | None,
        renderer: Renderer,
    ) -> None:
        self.data = data
        self.meta = meta
        self.page = page
        self.session = session
        self.modifications: dict[str, list[ElementModification]] = {}
        self._renderer = renderer
        self._response: Response | None = None
        self._headers: dict[str, str] = {}

    # -- Read-only request view --

    @property
    def pathname(self) -> str:
        return self.meta.pathname

    @property
    def params(self) -> dict[str, str]:
        return self.meta.params

    @property
    def query(self) -> dict[str, str]:
        return self.meta.query

    @property
    def headers(self) -> dict[str, str]:
        return self.meta.headers

    @property
    def method(self) -> str:
        return self.meta.method

    @property
    def host(self) -> str:
        return self.meta.host

    @property
    def hostname(self) -> str:
        return self.meta.hostname

    @property
    def href(self) -> str:
        return self.meta.href

    @property
    def hash(self) -> str:
        return self.meta.hash

    @property
    def ip(self) -> str:
        return self.meta.ip

    @property
    def port(self) -> str:
        return self.meta.port

    @property
    def protocol(self) -> str:
        return self.meta.protocol

    @property
    def search(self) -> str:
        return self.meta.search

    @property
    def secure(self) -> bool:
        return self.meta.secure

    @property
    def dev(self) -> bool:
        return self.meta.dev

    @property
    def nocache(self) -> int:
        return self.meta.nocache

    # -- Shared operations --

    def flash(self, name: str, value: Any) -> None:
        """Store a read-once value in the session."""
        if self.session is None:
            logger.error("flash(%r) without an active session", name)
            return
        self.session.flash(name, value)

    def set_header(self, name: str, value: str) -> RenderContext:
        """Set a header on whatever response this handler produces."""
        self._headers[name] = value
        return self

    @property
    def responded(self) -> bool:
        return self._response is not None

    @property
    def response(self) -> Response | None:
        if self._response is None:
            return None
        if not self._headers:
            return self._response
        return self._response.with_headers(self._headers)

    def snapshot(self) -> Snapshot:
        return Snapshot(data=self.data, meta=self.meta, page=self.page)

    # -- Internals --

    def _respond(self, response: Response) -> None:
        self._response = response

    def _render_template(self, template_text: str) -> str:
        return str(self._renderer.render_document(template_text, self, self.session))

    def _render_error(self, status: int, name: str = "", message: str = "", **details: Any) -> Response:
        if status == 404:
            self.data["title"] = NOT_FOUND_TITLE
        else:
            name = name or SERVER_ERROR_TITLE
            self.data["title"] = SERVER_ERROR_TITLE
            self.meta.error = {"name": name, "message": message, **details}
            logger.error("%s %s", name, message)
        body = self._render_template(self.page.error_template(status))
        return Response(body=body, status=status)


class PageContext(RenderContext):
    """Context for a page request (GET)."""

    __slots__ = ("_chain", "_request")

    def __init__(
        self,
        *,
        request: Request,
        page: Page,
        meta: RequestMeta,
        session: Session | None,
        renderer: Renderer,
    ) -> None:
        super().__init__(data={}, meta=meta, page=page, session=session, renderer=renderer)
        self._request = request
        self._chain = InitChain(page.init_stack)

    @property
    def request(self) -> Request:
        return self._request

    @property
    def chain(self) -> InitChain:
        return self._chain

    def _kind(self) -> str:
        return "MERGE" if self._request.is_merge else "DIRECT"

    def render(self) -> None:
        """Render the full page, 200 ``text/html``."""
        if not self._request.is_reload:
            request_logger.info("%s %s -> RENDER", self._kind(), self.pathname)
        self._respond(Response(body=self._render_template(self.page.template_text)))

    def send(self, text: str) -> None:
        request_logger.info("DIRECT %s -> SEND", self.pathname)
        self._respond(Response(body=text, content_type="text/plain; charset=utf-8"))

    def json(self, data: Any) -> None:
        request_logger.info("DIRECT %s -> JSON", self.pathname)
        self._respond(Response(body=json_module.dumps(data, default=str), content_type="application/json"))

    def redirect(self, url: str) -> None:
        """Merge requests get ``z-redirect``; plain browsers a 302."""
        request_logger.info("%s %s -> REDIRECT %s", self._kind(), self.pathname, url)
        if self._request.is_merge:
            self._respond(Response(status=204).with_z_redirect(url, replace_state=True))
        else:
            self._respond(Redirect(url).to_response())

    def not_found(self) -> None:
        request_logger.info("%s %s -> 404", self._kind(), self.pathname)
        logger.error("404 NOT FOUND: %s", self.pathname)
        self._respond(self._render_error(404))

    def server_error(self, name: str = "", message: str = "", **details: Any) -> None:
        """Render the nearest ``_500``.

        A given *name* is shown as ``Error: <name>``. Extra *details*
        (``file``, ``line``) land in ``meta.error`` next to ``name`` and
        ``message``.
        """
        request_logger.info("%s %s -> 500", self._kind(), self.pathname)
        name = f"Error: {name}" if name else ""
        self._respond(self._render_error(500, name, message, **details))

    async def next(self) -> None:
        """Run the next init handler in the page's stack."""
        await self._chain.advance(self)


class ActionContext(RenderContext):
    """Context for an action (``POST /@/<module>?<method>``).

    Data, metadata and page come from the session snapshot of the last
    render; ``trigger``, ``last_focused`` and ``payload`` from the
    client's request body.
    """

    __slots__ = ("last_focused", "method_name", "module", "payload", "trigger")

    def __init__(
        self,
        *,
        snapshot: Snapshot,
        session: Session | None,
        renderer: Renderer,
        module: str,
        method: str,
        trigger: Any = None,
        last_focused: Any = None,
        payload: Any = None,
    ) -> None:
        super().__init__(
            data=snapshot.data,
            meta=snapshot.meta,
            page=snapshot.page,
            session=session,
            renderer=renderer,
        )
        self.module = module
        self.method_name = method
        self.trigger = trigger
        self.last_focused = last_focused
        self.payload = payload

    @property
    def action(self) -> str:
        return f"{self.module}.{self.method_name}"

    def render(self, element_ids: str | Sequence[str] | None = None) -> None:
        """Re-render the page and send only the named elements.

        ``element_ids`` is one ``#id`` or a list of them. Invalid or
        missing ids are logged and skipped.
        """
        if not element_ids:
            logger.error("render() in %s needs at least one element id", self.action)
            self.ignore()
            return
        ids = [element_ids] if isinstance(element_ids, str) else list(element_ids)

        document = self._renderer.render_document(self.page.template_text, self, self.session)
        fragments: list[str] = []
        for element_id in ids:
            if not ELEMENT_ID_RE.match(element_id):
                logger.error("Invalid id reference %r used in action %s", element_id, self.action)
                continue
            element = get_element_by_id(document, element_id[1:])
            if element is None:
                logger.error("Unable to render %s: not in template %s", element_id, self.page.template_path)
                continue
            fragments.append(outer_html(element))

        if any(self.modifications.values()):
            styles = get_element_by_id(document, STYLE_ELEMENT_ID)
            if styles is not None:
                fragments.append(outer_html(styles))
            self.modifications.clear()

        request_logger.info(" -> ACTION %s -> RENDER %s", self.action, ", ".join(ids))
        self._respond(Response(body="\n\n".join(fragments)))

    def redirect(self, url: str) -> None:
        request_logger.info(" -> ACTION %s -> REDIRECT %s", self.action, url)
        self._respond(Response(status=204).with_z_redirect(url))

    def not_found(self) -> None:
        request_logger.info(" -> ACTION %s -> 404", self.action)
        logger.error("404 NOT FOUND: %s", self.pathname)
        self._respond(self._render_error(404).with_z_error())

    def server_error(self, name: str = "", message: str = "", **details: Any) -> None:
        request_logger.info(" -> ACTION %s -> 500", self.action)
        self._respond(self._render_error(500, name, message, **details).with_z_error())

    def ignore(self) -> None:
        request_logger.info(" -> ACTION %s -> IGNORE", self.action)
        self._respond(Response(status=204))

    def with_element(self, element_id: str) -> ElementModifier:
        """Queue edits for an element (``"#save"`` or ``"save"``)."""
        queue = self.modifications.setdefault(element_id.removeprefix("#"), [])
        return ElementModifier(queue)


# -- Builders --


def build_page_context(
    request: Request,
    page: Page,
    params: Mapping[str, str],
    session: Session | None,
    *,
    renderer: Renderer,
    dev: bool = False,
    nocache: int = 0,
) -> PageContext:
    """Fresh context for a page request; consumes pending flash values."""
    flash = session.consume_flash() if session is not None else {}
    meta = RequestMeta.from_request(request, params, dev=dev, nocache=nocache, flash=flash)
    return PageContext(request=request, page=page, meta=meta, session=session, renderer=renderer)


def parse_action_body(raw: bytes) -> dict[str, Any]:
    """Decode ``{trigger, lastFocused, payload}``; anything else is ``{}``."""
    if not raw:
        return {}
    try:
        body = json_module.loads(raw)
    except (ValueError, UnicodeDecodeError):
        logger.debug("Ignoring undecodable action body")
        return {}
    return body if isinstance(body, dict) else {}


def build_action_context(
    request: Request,
    body: Mapping[str, Any],
    session: Session | None,
    *,
    module: str,
    method: str,
    renderer: Renderer,
) -> ActionContext:
    """Context for an action, rebuilt from the session snapshot."""
    snapshot = load_snapshot(session) if session is not None else Snapshot()
    return ActionContext(
        snapshot=snapshot,
        session=session,
        renderer=renderer,
        module=module,
        method=method,
        trigger=body.get("trigger"),
        last_focused=body.get("lastFocused"),
        payload=body.get("payload"),
    )
