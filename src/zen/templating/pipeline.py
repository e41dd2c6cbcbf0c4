"""The render pipeline: locals, modifiers, styles.

Every render goes through ``render_document``. Full-page responses
serialise the whole document; actions pick individual elements from it
by id.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from zen.templating.dom import Document
from zen.templating.integration import TemplateCache
from zen.templating.locals import render_locals
from zen.templating.modifiers import ModificationQueue, apply_modifiers
from zen.templating.styles import StyleSheet, UtilityStyleSheet, apply_styles

if TYPE_CHECKING:
    from kida import Environment

    from zen.middleware.sessions import Session
    from zen.pages.meta import RequestMeta


class RenderTarget(Protocol):
    """What the pipeline reads from a page or action context."""

    @property
    def data(self) -> dict[str, Any]: ...

    @property
    def meta(self) -> RequestMeta: ...

    @property
    def modifications(self) -> ModificationQueue: ...


def render_document(
    template_text: str,
    ctx: RenderTarget,
    session: Session | None,
    *,
    templates: TemplateCache,
    stylesheet: StyleSheet,
) -> Document:
    document = render_locals(template_text, ctx.data, ctx.meta, session, templates)
    apply_modifiers(document, ctx.meta.pathname, ctx.modifications)
    apply_styles(document, stylesheet)
    return document


@dataclass(frozen=True, slots=True)
class Renderer:
    """The app's template environment plus its stylesheet.

    Built once in ``App._freeze()`` and handed to every context.
    """

    env: Environment
    stylesheet: StyleSheet = field(default_factory=UtilityStyleSheet)
    templates: TemplateCache = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "templates", TemplateCache(self.env))

    def render_document(self, template_text: str, ctx: RenderTarget, session: Session | None) -> Document:
        return render_document(
            template_text,
            ctx,
            session,
            templates=self.templates,
            stylesheet=self.stylesheet,
        )
