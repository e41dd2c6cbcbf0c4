"""The per-session snapshot of the last render.

After a page renders (and after every action) the context's data,
request metadata and page are stored in the session under ``_state_``.
An action rebuilds its context from it, renders the same template with
the updated data and sends back only the elements it names.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from zen.middleware.sessions import Session
from zen.pages.meta import RequestMeta
from zen.pages.types import Page

SNAPSHOT_KEY = "_state_"


@dataclass(frozen=True, slots=True)
class Snapshot:
    data: dict[str, Any] = field(default_factory=dict)
    meta: RequestMeta = field(default_factory=RequestMeta)
    page: Page = field(default_factory=lambda: Page.from_snapshot({}))

    def to_dict(self) -> dict[str, Any]:
        return {"$": self.data, "$meta": self.meta.to_dict(), "page": self.page.to_snapshot()}

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Snapshot:
        data = raw.get("$")
        meta = raw.get("$meta")
        page = raw.get("page")
        return cls(
            data=dict(data) if isinstance(data, Mapping) else {},
            meta=RequestMeta.from_dict(meta) if isinstance(meta, Mapping) else RequestMeta(),
            page=Page.from_snapshot(page if isinstance(page, Mapping) else {}),
        )


def load_snapshot(session: Session) -> Snapshot:
    """The stored snapshot, or an empty one (data ``{}``, path ``/``)."""
    raw = session.get(SNAPSHOT_KEY)
    if not isinstance(raw, Mapping):
        return Snapshot()
    return Snapshot.from_dict(raw)


def save_snapshot(session: Session, snapshot: Snapshot) -> None:
    session.set(SNAPSHOT_KEY, snapshot.to_dict())
