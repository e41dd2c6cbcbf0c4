"""Models: a validated document collection.

::

    from zen.data.model import Model
    from zen.validation import email, max_length, optional, required

    Book = Model("books", {
        "title": [required, max_length(200)],
        "author_email": [optional, email],
    })

    # actions/books.py
    async def add(ctx, data):
        book, invalid = await Book.create(ctx.payload or {})
        if invalid:
            data["invalid"] = invalid
            return ctx.render("#book-form")
        data["books"] = await Book.read_all()
        ctx.render("#book-list")

Expected failures come back as values: ``create`` and ``update`` return
``(document, None)`` or ``(None, {field: message})``. A missing database
is a configuration bug and raises ``DataError``.
"""

import logging
from collections.abc import Mapping
from typing import Any

from zen.data.database import Collection, Database, get_db
from zen.data.errors import DataError
from zen.validation import Validator, validate

logger = logging.getLogger("zen.data")

type Invalid = dict[str, str] | None
type Query = str | Mapping[str, Any] | None


def _query(query: Query) -> dict[str, Any]:
    """A bare string is an ``_id``."""
    if query is None:
        return {}
    if isinstance(query, str):
        return {"_id": query}
    return dict(query)


class Model:
    """CRUD and validation over one collection.

    Keys not in *schema* are dropped before writing (``_id`` aside). The
    database defaults to the app's (``get_db()``), resolved per call.
    """

    __slots__ = ("_db", "name", "schema")

    def __init__(
        self,
        collection: str,
        schema: Mapping[str, list[Validator]],
        *,
        db: Database | None = None,
    ) -> None:
        self.name = collection
        self.schema = dict(schema)
        self._db = db

    @property
    def collection(self) -> Collection:
        db = self._db
        if db is None:
            try:
                db = get_db()
            except LookupError:
                msg = f"Model {self.name!r} used without a database. Set AppConfig.database_url."
                raise DataError(msg) from None
        return db.collection(self.name)

    def _clean(self, doc: Mapping[str, Any]) -> dict[str, Any]:
        return {k: v for k, v in doc.items() if k in self.schema}

    # -- CRUD --

    async def create(self, doc: Mapping[str, Any]) -> tuple[dict[str, Any] | None, Invalid]:
        invalid = self.validate_all(doc)
        if invalid:
            logger.debug("Invalid %s document: %s", self.name, invalid)
            return None, invalid
        return await self.collection.insert_one(self._clean(doc)), None

    async def read(self, query: Query) -> dict[str, Any] | None:
        return await self.collection.find_one(_query(query))

    async def read_all(self, query: Query = None) -> list[dict[str, Any]]:
        return await self.collection.find(_query(query))

    async def update(self, query: Query, changes: Mapping[str, Any]) -> tuple[dict[str, Any] | None, Invalid]:
        """Validate the given fields only, then merge them in.

        ``_id`` is immutable and ignored. ``(None, None)`` means nothing
        matched.
        """
        changes = {k: v for k, v in changes.items() if k != "_id"}
        invalid = self.validate_partial(changes)
        if invalid:
            return None, invalid
        return await self.collection.update_one(_query(query), self._clean(changes)), None

    async def delete(self, query: Query) -> dict[str, Any] | None:
        return await self.collection.delete_one(_query(query))

    async def count(self, query: Query = None) -> int:
        return await self.collection.count(_query(query))

    async def exists(self, query: Query) -> bool:
        return await self.count(query) > 0

    # -- Validation --

    def validate_all(self, doc: Mapping[str, Any]) -> Invalid:
        """``{field: first message}`` for every failing field, or ``None``."""
        result = validate(doc, self.schema)
        return result.first_errors() or None

    def validate_partial(self, doc: Mapping[str, Any]) -> Invalid:
        """Like ``validate_all`` but only for the fields present in *doc*."""
        result = validate(doc, self.schema, partial=True)
        return result.first_errors() or None

    def validate(self, invalid: Invalid, name: str, value: Any) -> Invalid:
        """Re-check one field and fold the outcome into *invalid*.

        Typical in an action bound to an input's change event::

            data["invalid"] = Book.validate(data.get("invalid"), "title", ctx.payload)
        """
        merged = dict(invalid or {})
        errors = self.validate_partial({name: value}) or {}
        if name in errors:
            merged[name] = errors[name]
        else:
            merged.pop(name, None)
        return merged or None

    def unvalidate(self, invalid: Invalid, name: str) -> Invalid:
        """Drop *name* from *invalid*; ``None`` once nothing is left."""
        merged = dict(invalid or {})
        merged.pop(name, None)
        return merged or None

    def __repr__(self) -> str:
        return f"Model({self.name!r}, fields={sorted(self.schema)!r})"
