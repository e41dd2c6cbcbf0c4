"""Async data access for zen: SQL rows as dicts, JSON document
collections, and validated models on top.

::

    from zen.data import Database, Model

    app = App(AppConfig(database_url="sqlite:///site.db"))

    Book = Model("books", {"title": [required]})
    book, invalid = await Book.create({"title": "Dune"})

Runs on stdlib ``sqlite3`` in ``anyio`` worker threads.
"""

from zen.data.database import Collection, Database, get_db
from zen.data.errors import ConnectionError, DataError, QueryError
from zen.data.model import Model

__all__ = [
    "Collection",
    "ConnectionError",
    "DataError",
    "Database",
    "Model",
    "QueryError",
    "get_db",
]
