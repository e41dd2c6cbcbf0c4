"""Async database access and the document collection accessor.

SQLite via stdlib ``sqlite3`` and ``anyio`` worker threads. Two levels:

- raw SQL, rows as dicts: ``fetch``, ``fetch_one``, ``fetch_val``,
  ``execute``, ``execute_script`` and ``transaction()``;
- documents: ``db.collection("books")`` returns a ``Collection`` that
  stores JSON documents keyed by a generated ``_id``.

Connection URL format::

    sqlite:///path/to/site.db
    sqlite:///:memory:

The single connection is serialised by an ``anyio.Lock``.
"""

from __future__ import annotations

import json as json_module
import logging
import re
import threading
import time
import uuid
from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any

import anyio

from zen.data._sqlite import AsyncConnection
from zen.data.errors import ConnectionError, DataError, QueryError

logger = logging.getLogger("zen.data")

# Set inside transaction(): queries reuse its connection
_current_conn: ContextVar[AsyncConnection] = ContextVar("zen_db_conn")

# App-level database (set by the App for the lifespan and every request)
_db_var: ContextVar[Database] = ContextVar("zen_db")

COLLECTION_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def get_db() -> Database:
    """Return the app-level database instance.

    Raises ``LookupError`` if no database is configured or the app has
    not started yet.
    """
    return _db_var.get()


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    url: str
    echo: bool = False


def _parse_sqlite_path(url: str) -> str:
    """``sqlite:///site.db`` -> ``site.db``; ``sqlite:///:memory:`` -> ``:memory:``."""
    for prefix in ("sqlite:///", "sqlite://"):
        if url.startswith(prefix):
            return url[len(prefix) :]
    msg = f"Unsupported database URL: {url!r}. Supported: sqlite:///path"
    raise DataError(msg)


class Database:
    """Async SQLite database.

    Usage::

        db = Database("sqlite:///site.db")

        count = await db.fetch_val("SELECT COUNT(*) FROM books")
        rows = await db.fetch("SELECT * FROM books WHERE year > ?", 2000)

        books = db.collection("books")
        book = await books.insert_one({"title": "Dune"})

        async with db.transaction():
            await db.execute("DELETE FROM books WHERE _id = ?", book["_id"])
            await db.execute("INSERT INTO audit (event) VALUES (?)", "delete")
    """

    __slots__ = ("_async_lock", "_collections", "_config", "_conn", "_lock", "_path")

    def __init__(self, url: str, /, *, echo: bool = False) -> None:
        self._config = DatabaseConfig(url=url, echo=echo)
        self._path = _parse_sqlite_path(url)
        self._lock = threading.Lock()
        self._async_lock: anyio.Lock | None = None  # needs a running loop
        self._conn: AsyncConnection | None = None
        self._collections: dict[str, Collection] = {}

    @property
    def url(self) -> str:
        return self._config.url

    @property
    def connected(self) -> bool:
        return self._conn is not None

    # -- Connection management --

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[AsyncConnection]:
        if self._conn is None:
            await self.connect()

        try:
            conn = _current_conn.get()
        except LookupError:
            pass
        else:
            yield conn
            return

        if self._async_lock is None:
            self._async_lock = anyio.Lock()
        async with self._async_lock:
            assert self._conn is not None
            yield self._conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Run several statements atomically.

        Commits on clean exit, rolls back on exception. A nested
        ``transaction()`` joins the outer one.
        """
        if self._conn is None:
            await self.connect()

        try:
            _current_conn.get()
        except LookupError:
            pass
        else:
            yield
            return

        if self._async_lock is None:
            self._async_lock = anyio.Lock()
        async with self._async_lock:
            assert self._conn is not None
            conn = self._conn
            token = _current_conn.set(conn)
            try:
                conn.autocommit = False
                yield
                await conn.commit()
            except BaseException:
                await conn.rollback()
                raise
            finally:
                conn.autocommit = True
                _current_conn.reset(token)

    def _log_query(self, sql: str, params: Sequence[Any], elapsed: float) -> None:
        if not self._config.echo:
            return
        param_str = f"  params={tuple(params)!r}" if params else ""
        logger.info("%6.1fms  %s%s", elapsed * 1000, sql, param_str)

    # -- Query API --

    async def fetch(self, sql: str, /, *params: Any) -> list[dict[str, Any]]:
        t0 = time.perf_counter()
        async with self._connection() as conn:
            try:
                cursor = await conn.execute(sql, params)
                rows = await cursor.fetchall()
                columns = [desc[0] for desc in cursor.description]
                return [dict(zip(columns, row, strict=True)) for row in rows]
            except Exception as exc:
                raise QueryError(str(exc)) from exc
            finally:
                self._log_query(sql, params, time.perf_counter() - t0)

    async def fetch_one(self, sql: str, /, *params: Any) -> dict[str, Any] | None:
        t0 = time.perf_counter()
        async with self._connection() as conn:
            try:
                cursor = await conn.execute(sql, params)
                row = await cursor.fetchone()
                if row is None:
                    return None
                columns = [desc[0] for desc in cursor.description]
                return dict(zip(columns, row, strict=True))
            except Exception as exc:
                raise QueryError(str(exc)) from exc
            finally:
                self._log_query(sql, params, time.perf_counter() - t0)

    async def fetch_val(self, sql: str, /, *params: Any) -> Any:
        """First column of the first row (``COUNT``, ``MAX``...), or ``None``."""
        row = await self.fetch_one(sql, *params)
        if row is None:
            return None
        return next(iter(row.values()))

    async def execute(self, sql: str, /, *params: Any) -> int:
        """Run an INSERT/UPDATE/DELETE and return the rows affected."""
        t0 = time.perf_counter()
        async with self._connection() as conn:
            try:
                cursor = await conn.execute(sql, params)
                return cursor.rowcount
            except Exception as exc:
                raise QueryError(str(exc)) from exc
            finally:
                self._log_query(sql, params, time.perf_counter() - t0)

    async def execute_script(self, sql: str, /) -> None:
        t0 = time.perf_counter()
        async with self._connection() as conn:
            try:
                await conn.executescript(sql)
            except Exception as exc:
                raise QueryError(str(exc)) from exc
            finally:
                self._log_query(sql, (), time.perf_counter() - t0)

    # -- Documents --

    def collection(self, name: str) -> Collection:
        """The document collection *name* (created on first write)."""
        if not COLLECTION_NAME_RE.match(name):
            msg = f"Invalid collection name: {name!r}"
            raise DataError(msg)
        found = self._collections.get(name)
        if found is None:
            found = self._collections[name] = Collection(self, name)
        return found

    # -- Lifecycle --

    async def connect(self) -> None:
        """Open the connection. Called on first query; call it at startup to fail fast."""
        if self._conn is not None:
            return
        from zen.data._sqlite import connect as sqlite_connect

        try:
            conn = await sqlite_connect(self._path)
            await conn.execute("PRAGMA journal_mode=WAL")
            await conn.execute("PRAGMA foreign_keys=ON")
        except Exception as exc:
            msg = f"Cannot open database {self._config.url!r}: {exc}"
            raise ConnectionError(msg) from exc
        with self._lock:
            if self._conn is None:
                self._conn = conn
                logger.info("Connected to %s", self._config.url)
                return
        await conn.close()

    async def disconnect(self) -> None:
        with self._lock:
            conn, self._conn = self._conn, None
        if conn is not None:
            await conn.close()

    async def __aenter__(self) -> Database:
        await self.connect()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.disconnect()


class Collection:
    """Schemaless JSON documents in one table.

    Each document is stored whole in ``doc`` and keyed by ``_id`` (a
    uuid4 hex string, assigned on insert). Queries match by equality on
    top-level fields::

        books = db.collection("books")
        await books.insert_one({"title": "Dune", "year": 1965})
        await books.find({"year": 1965})
        await books.update_one({"title": "Dune"}, {"year": 1966})
    """

    __slots__ = ("_db", "_ready", "name")

    def __init__(self, db: Database, name: str) -> None:
        self._db = db
        self.name = name
        self._ready = False

    async def _ensure_table(self) -> None:
        if self._ready:
            return
        await self._db.execute(
            f'CREATE TABLE IF NOT EXISTS "{self.name}" (_id TEXT PRIMARY KEY, doc TEXT NOT NULL)'
        )
        self._ready = True

    @staticmethod
    def _where(query: Mapping[str, Any] | None) -> tuple[str, list[Any]]:
        if not query:
            return "", []
        clauses: list[str] = []
        params: list[Any] = []
        for key, value in query.items():
            if key == "_id":
                clauses.append("_id = ?")
                params.append(str(value))
                continue
            if not COLLECTION_NAME_RE.match(key):
                msg = f"Invalid field name in query: {key!r}"
                raise QueryError(msg)
            clauses.append(f"json_extract(doc, '$.{key}') = ?")
            params.append(value)
        return " WHERE " + " AND ".join(clauses), params

    @staticmethod
    def _load(row: Mapping[str, Any]) -> dict[str, Any]:
        doc = json_module.loads(row["doc"])
        doc["_id"] = row["_id"]
        return doc

    async def insert_one(self, document: Mapping[str, Any]) -> dict[str, Any]:
        """Store a copy of *document* and return it with its ``_id``."""
        await self._ensure_table()
        doc = {k: v for k, v in document.items() if k != "_id"}
        doc_id = uuid.uuid4().hex
        await self._db.execute(
            f'INSERT INTO "{self.name}" (_id, doc) VALUES (?, ?)',
            doc_id,
            json_module.dumps(doc, default=str),
        )
        return {"_id": doc_id, **doc}

    async def find_one(self, query: Mapping[str, Any] | None = None) -> dict[str, Any] | None:
        await self._ensure_table()
        where, params = self._where(query)
        row = await self._db.fetch_one(f'SELECT _id, doc FROM "{self.name}"{where} LIMIT 1', *params)
        return self._load(row) if row is not None else None

    async def find(self, query: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        await self._ensure_table()
        where, params = self._where(query)
        rows = await self._db.fetch(f'SELECT _id, doc FROM "{self.name}"{where} ORDER BY rowid', *params)
        return [self._load(row) for row in rows]

    async def update_one(self, query: Mapping[str, Any], changes: Mapping[str, Any]) -> dict[str, Any] | None:
        """Merge *changes* into the first match; return the updated document."""
        async with self._db.transaction():
            current = await self.find_one(query)
            if current is None:
                return None
            doc_id = current.pop("_id")
            current.update({k: v for k, v in changes.items() if k != "_id"})
            await self._db.execute(
                f'UPDATE "{self.name}" SET doc = ? WHERE _id = ?',
                json_module.dumps(current, default=str),
                doc_id,
            )
        return {"_id": doc_id, **current}

    async def delete_one(self, query: Mapping[str, Any]) -> dict[str, Any] | None:
        """Delete the first match; return what was deleted."""
        async with self._db.transaction():
            current = await self.find_one(query)
            if current is None:
                return None
            await self._db.execute(f'DELETE FROM "{self.name}" WHERE _id = ?', current["_id"])
        return current

    async def count(self, query: Mapping[str, Any] | None = None) -> int:
        await self._ensure_table()
        where, params = self._where(query)
        value = await self._db.fetch_val(f'SELECT COUNT(*) FROM "{self.name}"{where}', *params)
        return int(value or 0)
