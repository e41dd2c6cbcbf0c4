"""Tests for sessions: the session document, stores and middleware."""

import pytest
from conftest import make_request

from zen.errors import ConfigurationError
from zen.http.response import Response
from zen.middleware.sessions import (
    MemorySessionStore,
    RedisSessionStore,
    Session,
    SessionConfig,
    SessionMiddleware,
    get_session,
)


class TestSession:
    def test_set_get_delete(self) -> None:
        session = Session("s1")
        session.set("user", "ada")
        assert session.get("user") == "ada"
        assert "user" in session
        session.delete("user")
        assert session.get("user", "nobody") == "nobody"

    def test_flash_is_read_once(self) -> None:
        session = Session("s1")
        session.flash("notice", "Saved")
        assert session.get("notice") == "Saved"
        assert session.get("notice") is None
        assert "_flash" not in session

    def test_flash_shadows_plain_value_once(self) -> None:
        session = Session("s1", {"notice": "old"})
        session.flash("notice", "new")
        assert session.get("notice") == "new"
        assert session.get("notice") == "old"

    def test_consume_flash(self) -> None:
        session = Session("s1")
        session.flash("a", 1)
        session.flash("b", 2)
        assert session.consume_flash() == {"a": 1, "b": 2}
        assert session.consume_flash() == {}

    def test_public_values_hide_internal_keys(self) -> None:
        session = Session("s1", {"user": "ada", "_state_": {}, "_flash": {"x": 1}})
        assert session.public_values() == {"user": "ada"}

    def test_data_is_copied(self) -> None:
        raw = {"user": "ada"}
        session = Session("s1", raw)
        session.set("user", "grace")
        assert raw == {"user": "ada"}


class TestMemorySessionStore:
    async def test_save_and_load(self) -> None:
        store = MemorySessionStore()
        await store.save("s1", {"user": "ada"}, max_age=60)
        assert await store.load("s1") == {"user": "ada"}
        assert len(store) == 1

    async def test_loaded_copy_is_detached(self) -> None:
        store = MemorySessionStore()
        await store.save("s1", {"items": [1]}, max_age=60)
        loaded = await store.load("s1")
        loaded["items"].append(2)
        assert await store.load("s1") == {"items": [1]}

    async def test_expired(self) -> None:
        store = MemorySessionStore()
        await store.save("s1", {"user": "ada"}, max_age=-1)
        assert await store.load("s1") is None
        assert len(store) == 0

    async def test_missing_and_delete(self) -> None:
        store = MemorySessionStore()
        assert await store.load("nope") is None
        await store.save("s1", {}, max_age=60)
        await store.delete("s1")
        assert await store.load("s1") is None


class _FakeRedis:
    def __init__(self) -> None:
        self.items: dict[str, str] = {}
        self.expiry: dict[str, int] = {}
        self.closed = False

    async def get(self, key: str) -> str | None:
        return self.items.get(key)

    async def set(self, key: str, value: str, ex: int) -> None:
        self.items[key] = value
        self.expiry[key] = ex

    async def delete(self, key: str) -> None:
        self.items.pop(key, None)

    async def aclose(self) -> None:
        self.closed = True


class TestRedisSessionStore:
    async def test_round_trip_with_ttl(self) -> None:
        client = _FakeRedis()
        store = RedisSessionStore(client=client, prefix="t:")
        await store.save("s1", {"user": "ada"}, max_age=30)
        assert client.expiry == {"t:s1": 30}
        assert await store.load("s1") == {"user": "ada"}
        await store.delete("s1")
        assert await store.load("s1") is None

    async def test_close(self) -> None:
        client = _FakeRedis()
        await RedisSessionStore(client=client).close()
        assert client.closed


class TestSessionMiddleware:
    def test_empty_secret_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="secret_key"):
            SessionMiddleware(SessionConfig(secret_key=""))

    async def test_new_session_sets_signed_cookie(self) -> None:
        middleware = SessionMiddleware(SessionConfig(secret_key="k"))
        seen: list[str] = []

        async def handler(request):
            session = get_session()
            session.set("visits", 1)
            seen.append(session.id)
            return Response("ok")

        response = await middleware(make_request("/"), handler)
        (cookie,) = response.cookies
        assert cookie.name == "zen_session"
        assert cookie.value != seen[0]
        assert await middleware.store.load(seen[0]) == {"visits": 1}

    async def test_cookie_restores_session(self) -> None:
        middleware = SessionMiddleware(SessionConfig(secret_key="k"))

        async def first(request):
            get_session().set("user", "ada")
            return Response("ok")

        response = await middleware(make_request("/"), first)
        cookie = response.cookies[0]

        async def second(request):
            return Response(get_session().get("user"))

        again = await middleware(make_request("/", headers={"cookie": f"zen_session={cookie.value}"}), second)
        assert again.text == "ada"

    async def test_bad_signature_starts_fresh(self) -> None:
        middleware = SessionMiddleware(SessionConfig(secret_key="k"))
        ids: list[str] = []

        async def handler(request):
            ids.append(get_session().id)
            return Response("ok")

        await middleware(make_request("/", headers={"cookie": "zen_session=forged"}), handler)
        assert ids[0] != "forged"

    async def test_handler_error_keeps_writes(self) -> None:
        store = MemorySessionStore()
        middleware = SessionMiddleware(SessionConfig(secret_key="k"), store)
        ids: list[str] = []

        async def handler(request):
            session = get_session()
            ids.append(session.id)
            session.set("x", 1)
            session.flash("notice", "saved")
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await middleware(make_request("/"), handler)
        restored = Session(ids[0], await store.load(ids[0]))
        assert restored.get("x") == 1
        assert restored.get("notice") == "saved"


class TestGetSession:
    def test_outside_request(self) -> None:
        with pytest.raises(LookupError, match="No active session"):
            get_session()
