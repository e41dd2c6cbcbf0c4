"""Tests for error types and the request error boundary."""

import logging

from conftest import make_request

import zen
from zen.errors import HTTPError, MethodNotAllowed, NotFound, ZenError
from zen.http.response import Response
from zen.server.errors import default_fragment_error, handle_http_error, handle_internal_error
from zen.server.terminal_errors import error_location, format_minimal_error


class TestErrorTypes:
    def test_hierarchy(self) -> None:
        assert issubclass(NotFound, HTTPError)
        assert issubclass(HTTPError, ZenError)

    def test_str(self) -> None:
        assert str(NotFound()) == "404: Not Found"
        assert str(HTTPError(status=418)) == "418"

    def test_method_not_allowed(self) -> None:
        exc = MethodNotAllowed(frozenset({"POST", "GET"}))
        assert exc.status == 405
        assert exc.headers == (("Allow", "GET, POST"),)


class TestHandleHTTPError:
    async def test_page_404_uses_renderer(self) -> None:
        async def render_not_found(request):
            return Response(f"nearest 404 for {request.path}", status=404)

        response = await handle_http_error(NotFound(), make_request("/missing"), render_not_found=render_not_found)
        assert response.text == "nearest 404 for /missing"

    async def test_action_404_is_fragment(self) -> None:
        async def render_not_found(request):
            raise AssertionError("not for actions")

        request = make_request("/@/books", method="POST")
        response = await handle_http_error(NotFound(), request, render_not_found=render_not_found)
        assert response.status == 404
        assert response.header("z-error") == "true"
        assert response.text == default_fragment_error(404, "Not Found")

    async def test_headers_carried(self) -> None:
        response = await handle_http_error(MethodNotAllowed(frozenset({"POST"})), make_request("/x"))
        assert response.status == 405
        assert response.header("Allow") == "POST"
        assert response.header("z-error") == ""

    async def test_internal_error(self, caplog) -> None:
        with caplog.at_level(logging.ERROR):
            response = await handle_internal_error(RuntimeError("boom"), make_request("/@/books", method="POST"))
        assert response.status == 500
        assert response.header("z-error") == "true"
        assert "boom" in caplog.text


class TestErrorLocation:
    def test_raised_exception(self) -> None:
        try:
            raise ValueError("bad")
        except ValueError as exc:
            filename, line = error_location(exc)
            summary = format_minimal_error(exc)
        assert filename.endswith("test_errors.py")
        assert isinstance(line, int)
        assert summary.startswith("ValueError at ")
        assert summary.endswith(": bad")

    def test_no_traceback(self) -> None:
        assert error_location(ValueError("x")) == ("", None)


class TestLazyImports:
    def test_public_names(self) -> None:
        assert zen.App.__name__ == "App"
        assert zen.NotFound is NotFound
        assert "App" in zen.__all__
