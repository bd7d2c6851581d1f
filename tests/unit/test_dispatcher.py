"""
Unit tests for the request dispatcher.
"""

import logging

import pytest

from httpfs.dispatcher import Dispatcher
from httpfs.http.outcome import BytesBody, EmptyBody, Failure, Outcome, StreamBody
from httpfs.http.registry import MethodRegistry
from httpfs.http.status_codes import HTTPStatus
from httpfs.middleware.base import Middleware
from httpfs.middleware.logging import LoggingMiddleware

from conftest import read_all


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "*",
    "Access-Control-Allow-Headers": "*",
}


def assert_cors(response):
    for name, value in CORS_HEADERS.items():
        assert response.get_header(name) == value


class TestRouting:
    @pytest.mark.asyncio
    async def test_get_file(self, dispatcher, make_request):
        response = await dispatcher.dispatch(make_request("GET", "/hello.txt"))

        assert response.status == 200
        assert response.get_header("Content-Type") == "text/plain"
        assert isinstance(response.body, StreamBody)
        assert await read_all(response.body.stream) == b"hello"
        assert_cors(response)

    @pytest.mark.asyncio
    async def test_root_same_as_index(self, dispatcher, make_request):
        root = await dispatcher.dispatch(make_request("GET", "/"))
        index = await dispatcher.dispatch(make_request("GET", "/index.html"))

        assert root.status == index.status == 200
        assert root.get_header("Content-Type") == index.get_header("Content-Type") == "text/html"
        assert await read_all(root.body.stream) == await read_all(index.body.stream)

    @pytest.mark.asyncio
    async def test_unknown_method(self, dispatcher, make_request):
        response = await dispatcher.dispatch(make_request("PATCH", "/hello.txt"))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.body == BytesBody(b"Method PATCH not allowed.")
        assert response.get_header("Content-Type") == "text/plain"
        assert_cors(response)

    @pytest.mark.asyncio
    async def test_put_then_get(self, dispatcher, make_request):
        put = await dispatcher.dispatch(make_request("PUT", "/notes/../a.txt", body=[b"round", b"trip"]))
        get = await dispatcher.dispatch(make_request("GET", "/a.txt"))

        assert put.status == HTTPStatus.NO_CONTENT
        assert await read_all(get.body.stream) == b"roundtrip"

    @pytest.mark.asyncio
    async def test_mkcol_twice(self, dispatcher, make_request):
        first = await dispatcher.dispatch(make_request("MKCOL", "/d"))
        second = await dispatcher.dispatch(make_request("MKCOL", "/d"))

        assert first.status == HTTPStatus.NO_CONTENT
        assert second.status == HTTPStatus.BAD_REQUEST
        assert second.body == BytesBody(b"Directory already exists")

    @pytest.mark.asyncio
    async def test_missing_directory_listing(self, dispatcher, make_request):
        response = await dispatcher.dispatch(make_request("GET", "/missing-dir/"))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == BytesBody(b"File not found")


class TestRecovery:
    """Handler errors come back as responses, never as exceptions."""

    @pytest.mark.asyncio
    async def test_traversal_is_forbidden(self, dispatcher, make_request):
        response = await dispatcher.dispatch(make_request("GET", "/../secret"))

        assert response.status == HTTPStatus.FORBIDDEN
        assert response.body == BytesBody(b"Forbidden")
        assert_cors(response)

    @pytest.mark.asyncio
    async def test_encoded_traversal_is_forbidden(self, dispatcher, make_request):
        response = await dispatcher.dispatch(make_request("DELETE", "/%2e%2e%2fsecret"))
        assert response.status == HTTPStatus.FORBIDDEN

    @pytest.mark.asyncio
    async def test_unmapped_error_is_500_with_message(self, dispatcher, make_request, caplog):
        with caplog.at_level(logging.ERROR, logger="httpfs.dispatcher"):
            response = await dispatcher.dispatch(make_request("DELETE", "/docs"))

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.get_header("Content-Type") == "text/plain"
        assert isinstance(response.body, BytesBody)
        assert response.body.data
        assert "DELETE /docs failed" in caplog.text

    @pytest.mark.asyncio
    async def test_custom_failure_status(self, make_request):
        async def teapot(request):
            raise Failure("short and stout", status=418)

        dispatcher = Dispatcher(MethodRegistry({"GET": teapot}))
        response = await dispatcher.dispatch(make_request("GET", "/"))

        assert response.status == 418
        assert response.body == BytesBody(b"short and stout")

    @pytest.mark.asyncio
    async def test_outcome_type_used(self, make_request):
        async def json_handler(request):
            return Outcome(body=b"{}", type="application/json")

        dispatcher = Dispatcher(MethodRegistry({"GET": json_handler}))
        response = await dispatcher.dispatch(make_request("GET", "/"))

        assert response.get_header("Content-Type") == "application/json"


class TestPreflight:
    @pytest.mark.asyncio
    async def test_options_short_circuits(self, dispatcher, make_request):
        response = await dispatcher.dispatch(make_request("OPTIONS", "/hello.txt"))

        assert response.status == HTTPStatus.OK
        assert isinstance(response.body, EmptyBody)
        assert_cors(response)
        assert not response.has_header("Content-Type")

    @pytest.mark.asyncio
    async def test_options_does_not_validate_path(self, dispatcher, make_request):
        response = await dispatcher.dispatch(make_request("OPTIONS", "/../../etc/passwd"))
        assert response.status == HTTPStatus.OK

    @pytest.mark.asyncio
    async def test_options_never_reaches_registry(self, make_request):
        called = []

        async def handler(request):
            called.append(request)
            return Outcome()

        dispatcher = Dispatcher(MethodRegistry({"OPTIONS": handler}, default=handler))
        await dispatcher.dispatch(make_request("OPTIONS", "/"))

        assert called == []


class TestMiddleware:
    @pytest.mark.asyncio
    async def test_user_middleware_wraps_cors(self, sandbox, make_request):
        seen = []

        class Recorder(Middleware):
            async def __call__(self, request, next):
                response = await next(request)
                seen.append(response.get_header("Access-Control-Allow-Origin"))
                return response

        dispatcher = Dispatcher.for_root(sandbox, middleware=[Recorder()])
        await dispatcher.dispatch(make_request("OPTIONS", "/"))
        await dispatcher.dispatch(make_request("GET", "/missing"))

        assert seen == ["*", "*"]

    @pytest.mark.asyncio
    async def test_access_log(self, sandbox, make_request, caplog):
        dispatcher = Dispatcher.for_root(sandbox, middleware=[LoggingMiddleware()])

        with caplog.at_level(logging.INFO, logger="httpfs.access"):
            response = await dispatcher.dispatch(make_request("GET", "/missing"))

        assert '"GET /missing" 404' in caplog.text
        assert len(response.get_header("X-Request-ID")) == 8
