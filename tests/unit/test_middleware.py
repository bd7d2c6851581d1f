"""
Unit tests for the middleware pipeline, CORS and the access log.
"""

import json
import logging

import pytest

from httpfs.http.outcome import EmptyBody, StreamBody
from httpfs.http.response import HTTPResponse, ResponseBuilder
from httpfs.middleware.logging import _body_size
from httpfs.middleware import (
    CORSConfig,
    CORSMiddleware,
    LoggingMiddleware,
    Middleware,
    MiddlewarePipeline,
    RequestLog,
)


async def final_handler(request):
    return ResponseBuilder().text("final").build()


class Tag(Middleware):
    def __init__(self, label, trace):
        self.label = label
        self.trace = trace

    async def __call__(self, request, next):
        self.trace.append(f"{self.label}:before")
        response = await next(request)
        self.trace.append(f"{self.label}:after")
        return response


class TestPipeline:
    @pytest.mark.asyncio
    async def test_first_added_is_outermost(self, make_request):
        trace = []
        pipeline = MiddlewarePipeline().use(Tag("a", trace), Tag("b", trace))

        await pipeline.wrap(final_handler)(make_request("GET"))

        assert trace == ["a:before", "b:before", "b:after", "a:after"]

    @pytest.mark.asyncio
    async def test_empty_pipeline(self, make_request):
        handler = MiddlewarePipeline().wrap(final_handler)
        response = await handler(make_request("GET"))

        assert response.status == 200

    def test_len_and_iter(self):
        a, b = Tag("a", []), Tag("b", [])
        pipeline = MiddlewarePipeline().add(a).add(b)

        assert len(pipeline) == 2
        assert list(pipeline) == [a, b]
        assert a.name == "Tag"


class TestCORS:
    @pytest.mark.asyncio
    async def test_headers_added(self, make_request):
        response = await CORSMiddleware()(make_request("GET"), final_handler)

        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert response.headers["Access-Control-Allow-Methods"] == "*"
        assert response.headers["Access-Control-Allow-Headers"] == "*"
        assert response.headers["Content-Type"] == "text/plain"

    @pytest.mark.asyncio
    async def test_preflight(self, make_request):
        async def must_not_run(request):
            raise AssertionError("preflight reached the handler")

        response = await CORSMiddleware()(make_request("OPTIONS"), must_not_run)

        assert response.status == 200
        assert isinstance(response.body, EmptyBody)
        assert response.headers == CORSConfig().headers()

    @pytest.mark.asyncio
    async def test_custom_origin(self, make_request):
        middleware = CORSMiddleware(CORSConfig(allow_origin="https://app.example"))
        response = await middleware(make_request("GET"), final_handler)

        assert response.headers["Access-Control-Allow-Origin"] == "https://app.example"


class TestAccessLog:
    @pytest.mark.asyncio
    async def test_text_line(self, make_request, caplog):
        with caplog.at_level(logging.INFO, logger="httpfs.access"):
            response = await LoggingMiddleware()(make_request("GET", "/a.txt?x=1"), final_handler)

        assert '127.0.0.1 - - [' in caplog.text
        assert '"GET /a.txt" 200 5 ' in caplog.text
        assert response.has_header("X-Request-ID")

    @pytest.mark.asyncio
    async def test_json_line(self, make_request, caplog):
        with caplog.at_level(logging.INFO, logger="httpfs.access"):
            await LoggingMiddleware(log_format="json")(make_request("PUT", "/a.txt"), final_handler)

        entry = json.loads(caplog.records[-1].getMessage())
        assert entry["method"] == "PUT"
        assert entry["path"] == "/a.txt"
        assert entry["status_code"] == 200
        assert entry["content_length"] == 5

    @pytest.mark.asyncio
    async def test_request_id_optional(self, make_request):
        middleware = LoggingMiddleware(include_request_id=False)
        response = await middleware(make_request("GET"), final_handler)

        assert not response.has_header("X-Request-ID")

    @pytest.mark.asyncio
    async def test_exception_logged_and_raised(self, make_request, caplog):
        async def broken(request):
            raise RuntimeError("boom")

        with caplog.at_level(logging.ERROR, logger="httpfs.access"):
            with pytest.raises(RuntimeError):
                await LoggingMiddleware()(make_request("GET", "/x"), broken)

        assert "Request failed: GET /x" in caplog.text

    def test_unknown_size_text(self):
        entry = RequestLog(
            request_id="abcd1234",
            method="GET",
            path="/big.iso",
            query="",
            client_ip="",
            user_agent="-",
            status_code=200,
            content_length=None,
            duration_ms=1.0,
            timestamp="01/Jan/2026:00:00:00 +0000",
        )

        assert entry.to_text() == '- - - [01/Jan/2026:00:00:00 +0000] "GET /big.iso" 200 - 1.00ms'

    def test_body_size(self):
        assert _body_size(HTTPResponse(body=StreamBody(stream=None, length=7))) == 7
        assert _body_size(HTTPResponse(body=StreamBody(stream=None))) is None
        assert _body_size(HTTPResponse()) == 0
