"""
Unit tests for HTTPConnection, driven through in-memory streams.
"""

import asyncio

import h11
import pytest

from httpfs.core.connection import HTTPConnection
from httpfs.http.outcome import StreamBody
from httpfs.http.response import HTTPResponse

from conftest import iter_chunks


class RecordingWriter:
    """Collects everything the connection writes."""

    def __init__(self):
        self.data = b""
        self.closed = False

    def write(self, data):
        self.data += data

    async def drain(self):
        pass

    def get_extra_info(self, name, default=None):
        return ("127.0.0.1", 50000) if name == "peername" else default

    def close(self):
        self.closed = True

    async def wait_closed(self):
        pass


async def open_connection(raw_request: bytes):
    reader = asyncio.StreamReader()
    reader.feed_data(raw_request)
    writer = RecordingWriter()
    connection = HTTPConnection(reader, writer)
    request = await connection.next_request()
    return connection, writer, request


class TestNextRequest:
    @pytest.mark.asyncio
    async def test_request_fields(self):
        _, _, request = await open_connection(
            b"GET /a.txt?x=1 HTTP/1.1\r\nHost: localhost\r\nX-Tag: a\r\nX-Tag: b\r\n\r\n"
        )

        assert request.method == "GET"
        assert request.path == "/a.txt"
        assert request.headers["x-tag"] == "a, b"
        assert request.client_address == ("127.0.0.1", 50000)


class TestSendResponse:
    @pytest.mark.asyncio
    async def test_stream_cut_at_declared_length(self):
        """A file that grew after stat() is sent only up to Content-Length."""
        connection, writer, _ = await open_connection(
            b"GET /grown.txt HTTP/1.1\r\nHost: localhost\r\n\r\n"
        )
        body = StreamBody(iter_chunks([b"hello", b"world"]), length=7)

        await connection.send_response(HTTPResponse(body=body))

        head, _, payload = writer.data.partition(b"\r\n\r\n")
        assert b"Content-Length: 7" in head
        assert payload == b"hellowo"
        assert await connection.finish_cycle()

    @pytest.mark.asyncio
    async def test_short_stream_refused(self):
        connection, _, _ = await open_connection(
            b"GET /shrunk.txt HTTP/1.1\r\nHost: localhost\r\n\r\n"
        )
        body = StreamBody(iter_chunks([b"abc"]), length=10)

        with pytest.raises(h11.LocalProtocolError):
            await connection.send_response(HTTPResponse(body=body))

    @pytest.mark.asyncio
    async def test_head_sends_no_body(self):
        connection, writer, _ = await open_connection(
            b"HEAD /a.txt HTTP/1.1\r\nHost: localhost\r\n\r\n"
        )
        body = StreamBody(iter_chunks([b"hello"]), length=5)

        await connection.send_response(HTTPResponse(body=body), head_only=True)

        assert writer.data.endswith(b"\r\n\r\n")
        assert b"Content-Length: 5" in writer.data


class TestSend:
    @pytest.mark.asyncio
    async def test_connection_closed_event_rejected(self):
        connection, writer, _ = await open_connection(
            b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n"
        )

        with pytest.raises(RuntimeError):
            await connection.send(h11.ConnectionClosed())

        assert writer.data == b""
