"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

One client connection: asyncio streams underneath, the h11 protocol state
machine on top.

=============================================================================
WHY h11?
=============================================================================

TCP is a byte stream, not a message protocol. A request can arrive split
across any number of reads, and its body may be framed by Content-Length
or by chunked encoding. h11 does all of the framing and none of the I/O:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   socket bytes ──► conn.receive_data() ──► conn.next_event()        │
    │                                                │                     │
    │                            Request / Data / EndOfMessage / NEED_DATA │
    │                                                                      │
    │   events ──► conn.send(event) ──► bytes ──► writer.write()          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Because the body arrives as separate Data events, a PUT can be written to
disk while it is still being received, instead of being buffered whole.

=============================================================================
KEEP-ALIVE CYCLE
=============================================================================

    Request ──► (body events) ──► send_response() ──► finish_cycle()
       ▲                                                   │
       │              both sides DONE: start_next_cycle()  │
       └───────────────────────────────────────────────────┘
                    otherwise (MUST_CLOSE, error): close

A handler that never read the request body (a 403 on an upload, a GET with
a stray body) leaves the client in SEND_BODY; finish_cycle() drains what is
left so the next request starts at a message boundary.

=============================================================================
"""

import datetime
import email.utils
import logging
from itertools import count
from typing import AsyncIterator, Dict, List, Optional, Tuple

import h11

from ..http.outcome import BytesBody, StreamBody
from ..http.request import FileRequest
from ..http.response import HTTPResponse
from ..http.status_codes import status_allows_body


logger = logging.getLogger(__name__)


MAX_RECV = 2 ** 16

# Headers the connection writes itself
_FRAMING_HEADERS = {"content-length", "transfer-encoding", "date", "server"}


def format_date_time(dt: Optional[datetime.datetime] = None) -> str:
    """Generate an RFC 7231 / RFC 9110 IMF-fixdate string."""
    if dt is None:
        dt = datetime.datetime.now(datetime.timezone.utc)
    return email.utils.format_datetime(dt, usegmt=True)


class RequestBodyStream:
    """
    The body of the current request as an async iterator of bytes.

    Each iteration pulls the next h11 Data event off the connection; the
    iterator ends at EndOfMessage. Requests without a body end immediately.
    A client that hangs up mid-body surfaces as h11.RemoteProtocolError
    from the iteration, which the PUT handler turns into a 500.
    """

    def __init__(self, connection: "HTTPConnection"):
        self._connection = connection
        self._done = False

    def __aiter__(self) -> "RequestBodyStream":
        return self

    async def __anext__(self) -> bytes:
        while not self._done:
            event = await self._connection.next_event()
            if type(event) is h11.Data:
                if not event.data:
                    continue
                return bytes(event.data)
            if type(event) is h11.EndOfMessage:
                self._done = True
                break
            self._done = True
            raise ConnectionError(f"Connection ended inside request body: {event!r}")
        raise StopAsyncIteration

    async def drain(self) -> int:
        """Discard whatever is left of the body. Returns the bytes skipped."""
        skipped = 0
        async for chunk in self:
            skipped += len(chunk)
        return skipped


class HTTPConnection:
    """
    h11 wrapper around one asyncio (reader, writer) pair.

    The server's per-connection task drives it:

        connection = HTTPConnection(reader, writer)
        while True:
            request = await connection.next_request()
            if request is None:
                break
            response = await dispatcher.dispatch(request)
            await connection.send_response(response, head_only=...)
            if not await connection.finish_cycle():
                break
        await connection.shutdown()
    """

    _next_id = count()

    def __init__(
        self,
        reader,
        writer,
        server_name: str = "httpfs",
        max_recv: int = MAX_RECV,
    ):
        self.reader = reader
        self.writer = writer
        self.max_recv = max_recv
        self.conn = h11.Connection(h11.SERVER)
        self.ident = " ".join([server_name, h11.PRODUCT_ID]).encode("ascii")
        # Distinguishes simultaneous clients in debug output
        self.id = next(HTTPConnection._next_id)

        peer = writer.get_extra_info("peername")
        if isinstance(peer, tuple) and len(peer) >= 2:
            self.client_address: Tuple[str, int] = (str(peer[0]), int(peer[1]))
        else:
            self.client_address = ("", 0)

        self.requests_handled = 0
        self._body: Optional[RequestBodyStream] = None
        self._expects_continue = False
        self._continue_sent = False

    # =========================================================================
    # LOW-LEVEL I/O
    # =========================================================================

    async def send(self, event) -> None:
        if type(event) is h11.ConnectionClosed:
            raise RuntimeError("ConnectionClosed is not sent; use shutdown()")
        data = self.conn.send(event)
        try:
            if data:
                self.writer.write(data)
                await self.writer.drain()
        except BaseException:
            # The peer is gone; h11 must not believe the event went out
            self.conn.send_failed()
            raise

    async def _read_from_peer(self) -> None:
        if self.conn.they_are_waiting_for_100_continue:
            logger.debug(f"[conn {self.id}] Sending 100 Continue")
            go_ahead = h11.InformationalResponse(status_code=100, headers=self.basic_headers())
            await self.send(go_ahead)
            self._continue_sent = True
        try:
            data = await self.reader.read(self.max_recv)
        except (ConnectionError, OSError) as exc:
            # They've stopped listening; h11 treats b"" as EOF
            logger.debug(f"[conn {self.id}] Error reading from peer: {exc}")
            data = b""
        self.conn.receive_data(data)

    async def next_event(self):
        while True:
            event = self.conn.next_event()
            if event is h11.NEED_DATA:
                await self._read_from_peer()
                continue
            return event

    def basic_headers(self) -> List[Tuple[str, bytes]]:
        # HTTP requires these headers in all responses
        return [
            ("Date", format_date_time().encode("ascii")),
            ("Server", self.ident),
        ]

    # =========================================================================
    # REQUESTS
    # =========================================================================

    async def next_request(self) -> Optional[FileRequest]:
        """
        Wait for the next request head.

        Returns None when the client closed the connection cleanly between
        requests. Raises h11.RemoteProtocolError for malformed input.
        """
        event = await self.next_event()
        if type(event) is h11.ConnectionClosed or event is h11.PAUSED:
            return None
        if type(event) is not h11.Request:
            raise h11.RemoteProtocolError(f"Expected a request, got {type(event).__name__}")

        self._expects_continue = self.conn.they_are_waiting_for_100_continue
        self._continue_sent = False
        self._body = RequestBodyStream(self)
        return FileRequest(
            method=event.method.decode("ascii"),
            target=event.target.decode("ascii"),
            headers=self._decode_headers(event.headers),
            body=self._body,
            client_address=self.client_address,
        )

    @staticmethod
    def _decode_headers(raw_headers) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        for name, value in raw_headers:
            key = name.decode("latin-1").lower()
            text = value.decode("latin-1")
            # Repeated fields combine into one comma-separated value
            headers[key] = f"{headers[key]}, {text}" if key in headers else text
        return headers

    # =========================================================================
    # RESPONSES
    # =========================================================================

    async def send_response(self, response: HTTPResponse, head_only: bool = False) -> None:
        """
        Write a complete response: head, body, end of message.

        The body variant decides the framing. Bytes and sized streams get
        Content-Length; a stream of unknown size goes out chunked (h11
        picks the framing when no length is given). 1xx, 204 and 304
        responses, and every response to HEAD, are written without a body.

        A sized stream never writes past its declared length. One that ends
        short (the file shrank after stat) makes h11 refuse EndOfMessage
        with LocalProtocolError, and the server closes the connection.

        A StreamBody is closed before this returns, even if writing fails.
        """
        body = response.body
        try:
            headers = self.basic_headers()
            headers.extend(
                (name, value)
                for name, value in response.headers.items()
                if name.lower() not in _FRAMING_HEADERS
            )

            allows_body = status_allows_body(response.status)
            length = self._body_length(body)
            if allows_body and length is not None:
                headers.append(("Content-Length", str(length)))

            await self.send(h11.Response(
                status_code=response.status,
                headers=headers,
                reason=response.reason.encode("ascii"),
            ))

            if allows_body and not head_only:
                if isinstance(body, BytesBody):
                    await self.send(h11.Data(data=body.data))
                elif isinstance(body, StreamBody):
                    await self._send_stream(body)

            await self.send(h11.EndOfMessage())
        finally:
            if isinstance(body, StreamBody):
                await _close_stream(body.stream)

    async def _send_stream(self, body: StreamBody) -> None:
        # A file that grew after stat() is cut at the declared length
        remaining = body.length
        async for chunk in body.stream:
            if remaining is not None:
                chunk = chunk[:remaining]
                remaining -= len(chunk)
            if chunk:
                await self.send(h11.Data(data=chunk))
            if remaining == 0:
                break

    @staticmethod
    def _body_length(body) -> Optional[int]:
        if isinstance(body, BytesBody):
            return len(body.data)
        if isinstance(body, StreamBody):
            return body.length
        return 0

    def can_send_error(self) -> bool:
        """True while no part of the current response has been written."""
        return self.conn.our_state in {h11.IDLE, h11.SEND_RESPONSE}

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def finish_cycle(self) -> bool:
        """
        Prepare for the next request on this connection.

        Returns:
            True if another request may follow, False if the connection
            must be closed.
        """
        self.requests_handled += 1

        if self.conn.their_state is h11.SEND_BODY and self._body is not None:
            if self._expects_continue and not self._continue_sent:
                # The client is holding its body back; reading would hang
                return False
            try:
                skipped = await self._body.drain()
            except (h11.RemoteProtocolError, ConnectionError) as exc:
                logger.debug(f"[conn {self.id}] Could not drain request body: {exc}")
                return False
            if skipped:
                logger.debug(f"[conn {self.id}] Drained {skipped} unread body bytes")

        if self.conn.states == {h11.CLIENT: h11.DONE, h11.SERVER: h11.DONE}:
            self.conn.start_next_cycle()
            self._body = None
            return True
        return False

    async def shutdown(self) -> None:
        try:
            self.writer.close()
            await self.writer.wait_closed()
        except (ConnectionError, OSError) as exc:
            logger.debug(f"[conn {self.id}] Error while closing: {exc}")

    def __repr__(self) -> str:
        host, port = self.client_address
        return f"HTTPConnection(id={self.id}, peer={host}:{port}, states={self.conn.states})"


async def _close_stream(stream: AsyncIterator[bytes]) -> None:
    aclose = getattr(stream, "aclose", None)
    if aclose is not None:
        await aclose()
