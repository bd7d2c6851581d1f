"""
=============================================================================
FILE REQUEST
=============================================================================

The request object handed to the dispatcher and the handlers.

Unlike a buffering HTTP parser, the body is NOT read up front. A PUT of a
2 GB file would otherwise sit in memory before the handler even started;
instead the body is an async byte stream that the handler pulls from the
socket chunk by chunk while writing to disk:

    ┌──────────────┐  chunks   ┌─────────────────┐  chunks   ┌───────────┐
    │    socket    │ ────────► │  request.body   │ ────────► │   file    │
    │  (h11 Data)  │           │ (async iterator)│           │ (aiofiles │
    └──────────────┘           └─────────────────┘           │   write)  │
                                                              └───────────┘

The transport owns the request; the core only borrows it for the duration
of one dispatch and never mutates it.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Tuple
from urllib.parse import urlsplit


def split_target(target: str) -> Tuple[str, str]:
    """
    Split a request target into (path, query), both still percent-encoded.

    Origin-form targets ("/a/b?x=1") are split by hand: urlsplit would read
    "//etc/passwd" as host "etc" plus path "/passwd". Absolute-form targets
    ("http://host/a") go through urlsplit.
    """
    if target.startswith("/"):
        path, _, query = target.partition("#")[0].partition("?")
        return path, query
    parts = urlsplit(target)
    return parts.path or "/", parts.query


async def _no_body() -> AsyncIterator[bytes]:
    return
    yield  # pragma: no cover - makes this an async generator


@dataclass(frozen=True)
class FileRequest:
    """
    One inbound HTTP request.

    Attributes:
        method:         Upper-case method name ("GET", "MKCOL", ...)
        target:         Raw request target, path plus optional query
        headers:        Header name (lower-case) → value
        body:           Async iterator of body chunks; empty when the
                        request carries no body
        client_address: (ip, port) of the peer, for logging
    """

    method: str
    target: str = "/"
    headers: Dict[str, str] = field(default_factory=dict)
    body: AsyncIterator[bytes] = field(default_factory=_no_body, repr=False, compare=False)
    client_address: Tuple[str, int] = ("", 0)

    @property
    def path(self) -> str:
        """Path component of the target, still percent-encoded."""
        return split_target(self.target)[0]

    @property
    def query(self) -> str:
        return split_target(self.target)[1]

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)
