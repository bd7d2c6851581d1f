"""
=============================================================================
HTTP RESPONSE
=============================================================================

The wire-level response: a status, an ordered set of headers, and a Body.

An Outcome says WHAT the handler produced; an HTTPResponse says what goes on
the wire. The dispatcher converts one into the other once the Outcome is
fully known, and middleware (CORS, access log) adds headers on the way out:

    ┌───────────────┐  from_outcome()  ┌──────────────────┐  send_response()
    │   Outcome     │ ───────────────► │   HTTPResponse   │ ─────────────────►
    │ 404, "File    │                  │ 404              │   h11.Response +
    │  not found"   │                  │ Content-Type: .. │   h11.Data* +
    └───────────────┘                  │ Access-Control-..│   EndOfMessage
                                       └──────────────────┘

Framing headers (Content-Length, Transfer-Encoding) are NOT set here. The
connection writer decides them from the Body variant, since only it knows
whether a HEAD request or a 204 suppresses the body.

=============================================================================
BUILDER PATTERN
=============================================================================

    response = (ResponseBuilder()
        .status(HTTPStatus.NOT_FOUND)
        .text("File not found")
        .header("X-Request-ID", "a1b2c3d4")
        .build())

Each method returns self except build().

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from .outcome import Body, EmptyBody, Outcome, as_body
from .status_codes import HTTPStatus, reason_phrase


@dataclass
class HTTPResponse:
    """
    A response ready to be written by the connection.

    Headers keep their insertion order and their original case; lookups
    through get_header() ignore case.
    """

    status: int = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: Body = field(default_factory=EmptyBody)

    @classmethod
    def from_outcome(cls, outcome: Outcome) -> "HTTPResponse":
        """Build the response for a handler Outcome, Content-Type included."""
        return cls(
            status=int(outcome.status),
            headers={"Content-Type": outcome.content_type},
            body=outcome.body,
        )

    @property
    def reason(self) -> str:
        return reason_phrase(self.status)

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        # Replace regardless of case so a header is never sent twice
        for existing in list(self.headers):
            if existing.lower() == name.lower():
                del self.headers[existing]
        self.headers[name] = value
        return self

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        lowered = name.lower()
        for existing, value in self.headers.items():
            if existing.lower() == lowered:
                return value
        return default

    def has_header(self, name: str) -> bool:
        return self.get_header(name) is not None


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

    Used where a response does not come from a handler: the CORS preflight
    short-circuit and the protocol-error responses the connection sends on
    its own.
    """

    def __init__(self):
        self._status: int = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: Body = EmptyBody()

    def status(self, status: int) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def text(self, content: str) -> "ResponseBuilder":
        """Plain-text body, UTF-8 encoded."""
        self._body = as_body(content)
        return self.content_type("text/plain")

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )
