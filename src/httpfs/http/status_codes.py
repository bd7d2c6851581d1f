"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this file server actually emits, with their reason phrases.

=============================================================================
WHICH CODES, AND WHEN
=============================================================================

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  Code  │ Emitted by                                                │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  100   │ Connection - client sent "Expect: 100-continue"          │
    │  200   │ GET (file or listing), OPTIONS preflight                  │
    │  204   │ PUT, DELETE (also when already absent), MKCOL             │
    │  400   │ MKCOL on an existing directory, malformed HTTP            │
    │  403   │ PathResolver - URL escapes the root directory             │
    │  404   │ GET on a missing path                                     │
    │  405   │ Any method without a registered handler                   │
    │  500   │ Any filesystem or stream error nobody classified          │
    └────────┴───────────────────────────────────────────────────────────┘

Handlers may still return other integer codes; the connection layer falls
back to a generic reason phrase for anything not listed here.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by the server.

    IntEnum so members compare equal to plain integers:

        >>> HTTPStatus.NO_CONTENT == 204
        True
        >>> HTTPStatus.NO_CONTENT.phrase
        'No Content'
    """

    CONTINUE = 100

    OK = 200
    NO_CONTENT = 204                    # Success, nothing to send back

    NOT_MODIFIED = 304

    BAD_REQUEST = 400
    FORBIDDEN = 403                     # Path traversal attempt
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413
    URI_TOO_LONG = 414
    REQUEST_HEADER_FIELDS_TOO_LARGE = 431

    INTERNAL_SERVER_ERROR = 500         # Catch-all for unmapped failures
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line (``HTTP/1.1 204 No Content``)."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def allows_body(self) -> bool:
        """
        Whether a response with this status may carry a body.

        1xx, 204 and 304 responses are bodiless by definition (RFC 9110),
        so the connection layer never writes payload bytes for them.
        """
        return not (self < 200 or self in (HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED))


_STATUS_PHRASES = {
    HTTPStatus.CONTINUE: "Continue",
    HTTPStatus.OK: "OK",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.URI_TOO_LONG: "URI Too Long",
    HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE: "Request Header Fields Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}


def reason_phrase(status: int) -> str:
    """
    Reason phrase for any integer status.

    Handlers are free to return codes outside the enum; those get a
    phrase derived from their class (e.g. 418 -> "Client Error").
    """
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        pass
    if 200 <= status < 300:
        return "Success"
    if 300 <= status < 400:
        return "Redirection"
    if 400 <= status < 500:
        return "Client Error"
    if 500 <= status < 600:
        return "Server Error"
    return "Unknown"


def status_allows_body(status: int) -> bool:
    """Same rule as HTTPStatus.allows_body, for arbitrary integers."""
    return not (status < 200 or status in (204, 304))
