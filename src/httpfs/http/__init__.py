"""
=============================================================================
HTTP MODULE
=============================================================================

The request/response model and the pieces the dispatcher is built from.

    request.py       FileRequest: method, target, headers, body stream
    outcome.py       Outcome / Failure: what a handler produced
    response.py      HTTPResponse: what goes on the wire
    paths.py         PathResolver: URL → path inside the root
    registry.py      MethodRegistry: method → handler
    status_codes.py  HTTPStatus
    mime_types.py    extension → Content-Type

=============================================================================
"""

from .status_codes import HTTPStatus, reason_phrase, status_allows_body
from .mime_types import get_mime_type, DEFAULT_MIME_TYPE
from .outcome import (
    Body,
    EmptyBody,
    BytesBody,
    StreamBody,
    Outcome,
    Failure,
    Result,
    invoke,
    recover,
)
from .request import FileRequest
from .response import HTTPResponse, ResponseBuilder
from .paths import PathResolver
from .registry import MethodRegistry, build_registry, not_allowed

__all__ = [
    # Request / result model
    "FileRequest",
    "Body",
    "EmptyBody",
    "BytesBody",
    "StreamBody",
    "Outcome",
    "Failure",
    "Result",
    "invoke",
    "recover",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",

    # Dispatch building blocks
    "PathResolver",
    "MethodRegistry",
    "build_registry",
    "not_allowed",

    # Status codes
    "HTTPStatus",
    "reason_phrase",
    "status_allows_body",

    # MIME types
    "get_mime_type",
    "DEFAULT_MIME_TYPE",
]
