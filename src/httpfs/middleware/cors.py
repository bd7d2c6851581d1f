"""
=============================================================================
CORS MIDDLEWARE
=============================================================================

Lets browser pages from any origin talk to the file server.

=============================================================================
WHAT IS CORS?
=============================================================================

A page loaded from http://localhost:3000 may not read responses from
http://localhost:8000 unless that server says so in its headers. For
"non-simple" requests (PUT, DELETE, MKCOL, custom headers) the browser
first asks with an OPTIONS request, the PREFLIGHT:

    Browser                                         File server
       │  OPTIONS /notes/a.txt                           │
       │  Access-Control-Request-Method: PUT             │
       │ ───────────────────────────────────────────────►│
       │                                                 │
       │  200, Access-Control-Allow-Origin: *            │
       │       Access-Control-Allow-Methods: *           │
       │       Access-Control-Allow-Headers: *           │
       │ ◄───────────────────────────────────────────────│
       │                                                 │
       │  PUT /notes/a.txt   (the real request)          │
       │ ───────────────────────────────────────────────►│

This server is fully permissive: the three headers go on EVERY response,
including errors, and OPTIONS is answered right here without routing. The
path of an OPTIONS request is never resolved, so a preflight for
"/../../etc/passwd" still gets 200; the real request that follows is the
one that gets the 403.

=============================================================================
"""

from dataclasses import dataclass
from typing import Dict, Optional

from .base import Middleware, NextHandler
from ..http.request import FileRequest
from ..http.response import HTTPResponse, ResponseBuilder
from ..http.status_codes import HTTPStatus


@dataclass(frozen=True)
class CORSConfig:
    """Values of the three Access-Control-Allow-* headers."""

    allow_origin: str = "*"
    allow_methods: str = "*"
    allow_headers: str = "*"

    def headers(self) -> Dict[str, str]:
        return {
            "Access-Control-Allow-Origin": self.allow_origin,
            "Access-Control-Allow-Methods": self.allow_methods,
            "Access-Control-Allow-Headers": self.allow_headers,
        }


class CORSMiddleware(Middleware):
    """
    Adds the CORS headers to every response; answers OPTIONS itself.

    The preflight response is 200 with an empty body and carries the CORS
    headers only (no Content-Type).
    """

    def __init__(self, config: Optional[CORSConfig] = None):
        self.config = config or CORSConfig()

    async def __call__(self, request: FileRequest, next: NextHandler) -> HTTPResponse:
        if request.method == "OPTIONS":
            return self.preflight()

        response = await next(request)
        for name, value in self.config.headers().items():
            response.set_header(name, value)
        return response

    def preflight(self) -> HTTPResponse:
        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .headers(self.config.headers())
            .build())
