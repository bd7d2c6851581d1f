"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One log line per request, with timing and a correlation id.

=============================================================================
LOG FORMATS
=============================================================================

    TEXT (Apache-like, default):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 127.0.0.1 - - [10/Jun/2026:10:55:36 +0000] "PUT /a.txt" 204 0 3.12ms│
    │ ─────────────────────────────────────────────────────────────────── │
    │ IP            Timestamp           Method/Path Status Size Duration  │
    └─────────────────────────────────────────────────────────────────────┘

    JSON (one object per line, for log aggregators):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"request_id": "a1b2c3d4", "method": "GET", "path": "/a.txt",       │
    │  "client_ip": "127.0.0.1", "status_code": 200, ...}                 │
    └─────────────────────────────────────────────────────────────────────┘

The duration is the time until the response head was ready. A streamed
file body is still being sent when the line is written, so its size is the
file size announced in Content-Length ("-" when unknown).

The id is also returned to the client in X-Request-ID, so a user can quote
it when reporting a failed upload.

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass
from typing import Optional

from .base import Middleware, NextHandler
from ..http.outcome import StreamBody
from ..http.request import FileRequest
from ..http.response import HTTPResponse


# Configure separately from the server logger, e.g. to send it to a file:
#   logging.getLogger("httpfs.access").addHandler(file_handler)
logger = logging.getLogger("httpfs.access")


@dataclass
class RequestLog:
    """Structured access log entry."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: Optional[int]
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        size = "-" if self.content_length is None else self.content_length
        return (
            f'{self.client_ip or "-"} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{size} {self.duration_ms:.2f}ms'
        )


def _body_size(response: HTTPResponse) -> Optional[int]:
    if isinstance(response.body, StreamBody):
        return response.body.length
    return len(response.body)


class LoggingMiddleware(Middleware):
    """
    Request logging middleware. Add it first so it sees every response,
    preflights and error responses included.

        pipeline.add(LoggingMiddleware(log_format="json"))
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
    ):
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level

    async def __call__(self, request: FileRequest, next: NextHandler) -> HTTPResponse:
        # Truncated UUID4: short enough to read out, random enough per run
        request_id = str(uuid.uuid4())[:8]
        start_time = time.perf_counter()

        try:
            response = await next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        log_entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            query=request.query,
            client_ip=request.client_address[0],
            user_agent=request.user_agent or "-",
            status_code=response.status,
            content_length=_body_size(response),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(log_entry.to_dict()))
        else:
            logger.log(self.log_level, log_entry.to_text())

        if self.include_request_id:
            response.set_header("X-Request-ID", request_id)

        return response
