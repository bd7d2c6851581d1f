"""
=============================================================================
REQUEST DISPATCHER
=============================================================================

Takes one FileRequest and produces the HTTPResponse to write, whatever the
handler did.

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    Received
       │
       ▼
    HeadersSet ──────── CORS middleware (every response gets the headers)
       │
       ├── OPTIONS ───► PreflightShortCircuit: 200, empty body
       │
       ▼
    RouteSelected ───── registry.lookup(method), never None (405 default)
       │
       ▼
    Invoked ─────────── invoke(handler, request) → Outcome | Failure
       │
       ├── Outcome ───► Normalized
       └── Failure ───► Recovered: status or 500, message as body
       │
       ▼
    ResponseWritten ─── HTTPResponse.from_outcome(), then the connection
                        writes head + body

The response head is built only once the Outcome is complete, so a handler
error can never produce a half-written 200. dispatch() does not raise for
handler errors; every failure is already an Outcome by the time it leaves
the routing step.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Iterable, Optional, Union

from .core.streams import DEFAULT_CHUNK_SIZE
from .http.outcome import Failure, invoke, recover
from .http.paths import PathResolver
from .http.registry import MethodRegistry, build_registry
from .http.request import FileRequest
from .http.response import HTTPResponse
from .middleware.base import Middleware, MiddlewarePipeline
from .middleware.cors import CORSConfig, CORSMiddleware


logger = logging.getLogger("httpfs.dispatcher")


class Dispatcher:
    """
    Middleware chain plus routing step.

    User middleware runs outermost, in the order given; CORS is always the
    innermost middleware:

        dispatcher = Dispatcher(registry, middleware=[LoggingMiddleware()])
        response = await dispatcher.dispatch(request)
    """

    def __init__(
        self,
        registry: MethodRegistry,
        middleware: Iterable[Middleware] = (),
        cors: Optional[CORSConfig] = None,
    ):
        self.registry = registry
        self._pipeline = MiddlewarePipeline()
        self._pipeline.use(*middleware)
        self._pipeline.add(CORSMiddleware(cors))
        self._handler = self._pipeline.wrap(self._route)

    @classmethod
    def for_root(
        cls,
        root: Union[str, Path],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        middleware: Iterable[Middleware] = (),
    ) -> "Dispatcher":
        """Dispatcher serving the four file methods below root."""
        registry = build_registry(PathResolver(root), chunk_size=chunk_size)
        return cls(registry, middleware=middleware)

    @property
    def pipeline(self) -> MiddlewarePipeline:
        return self._pipeline

    async def dispatch(self, request: FileRequest) -> HTTPResponse:
        return await self._handler(request)

    async def _route(self, request: FileRequest) -> HTTPResponse:
        handler = self.registry.lookup(request.method)
        result = await invoke(handler, request)
        if isinstance(result, Failure):
            self._log_failure(request, result)
        return HTTPResponse.from_outcome(recover(result))

    @staticmethod
    def _log_failure(request: FileRequest, failure: Failure) -> None:
        if failure.status is None or failure.status >= 500:
            cause = failure.__cause__ or failure.__context__
            logger.error(
                f"{request.method} {request.target} failed: {failure.message}",
                exc_info=cause,
            )
        else:
            logger.debug(f"{request.method} {request.target} → {failure.status} {failure.message}")
