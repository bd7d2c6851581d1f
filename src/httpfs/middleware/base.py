"""
=============================================================================
BASE MIDDLEWARE INTERFACE
=============================================================================

Defines the async middleware protocol and the pipeline that chains it
around the dispatcher's routing step (Chain of Responsibility).

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   Request ────────────────────────────────────────────────►         │
    │                                                                      │
    │   ┌──────────┐    ┌──────────┐    ┌──────────────────────────┐      │
    │   │  Logging │───►│   CORS   │───►│  route: lookup → invoke  │      │
    │   │    MW    │    │    MW    │    │         → recover        │      │
    │   └──────────┘    └──────────┘    └──────────────────────────┘      │
    │   [after]         [after]                                            │
    │   log line,       add Access-Control-* headers                       │
    │   X-Request-ID    (OPTIONS stops here: preflight)                    │
    │                                                                      │
    │   ◄──────────────────────────────────────────────── Response        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Everything is a coroutine: a middleware awaits next(request) and may edit
the HTTPResponse it gets back, or return its own without calling next
(short-circuit).

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Iterator, List
import logging

from ..http.request import FileRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# =============================================================================
# TYPE ALIAS
# =============================================================================
# The next middleware, or the routing step at the end of the chain.
# =============================================================================
NextHandler = Callable[[FileRequest], Awaitable[HTTPResponse]]


class Middleware(ABC):
    """
    Abstract base class for middleware.

        class AddHeader(Middleware):
            async def __call__(self, request, next):
                response = await next(request)
                response.set_header("X-Served-By", "httpfs")
                return response
    """

    @abstractmethod
    async def __call__(self, request: FileRequest, next: NextHandler) -> HTTPResponse:
        """
        Process the request.

        Args:
            request: The incoming request
            next: The rest of the chain (await it to continue)

        Returns:
            HTTP response, from next() or short-circuited
        """

    @property
    def name(self) -> str:
        """Get the middleware name for logging."""
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Chains middleware around a final handler.

    First added = outermost:

        pipeline = MiddlewarePipeline()
        pipeline.add(LoggingMiddleware())    # sees every response last
        pipeline.add(CORSMiddleware())
        handler = pipeline.wrap(route)
        response = await handler(request)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Wrap a handler with all middleware in the pipeline.

        Given [MW1, MW2, MW3], the result runs MW1 → MW2 → MW3 → handler;
        wrapping happens in reverse so the first-added is outermost.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)
        return current

    def _create_wrapped_handler(self, middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        async def wrapped(request: FileRequest) -> HTTPResponse:
            return await middleware(request, next_handler)

        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)
