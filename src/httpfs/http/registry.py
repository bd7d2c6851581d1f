"""
=============================================================================
METHOD REGISTRY
=============================================================================

Maps an HTTP method name to the coroutine that handles it.

    ┌──────────┬───────────────────────┐
    │  Method  │  Handler              │
    ├──────────┼───────────────────────┤
    │  GET     │  FileHandlers.get     │
    │  PUT     │  FileHandlers.put     │
    │  DELETE  │  FileHandlers.delete  │
    │  MKCOL   │  FileHandlers.mkcol   │
    │  (other) │  not_allowed  → 405   │
    └──────────┴───────────────────────┘

The table is built once at startup and is read-only afterwards (a
MappingProxyType), so every connection task can share it without locks.
Method names are case-sensitive: "get" is not "GET".

=============================================================================
"""

from types import MappingProxyType
from typing import TYPE_CHECKING, Iterator, Mapping, Optional, Tuple

from .outcome import Handler, Outcome
from .status_codes import HTTPStatus

if TYPE_CHECKING:
    from .paths import PathResolver


async def not_allowed(request) -> Outcome:
    """Default handler: 405 naming the method. Never fails."""
    return Outcome(
        status=HTTPStatus.METHOD_NOT_ALLOWED,
        body=f"Method {request.method} not allowed.",
    )


class MethodRegistry:
    """
    Read-only method → handler table with a default.

    lookup() never returns None: unknown methods get the default handler.

        registry = MethodRegistry({"GET": handlers.get})
        await registry.lookup("PATCH")(request)   # Outcome(405, ...)
    """

    def __init__(self, handlers: Mapping[str, Handler], default: Optional[Handler] = None):
        self._handlers = MappingProxyType(dict(handlers))
        self._default = default or not_allowed

    @property
    def handlers(self) -> Mapping[str, Handler]:
        return self._handlers

    @property
    def default(self) -> Handler:
        return self._default

    @property
    def methods(self) -> Tuple[str, ...]:
        return tuple(self._handlers)

    def lookup(self, method: str) -> Handler:
        return self._handlers.get(method, self._default)

    def __contains__(self, method: object) -> bool:
        return method in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)

    def __repr__(self) -> str:
        return f"MethodRegistry(methods={list(self._handlers)})"


def build_registry(resolver: "PathResolver", chunk_size: int = 64 * 1024) -> MethodRegistry:
    """Register the four filesystem handlers against one resolver."""
    from ..handlers.files import FileHandlers

    files = FileHandlers(resolver, chunk_size=chunk_size)
    return MethodRegistry({
        "GET": files.get,
        "PUT": files.put,
        "DELETE": files.delete,
        "MKCOL": files.mkcol,
    })
