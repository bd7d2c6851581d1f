"""
=============================================================================
OUTCOMES AND FAILURES
=============================================================================

The single contract between handlers and the dispatcher.

=============================================================================
ONE RESULT TYPE FOR EVERY CODE PATH
=============================================================================

Every handler call ends in exactly one of two values:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         HANDLER RESULT                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Outcome(status, body, type)          Failure(status?, message)    │
    │   ───────────────────────────          ─────────────────────────    │
    │   Normal result, including the         Something went wrong that    │
    │   errors a handler expects and         the handler did not classify │
    │   classifies itself:                   (or the PathResolver's 403): │
    │                                                                      │
    │     404 "File not found"                 403 "Forbidden"            │
    │     400 "Directory already exists"       None + "[Errno 39] ..."    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Handlers are ordinary coroutines: they return an Outcome or raise. invoke()
turns "raise" into a value, so the dispatcher receives Outcome | Failure and
its single recovery point is an explicit isinstance check rather than a
try/except scattered around the pipeline:

    result = await invoke(handler, request)    # Outcome | Failure
    outcome = recover(result)                  # always an Outcome

=============================================================================
BODY: A TAGGED UNION
=============================================================================

A response body is one of three shapes, and the connection writer matches
on the shape instead of poking at the object for a "pipe" method:

    EmptyBody()                  nothing (204s, preflight)
    BytesBody(b"...")            fully buffered (listings, error text)
    StreamBody(stream, length)   file contents, read chunk by chunk

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Union

from .status_codes import HTTPStatus


DEFAULT_CONTENT_TYPE = "text/plain"


# =============================================================================
# BODY VARIANTS
# =============================================================================

class Body:
    """Base class of the three body variants."""

    __slots__ = ()


@dataclass(frozen=True)
class EmptyBody(Body):
    """No payload."""

    def __len__(self) -> int:
        return 0


@dataclass(frozen=True)
class BytesBody(Body):
    """A payload that is already fully in memory."""

    data: bytes = b""

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class StreamBody(Body):
    """
    A payload produced by an async byte stream.

    The stream must be an async iterator of ``bytes`` chunks with an
    ``aclose()`` coroutine. Whoever writes the body owns it from then on
    and closes it exactly once, whether the write succeeds or not.

    length is the total byte count when known in advance (a file's size),
    which lets the writer send Content-Length instead of chunked framing.
    """

    stream: AsyncIterator[bytes]
    length: Optional[int] = None


def as_body(value: Any) -> Body:
    """
    Coerce a handler-supplied body value into a Body variant.

        None / ""      → EmptyBody()
        "text"         → BytesBody(b"text")   (UTF-8)
        b"raw"         → BytesBody(b"raw")
        Body instance  → unchanged
    """
    if value is None:
        return EmptyBody()
    if isinstance(value, Body):
        return value
    if isinstance(value, str):
        value = value.encode("utf-8")
    if isinstance(value, (bytes, bytearray, memoryview)):
        data = bytes(value)
        return BytesBody(data) if data else EmptyBody()
    raise TypeError(f"Unsupported body type: {type(value).__name__}")


# =============================================================================
# OUTCOME
# =============================================================================

@dataclass
class Outcome:
    """
    Normalized result of handling one request.

    Defaults mirror the most common case: 200, no body, and no explicit
    type (the response writer falls back to text/plain).

        Outcome(status=204)
        Outcome(status=404, body="File not found")
        Outcome(body=StreamBody(stream, length=5), type="text/plain")
    """

    status: int = HTTPStatus.OK
    body: Any = field(default_factory=EmptyBody)
    type: Optional[str] = None

    def __post_init__(self):
        self.body = as_body(self.body)

    @property
    def content_type(self) -> str:
        return self.type or DEFAULT_CONTENT_TYPE


# =============================================================================
# FAILURE
# =============================================================================

class Failure(Exception):
    """
    A handler error, optionally carrying the HTTP status to answer with.

    status=None means "not classified": the dispatcher answers 500 and uses
    the message as the plain-text body. Raised by the PathResolver (403)
    and produced by invoke() for every other exception a handler lets
    escape.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status

    @classmethod
    def from_exception(cls, exc: BaseException) -> "Failure":
        """Wrap an arbitrary exception; its text becomes the message."""
        if isinstance(exc, Failure):
            return exc
        failure = cls(str(exc) or exc.__class__.__name__)
        failure.__cause__ = exc
        return failure

    def __repr__(self) -> str:
        return f"Failure(status={self.status!r}, message={self.message!r})"


Result = Union[Outcome, Failure]
Handler = Callable[[Any], Awaitable[Outcome]]


async def invoke(handler: Handler, request: Any) -> Result:
    """
    Run a handler and capture its result as a value.

    Ordinary exceptions (OSError, stream errors, bugs) are converted into
    a Failure. BaseExceptions such as CancelledError and KeyboardInterrupt
    are not handler outcomes and keep propagating.
    """
    try:
        outcome = await handler(request)
    except Exception as exc:
        return Failure.from_exception(exc)

    if not isinstance(outcome, Outcome):
        return Failure(
            f"Handler {getattr(handler, '__name__', handler)!s} returned "
            f"{type(outcome).__name__}, expected Outcome"
        )
    return outcome


def recover(result: Result) -> Outcome:
    """
    Map a handler result to the Outcome that will be written.

        Outcome                       → as is
        Failure(status=403, "...")    → Outcome(403, "...")
        Failure(status=None, "...")   → Outcome(500, "...")
    """
    if isinstance(result, Outcome):
        return result
    status = result.status if result.status is not None else HTTPStatus.INTERNAL_SERVER_ERROR
    return Outcome(status=status, body=result.message)
