"""
=============================================================================
FILE HANDLERS
=============================================================================

GET, PUT, DELETE and MKCOL against the server's root directory.

=============================================================================
WHAT EACH METHOD DOES
=============================================================================

    ┌─────────┬──────────────────────────────┬────────────────────────────┐
    │ Method  │ Success                      │ Expected failures          │
    ├─────────┼──────────────────────────────┼────────────────────────────┤
    │ GET     │ 200 file bytes (streamed)    │ 404 "File not found"       │
    │         │ 200 directory: names, one    │                            │
    │         │     per line                 │                            │
    │ PUT     │ 204 file created/replaced    │                            │
    │ DELETE  │ 204 file or empty dir gone   │ 204 if it never existed    │
    │ MKCOL   │ 204 directory created        │ 400 "Directory already     │
    │         │                              │      exists"               │
    └─────────┴──────────────────────────────┴────────────────────────────┘

Every handler starts with resolver.resolve(request.target), which raises
Failure(403) for paths outside the root; nothing touches the disk before
that check passes.

Anything not in the table above (permission denied, a non-empty directory
passed to DELETE, a missing parent for MKCOL, a client that hangs up during
PUT) propagates. The dispatcher turns it into a 500 carrying the error text.

Blocking filesystem calls go through asyncio.to_thread so one slow disk
operation never stalls the other connections.

=============================================================================
"""

import asyncio
import logging
import os
import stat

from ..core.streams import DEFAULT_CHUNK_SIZE, FileReadStream, FileWriteStream, copy_stream
from ..http.mime_types import get_mime_type
from ..http.outcome import Outcome, StreamBody
from ..http.paths import PathResolver
from ..http.request import FileRequest
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class FileHandlers:
    """
    The four filesystem handlers, bound to one PathResolver.

        files = FileHandlers(PathResolver("/srv/www"))
        outcome = await files.get(FileRequest("GET", "/notes/a.txt"))
    """

    def __init__(self, resolver: PathResolver, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.resolver = resolver
        self.chunk_size = chunk_size

    async def get(self, request: FileRequest) -> Outcome:
        path = self.resolver.resolve(request.target)
        try:
            st = await asyncio.to_thread(os.stat, path)
        except FileNotFoundError:
            return Outcome(status=HTTPStatus.NOT_FOUND, body="File not found")

        if stat.S_ISDIR(st.st_mode):
            names = await asyncio.to_thread(os.listdir, path)
            return Outcome(body="\n".join(names))

        # Opened here so "permission denied" becomes a 500 before any
        # response header has gone out
        stream = await FileReadStream.open(path, chunk_size=self.chunk_size)
        return Outcome(
            body=StreamBody(stream, length=st.st_size),
            type=get_mime_type(path),
        )

    async def delete(self, request: FileRequest) -> Outcome:
        path = self.resolver.resolve(request.target)
        try:
            st = await asyncio.to_thread(os.stat, path)
        except FileNotFoundError:
            return Outcome(status=HTTPStatus.NO_CONTENT)

        if stat.S_ISDIR(st.st_mode):
            await asyncio.to_thread(os.rmdir, path)
        else:
            await asyncio.to_thread(os.unlink, path)
        logger.debug(f"Deleted {path}")
        return Outcome(status=HTTPStatus.NO_CONTENT)

    async def put(self, request: FileRequest) -> Outcome:
        path = self.resolver.resolve(request.target)
        sink = await FileWriteStream.open(path)
        written = await copy_stream(request.body, sink)
        logger.debug(f"Wrote {written} bytes to {path}")
        return Outcome(status=HTTPStatus.NO_CONTENT)

    async def mkcol(self, request: FileRequest) -> Outcome:
        path = self.resolver.resolve(request.target)
        try:
            await asyncio.to_thread(os.mkdir, path)
        except FileExistsError:
            return Outcome(status=HTTPStatus.BAD_REQUEST, body="Directory already exists")
        return Outcome(status=HTTPStatus.NO_CONTENT)
