"""
=============================================================================
FILE STREAMS AND THE STREAM COPIER
=============================================================================

Async byte streams over regular files, and the copier that moves a request
body onto disk.

=============================================================================
WHY aiofiles?
=============================================================================

The whole server runs on ONE event loop thread. A plain file.read() or
file.write() blocks that thread for as long as the disk takes, and every
other connection waits with it:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  BLOCKING                          │  aiofiles                      │
    ├────────────────────────────────────┼────────────────────────────────┤
    │                                    │                                │
    │  loop ──read()────────────► loop   │  loop ─┐            ┌─► loop   │
    │         (everyone waits)           │        │  executor  │          │
    │                                    │  other │  read()    │          │
    │                                    │  tasks ▼────────────┘          │
    │                                    │  keep running meanwhile        │
    └────────────────────────────────────┴────────────────────────────────┘

aiofiles wraps the file object so that open, read, write and close each
run on the default executor; only the awaiting task is suspended.

=============================================================================
EXACTLY ONE TERMINAL SIGNAL
=============================================================================

copy_stream() is a coroutine, so it ends exactly once: it either returns
the number of bytes copied or raises the first error it met. An error on
either side (the client hangs up mid-upload, the disk fills up) aborts the
sink, closing its file, and propagates; there is no second callback that
could fire later and report a stale result.

=============================================================================
"""

import logging
import os
from pathlib import Path
from typing import AsyncIterator, Union

import aiofiles


logger = logging.getLogger(__name__)


DEFAULT_CHUNK_SIZE = 64 * 1024


class FileReadStream:
    """
    Async iterator over the contents of a file, one chunk at a time.

    Open it before building a response, so "permission denied" and friends
    surface while the handler can still turn them into an error response:

        stream = await FileReadStream.open(path)
        async for chunk in stream:
            ...

    The file is closed at end of file, on a read error, or by aclose(),
    whichever comes first.
    """

    def __init__(self, file, path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._file = file
        self.path = path
        self._chunk_size = chunk_size
        self._closed = False

    @classmethod
    async def open(cls, path: Union[str, Path], chunk_size: int = DEFAULT_CHUNK_SIZE) -> "FileReadStream":
        file = await aiofiles.open(path, "rb")
        return cls(file, Path(path), chunk_size)

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "FileReadStream":
        return self

    async def __anext__(self) -> bytes:
        if self._closed:
            raise StopAsyncIteration
        try:
            chunk = await self._file.read(self._chunk_size)
        except BaseException:
            await self.aclose()
            raise
        if not chunk:
            await self.aclose()
            raise StopAsyncIteration
        return chunk

    async def aclose(self) -> None:
        if not self._closed:
            self._closed = True
            await self._file.close()

    def __repr__(self) -> str:
        return f"FileReadStream({os.fspath(self.path)!r}, closed={self._closed})"


class FileWriteStream:
    """
    Async writer for a file opened in "wb" mode (created or truncated).

    close() flushes and closes the file and marks a successful finish;
    abort() closes it after an error without letting a second error mask
    the first.
    """

    def __init__(self, file, path: Path):
        self._file = file
        self.path = path
        self.bytes_written = 0
        self._closed = False

    @classmethod
    async def open(cls, path: Union[str, Path]) -> "FileWriteStream":
        file = await aiofiles.open(path, "wb")
        return cls(file, Path(path))

    @property
    def closed(self) -> bool:
        return self._closed

    async def write(self, chunk: bytes) -> None:
        if self._closed:
            raise ValueError(f"write to closed stream {os.fspath(self.path)!r}")
        await self._file.write(chunk)
        self.bytes_written += len(chunk)

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            await self._file.close()

    async def abort(self) -> None:
        if not self._closed:
            self._closed = True
            try:
                await self._file.close()
            except OSError as e:
                # The error that caused the abort is the one worth reporting
                logger.debug(f"Error closing aborted stream {self.path}: {e}")


async def copy_stream(source: AsyncIterator[bytes], sink: FileWriteStream) -> int:
    """
    Copy every chunk of source into sink, then close the sink.

    Args:
        source: Async iterator of bytes (e.g. a request body).
        sink:   An open FileWriteStream.

    Returns:
        Number of bytes copied, once the sink has finished writing them.

    Raises:
        Whatever the source or the sink raised first. The sink is aborted
        before the error propagates.
    """
    copied = 0
    try:
        async for chunk in source:
            if not chunk:
                continue
            await sink.write(chunk)
            copied += len(chunk)
        await sink.close()
    except BaseException:
        await sink.abort()
        raise
    return copied
