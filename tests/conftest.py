"""
pytest configuration and fixtures.
"""

import asyncio
import socket
import threading
from typing import Dict, Generator, Iterable, Optional, Union
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from httpfs import Dispatcher, FileServer, ServerConfig
from httpfs.http import FileRequest, PathResolver


BodyChunks = Union[bytes, Iterable[bytes], None]


async def iter_chunks(chunks: Iterable[bytes]):
    """Async iterator over fixed chunks, standing in for a request body."""
    for chunk in chunks:
        await asyncio.sleep(0)
        yield chunk


async def read_all(stream) -> bytes:
    """Collect an async byte stream into one bytes object."""
    data = b""
    async for chunk in stream:
        data += chunk
    return data


@pytest.fixture
def sandbox(tmp_path: Path) -> Path:
    """
    A served root directory:

        root/
          index.html
          hello.txt
          docs/
            a.md
    """
    root = tmp_path / "root"
    root.mkdir()
    (root / "index.html").write_bytes(b"<h1>home</h1>")
    (root / "hello.txt").write_bytes(b"hello")
    (root / "docs").mkdir()
    (root / "docs" / "a.md").write_bytes(b"# A")
    return root


@pytest.fixture
def resolver(sandbox: Path) -> PathResolver:
    return PathResolver(sandbox)


@pytest.fixture
def dispatcher(sandbox: Path) -> Dispatcher:
    """Dispatcher over the sandbox, without an access log."""
    return Dispatcher.for_root(sandbox, chunk_size=1024)


@pytest.fixture
def make_request():
    """
    Factory for FileRequest objects.

        make_request("PUT", "/a.txt", body=[b"he", b"llo"])
    """

    def factory(
        method: str,
        target: str = "/",
        body: BodyChunks = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> FileRequest:
        if body is None:
            chunks = []
        elif isinstance(body, bytes):
            chunks = [body]
        else:
            chunks = list(body)
        return FileRequest(
            method=method,
            target=target,
            headers=headers or {},
            body=iter_chunks(chunks),
            client_address=("127.0.0.1", 50000),
        )

    return factory


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class LiveServer:
    """Test server helper that runs the event loop in a background thread."""

    def __init__(self, server: FileServer):
        self.server = server
        self.loop = asyncio.new_event_loop()
        self._ready = threading.Event()
        self._error: Optional[BaseException] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.config.port

    @property
    def root(self) -> Path:
        return self.server.resolver.root

    def _run(self):
        asyncio.set_event_loop(self.loop)
        try:
            self.loop.run_until_complete(self.server.start())
        except BaseException as e:
            self._error = e
            self._ready.set()
            return
        self._ready.set()
        self.loop.run_forever()

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()
        if not self._ready.wait(timeout=5.0):
            raise RuntimeError("Server failed to start")
        if self._error is not None:
            raise RuntimeError(f"Server failed to start: {self._error}")

    def stop(self):
        """Stop the server."""
        if self._error is None:
            future = asyncio.run_coroutine_threadsafe(self.server.stop(), self.loop)
            future.result(timeout=5.0)
            self.loop.call_soon_threadsafe(self.loop.stop)
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)
        self.loop.close()


@pytest.fixture
def live_server(sandbox: Path) -> Generator[LiveServer, None, None]:
    """A FileServer over the sandbox on an OS-chosen port."""
    server = FileServer(ServerConfig(
        host="127.0.0.1",
        port=0,
        root_dir=str(sandbox),
        log_level="WARNING",
    ))
    live = LiveServer(server)
    live.start()

    yield live

    live.stop()
