"""
=============================================================================
FILE SERVER
=============================================================================

The orchestrator: binds the listener, runs one task per connection, and
feeds every request through the Dispatcher.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │   FileServer    │                          │
    │                        │ (asyncio loop)  │                          │
    │                        └────────┬────────┘                          │
    │                                 │ start_server: one task per client  │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐        │
    │    │HTTPConnection│    │HTTPConnection│    │HTTPConnection│        │
    │    │    (h11)     │    │    (h11)     │    │    (h11)     │        │
    │    └──────┬───────┘    └──────┬───────┘    └──────┬───────┘        │
    │           └───────────────────┼───────────────────┘                 │
    │                               ▼                                      │
    │           ┌─────────────────────────────────────────┐               │
    │           │  Dispatcher: Logging → CORS → route     │               │
    │           │  route: MethodRegistry → FileHandlers   │               │
    │           └─────────────────────────────────────────┘               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Everything runs on one event loop thread. Handlers await disk I/O in
worker threads (asyncio.to_thread), so a large upload on one connection
does not hold up a directory listing on another.

=============================================================================
"""

import asyncio
import logging
import webbrowser
from typing import Iterable, Optional, Set, Tuple

import h11

from .config import ServerConfig
from .core.connection import HTTPConnection
from .dispatcher import Dispatcher
from .http.paths import PathResolver
from .http.registry import build_registry
from .http.response import ResponseBuilder
from .http.status_codes import HTTPStatus
from .middleware.base import Middleware
from .middleware.cors import CORSConfig
from .middleware.logging import LoggingMiddleware


logger = logging.getLogger("httpfs.server")


class FileServer:
    """
    HTTP file server over one root directory.

        server = FileServer(ServerConfig(root_dir="/srv/share", port=8000))
        server.run()                     # blocks until Ctrl+C

    Or inside a running loop (tests do this):

        async with FileServer(ServerConfig(root_dir=tmp, port=0)) as server:
            host, port = server.address
    """

    def __init__(self, config: Optional[ServerConfig] = None, middleware: Iterable[Middleware] = ()):
        self.config = config or ServerConfig()
        self.config.validate()

        self.resolver = PathResolver(self.config.root_path)
        self.registry = build_registry(self.resolver, chunk_size=self.config.chunk_size)

        pipeline = []
        if self.config.access_log:
            pipeline.append(LoggingMiddleware(log_format=self.config.log_format))
        pipeline.extend(middleware)

        self.cors = CORSConfig()
        self.dispatcher = Dispatcher(self.registry, middleware=pipeline, cors=self.cors)

        self._server: Optional[asyncio.AbstractServer] = None
        self._connections: Set[asyncio.Task] = set()

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._server is not None and self._server.is_serving()

    @property
    def address(self) -> Tuple[str, int]:
        return self.config.host, self.config.port

    async def start(self) -> None:
        """
        Bind the listener.

        Raises OSError when the address is unavailable (port in use,
        permission denied). With port 0 the OS-chosen port is written back
        into the config.
        """
        self._server = await asyncio.start_server(
            self._handle_client,
            host=self.config.host,
            port=self.config.port,
        )
        sockets = self._server.sockets or ()
        if sockets:
            self.config.port = sockets[0].getsockname()[1]
        logger.info(
            f"Serving {self.resolver.root} on {self.config.host}:{self.config.port}"
        )

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        self._print_startup_banner()
        if self.config.open_browser:
            await self._open_browser()
        try:
            await self._server.serve_forever()
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop accepting, cancel open connections, release the socket."""
        if self._server is None:
            return
        logger.info("Shutting down server...")
        server, self._server = self._server, None
        server.close()

        for task in list(self._connections):
            task.cancel()
        await asyncio.gather(*self._connections, return_exceptions=True)

        await server.wait_closed()
        logger.info("Server stopped")

    async def __aenter__(self) -> "FileServer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    def run(self) -> None:
        """Start the server and block until interrupted."""
        self._setup_logging()
        try:
            asyncio.run(self.serve_forever())
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")

    def _print_startup_banner(self):
        """Print server startup information."""
        print()
        print("╔══════════════════════════════════════════════════════════════╗")
        print(f"║  {self.config.server_name} running")
        print(f"║  URL:  {self.config.base_url}")
        print(f"║  Root: {self.resolver.root}")
        print(f"║  Methods: {', '.join(self.registry.methods)}, OPTIONS")
        print("║  Press Ctrl+C to stop")
        print("╚══════════════════════════════════════════════════════════════╝")
        print()

    async def _open_browser(self) -> None:
        url = self.config.base_url
        try:
            opened = await asyncio.to_thread(webbrowser.open, url)
        except webbrowser.Error as e:
            logger.warning(f"Could not open a browser for {url}: {e}")
            return
        if not opened:
            logger.warning(f"No browser available to open {url}")

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("httpfs").setLevel(level)

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        task = asyncio.current_task()
        self._connections.add(task)
        connection = HTTPConnection(
            reader,
            writer,
            server_name=self.config.server_name,
            max_recv=self.config.max_recv,
        )
        host, port = connection.client_address
        logger.debug(f"[conn {connection.id}] Accepted connection from {host}:{port}")
        try:
            await self._process_connection(connection)
        except Exception as e:
            logger.exception(f"[conn {connection.id}] Connection error: {e}")
        finally:
            self._connections.discard(task)
            await connection.shutdown()
            logger.debug(
                f"[conn {connection.id}] Closed after {connection.requests_handled} request(s)"
            )

    async def _process_connection(self, connection: HTTPConnection) -> None:
        """
        Keep-alive loop for one client.

        1. Read a request head (h11)
        2. Dispatch it (the handler may stream the body)
        3. Write the response
        4. finish_cycle(): drain leftovers, then loop or close
        """
        while True:
            try:
                request = await connection.next_request()
            except h11.RemoteProtocolError as e:
                logger.warning(f"[conn {connection.id}] Malformed request: {e}")
                await self._send_error(connection, e.error_status_hint, str(e))
                return
            if request is None:
                return

            try:
                response = await self.dispatcher.dispatch(request)
            except Exception as e:
                logger.exception(f"[conn {connection.id}] Dispatch error: {e}")
                await self._send_error(connection, HTTPStatus.INTERNAL_SERVER_ERROR, str(e))
                return

            try:
                await connection.send_response(response, head_only=request.method == "HEAD")
            except ConnectionError as e:
                logger.debug(f"[conn {connection.id}] Client went away: {e}")
                return
            except Exception as e:
                # The head may already be out; closing is the only signal left
                logger.error(
                    f"[conn {connection.id}] Failed writing {request.method} "
                    f"{request.target} response: {e}"
                )
                return

            if not await connection.finish_cycle():
                return

    async def _send_error(self, connection: HTTPConnection, status: int, message: str) -> None:
        """
        Best-effort error response for failures outside the dispatcher.

        Skipped when part of a response has already been written.
        """
        if not connection.can_send_error():
            return
        response = (ResponseBuilder()
            .status(status)
            .text(message)
            .headers(self.cors.headers())
            .header("Connection", "close")
            .build())
        try:
            await connection.send_response(response)
        except Exception as e:
            logger.debug(f"[conn {connection.id}] Could not send error response: {e}")
