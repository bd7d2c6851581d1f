"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the file server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                   CONFIGURATION PRECEDENCE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Command-line flags     httpfs --port 9000                      │
    │   2. Environment            HTTPFS_PORT=9000 httpfs                 │
    │   3. Dataclass defaults     port = 8000                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The served directory is explicit configuration. It defaults to ".", the
working directory of whoever starts the server; it never depends on where
the httpfs package itself is installed.

=============================================================================
"""

import os
from dataclasses import dataclass
from pathlib import Path

from . import __version__


LOG_FORMATS = ("text", "json")

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


@dataclass
class ServerConfig:
    """
    Configuration for the file server.

        config = ServerConfig(port=9000, root_dir="/srv/share")
        config.validate()
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    Interface to bind. "127.0.0.1" keeps the server local; "0.0.0.0"
    exposes the root directory to the whole network, with no
    authentication.
    """

    port: int = 8000
    """Port to listen on. 0 lets the OS pick a free one (used by tests)."""

    # ─────────────────────────────────────────────────────────────────────
    # FILESYSTEM
    # ─────────────────────────────────────────────────────────────────────

    root_dir: str = "."
    """Directory that every request path is resolved against."""

    chunk_size: int = 64 * 1024
    """Bytes per read when streaming a file to a client."""

    max_recv: int = 64 * 1024
    """Bytes per socket read."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """Access log format: 'text' (Apache-like) or 'json'."""

    access_log: bool = True
    """Write one access log line per request."""

    # ─────────────────────────────────────────────────────────────────────
    # MISC
    # ─────────────────────────────────────────────────────────────────────

    open_browser: bool = False
    """Open the root URL in the default browser once listening."""

    server_name: str = f"httpfs/{__version__}"
    """Value of the Server header (h11's product id is appended)."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

            HTTPFS_HOST          Interface (default: 127.0.0.1)
            HTTPFS_PORT          Port (default: 8000)
            HTTPFS_ROOT          Served directory (default: .)
            HTTPFS_LOG_LEVEL     Logging level (default: INFO)
            HTTPFS_LOG_FORMAT    text | json (default: text)
            HTTPFS_OPEN_BROWSER  1/true/yes/on to open a browser
        """
        return cls(
            host=os.getenv("HTTPFS_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTPFS_PORT", "8000")),
            root_dir=os.getenv("HTTPFS_ROOT", "."),
            log_level=os.getenv("HTTPFS_LOG_LEVEL", "INFO"),
            log_format=os.getenv("HTTPFS_LOG_FORMAT", "text"),
            open_browser=_env_flag("HTTPFS_OPEN_BROWSER"),
        )

    @property
    def root_path(self) -> Path:
        return Path(os.path.abspath(self.root_dir))

    @property
    def base_url(self) -> str:
        # Wildcard binds are reachable through loopback
        host = "127.0.0.1" if self.host in ("", "0.0.0.0") else self.host
        if ":" in host:
            host = f"[{host}]"
        return f"http://{host}:{self.port}/"

    def validate(self) -> None:
        """Fail fast on values the server cannot start with."""
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")
        if not self.root_path.is_dir():
            raise ValueError(f"Root directory does not exist: {self.root_dir}")
        if self.chunk_size < 1024:
            raise ValueError("chunk_size must be >= 1024")
        if self.max_recv < 1024:
            raise ValueError("max_recv must be >= 1024")
        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")
