"""
=============================================================================
COMMAND-LINE ENTRY POINT
=============================================================================

    python -m httpfs [options]
    httpfs [options]                 (console script)

    ┌──────────────────────┬──────────────────────────────┬───────────────┐
    │ Flag                 │ Meaning                      │ Environment   │
    ├──────────────────────┼──────────────────────────────┼───────────────┤
    │ --host, -H           │ interface to bind            │ HTTPFS_HOST   │
    │ --port, -p           │ port (0 = any free port)     │ HTTPFS_PORT   │
    │ --root, -r           │ directory to serve           │ HTTPFS_ROOT   │
    │ --log-level, -l      │ DEBUG / INFO / WARNING / ... │ HTTPFS_LOG_.. │
    │ --log-format         │ text / json access log       │ HTTPFS_LOG_.. │
    │ --no-access-log      │ no per-request log lines     │               │
    │ --open               │ open the URL in a browser    │ HTTPFS_OPEN.. │
    │ --version, -v        │ print version and exit       │               │
    └──────────────────────┴──────────────────────────────┴───────────────┘

Environment variables provide the defaults; flags override them.

Examples:

    httpfs                               # serve the current directory
    httpfs -r ~/share -H 0.0.0.0 -p 9000
    HTTPFS_LOG_FORMAT=json httpfs --open

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import LOG_FORMATS, ServerConfig
from .server import FileServer


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="httpfs",
        description="Serve a directory over HTTP: GET, PUT, DELETE and MKCOL.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  httpfs                                  Serve the current directory on :8000
  httpfs --root ./share --port 9000       Serve ./share on :9000
  curl -T notes.txt http://127.0.0.1:8000/notes.txt
  curl -X MKCOL http://127.0.0.1:8000/docs
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Interface to bind (default: {defaults.host})",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on, 0 for any free port (default: {defaults.port})",
    )

    # ─────────────────────────────────────────────────────────────────────
    # FILESYSTEM
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--root", "-r",
        default=defaults.root_dir,
        help="Directory to serve (default: current directory)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level.upper()})",
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=defaults.log_format,
        help=f"Access log format (default: {defaults.log_format})",
    )
    parser.add_argument(
        "--no-access-log",
        dest="access_log",
        action="store_false",
        help="Do not log one line per request",
    )

    # ─────────────────────────────────────────────────────────────────────
    # MISC
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--open",
        dest="open_browser",
        action="store_true",
        default=defaults.open_browser,
        help="Open the server URL in the default browser",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"httpfs {__version__}",
    )
    return parser


def config_from_args(argv: Optional[List[str]] = None) -> ServerConfig:
    """Environment defaults, overridden by command-line flags."""
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid environment setting: {e}", file=sys.stderr)
        sys.exit(2)

    args = build_parser(defaults).parse_args(argv)
    return ServerConfig(
        host=args.host,
        port=args.port,
        root_dir=args.root,
        log_level=args.log_level,
        log_format=args.log_format,
        access_log=args.access_log,
        open_browser=args.open_browser,
    )


def main(argv: Optional[List[str]] = None) -> None:
    config = config_from_args(argv)

    try:
        server = FileServer(config)
        server.run()
    except (ValueError, OSError) as e:
        # Bad root directory, port in use, ...
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
