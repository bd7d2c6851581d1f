"""
=============================================================================
httpfs - FILESYSTEM OVER HTTP
=============================================================================

A small HTTP/1.1 file server. One directory becomes a remote filesystem
that curl, a browser, or a script can read and change:

    ┌──────────┬──────────────────────────────────────────────────────────┐
    │ GET      │ download a file, or list a directory (one name per line)│
    │ PUT      │ upload a file (created or replaced)                     │
    │ DELETE   │ remove a file or an empty directory                     │
    │ MKCOL    │ create a directory                                      │
    │ OPTIONS  │ CORS preflight                                          │
    └──────────┴──────────────────────────────────────────────────────────┘

    $ httpfs --root ./share --port 8000
    $ curl -T notes.txt http://127.0.0.1:8000/notes.txt
    $ curl http://127.0.0.1:8000/

No request can reach a path outside the root directory: "..", including
percent-encoded forms, is answered with 403 Forbidden.

=============================================================================
PACKAGE LAYOUT
=============================================================================

    server.py        FileServer: asyncio listener, one task per connection
    dispatcher.py    Dispatcher: middleware → method registry → handler
    config.py        ServerConfig
    core/            h11 connection wrapper, async file streams
    http/            request/outcome/response model, path resolver,
                     method registry, status codes, MIME types
    handlers/        GET / PUT / DELETE / MKCOL
    middleware/      CORS, access log

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .dispatcher import Dispatcher
from .server import FileServer

__all__ = ["FileServer", "Dispatcher", "ServerConfig", "__version__"]
