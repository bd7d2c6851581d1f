"""
=============================================================================
PATH RESOLVER
=============================================================================

Turns a request URL into a filesystem path that is guaranteed to lie inside
the server's root directory.

=============================================================================
RESOLUTION STEPS
=============================================================================

    GET /notes/..%2F..%2Fetc/passwd?x=1 HTTP/1.1
                         │
                         ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 1. split, keep the path         /notes/..%2F..%2Fetc/passwd         │
    │ 2. "/" becomes "/index.html"    (not the case here)                 │
    │ 3. percent-decode               /notes/../../etc/passwd             │
    │ 4. drop the leading separator   notes/../../etc/passwd              │
    │ 5. join onto root + normalize   /etc/passwd      (root = /srv/www)  │
    │ 6. must equal root or start     /etc/passwd  ✗   → Failure(403)     │
    │    with root + os.sep                                               │
    └─────────────────────────────────────────────────────────────────────┘

The containment check in step 6 runs on the NORMALIZED path. Checking the
raw string instead would let "%2e%2e/", "..%2F" or "a/../../" sequences
through, because they only become ".." after decoding and only climb out of
the root after normalization.

Symlinks are not resolved: a link inside the root that points elsewhere is
served. Sandboxing against symlinks is outside this server's contract.

=============================================================================
"""

import logging
import os
from pathlib import Path
from typing import Union
from urllib.parse import unquote

from .outcome import Failure
from .request import split_target
from .status_codes import HTTPStatus


logger = logging.getLogger("httpfs.paths")


INDEX_PATH = "/index.html"


class PathResolver:
    """
    Maps URLs onto paths below one root directory.

    The root is an explicit constructor argument rather than ambient
    process state, so tests can point a resolver at a temporary sandbox:

        resolver = PathResolver(tmp_path)
        resolver.resolve("/notes/a.txt")    # tmp_path / "notes" / "a.txt"
        resolver.resolve("/../secret")      # raises Failure(status=403)
    """

    def __init__(self, root: Union[str, Path]):
        # abspath, not resolve(): symlinks stay as they are (see above)
        self._root = os.path.abspath(os.fspath(root))
        self._prefix = self._root if self._root.endswith(os.sep) else self._root + os.sep

    @property
    def root(self) -> Path:
        return Path(self._root)

    def resolve(self, url: str) -> Path:
        """
        Resolve a request URL (path plus optional query) to a sandboxed path.

        Args:
            url: The request target, e.g. "/notes/a.txt?download=1".

        Returns:
            Absolute path equal to or below the root.

        Raises:
            Failure: status 403, message "Forbidden", when the normalized
                     path falls outside the root.
        """
        pathname = split_target(url)[0]
        if pathname == "/":
            pathname = INDEX_PATH

        # Only the leading separator goes: "//etc" keeps its second slash
        # and therefore joins as an absolute path, which step 6 rejects.
        relative = unquote(pathname)[1:]
        full_path = os.path.normpath(os.path.join(self._root, relative))

        if full_path != self._root and not full_path.startswith(self._prefix):
            logger.warning(f"Path traversal attempt rejected: {url!r}")
            raise Failure("Forbidden", status=HTTPStatus.FORBIDDEN)

        return Path(full_path)

    def __repr__(self) -> str:
        return f"PathResolver(root={self._root!r})"
