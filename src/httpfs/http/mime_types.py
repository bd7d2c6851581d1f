"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps a served file's extension to the Content-Type sent with it.

=============================================================================
LOOKUP ORDER
=============================================================================

    ┌────────────────────────────────────────────────────────────────────┐
    │                  get_mime_type("notes/a.TXT")                      │
    ├────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │  1. Lower-case the suffix            .TXT  → .txt                  │
    │  2. Our own table (MIME_TYPES)       .txt  → text/plain   ✓        │
    │  3. The platform table (mimetypes)   only if step 2 missed         │
    │  4. DEFAULT_MIME_TYPE                application/octet-stream      │
    │                                                                     │
    └────────────────────────────────────────────────────────────────────┘

Our table wins over the platform's because the platform table differs
between operating systems (Windows reads it from the registry), and a file
server should answer the same Content-Type for the same file everywhere.

No charset parameter is appended: the server never transcodes files, it
streams their bytes as stored.

=============================================================================
"""

import mimetypes
from pathlib import Path
from typing import Optional, Union


# =============================================================================
# MIME TYPE TABLE
# =============================================================================
#
# Extensions are lower-case and include the dot.
#
# =============================================================================

MIME_TYPES = {
    # Text and markup
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".xml": "application/xml",
    ".json": "application/json",
    ".map": "application/json",
    ".yaml": "text/yaml",
    ".yml": "text/yaml",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Audio / video
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # Documents and archives
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".gz": "application/gzip",
    ".tar": "application/x-tar",
    ".wasm": "application/wasm",
}

# "Some bytes, no idea what they are" - browsers download rather than render.
DEFAULT_MIME_TYPE = "application/octet-stream"


def get_mime_type(path: Union[str, Path], default: Optional[str] = None) -> str:
    """
    Get the MIME type for a file from its extension.

    Args:
        path: File path or bare file name.
        default: Returned when nothing matches. Falls back to
                 application/octet-stream.

    Returns:
        The MIME type, without parameters.

    Examples:
        >>> get_mime_type("/srv/notes/a.txt")
        'text/plain'
        >>> get_mime_type("archive.unknownext")
        'application/octet-stream'
    """
    if isinstance(path, str):
        path = Path(path)

    extension = path.suffix.lower()
    if extension in MIME_TYPES:
        return MIME_TYPES[extension]

    guessed, _encoding = mimetypes.guess_type(path.name, strict=False)
    return guessed or default or DEFAULT_MIME_TYPE
