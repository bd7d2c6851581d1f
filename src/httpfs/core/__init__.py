"""
Transport internals: the h11 connection wrapper and the async file streams.
"""

from .connection import HTTPConnection, RequestBodyStream
from .streams import FileReadStream, FileWriteStream, copy_stream

__all__ = [
    "HTTPConnection",
    "RequestBodyStream",
    "FileReadStream",
    "FileWriteStream",
    "copy_stream",
]
