"""
Request handlers: one coroutine per HTTP method, each returning an Outcome.

    from httpfs.handlers import FileHandlers

    files = FileHandlers(PathResolver("/srv/www"))
    registry = MethodRegistry({"GET": files.get, "PUT": files.put})
"""

from .files import FileHandlers

__all__ = [
    "FileHandlers",
]
