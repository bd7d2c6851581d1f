"""
=============================================================================
MIDDLEWARE MODULE
=============================================================================

Async middleware wrapped around the dispatcher's routing step.

CORSMiddleware:
    Adds permissive Access-Control-* headers to every response and answers
    OPTIONS preflight requests itself. Always installed by the Dispatcher.

LoggingMiddleware:
    Access log line per request (text or JSON) plus an X-Request-ID header.

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .cors import CORSConfig, CORSMiddleware
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    # Base classes
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",

    # Built-in middleware
    "CORSConfig",
    "CORSMiddleware",
    "LoggingMiddleware",
    "RequestLog",
]
