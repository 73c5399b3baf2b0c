"""
=============================================================================
MIDDLEWARE
=============================================================================

Wrappers around the request handler for concerns that apply to every
response:

    LoggingMiddleware       one access log line per request
    CompressionMiddleware   gzip for text responses (off with --unzipped)

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Request ──► Logging ──► Compression ──► RequestHandler            │
    │   Response ◄── Logging ◄── Compression ◄──┘                         │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware
from .compression import CompressionMiddleware, accepts_gzip

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",

    "LoggingMiddleware",
    "CompressionMiddleware",
    "accepts_gzip",
]
