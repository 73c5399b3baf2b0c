"""
=============================================================================
COMPRESSION MIDDLEWARE
=============================================================================

Gzips text responses for clients that accept it. Disabled entirely with
`--unzipped`, in which case the server never adds this middleware.

=============================================================================
CONTENT NEGOTIATION
=============================================================================

    Request:
    ┌───────────────────────────────────────────────────────────────┐
    │ GET /app.js HTTP/1.1                                          │
    │ Accept-Encoding: gzip, deflate, br                            │
    └───────────────────────────────────────────────────────────────┘

    Response:
    ┌───────────────────────────────────────────────────────────────┐
    │ HTTP/1.1 200 OK                                               │
    │ Content-Type: text/javascript; charset=utf-8                  │
    │ Content-Encoding: gzip                                        │
    │ Content-Length: 1234    (compressed size)                     │
    │ Vary: Accept-Encoding   (caching hint)                        │
    │                                                               │
    │ [gzip compressed body]                                        │
    └───────────────────────────────────────────────────────────────┘

Only text types are compressed: images, fonts, archives and video are
already compressed and gzip would just burn CPU. `gzip;q=0` in the request
means the client refuses gzip.

The ETag is left untouched. It identifies the file on disk, and the
compressed bytes are a deterministic function of it: the gzip header
carries mtime 0, not the time of compression.

=============================================================================
"""

import gzip
from typing import Optional

from .base import Middleware, NextHandler
from ..http.mime_types import is_text_type
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


# In order of precedence
GZIP_CODINGS = ("gzip", "x-gzip", "*")


def accepts_gzip(accept_encoding: str) -> bool:
    """
    Check an Accept-Encoding value for gzip (or *) with a nonzero q.

    An explicit gzip entry wins over `*`, wherever it appears.

        >>> accepts_gzip("gzip, deflate, br")
        True
        >>> accepts_gzip("gzip;q=0, identity")
        False
        >>> accepts_gzip("*, gzip;q=0")
        False
    """
    qualities = {}
    for item in accept_encoding.lower().split(","):
        coding, _, params = item.partition(";")
        coding = coding.strip()
        if coding not in GZIP_CODINGS:
            continue

        quality = 1.0
        for param in params.split(";"):
            name, _, value = param.partition("=")
            if name.strip() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        qualities[coding] = quality

    for coding in GZIP_CODINGS:
        if coding in qualities:
            return qualities[coding] > 0

    return False


class CompressionMiddleware(Middleware):
    """
    Response compression middleware.

    1. Check if the client accepts gzip (Accept-Encoding)
    2. Call the next handler to get the response
    3. Compress if the body is big enough, a text type, not already encoded
    4. Update Content-Encoding, Content-Length, Vary

    Usage:
        pipeline.add(CompressionMiddleware())
        pipeline.add(CompressionMiddleware(min_size=256, level=9))
    """

    def __init__(self, min_size: int = 1024, level: int = 6, extra_types: Optional[set] = None):
        """
        Args:
            min_size: Smaller bodies are sent as-is; gzip overhead isn't
                      worth it. 1 KB by default.
            level: gzip level, 1 (fastest) to 9 (smallest).
            extra_types: Non-text MIME types to compress as well.
        """
        self.min_size = min_size
        self.level = level
        self.extra_types = set(extra_types or ())

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        gzip_ok = accepts_gzip(request.get_header("accept-encoding"))

        response = next(request)

        if not gzip_ok or not self._should_compress(response):
            return response

        original_size = len(response.body)
        compressed_body = gzip.compress(response.body, compresslevel=self.level, mtime=0)

        # Incompressible content can come out larger
        if len(compressed_body) >= original_size:
            return response

        response.body = compressed_body
        response.headers["Content-Encoding"] = "gzip"
        response.headers["Content-Length"] = str(len(compressed_body))

        vary = response.headers.get("Vary", "")
        if "Accept-Encoding" not in vary:
            response.headers["Vary"] = f"{vary}, Accept-Encoding".lstrip(", ")

        return response

    def _should_compress(self, response: HTTPResponse) -> bool:
        if not response.status.allows_body:
            return False

        if "Content-Encoding" in response.headers:
            return False

        if len(response.body) < self.min_size:
            return False

        # "text/css; charset=utf-8" → "text/css"
        content_type = response.headers.get("Content-Type", "")
        base_type = content_type.split(";")[0].strip().lower()

        return is_text_type(base_type) or base_type in self.extra_types
