"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Turns a parsed request into a response by looking at the filesystem.
Every request, whatever its method, is treated as a read.

=============================================================================
DECISION FLOW
=============================================================================

    resolve(request.path)
        │
        ├── ASSET ──────────────────────────────────► serve file
        │
        ├── MISSING ────────────────────────────────► 404
        │                                              (root 404.html or
        │                                               "Not Found")
        ├── DIRECTORY
        │     ├── has index.html ───────────────────► 200 index.html
        │     ├── listing rendered ─────────────────► 200 listing
        │     ├── vanished, SPA off ────────────────► 404
        │     └── vanished, SPA on ─────────────────► 200 root index.html
        │
        └── FILE ───────────────────────────────────► serve file
                                                        │
            ┌───────────────────────────────────────────┘
            ▼
        read bytes, stat
            ├── gone (SPA on)  ─────────────────────► 200 root index.html
            ├── gone (SPA off) ─────────────────────► 404
            ▼
        classify binary/text ──► Content-Type
        negotiate cache      ──► Cache-Control, Pragma, ETag, Last-Modified
            ├── If-Modified-Since matches ──────────► 304, empty body
            └── otherwise ──────────────────────────► 200, file bytes

=============================================================================
ERRORS
=============================================================================

Absence is expected and answered locally (404, SPA fallback). That covers
files deleted between resolution and reading. Any other OSError (permission
denied, I/O error) propagates; the server turns it into a 500.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Optional

from ..config import ServerConfig
from ..http.mime_types import content_type, extension_of, is_binary
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, not_found
from .caching import CacheNegotiator
from .listing import DirectoryRenderer
from .resolver import PathResolver, is_absent_error


logger = logging.getLogger(__name__)


INDEX_FILE = "index.html"
NOT_FOUND_PAGE = "404.html"


def read_optional(path: Path) -> Optional[bytes]:
    """Bytes of `path`, or None if there is no regular file there."""
    try:
        return path.read_bytes()
    except IsADirectoryError:
        return None
    except OSError as e:
        if not is_absent_error(e):
            raise
        return None


class RequestHandler:
    """
    Serves files, listings and the SPA shell from the configured root.

    The collaborators are created from the config unless given, which is
    what the tests use to swap them out.

    Usage:
        handler = RequestHandler(config)
        response = handler.handle(request)
    """

    def __init__(
        self,
        config: ServerConfig,
        resolver: Optional[PathResolver] = None,
        renderer: Optional[DirectoryRenderer] = None,
        negotiator: Optional[CacheNegotiator] = None,
    ):
        self.config = config
        self.root = Path(config.root_directory)
        self.resolver = resolver or PathResolver(config)
        self.renderer = renderer or DirectoryRenderer(config)
        self.negotiator = negotiator or CacheNegotiator(config.cache_seconds)

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        return self.handle(request)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Answer one request.

        Args:
            request: The parsed request; only path and If-Modified-Since
                     are consulted.

        Returns:
            The response. HEAD body stripping is left to the server.

        Raises:
            OSError: Unexpected filesystem errors (other than absence).
        """
        target = self.resolver.resolve(request.path)

        if target.is_asset:
            return self._serve_file(target.path, request)

        if target.is_missing:
            return self._not_found()

        if target.is_directory:
            return self._serve_directory(target.path)

        return self._serve_file(target.path, request)

    # =========================================================================
    # STRATEGIES
    # =========================================================================

    def _serve_directory(self, directory: Path) -> HTTPResponse:
        index = self._serve_document(directory / INDEX_FILE)
        if index is not None:
            return index

        page = self.renderer.render(directory)
        if page is not None:
            return ResponseBuilder().html(page).build()

        return self._spa_fallback()

    def _serve_file(self, path: Path, request: HTTPRequest) -> HTTPResponse:
        """
        Serve a file with cache headers, 304 when the client is current.
        """
        try:
            contents = path.read_bytes()
            stat_result = path.stat()
        except OSError as e:
            if not is_absent_error(e):
                raise
            # Never existed (SPA mode, possibly below a file) or deleted
            # since resolution
            return self._spa_fallback()

        binary = is_binary(path.name, contents)
        cache = self.negotiator.negotiate(stat_result, request.if_modified_since)

        builder = (ResponseBuilder()
            .status(cache.status)
            .content_type(content_type(extension_of(path.name), binary=binary))
            .headers(cache.header_items()))

        if not cache.not_modified:
            builder.body(contents)

        return builder.build()

    def _serve_document(self, path: Path) -> Optional[HTTPResponse]:
        """
        200 with the contents of an index page, or None if it's absent.

        Index pages and the SPA shell are sent without validators.
        """
        contents = read_optional(path)
        if contents is None:
            return None

        return (ResponseBuilder()
            .content_type(content_type(extension_of(path.name)))
            .body(contents)
            .build())

    def _spa_fallback(self) -> HTTPResponse:
        """Root index.html in SPA mode, 404 otherwise or when it's missing."""
        if self.config.single_page:
            shell = self._serve_document(self.root / INDEX_FILE)
            if shell is not None:
                return shell
            logger.debug("SPA mode is on but the root has no index.html")

        return self._not_found()

    def _not_found(self) -> HTTPResponse:
        custom = read_optional(self.root / NOT_FOUND_PAGE)
        if custom is None:
            return not_found()
        return not_found(custom, content_type="text/html; charset=utf-8")
