"""
=============================================================================
CONDITIONAL CACHING
=============================================================================

Computes the cache headers for a served file and decides 200 vs 304.

    ┌──────────────────────────────────────────────────────────────────────┐
    │  First request                                                       │
    │                                                                      │
    │  GET /app.js                 ──►   200 OK                            │
    │                                    ETag: "2049-1837261-1767268800000"│
    │                                    Last-Modified: Thu, 01 Jan ...    │
    │                                    Cache-Control: public, max-age=.. │
    │                                                                      │
    │  Revalidation                                                        │
    │                                                                      │
    │  GET /app.js                 ──►   304 Not Modified (no body)        │
    │  If-Modified-Since: Thu, 01 Jan ...                                  │
    └──────────────────────────────────────────────────────────────────────┘

The comparison is an exact millisecond match of If-Modified-Since against
the file's mtime. HTTP dates only have second resolution, so a file whose
mtime has a fractional second never matches and is always re-sent.
Weak validators and If-None-Match are not evaluated.

=============================================================================
"""

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ..http.response import format_http_date, parse_http_date
from ..http.status_codes import HTTPStatus


@dataclass(frozen=True)
class CacheMetadata:
    """Cache headers and the status decision for one file response."""

    etag: str
    cache_control: str
    pragma: str
    last_modified: str
    status: HTTPStatus = HTTPStatus.OK

    @property
    def not_modified(self) -> bool:
        return self.status == HTTPStatus.NOT_MODIFIED

    def header_items(self) -> list[tuple[str, str]]:
        """Headers in the order they are written to the response."""
        return [
            ("Cache-Control", self.cache_control),
            ("Pragma", self.pragma),
            ("ETag", self.etag),
            ("Last-Modified", self.last_modified),
        ]


def mtime_millis(stat_result: os.stat_result) -> int:
    """Modification time in whole milliseconds since the epoch."""
    return stat_result.st_mtime_ns // 1_000_000


def make_etag(stat_result: os.stat_result) -> str:
    """
    Quoted ETag from the file identity triple.

        >>> make_etag(os.stat("a.txt"))       # doctest: +SKIP
        '"2049-1837261-1767268800000"'

    On platforms without inode numbers st_ino is 0, and the ETag still
    changes with every modification.
    """
    return f'"{stat_result.st_dev}-{stat_result.st_ino}-{mtime_millis(stat_result)}"'


class CacheNegotiator:
    """
    Builds CacheMetadata from a stat result and the request headers.

    Usage:
        negotiator = CacheNegotiator(cache_seconds=3600)
        meta = negotiator.negotiate(path.stat(), request.if_modified_since)
    """

    def __init__(self, cache_seconds: int = 3600):
        self.cache_seconds = cache_seconds

    def negotiate(
        self,
        stat_result: os.stat_result,
        if_modified_since: Optional[str] = None,
    ) -> CacheMetadata:
        """
        Args:
            stat_result: os.stat() of the file being served.
            if_modified_since: Raw header value, or None.

        Returns:
            CacheMetadata with status 304 when the header's timestamp equals
            the mtime to the millisecond, 200 otherwise.
        """
        modified = datetime.fromtimestamp(stat_result.st_mtime, tz=timezone.utc)

        status = HTTPStatus.OK
        since = parse_http_date(if_modified_since)
        if since is not None:
            since_ms = int(since.timestamp() * 1000)
            if since_ms == mtime_millis(stat_result):
                status = HTTPStatus.NOT_MODIFIED

        return CacheMetadata(
            etag=make_etag(stat_result),
            cache_control=f"public, max-age={self.cache_seconds}",
            pragma="public",
            last_modified=format_http_date(modified),
            status=status,
        )
