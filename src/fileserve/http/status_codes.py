"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes a static file server actually emits, with their reason
phrases.

=============================================================================
WHICH CODES DOES A FILE SERVER NEED?
=============================================================================

    ┌───────┬──────────────────────────┬─────────────────────────────────┐
    │ Code  │ Phrase                   │ When we send it                 │
    ├───────┼──────────────────────────┼─────────────────────────────────┤
    │  200  │ OK                       │ File, listing or SPA shell      │
    │  304  │ Not Modified             │ If-Modified-Since matched       │
    │  400  │ Bad Request              │ Malformed request line/headers  │
    │  404  │ Not Found                │ Nothing at that path            │
    │  405  │ Method Not Allowed       │ Unknown method token            │
    │  408  │ Request Timeout          │ Client too slow to send request │
    │  413  │ Payload Too Large        │ Request over max_request_size   │
    │  500  │ Internal Server Error    │ Unexpected I/O failure          │
    │  503  │ Service Unavailable      │ Worker queue is full            │
    │  505  │ HTTP Version Not Support │ Anything but HTTP/1.0 and 1.1   │
    └───────┴──────────────────────────┴─────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by the server.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.NOT_MODIFIED == 304
        True
        >>> HTTPStatus.NOT_MODIFIED.phrase
        'Not Modified'
    """

    # 2xx SUCCESS
    OK = 200

    # 3xx REDIRECTION
    NOT_MODIFIED = 304          # Cached copy is still valid, no body

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line (``HTTP/1.1 404 Not Found``)."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_error(self) -> bool:
        """True for 4xx and 5xx codes."""
        return self >= 400

    @property
    def allows_body(self) -> bool:
        """
        Whether a response with this status may carry a body.

        RFC 7230 section 3.3: 1xx, 204 and 304 responses never have one.
        """
        return not (100 <= self < 200 or self in (204, 304))


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
