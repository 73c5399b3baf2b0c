"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses with proper formatting per RFC 7230.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 200 OK\r\n                         ← status line        │
    │    Content-Type: text/css; charset=utf-8\r\n   ← headers            │
    │    Cache-Control: public, max-age=3600\r\n                          │
    │    Pragma: public\r\n                                               │
    │    ETag: "2049-1837261-1767268800000"\r\n                           │
    │    Content-Length: 1024\r\n                    ← auto-added         │
    │    Date: Wed, 01 Jan 2026 12:00:00 GMT\r\n     ← auto-added         │
    │    Server: fileserve/1.0\r\n                   ← auto-added         │
    │    \r\n                                        ← separator          │
    │    body { margin: 0 } ...                      ← body bytes         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
BODYLESS RESPONSES
=============================================================================

Two cases never carry a body even though a handler produced headers:

    304 Not Modified   The client already has the bytes. Headers are
                       still sent (ETag, Cache-Control, ...), the body is
                       empty.

    HEAD request       Same headers as the GET, including the
                       Content-Length the GET would have had, no body.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Dict, Iterable, Optional, Tuple, Union

from .status_codes import HTTPStatus


DEFAULT_SERVER_NAME = "fileserve/1.0"


@dataclass
class HTTPResponse:
    """
    An HTTP response waiting to be serialized.

    Use ResponseBuilder for a more convenient way to construct responses.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """``HTTP/1.1 304 Not Modified``"""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a response header. Returns self for chaining."""
        self.headers[name] = value
        return self

    def strip_body(self) -> "HTTPResponse":
        """
        Drop the body but keep the Content-Length it would have had.

        Used for HEAD requests.
        """
        if self.status.allows_body:
            self.headers.setdefault("Content-Length", str(len(self.body)))
        self.body = b""
        return self

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize the response for socket.sendall().

        Content-Length, Date and Server are added when missing. Responses
        whose status forbids a body (304) are sent without one.

        Args:
            server_name: Value for the Server header.
        """
        response_headers = dict(self.headers)
        body = self.body if self.status.allows_body else b""

        if self.status.allows_body and "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(body))

        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + body


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .content_type("text/css; charset=utf-8")
            .headers(cache.header_items())
            .body(css_bytes)
            .build())

    Every method except build() returns self.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Iterable[Tuple[str, str]]) -> "ResponseBuilder":
        """
        Add several headers at once.

        Args:
            headers: Ordered (name, value) pairs. They are applied in order,
                     so a later pair wins over an earlier one.
        """
        for name, value in headers:
            self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set the raw body (strings are encoded as UTF-8)."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def html(self, html: Union[str, bytes]) -> "ResponseBuilder":
        self.body(html)
        self._headers["Content-Type"] = "text/html; charset=utf-8"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


# =============================================================================
# HTTP DATES
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Wed, 01 Jan 2026 12:00:00 GMT

    HTTP dates are ALWAYS in GMT; aware datetimes are converted to UTC.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def parse_http_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an HTTP-date header value into an aware UTC datetime.

    Accepts the three formats RFC 7231 requires recipients to understand
    (IMF-fixdate, RFC 850, asctime). Returns None for anything unparseable,
    so callers can treat a garbage header exactly like a missing one.
    """
    if not value:
        return None

    try:
        parsed = parsedate_to_datetime(value.strip())
    except (TypeError, ValueError, IndexError):
        return None

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def not_found(body: Union[str, bytes] = "Not Found",
              content_type: str = "text/plain; charset=utf-8") -> HTTPResponse:
    """
    Create a 404 Not Found response.

    Args:
        body: Literal "Not Found" or the contents of a custom 404 page.
        content_type: text/html when a custom 404 page is served.
    """
    return (ResponseBuilder()
        .status(HTTPStatus.NOT_FOUND)
        .content_type(content_type)
        .body(body)
        .build())


def error_response(status: HTTPStatus, message: Optional[str] = None) -> HTTPResponse:
    """Plain-text error response; the message defaults to the reason phrase."""
    status = HTTPStatus(status)
    return ResponseBuilder().status(status).text(message or status.phrase).build()


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """
    Create a 500 Internal Server Error response.

    Keep the message generic: the details belong in the server log.
    """
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)
