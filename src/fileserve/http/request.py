"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses raw HTTP/1.1 request bytes into HTTPRequest objects (RFC 7230).

=============================================================================
WHAT A FILE SERVER NEEDS FROM A REQUEST
=============================================================================

    GET /docs/My%20File.txt?v=2 HTTP/1.1\r\n
    ─┬─ ───────────┬──────────── ────┬───
     │             │                 └── version: keep-alive defaults
     │             └── target: path + query string
     └── method: every method is served as a read

    Host: localhost:3000\r\n
    If-Modified-Since: Wed, 01 Jan 2026 12:00:00 GMT\r\n  ← conditional GET
    Accept-Encoding: gzip, deflate\r\n                    ← compression
    \r\n

=============================================================================
THE PATH STAYS PERCENT-ENCODED
=============================================================================

The parser does NOT decode `%20` and friends. Decoding is part of path
resolution, which happens exactly once, right before the filesystem is
touched. Decoding twice would turn `%2525` into `%` instead of `%25`.

Likewise the parser does not reject `..` segments: the resolver normalizes
the path and answers 404 for anything that escapes the served directory.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import urlsplit
import re


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the status code to answer with:
        400 Bad Request                - Malformed request syntax
        405 Method Not Allowed         - Unknown method token
        413 Payload Too Large          - Request exceeds size limit
        505 HTTP Version Not Supported - Anything but HTTP/1.0 or 1.1
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method:         HTTP method token ("GET", "HEAD", ...)
        path:           Request path without query string, still
                        percent-encoded ("/My%20Docs/")
        version:        "HTTP/1.1" or "HTTP/1.0"
        headers:        Header dict with LOWERCASE names
        body:           Raw request body bytes (ignored by the file server)
        client_address: (ip, port) of the client, for access logs
        raw:            Original request bytes
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    client_address: tuple[str, int] = ("", 0)
    raw: bytes = b""

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def if_modified_since(self) -> Optional[str]:
        """Raw If-Modified-Since value, or None when the header is absent."""
        return self.headers.get("if-modified-since")

    @property
    def is_head(self) -> bool:
        """HEAD requests get the headers of a GET without the body."""
        return self.method == "HEAD"

    @property
    def is_keep_alive(self) -> bool:
        """
        Check if this connection should be kept alive.

        HTTP/1.1 keeps alive unless `Connection: close` is sent.
        HTTP/1.0 closes unless `Connection: keep-alive` is sent.
        """
        connection = self.headers.get("connection", "").lower()

        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


def target_path(target: str) -> str:
    """
    Path part of a request target, query and fragment dropped.

    Origin form ("/a/b?x") is split by hand: "//sub/a.txt" is a path, not
    a host followed by "/a.txt". Only absolute form ("http://host/a/b")
    carries a host.

        >>> target_path("//sub/a.txt?v=2")
        '//sub/a.txt'
        >>> target_path("http://localhost:3000/docs/")
        '/docs/'

    Raises:
        HTTPParseError: Neither form (e.g. "*" or "docs/").
    """
    if target.startswith("/"):
        return target.split("#", 1)[0].split("?", 1)[0]

    if "://" in target:
        path = urlsplit(target).path or "/"
        if path.startswith("/"):
            return path

    raise HTTPParseError(f"Invalid request target: {target}")


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    ==========================================================================
    PARSER ARCHITECTURE
    ==========================================================================

        Raw Request Bytes
              │
              ├──► split at \\r\\n\\r\\n ──► header section │ body
              │
              ├──► first line ──► _parse_request_line() ──► method, path, version
              │
              └──► other lines ──► _parse_headers() ──► {name: value}

    ==========================================================================
    """

    # Standard methods from RFC 7231 + PATCH. Anything else is a 405.
    VALID_METHODS = {
        "GET", "HEAD", "POST", "PUT", "DELETE",
        "PATCH", "OPTIONS", "TRACE", "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        """
        Args:
            max_request_size: Maximum allowed request size in bytes.
                              Larger requests are rejected with 413.
        """
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data into an HTTPRequest object.

        Args:
            data: Raw HTTP request bytes from the socket.
            client_address: Client's (ip, port) tuple for logging.

        Returns:
            Parsed HTTPRequest object.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")

        method, path, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        # ─────────────────────────────────────────────────────────────────
        # BODY: exactly Content-Length bytes, extra data is the next request
        # ─────────────────────────────────────────────────────────────────
        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")

        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )
        body = body[:content_length]

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            body=body,
            client_address=client_address,
            raw=data,
        )

    def _parse_request_line(
        self,
        line: str
    ) -> tuple[str, str, str]:
        """
        Parse `METHOD SP REQUEST-URI SP HTTP-VERSION`.

        Returns:
            Tuple of (method, path, version)

        Raises:
            HTTPParseError: If the line is malformed
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505
            )

        return method, target_path(uri), version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict with lowercase names.

        Handles obsolete line folding (continuation lines starting with
        whitespace) and joins repeated headers with ", " per RFC 7230.
        Malformed lines are skipped.
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024
) -> HTTPRequest:
    """Parse a request with a throwaway RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
