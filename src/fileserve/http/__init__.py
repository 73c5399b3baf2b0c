"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything that knows about the HTTP wire format and nothing about files:

    request.py      bytes ──► HTTPRequest
    response.py     HTTPResponse ──► bytes, HTTP-date helpers
    status_codes.py the status codes we emit
    mime_types.py   binary/text detection and Content-Type lookup

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    format_http_date,
    parse_http_date,
    not_found,
    error_response,
    internal_error,
)
from .status_codes import HTTPStatus
from .mime_types import content_type, is_binary


__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    "HTTPResponse",
    "ResponseBuilder",
    "format_http_date",
    "parse_http_date",
    "not_found",
    "error_response",
    "internal_error",

    "HTTPStatus",

    "content_type",
    "is_binary",
]
