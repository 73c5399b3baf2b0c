"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One log line per request on the `fileserve.access` logger.

    TEXT (default, Apache style):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 192.168.1.7 - - [01/Jan/2026:12:00:00 +0000] "GET /app.js" 200 ... │
    │ ─────────── ─────────────────────────────── ──────────── ─── ───   │
    │ client      timestamp                       request    status size │
    └─────────────────────────────────────────────────────────────────────┘

    JSON (--log-format json):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"request_id": "a1b2c3d4", "method": "GET", "path": "/app.js",     │
    │  "client_ip": "192.168.1.7", "status_code": 304, ...}              │
    └─────────────────────────────────────────────────────────────────────┘

Silence it with logging.getLogger("fileserve.access").setLevel(WARNING).

=============================================================================
"""

import time
import json
import uuid
import logging
from dataclasses import asdict, dataclass

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("fileserve.access")


@dataclass
class RequestLog:
    """Structured access log entry."""

    request_id: str
    method: str
    path: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Access log middleware. Add it FIRST so the timing covers compression
    and the logged size is what went over the wire.

        pipeline.add(LoggingMiddleware(log_format="json"))
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        """
        Args:
            log_format: "text" (Apache style) or "json".
            log_level: Level access lines are emitted at.
        """
        self.log_format = log_format
        self.log_level = log_level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()

        try:
            response = next(request)
        except Exception as e:
            # Still log failed requests; the server answers them with a 500
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            client_ip=request.client_address[0],
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())

        return response
