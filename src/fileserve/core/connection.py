"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted socket: buffered request reading, keep-alive timeouts,
and a clean TCP close.

=============================================================================
KEEP-ALIVE
=============================================================================

A browser opening a directory listing fetches the page, then the
stylesheet from the asset namespace, then maybe a favicon. With keep-alive
all of that rides one TCP connection:

    TCP connect
        ├── GET /docs/                      (timeout: 30s)
        ├── GET /k3j9x0q2mz/styles.css      (timeout: 5s, keep-alive)
        ├── GET /favicon.ico                (timeout: 5s, keep-alive)
        │
    TCP close (client done, or keep-alive timeout)

Bytes received past the end of one request (a pipelined second request)
stay in the buffer for the next read_request().

=============================================================================
CONNECTION STATES
=============================================================================

    NEW ──► READING ──► PROCESSING ──► WRITING ──► KEEP_ALIVE ──┐
             ▲                                                   │
             └───────────────────────────────────────────────────┘
    any ──► CLOSING ──► CLOSED

=============================================================================
"""

import contextlib
import socket
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


class RequestTooLarge(ValueError):
    """The client sent more than max_request_size bytes for one request."""


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short connection id for log lines.
        state: Current ConnectionState.
        requests_handled: Requests read so far on this connection.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request.

        Reads until the blank line ending the headers, then Content-Length
        bytes of body (file requests normally have none).

        Returns:
            The request bytes, or None when the client closed the
            connection or a keep-alive wait timed out.

        Raises:
            TimeoutError: The first request didn't arrive in time.
            RequestTooLarge: The request exceeds max_request_size.
        """
        self.state = ConnectionState.READING

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None
                self._append(chunk)

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = parse_content_length(self._buffer[:header_end])

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    # Closed mid-body; the parser reports the short body
                    break
                self._append(chunk)

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            return request_data

        except socket.timeout:
            if self.requests_handled > 0:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")

        finally:
            self.socket.settimeout(self.timeout)

    def _append(self, chunk: bytes):
        self._buffer += chunk
        if len(self._buffer) > self.max_request_size:
            raise RequestTooLarge(f"Request too large: {len(self._buffer)} bytes")

    def _recv(self) -> bytes:
        """recv() that maps a reset connection to EOF."""
        try:
            data = self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""
        return data

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes with sendall().

        Returns:
            True if sent, False if the client went away.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

        return True

    def close(self):
        """
        Close gracefully: FIN (shutdown SHUT_WR), drain what the client
        still sends, then release the descriptor.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        # The peer may already be gone; none of these steps can be retried
        with contextlib.suppress(OSError):
            self.socket.shutdown(socket.SHUT_WR)

        with contextlib.suppress(OSError):
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                continue

        with contextlib.suppress(OSError):
            self.socket.close()

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def parse_content_length(headers: bytes) -> int:
    """
    Content-Length from raw header bytes, 0 if absent or invalid.

    A full parse happens later in RequestParser, which rejects an invalid
    value with 400.
    """
    for line in headers.decode("latin-1").lower().split("\r\n"):
        name, _, value = line.partition(":")
        if name.strip() == "content-length":
            value = value.strip()
            return int(value) if value.isdigit() else 0
    return 0
