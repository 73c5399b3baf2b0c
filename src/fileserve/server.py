"""
=============================================================================
FILE SERVER
=============================================================================

Ties the pieces together: socket server, thread pool, request parser,
middleware pipeline and the static RequestHandler.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer ──accept──► ThreadPool ──worker──► _process_connection│
    │                                                        │             │
    │           ┌────────────────────────────────────────────┘             │
    │           ▼                                                          │
    │     read_request() ──► RequestParser ──► Logging ──► Compression    │
    │                                                          │           │
    │                                                          ▼           │
    │     send_response() ◄── to_bytes() ◄────────────── RequestHandler   │
    │           │                                                          │
    │           └── keep-alive? read the next request : close             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHERE ERRORS END UP
=============================================================================

    malformed request      HTTPParseError ──► 400/405/413/505, close
    client too slow        TimeoutError   ──► 408, close
    request too big        RequestTooLarge ─► 413, close
    handler blew up        any Exception  ──► logged with traceback, 500

A failing request never takes the process down; the worker moves on to
the next connection.

=============================================================================
"""

import logging
from typing import Callable, Optional

from .config import ServerConfig
from .core import Connection, RequestTooLarge, SocketServer, ThreadPool
from .core.connection import ConnectionState
from .handlers import RequestHandler
from .http import (
    HTTPParseError,
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    RequestParser,
    error_response,
    internal_error,
)
from .middleware import CompressionMiddleware, LoggingMiddleware, Middleware, MiddlewarePipeline


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Multi-threaded HTTP/1.1 static file server.

    Usage:
        config = ServerConfig(root_directory="./public", port=3000)
        config.validate()

        server = HTTPServer(config)
        server.run()          # blocks until Ctrl+C / SIGTERM

    From another thread (tests):
        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_ready(5)
        ...
        server.shutdown()
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None,
    ):
        """
        Args:
            config: Server configuration (validated here, fail-fast).
            handler: Final request handler; a RequestHandler for the
                     configured root when omitted.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        self._middleware = MiddlewarePipeline()
        self._middleware.add(LoggingMiddleware(log_format=self.config.log_format))
        if not self.config.gzip_disabled:
            self._middleware.add(CompressionMiddleware())

        self._request_handler = handler or RequestHandler(self.config)
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None
        self._running = False

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware inside the built-in ones. Call before run()."""
        self._middleware.add(middleware)
        return self

    def run(self, configure_logging: bool = True):
        """
        Start serving (blocking).

        Args:
            configure_logging: Set up root logging from the config. Off when
                               the embedding application owns logging.

        Raises:
            OSError: The port can't be bound.
        """
        if configure_logging:
            self._setup_logging()

        self._handler = self._middleware.wrap(self._request_handler)
        self._running = True
        self._thread_pool.start()

        logger.info(
            f"Serving {self.config.root_directory} on "
            f"{self.config.host}:{self.config.port}"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Ask a running server to stop. Returns immediately."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is up. False on timeout."""
        return self._socket_server.wait_until_ready(timeout)

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("fileserve").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=5.0)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING (worker threads)
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Queue a freshly accepted connection on the thread pool."""
        submitted = self._thread_pool.submit(
            self._process_connection,
            args=(conn,),
            deadline=self.config.timeout,
            on_expire=conn.close,
            block=False,
        )

        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()

    def _process_connection(self, conn: Connection):
        """
        The keep-alive loop for one connection: read, parse, handle, send,
        repeat until the client or the server wants to close.
        """
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        break

                    try:
                        request = self._parser.parse(raw_request, conn.address)
                    except HTTPParseError as e:
                        logger.debug(f"[{conn.id}] Bad request: {e}")
                        self._send_error(conn, HTTPStatus(e.status_code))
                        break

                    conn.state = ConnectionState.PROCESSING
                    response = self._respond(conn, request)

                    keep_alive = request.is_keep_alive and self.config.keep_alive
                    if keep_alive:
                        response.headers.setdefault("Connection", "keep-alive")
                        response.headers.setdefault(
                            "Keep-Alive",
                            f"timeout={int(self.config.keep_alive_timeout)}"
                        )
                    else:
                        response.headers["Connection"] = "close"

                    if not conn.send_response(response.to_bytes(self.config.server_name)):
                        break

                    if not keep_alive:
                        break

                    conn.set_keep_alive()

                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT)
                    break

                except RequestTooLarge as e:
                    logger.warning(f"[{conn.id}] {e}")
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE)
                    break

    def _respond(self, conn: Connection, request: HTTPRequest) -> HTTPResponse:
        """Run the handler chain; unexpected failures become a 500."""
        try:
            response = self._handler(request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Error serving {request.method} {request.path}: {e}")
            response = internal_error()

        if request.is_head:
            response.strip_body()

        return response

    def _send_error(self, conn: Connection, status: HTTPStatus, message: Optional[str] = None):
        """Error response for failures before the handler ran."""
        response = error_response(status, message)
        response.headers["Connection"] = "close"
        conn.send_response(response.to_bytes(self.config.server_name))
