"""
=============================================================================
MIDDLEWARE PIPELINE
=============================================================================

Cross-cutting concerns (access logging, compression) wrap the request
handler without it knowing about them.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   Request ──────────────────────────────────────────────►           │
    │                                                                      │
    │   ┌──────────────┐    ┌───────────────┐    ┌────────────────┐       │
    │   │   Logging    │───►│  Compression  │───►│ RequestHandler │       │
    │   └──────┬───────┘    └───────┬───────┘    └───────┬────────┘       │
    │          │                    │                    │                 │
    │   [before] start timer  [before] nothing     [exec] resolve,        │
    │                                               serve                  │
    │   [after]  log line     [after]  gzip body                          │
    │                                                                      │
    │   ◄────────────────────────────────────────────────── Response      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The first middleware added is the outermost, so the access log sees the
final (compressed) response and the time spent compressing it.

=============================================================================
"""

import logging
from abc import ABC, abstractmethod
from functools import partial
from typing import Callable, List

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# The next middleware, or the final handler
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for middleware.

        class MyMiddleware(Middleware):
            def __call__(self, request, next):
                response = next(request)      # continue the chain
                response.set_header("X-Seen", "1")
                return response

    Returning without calling next() short-circuits the chain.
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Args:
            request: The incoming HTTP request
            next: The next handler in the chain

        Returns:
            HTTP response (from next() or short-circuited)
        """

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Chains middleware around a final handler.

        pipeline = MiddlewarePipeline()
        pipeline.use(LoggingMiddleware(), CompressionMiddleware())

        handler = pipeline.wrap(request_handler.handle)
        response = handler(request)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Append middleware (first added = outermost). Returns self."""
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Compose the pipeline around `handler`.

        [Logging, Compression] + handler gives
        Logging(request, next=Compression(request, next=handler)).
        """
        chain = handler
        for middleware in reversed(self._middleware):
            chain = partial(_call_with_next, middleware, chain)
        return chain

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)


def _call_with_next(middleware: Middleware, next_handler: NextHandler,
                    request: HTTPRequest) -> HTTPResponse:
    return middleware(request, next_handler)
