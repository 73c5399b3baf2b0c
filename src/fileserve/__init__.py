"""
=============================================================================
FILESERVE - Static File Server for Local Development
=============================================================================

Serves a directory over HTTP/1.1, built on raw sockets and a thread pool.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   1. FILES          exact bytes, Content-Type from extension and    │
    │                     content sniffing (binary vs text)               │
    │                                                                      │
    │   2. LISTINGS       HTML index for directories without index.html,  │
    │                     breadcrumbs, sizes, ignored names hidden        │
    │                                                                      │
    │   3. SPA MODE       unknown paths serve the root index.html         │
    │                                                                      │
    │   4. CACHING        ETag, Last-Modified, Cache-Control,             │
    │                     If-Modified-Since → 304                         │
    │                                                                      │
    │   5. COMPRESSION    gzip for text responses                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    fileserve/
    ├── __main__.py          # CLI (fileserve / python -m fileserve)
    ├── server.py            # HTTPServer: wires everything together
    ├── config.py            # ServerConfig (frozen dataclass)
    ├── assets/              # listing stylesheet, served under a random prefix
    ├── core/                # sockets, connections, thread pool
    ├── http/                # request parsing, responses, MIME detection
    ├── handlers/            # resolve → list / serve / 404 / SPA
    └── middleware/          # access log, gzip

=============================================================================
QUICK START
=============================================================================

    from fileserve import HTTPServer, ServerConfig

    config = ServerConfig(root_directory="./public", single_page=True)
    HTTPServer(config).run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ConfigurationError, ServerConfig
from .server import HTTPServer

__all__ = ["HTTPServer", "ServerConfig", "ConfigurationError", "__version__"]
