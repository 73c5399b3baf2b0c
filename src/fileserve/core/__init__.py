"""
=============================================================================
CORE NETWORKING
=============================================================================

The TCP and concurrency layer underneath the file server:

    socket_server.py   listening socket, accept loop, signals, port probing
    connection.py      one client socket: buffered reads, keep-alive
    thread_pool.py     worker threads that process connections

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SocketServer.accept() ──► Connection ──► ThreadPool.submit()       │
    │                                              │                       │
    │                                              ▼                       │
    │                              worker: read ► parse ► handle ► send    │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer, find_open_port, is_port_available
from .connection import Connection, ConnectionState, RequestTooLarge
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "find_open_port",
    "is_port_available",
    "Connection",
    "ConnectionState",
    "RequestTooLarge",
    "ThreadPool",
]
