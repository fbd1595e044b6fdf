"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing underneath the HTTP layer.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SocketServer   listening socket, interruptible accept() loop       │
    └─────────────────────────────────────────────────────────────────────┘
                                    │ new connections
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  ThreadPool     bounded queue + worker threads                      │
    └─────────────────────────────────────────────────────────────────────┘
                                    │ one worker per connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  Connection     buffered reads, keep-alive, idle/busy state         │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "ThreadPool",
]
