"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

The listening socket and its accept loop. Every accepted client socket is
wrapped in a Connection and handed to a callback; the HTTP server decides
what to do with it.

SOCKET LIFECYCLE (Server Side):
────────────────────────────────

    1. socket()    Create a socket file descriptor
    2. bind()      Associate the socket with an IP:PORT
                   └─ Fails with "Address already in use" if another
                      listener owns the port. That error propagates.
    3. listen()    Mark socket as a "listening" socket
    4. accept()    Wait for a connection, returns a NEW client socket
    5. close()     Release the listening socket

=============================================================================
INTERRUPTIBLE ACCEPT
=============================================================================

accept() blocks. To stop the loop from another thread we give the
listening socket a short timeout (poll_interval) and re-check the running
flag every time it expires:

    while running:
        try:
            accept()          # blocks for poll_interval at most
        except timeout:
            continue          # check running flag, loop again

Signal handling is not done here. The lifecycle module owns SIGINT and
SIGTERM and calls shutdown() on the HTTP server, which stops this loop.

=============================================================================
"""

import socket
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP socket server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start(handler)       Blocks until shutdown()                      │
    │        ├──► _create_socket()   SO_REUSEADDR, TCP_NODELAY, timeout   │
    │        ├──► bind()             errors propagate to the caller       │
    │        ├──► listen()           sets the listening event             │
    │        └──► _accept_loop()     accept → Connection → handler         │
    │                                                                      │
    │    shutdown()           Clear the running flag (any thread)          │
    │    _cleanup()           Close the listening socket                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._stop_requested = False
        self._bound_address: Optional[Tuple[str, int]] = None

        self._listening = threading.Event()
        self._stopped = threading.Event()

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (ip, port); the configured one before binding."""
        if self._bound_address is not None:
            return self._bound_address
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Restart without waiting out TIME_WAIT. Unlike SO_REUSEPORT this
        # still refuses a second live listener on the same port.
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Disable Nagle's algorithm, responses go out immediately
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        sock.settimeout(self.config.poll_interval)
        return sock

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and accept connections until shutdown() is called.

        Raises:
            OSError: If the address cannot be bound or listened on.
        """
        self._stopped.clear()
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
            self._socket.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.listen_address}: {e}")
            self._cleanup()
            raise

        self._bound_address = self._socket.getsockname()[:2]
        self._running = True
        self._listening.set()

        logger.info(f"Socket server listening on {self._bound_address[0]}:{self._bound_address[1]}")

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running and not self._stop_requested:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                    raise
                break

            if not self._running:
                # Shutdown began while accept() was returning
                client_socket.close()
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
            )
            connection_handler(conn)

    def shutdown(self):
        """Stop accepting connections. Safe to call more than once."""
        self._stop_requested = True
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._running = False
        self._listening.clear()
        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None
            logger.info("Socket server stopped")
        self._stopped.set()

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is bound and listening."""
        return self._listening.wait(timeout)

    def wait_until_stopped(self, timeout: Optional[float] = None) -> bool:
        """Block until the accept loop has exited and the socket is closed."""
        return self._stopped.wait(timeout)
