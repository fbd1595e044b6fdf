"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps an accepted client socket with buffered reading, keep-alive timeouts
and a small state machine. The server uses the state to tell an idle
keep-alive connection (safe to close during shutdown) from one that is in
the middle of a request (must be allowed to finish).

=============================================================================
TCP IS A STREAM
=============================================================================

A single recv() may return half a request, or one and a half requests.
The connection keeps a byte buffer between calls:

    recv() → "GET / HTTP/1.1\\r\\nHo"       (partial headers, keep reading)
    recv() → "st: x\\r\\n\\r\\nGET /a HT"   (request 1 done, request 2 begun)

Anything after the end of the current request stays in the buffer for the
next read_request() call on the same keep-alive connection.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──────► READING ──────► PROCESSING ──────► WRITING ────────┐
     │             │                                    │           │
     │             │                                    │           ▼
     │             │                                    │      KEEP_ALIVE
     │             ▼                                    │           │
     └──────────► CLOSING ◄─────────────────────────────┴───────────┘
                    │
                    ▼
                  CLOSED

NEW and KEEP_ALIVE both mean "waiting for the first byte of a request".
They count as idle only while no request bytes are pending. A NEW
connection still queued for a worker may already hold a complete request
in the kernel buffer; that one is in flight, not idle.

=============================================================================
"""

import select
import socket
import threading
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Tuple


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states."""
    NEW = "new"                # Accepted, nothing read yet
    READING = "reading"        # Request bytes are arriving
    PROCESSING = "processing"  # Handler is running
    WRITING = "writing"        # Sending the response
    KEEP_ALIVE = "keep_alive"  # Waiting for the next request
    CLOSING = "closing"
    CLOSED = "closed"


IDLE_STATES = frozenset({ConnectionState.NEW, ConnectionState.KEEP_ALIVE})


@dataclass(eq=False)
class Connection:
    """
    Represents a client connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection Responsibilities                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. BUFFERED READING      complete requests out of a byte stream     │
    │  2. TIMEOUTS              30s for a request, 5s between requests     │
    │  3. STATE TRACKING        idle vs. busy, for graceful shutdown       │
    │  4. CLOSE / ABORT         orderly close or forced close from another │
    │                           thread                                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short connection identifier for logs.
        state: Current connection state.
        requests_handled: Number of requests read on this connection.
    """

    socket: socket.socket
    address: Tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)
    _close_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    # ─────────────────────────────────────────────────────────────────────
    # PROPERTIES
    # ─────────────────────────────────────────────────────────────────────

    @property
    def is_idle(self) -> bool:
        """True while waiting for a request that has not started arriving."""
        return self.state in IDLE_STATES and not self._buffer and not self._has_pending_input()

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # ─────────────────────────────────────────────────────────────────────
    # READING
    # ─────────────────────────────────────────────────────────────────────

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request from the socket.

        Waits for the end of the headers, then for Content-Length bytes
        of body. The connection stays idle until the first byte shows up,
        and switches to READING once it does.

        Returns:
            Complete request bytes, or None if the client went away or a
            keep-alive connection timed out.

        Raises:
            TimeoutError: If the first request times out.
            ValueError: If the request exceeds max_request_size.
        """
        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            if self._buffer:
                self.state = ConnectionState.READING

            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None

                self.state = ConnectionState.READING
                self._buffer += chunk
                self._check_size()

                # Active request: fall back to the full request timeout
                if self.requests_handled > 0 and not self.is_closed:
                    self.socket.settimeout(self.timeout)

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break
                self._buffer += chunk
                self._check_size()

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            self.state = ConnectionState.PROCESSING
            return request_data

        except socket.timeout:
            if self.requests_handled > 0 and self.state != ConnectionState.READING:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")

        finally:
            if not self.is_closed:
                try:
                    self.socket.settimeout(self.timeout)
                except OSError:
                    pass

    def _has_pending_input(self) -> bool:
        """Readable without blocking: request bytes or end-of-stream are waiting."""
        try:
            readable, _, _ = select.select([self.socket], [], [], 0)
        except (OSError, ValueError):
            return False
        return bool(readable)

    def _recv(self) -> bytes:
        """recv() that maps a reset or closed socket to end-of-stream."""
        try:
            return self.socket.recv(self.buffer_size)
        except socket.timeout:
            raise
        except OSError:
            return b""

    def _check_size(self):
        if len(self._buffer) > self.max_request_size:
            raise ValueError(f"Request too large: {len(self._buffer)} bytes")

    def _parse_content_length(self, headers: bytes) -> int:
        """Find Content-Length in raw header bytes, 0 if absent or invalid."""
        try:
            header_str = headers.decode("latin-1").lower()
            for line in header_str.split("\r\n"):
                if line.startswith("content-length:"):
                    return max(0, int(line.split(":", 1)[1].strip()))
        except (ValueError, IndexError):
            pass
        return 0

    # ─────────────────────────────────────────────────────────────────────
    # WRITING
    # ─────────────────────────────────────────────────────────────────────

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes with sendall().

        Returns:
            True if send succeeded, False if the connection was lost.
        """
        self.state = ConnectionState.WRITING

        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def set_keep_alive(self):
        """Mark connection as waiting for its next request."""
        self.state = ConnectionState.KEEP_ALIVE

    # ─────────────────────────────────────────────────────────────────────
    # CLOSING
    # ─────────────────────────────────────────────────────────────────────

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR) sends FIN to the client
        2. Drain whatever the client still sends
        3. close() releases the file descriptor
        """
        with self._close_lock:
            if self.state == ConnectionState.CLOSED:
                return
            self.state = ConnectionState.CLOSING

            try:
                self.socket.shutdown(socket.SHUT_WR)
            except OSError:
                pass

            try:
                self.socket.settimeout(0.5)
                while self.socket.recv(1024):
                    pass
            except OSError:
                pass

            self._release()
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def abort(self):
        """
        Close the connection immediately, from any thread.

        shutdown(SHUT_RDWR) wakes a worker blocked in recv() on this socket;
        that worker then sees end-of-stream and finishes its loop.
        """
        with self._close_lock:
            if self.state == ConnectionState.CLOSED:
                return
            self.state = ConnectionState.CLOSING
            try:
                self.socket.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            self._release()
        logger.debug(f"[{self.id}] Connection aborted")

    def _release(self):
        try:
            self.socket.close()
        except OSError:
            pass
        self.state = ConnectionState.CLOSED

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
