"""
=============================================================================
HTTP SERVER
=============================================================================

HTTPServer ties the pieces together:

    ServerConfig ──► SocketServer ──► ThreadPool ──► keep-alive loop
                                                        │
                     RequestParser ◄────────────────────┘
                          │
                          ▼
             MiddlewarePipeline ──► Router ──► handler

=============================================================================
LIFECYCLE
=============================================================================

    serve_forever()     Blocks on the calling thread. Raises ServerClosed
                        once shutdown() has stopped it; bind failures and
                        other socket errors propagate unchanged.

    start()             serve_forever() on a daemon thread.

    shutdown(timeout)   Graceful stop:

        1. stop accepting                  (listening socket closes)
        2. close idle connections          (repeated every poll)
        3. wait for in-flight requests     (each answer carries
                                            Connection: close)
        4. at the deadline, abort the rest and log a warning
        5. stop the worker threads

                        Returns True when every connection finished
                        before the deadline.

=============================================================================
"""

import logging
import threading
import time
from typing import Optional, Callable, Set, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, HTTPStatus, Router,
    text, internal_error, service_unavailable,
)
from .middleware import MiddlewarePipeline, Middleware


logger = logging.getLogger(__name__)


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# How often shutdown() re-checks the live connections
_SHUTDOWN_POLL = 0.05


class ServerClosed(Exception):
    """Raised by serve_forever() after a shutdown() call stopped it."""

    def __init__(self, message: str = "http: Server closed"):
        super().__init__(message)


def configure_logging(level: str = "INFO", fmt: str = LOG_FORMAT):
    """Configure the root logger once and set the package logger level."""
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric, format=fmt, datefmt=LOG_DATE_FORMAT)
    logging.getLogger("httpsteps").setLevel(numeric)


class HTTPServer:
    """
    Multi-threaded HTTP/1.1 server.

        server = HTTPServer(ServerConfig(port=0))

        @server.get("/greet/{name}")
        def greet(request):
            return ok(f"hi {request.path_params['name']}")

        server.start()
        server.wait_until_serving(timeout=5)
        ...
        server.shutdown(timeout=5)
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        self._router = router if router is not None else Router()
        self._middleware = MiddlewarePipeline()
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None

        self._connections: Set[Connection] = set()
        self._connections_lock = threading.Lock()

        self._state_lock = threading.Lock()
        self._serving = False
        self._closed = False
        self._draining = False
        self._thread: Optional[threading.Thread] = None

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware; it runs in the order added."""
        self._middleware.add(middleware)
        return self

    @property
    def router(self) -> Router:
        return self._router

    def route(self, path: str, method: Optional[str] = None):
        return self._router.route(path, method)

    def get(self, path: str):
        return self._router.get(path)

    def head(self, path: str):
        return self._router.head(path)

    def post(self, path: str):
        return self._router.post(path)

    def put(self, path: str):
        return self._router.put(path)

    def patch(self, path: str):
        return self._router.patch(path)

    def delete(self, path: str):
        return self._router.delete(path)

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (ip, port). With port 0 this is the port the OS picked."""
        return self._socket_server.address

    @property
    def active_connections(self) -> int:
        with self._connections_lock:
            return len(self._connections)

    def wait_until_serving(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket accepts connections."""
        return self._socket_server.wait_until_listening(timeout)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def serve_forever(self):
        """
        Accept and serve connections until shutdown() is called.

        Raises:
            ServerClosed: When stopped by shutdown(), including when
                shutdown() ran before this call.
            OSError: If the address cannot be bound.
            RuntimeError: If the server is already serving.
        """
        with self._state_lock:
            if self._closed:
                raise ServerClosed()
            if self._serving:
                raise RuntimeError("Server is already serving")
            self._serving = True

        self._handler = self._middleware.wrap(self._router.handle)
        for route in self._router.routes():
            logger.debug(f"Route {route.method or 'ANY'} {route.path}")
        self._thread_pool.start()

        try:
            self._socket_server.start(self._handle_connection)
        except OSError:
            self._thread_pool.shutdown(timeout=1.0)
            raise
        finally:
            self._serving = False

        raise ServerClosed()

    def start(self) -> threading.Thread:
        """Run serve_forever() on a daemon thread and return the thread."""
        def run():
            try:
                self.serve_forever()
            except ServerClosed:
                pass
            except Exception:
                logger.exception("Server thread failed")

        self._thread = threading.Thread(target=run, name="http-server", daemon=True)
        self._thread.start()
        return self._thread

    def shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Stop the server gracefully.

        Args:
            timeout: Seconds to wait for in-flight requests. Defaults to
                config.shutdown_timeout.

        Returns:
            True if all connections finished before the timeout, False if
            some had to be aborted.
        """
        if timeout is None:
            timeout = self.config.shutdown_timeout
        deadline = time.monotonic() + timeout

        with self._state_lock:
            was_serving = self._serving
            self._closed = True
            self._draining = True

        logger.info("Shutting down server...")
        self._socket_server.shutdown()
        if was_serving:
            self._socket_server.wait_until_stopped(max(0.0, deadline - time.monotonic()))

        drained = False
        while True:
            self._close_idle_connections()
            if self.active_connections == 0:
                drained = True
                break
            if time.monotonic() >= deadline:
                break
            time.sleep(_SHUTDOWN_POLL)

        if not drained:
            with self._connections_lock:
                leftovers = list(self._connections)
            logger.warning(
                f"Shutdown timed out after {timeout:.1f}s, "
                f"force-closing {len(leftovers)} connection(s)"
            )
            for conn in leftovers:
                conn.abort()

        self._thread_pool.shutdown(timeout=1.0)

        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)

        logger.info("Server stopped")
        return drained

    # =========================================================================
    # CONNECTION TRACKING
    # =========================================================================

    def _track(self, conn: Connection):
        with self._connections_lock:
            self._connections.add(conn)

    def _untrack(self, conn: Connection):
        with self._connections_lock:
            self._connections.discard(conn)

    def _close_idle_connections(self):
        with self._connections_lock:
            idle = [conn for conn in self._connections if conn.is_idle]
        for conn in idle:
            logger.debug(f"[{conn.id}] Closing idle connection")
            conn.abort()

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Called on the accept thread: hand the connection to a worker."""
        self._track(conn)

        try:
            submitted = self._thread_pool.submit(self._process_connection, args=(conn,))
        except RuntimeError:
            submitted = False

        if not submitted:
            logger.warning(f"[{conn.id}] No worker available, rejecting connection")
            conn.send_response(service_unavailable().to_bytes(self.config.server_name))
            conn.close()
            self._untrack(conn)

    def _process_connection(self, conn: Connection):
        """Keep-alive loop for one connection. Runs on a worker thread."""
        try:
            with conn:
                self._serve_connection(conn)
        except Exception as e:
            logger.exception(f"[{conn.id}] Connection error: {e}")
        finally:
            self._untrack(conn)

    def _serve_connection(self, conn: Connection):
        while not conn.is_closed:
            try:
                raw_request = conn.read_request()
            except TimeoutError:
                self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request Timeout")
                return
            except ValueError as e:
                logger.warning(f"[{conn.id}] {e}")
                self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, "Payload Too Large")
                return

            if raw_request is None:
                return

            try:
                request = self._parser.parse(raw_request, conn.address)
            except HTTPParseError as e:
                logger.debug(f"[{conn.id}] Bad request: {e}")
                self._send_error(conn, HTTPStatus(e.status_code), str(e))
                return

            response = self._dispatch(conn, request)

            keep_alive = (
                self.config.keep_alive
                and request.is_keep_alive
                and not self._draining
                and response.headers.get("Connection", "").lower() != "close"
            )
            if not keep_alive:
                response.headers["Connection"] = "close"

            data = response.to_bytes(
                self.config.server_name,
                include_body=request.method != "HEAD",
            )
            if not conn.send_response(data) or not keep_alive:
                return

            conn.set_keep_alive()

    def _dispatch(self, conn: Connection, request: HTTPRequest) -> HTTPResponse:
        try:
            return self._handler(request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error on {request.method} {request.path}: {e}")
            return internal_error()

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        """Answer a request that never reached a handler, then close."""
        response = text(status, message + "\n")
        response.headers["Connection"] = "close"
        conn.send_response(response.to_bytes(self.config.server_name))
