"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

One dataclass holds every tunable of the example servers: the listening
address, socket timeouts, worker pool sizing, the graceful shutdown budget
and logging.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m httpsteps routing -p 3000                        │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTPSTEPS_PORT=3000 python -m httpsteps routing            │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The listening address follows the "host:port" convention where an empty
host means every interface, so the default address renders as ":8080".

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class ServerConfig:
    """
    Configuration for the example HTTP servers.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout, poll_interval

    HTTP SETTINGS
    - keep_alive, keep_alive_timeout, max_request_size

    THREADING SETTINGS
    - min_workers, max_workers, queue_size

    LIFECYCLE
    - shutdown_timeout

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = ""
    """
    The IP address to bind to.
    - "" - All network interfaces
    - "127.0.0.1" - Localhost only
    """

    port: int = 8080
    """
    The port number to listen on. 0 asks the OS for a free port.
    """

    backlog: int = 128
    """Maximum number of queued connections."""

    buffer_size: int = 8192
    """Size of the receive buffer in bytes."""

    timeout: Optional[float] = 30.0
    """
    Socket timeout in seconds for an active request.
    None = blocking (infinite wait).
    """

    poll_interval: float = 0.5
    """
    How long accept() blocks before the accept loop re-checks whether
    the server is shutting down.
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    """Allow multiple requests on the same TCP connection."""

    keep_alive_timeout: float = 5.0
    """Idle time in seconds after which a keep-alive connection is closed."""

    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    """Maximum allowed request size in bytes."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """Worker threads created at startup."""

    max_workers: int = 16
    """Upper bound on worker threads."""

    queue_size: int = 100
    """Connections allowed to wait for a worker before 503 is returned."""

    # ─────────────────────────────────────────────────────────────────────
    # LIFECYCLE
    # ─────────────────────────────────────────────────────────────────────

    shutdown_timeout: float = 5.0
    """
    Budget in seconds for a graceful shutdown. In-flight requests still
    running when it expires have their connections closed.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """Access log format: 'json' or 'text'."""

    # ─────────────────────────────────────────────────────────────────────
    # IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "httpsteps/1.0"
    """Value of the Server response header."""

    stable_ids: bool = False
    """
    Give todo items ids that survive deletions instead of positional
    indexes. Only the routing example reads this.
    """

    @property
    def listen_address(self) -> str:
        """The address in host:port form, e.g. ":8080"."""
        return f"{self.host}:{self.port}"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTPSTEPS_HOST              Bind address (default: all interfaces)
        HTTPSTEPS_PORT              Server port (default: 8080)
        HTTPSTEPS_WORKERS           Max worker threads (default: 16)
        HTTPSTEPS_TIMEOUT           Request timeout in seconds (default: 30)
        HTTPSTEPS_SHUTDOWN_TIMEOUT  Graceful shutdown budget (default: 5)
        HTTPSTEPS_LOG_LEVEL         Logging level (default: INFO)
        HTTPSTEPS_LOG_FORMAT        text or json (default: text)
        HTTPSTEPS_STABLE_IDS        1/true to enable stable todo ids

        =====================================================================
        """
        workers = int(os.getenv("HTTPSTEPS_WORKERS", str(cls.max_workers)))
        return cls(
            host=os.getenv("HTTPSTEPS_HOST", ""),
            port=int(os.getenv("HTTPSTEPS_PORT", "8080")),
            min_workers=min(cls.min_workers, workers),
            max_workers=workers,
            timeout=float(os.getenv("HTTPSTEPS_TIMEOUT", "30")),
            shutdown_timeout=float(os.getenv("HTTPSTEPS_SHUTDOWN_TIMEOUT", "5")),
            log_level=os.getenv("HTTPSTEPS_LOG_LEVEL", "INFO"),
            log_format=os.getenv("HTTPSTEPS_LOG_FORMAT", "text"),
            stable_ids=os.getenv("HTTPSTEPS_STABLE_IDS", "").lower() in _TRUTHY,
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at startup so a bad value fails before the socket
        is bound.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")

        if self.shutdown_timeout <= 0:
            raise ValueError("shutdown_timeout must be > 0")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"Invalid log_format: {self.log_format!r}")


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Type-safe configuration with a dataclass
# 2. Environment variable overrides (HTTPSTEPS_*)
# 3. Validation at startup (fail-fast)
# =============================================================================
