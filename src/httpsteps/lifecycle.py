"""
=============================================================================
SERVER LIFECYCLE
=============================================================================

Runs an HTTPServer until the process is interrupted, then drains it.

    ┌──────────┐  listener   ┌─────────┐  SIGINT /   ┌──────────┐  shutdown  ┌─────────┐
    │ STARTING │ ──────────► │ SERVING │ ──────────► │ DRAINING │ ─────────► │ STOPPED │
    └──────────┘  started    └─────────┘  SIGTERM    └──────────┘  returned  └─────────┘
                                  │
                                  │ listener failed (e.g. port in use)
                                  └──────────────────────────────────────► STOPPED,
                                                                           error re-raised

The listener thread runs serve_forever(). The controlling thread (the
one that called Lifecycle.run) only waits on the InterruptSignal. A
listener failure fires the same signal, so the controlling thread wakes
up either way and decides what to do.

run_guarded() is the outermost wrapper of every program: whatever
escapes it is reported as

    unexpected panic occurred: <error>

on stderr with exit code 1.

=============================================================================
"""

import logging
import signal
import sys
import threading
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from .server import HTTPServer, ServerClosed


logger = logging.getLogger(__name__)


class ServerState(Enum):
    STARTING = "starting"
    SERVING = "serving"
    DRAINING = "draining"
    STOPPED = "stopped"


class InterruptSignal:
    """
    One-shot wake-up for the controlling thread.

    Used as a context manager it routes SIGINT and SIGTERM to trigger()
    and restores the previous handlers on exit. Handlers can only be
    installed from the main thread; elsewhere only trigger() fires it.

        with InterruptSignal() as interrupt:
            interrupt.wait()
    """

    # Event.wait() in short slices so signal handlers get to run
    WAIT_SLICE = 0.5

    def __init__(self, signals: Tuple[int, ...] = (signal.SIGINT, signal.SIGTERM)):
        self.signals = signals
        self.received: Optional[int] = None
        self._event = threading.Event()
        self._previous: Dict[int, object] = {}

    def __enter__(self) -> "InterruptSignal":
        if threading.current_thread() is threading.main_thread():
            for signum in self.signals:
                self._previous[signum] = signal.signal(signum, self._handle)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()
        return False

    def _handle(self, signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}")
        self.trigger(signum)

    def trigger(self, signum: Optional[int] = None):
        """Fire the signal. Later calls are ignored."""
        if not self._event.is_set():
            self.received = signum
            self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until triggered. Returns False if timeout ran out first."""
        if timeout is None:
            while not self._event.wait(self.WAIT_SLICE):
                pass
            return True
        return self._event.wait(timeout)


class Lifecycle:
    """
    Serve until interrupted, then shut down within a time budget.

        lifecycle = Lifecycle(server)
        drained = lifecycle.run()      # blocks until SIGINT

    Raises whatever made the listener fail.
    """

    def __init__(
        self,
        server: HTTPServer,
        interrupt: Optional[InterruptSignal] = None,
        shutdown_timeout: Optional[float] = None,
    ):
        self.server = server
        self.interrupt = interrupt or InterruptSignal()
        self.shutdown_timeout = (
            server.config.shutdown_timeout if shutdown_timeout is None else shutdown_timeout
        )
        self.state = ServerState.STARTING
        self.error: Optional[BaseException] = None
        self._listener: Optional[threading.Thread] = None

    def _transition(self, state: ServerState):
        logger.info(f"Server state: {self.state.value} -> {state.value}")
        self.state = state

    def _listen(self):
        try:
            self.server.serve_forever()
        except ServerClosed:
            logger.debug("Listener stopped")
        except Exception as e:
            logger.error(f"Listener failed: {e}")
            self.error = e
            self.interrupt.trigger()

    def run(self) -> bool:
        """
        Returns:
            True if shutdown drained every connection in time.
        """
        with self.interrupt:
            self._listener = threading.Thread(target=self._listen, name="listener", daemon=True)
            self._listener.start()
            self._transition(ServerState.SERVING)

            self.interrupt.wait()

            if self.error is not None:
                self._transition(ServerState.STOPPED)
                raise self.error

            self._transition(ServerState.DRAINING)
            drained = self.server.shutdown(self.shutdown_timeout)
            self._listener.join(timeout=1.0)
            self._transition(ServerState.STOPPED)

        return drained


def run_guarded(entry: Callable[[], Optional[int]]) -> int:
    """
    Call entry() and turn its outcome into a process exit code.

    An exception escaping entry is logged, reported on stderr and mapped
    to 1. Ctrl+C outside of a Lifecycle maps to 130, like a shell would.
    """
    try:
        code = entry()
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        logger.exception("Fatal error")
        print(f"unexpected panic occurred: {e}", file=sys.stderr)
        return 1
    return code or 0
