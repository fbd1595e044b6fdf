"""
Unit tests for the serve/drain lifecycle and the fatal guard.
"""

import signal
import socket
import threading

import pytest

from httpsteps import HTTPServer
from httpsteps.http import ok
from httpsteps.lifecycle import InterruptSignal, Lifecycle, ServerState, run_guarded
from httpsteps.server import ServerClosed

from conftest import make_config, TestClient


class RecordingLifecycle(Lifecycle):
    """Lifecycle that remembers every state it passed through."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.history = [self.state]

    def _transition(self, state):
        super()._transition(state)
        self.history.append(state)


def pong_server(**overrides) -> HTTPServer:
    server = HTTPServer(make_config(**overrides))

    @server.route("/{path...}")
    def pong(request):
        return ok("pong!")

    return server


def interrupt_when_serving(server: HTTPServer, interrupt: InterruptSignal, check=None):
    """Fire the interrupt from a helper thread once the server listens."""
    def run():
        server.wait_until_serving(timeout=5.0)
        if check is not None:
            check()
        interrupt.trigger()

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return thread


class TestInterruptSignal:

    def test_trigger_is_one_shot(self):
        interrupt = InterruptSignal()
        assert not interrupt.is_set()

        interrupt.trigger(signal.SIGTERM)
        interrupt.trigger(signal.SIGINT)

        assert interrupt.is_set()
        assert interrupt.received == signal.SIGTERM
        assert interrupt.wait(timeout=0)

    def test_wait_times_out(self):
        assert InterruptSignal().wait(timeout=0.01) is False

    def test_installs_and_restores_handlers(self):
        before = signal.getsignal(signal.SIGINT)

        with InterruptSignal() as interrupt:
            assert signal.getsignal(signal.SIGINT) == interrupt._handle
            signal.raise_signal(signal.SIGINT)
            assert interrupt.wait(timeout=1.0)
            assert interrupt.received == signal.SIGINT

        assert signal.getsignal(signal.SIGINT) == before

    def test_off_main_thread_does_not_install(self):
        before = signal.getsignal(signal.SIGINT)
        seen = []

        def run():
            with InterruptSignal():
                seen.append(signal.getsignal(signal.SIGINT))

        thread = threading.Thread(target=run)
        thread.start()
        thread.join()

        assert seen == [before]


class TestLifecycle:

    def test_serve_then_drain(self):
        server = pong_server()
        interrupt = InterruptSignal()
        responses = []

        def check():
            responses.append(TestClient("127.0.0.1", server.address[1]).request("GET", "/ping"))

        lifecycle = RecordingLifecycle(server, interrupt=interrupt)
        interrupt_when_serving(server, interrupt, check)

        assert lifecycle.run() is True

        assert lifecycle.history == [
            ServerState.STARTING,
            ServerState.SERVING,
            ServerState.DRAINING,
            ServerState.STOPPED,
        ]
        assert responses[0][0] == 200
        assert responses[0][2] == b"pong!"

        with pytest.raises(OSError):
            socket.create_connection(("127.0.0.1", server.address[1]), timeout=1.0)

    def test_listener_failure_is_reraised(self):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as taken:
            taken.bind(("127.0.0.1", 0))
            taken.listen(1)
            port = taken.getsockname()[1]

            lifecycle = RecordingLifecycle(pong_server(port=port), interrupt=InterruptSignal())

            with pytest.raises(OSError):
                lifecycle.run()

        assert lifecycle.state == ServerState.STOPPED
        assert ServerState.DRAINING not in lifecycle.history

    def test_shutdown_timeout_defaults_to_config(self):
        lifecycle = Lifecycle(pong_server(shutdown_timeout=3.0))
        assert lifecycle.shutdown_timeout == 3.0


class TestServerClosed:

    def test_serve_after_shutdown(self):
        server = pong_server()
        assert server.shutdown(timeout=0.1) is True

        with pytest.raises(ServerClosed):
            server.serve_forever()


class TestRunGuarded:

    def test_success(self):
        assert run_guarded(lambda: 0) == 0
        assert run_guarded(lambda: None) == 0

    def test_exit_code_passthrough(self):
        assert run_guarded(lambda: 3) == 3

    def test_fatal_error(self, capsys):
        def entry():
            raise OSError("address already in use")

        assert run_guarded(entry) == 1
        assert "unexpected panic occurred: address already in use" in capsys.readouterr().err

    def test_keyboard_interrupt(self):
        def entry():
            raise KeyboardInterrupt

        assert run_guarded(entry) == 130
