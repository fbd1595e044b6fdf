"""
pytest configuration and fixtures.
"""

import http.client
import socket
from typing import Dict, Generator, Optional, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from httpsteps import HTTPServer, ServerConfig
from httpsteps.steps import routing


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /todo-item/3?verbose=1 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_form_request() -> bytes:
    """Sample HTTP POST request with a urlencoded form body."""
    body = b"content=buy+milk&done=false"
    return (
        b"POST /todo-item HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/x-www-form-urlencoded\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
        + body
    )


def make_config(**overrides) -> ServerConfig:
    """Test configuration: loopback, OS-assigned port, small pool."""
    values = dict(
        host="127.0.0.1",
        port=0,
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=1.0,
        poll_interval=0.05,
        shutdown_timeout=2.0,
        log_level="WARNING",
    )
    values.update(overrides)
    return ServerConfig(**values)


@pytest.fixture
def config() -> ServerConfig:
    return make_config()


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class TestClient:
    """Minimal HTTP client for one server, one connection per request."""

    __test__ = False

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port

    def request(
        self,
        method: str,
        path: str,
        form: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Tuple[int, Dict[str, str], bytes]:
        """Send one request and return (status, headers, body)."""
        headers = dict(headers or {})
        body = None
        if form is not None:
            body = form.encode("utf-8")
            headers.setdefault("Content-Type", "application/x-www-form-urlencoded")

        conn = http.client.HTTPConnection(self.host, self.port, timeout=5)
        try:
            conn.request(method, path, body=body, headers=headers)
            response = conn.getresponse()
            return response.status, dict(response.getheaders()), response.read()
        finally:
            conn.close()


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False

    def __init__(self, server: HTTPServer):
        self.server = server

    def start(self) -> "TestServer":
        """Start server in background thread and wait until it listens."""
        self.server.start()
        if not self.server.wait_until_serving(timeout=5.0):
            raise RuntimeError("Server failed to start")
        return self

    @property
    def port(self) -> int:
        return self.server.address[1]

    @property
    def client(self) -> TestClient:
        return TestClient("127.0.0.1", self.port)

    def stop(self) -> bool:
        """Stop the server."""
        return self.server.shutdown(timeout=2.0)


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """A running routing server with an empty positional store."""
    test_srv = TestServer(routing.build_server(config)).start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def client(test_server: TestServer) -> TestClient:
    return test_server.client
