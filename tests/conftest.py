"""
pytest configuration and fixtures.
"""

import socket
import ssl
import sys
from pathlib import Path
from typing import Generator

import pytest

# Add src to path so tests run without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from minihttp import HTTPServer, Request, Response, Router, ServerConfig
from minihttp.__main__ import create_tls_context

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/users?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"X-Test: demo\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a form body."""
    body = b"name=webby"
    return (
        b"POST /submit HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/x-www-form-urlencoded\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
    ) + body


@pytest.fixture
def config() -> ServerConfig:
    """Loopback config on an OS-assigned port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        timeout=5.0,
        shutdown_timeout=2.0,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def send_raw(port: int, data: bytes, timeout: float = 5.0) -> bytes:
    """Send raw bytes to the server and read until it closes the connection."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as sock:
        sock.sendall(data)
        chunks = []
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def split_response(raw: bytes) -> tuple[str, dict, bytes]:
    """Split a raw response into (status line, headers, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("utf-8").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip()] = value.strip()
    return lines[0], headers, body


@pytest.fixture
def app_router() -> Router:
    """Router with a handful of routes used by the transport tests."""
    router = Router()

    @router.get("/hello")
    def hello(request: Request) -> Response:
        return Response.text(200, "Hello")

    @router.post("/echo")
    def echo(request: Request) -> Response:
        return Response.text(200, request.body.decode("utf-8"))

    @router.get("/boom")
    def boom(request: Request) -> Response:
        raise RuntimeError("kaboom")

    @router.get("/nothing")
    def nothing(request: Request) -> None:
        return None

    @router.get("/users/{id}")
    def user(request: Request) -> Response:
        return Response.text(200, f"user {request.path_variable('id')}")

    return router


@pytest.fixture
def running_server(config: ServerConfig, app_router: Router) -> Generator[HTTPServer, None, None]:
    """HTTPServer serving ``app_router`` on a background thread."""
    server = HTTPServer(config, handler=app_router)
    server.start()
    try:
        yield server
    finally:
        server.stop()


@pytest.fixture
def raw_client():
    """``send_raw(port, data)`` for tests that talk to a live server."""
    return send_raw


@pytest.fixture
def parse_raw_response():
    """``split_response(raw)`` for inspecting what the server wrote."""
    return split_response


@pytest.fixture
def tls_context() -> ssl.SSLContext:
    """Server-side context for the self-signed localhost certificate."""
    return create_tls_context(
        certfile=str(FIXTURES / "localhost.crt"),
        keyfile=str(FIXTURES / "localhost.key"),
    )


@pytest.fixture
def tls_server(
    config: ServerConfig, app_router: Router, tls_context: ssl.SSLContext,
) -> Generator[HTTPServer, None, None]:
    """HTTPServer serving ``app_router`` over TLS."""
    server = HTTPServer(config, handler=app_router).enable_tls(tls_context)
    server.start()
    try:
        yield server
    finally:
        server.stop()
