"""
Unit tests for the WSGI adapter.
"""

import io

from minihttp.adapters.wsgi import WSGIAdapter, build_request, headers_from_environ
from minihttp.http.methods import HTTPMethod
from minihttp.http.request import Request
from minihttp.http.response import Response
from minihttp.http.router import Router


def make_environ(method="GET", path="/", query="", body=b"", **extra):
    environ = {
        "REQUEST_METHOD": method,
        "PATH_INFO": path,
        "QUERY_STRING": query,
        "SERVER_PROTOCOL": "HTTP/1.1",
        "wsgi.input": io.BytesIO(body),
        "CONTENT_LENGTH": str(len(body)) if body else "",
        "REMOTE_ADDR": "10.1.2.3",
        "REMOTE_PORT": "4567",
    }
    environ.update(extra)
    return environ


class StartResponse:
    """Records what the adapter passed to start_response."""

    def __init__(self):
        self.status = None
        self.headers = None

    def __call__(self, status, headers, exc_info=None):
        self.status = status
        self.headers = dict(headers)
        return lambda data: None


class TestBuildRequest:
    """Tests for environ → Request translation."""

    def test_target_and_headers(self):
        environ = make_environ(
            path="/users/7",
            query="x=1",
            HTTP_X_TEST="demo",
            CONTENT_TYPE="text/plain",
        )

        request = build_request(environ, HTTPMethod.GET)

        assert request.target == "/users/7?x=1"
        assert request.header("x-test") == "demo"
        assert request.header("Content-Type") == "text/plain"
        assert request.client_address == ("10.1.2.3", 4567)

    def test_body_read_by_content_length(self):
        request = build_request(make_environ(method="POST", body=b"name=webby"), HTTPMethod.POST)

        assert request.body == b"name=webby"

    def test_empty_content_headers_skipped(self):
        headers = headers_from_environ({"CONTENT_TYPE": "", "CONTENT_LENGTH": ""})

        assert len(headers) == 0

    def test_path_info_reencoded(self):
        path = "/café".encode("utf-8").decode("iso-8859-1")

        request = build_request(make_environ(path=path), HTTPMethod.GET)

        assert request.target == "/café"


class TestWSGIAdapter:
    """Tests for the WSGI callable."""

    def test_routes_through_handler(self):
        router = Router()

        @router.get("/hello/{name}")
        def hello(request: Request) -> Response:
            return Response.text(200, f"Hello {request.path_variable('name')}")

        start_response = StartResponse()
        body = WSGIAdapter(router)(make_environ(path="/hello/ada"), start_response)

        assert start_response.status == "200 OK"
        assert start_response.headers["Content-Length"] == "9"
        assert start_response.headers["Content-Type"] == "text/plain; charset=UTF-8"
        assert b"".join(body) == b"Hello ada"

    def test_no_connection_header(self):
        handler = lambda request: Response(200, headers={"Connection": "keep-alive"})
        start_response = StartResponse()

        WSGIAdapter(handler)(make_environ(), start_response)

        assert "Connection" not in start_response.headers

    def test_unknown_method_is_405(self):
        start_response = StartResponse()

        body = WSGIAdapter(lambda request: Response.text(200, "x"))(
            make_environ(method="BREW"), start_response,
        )

        assert start_response.status == "405 Method Not Allowed"
        assert b"".join(body) == b"Method Not Allowed"

    def test_handler_error_is_500(self):
        def broken(request):
            raise RuntimeError("kaboom")

        start_response = StartResponse()
        body = WSGIAdapter(broken)(make_environ(), start_response)

        assert start_response.status == "500 Internal Server Error"
        assert b"".join(body) == b"Internal Server Error"

    def test_none_is_204(self):
        start_response = StartResponse()

        WSGIAdapter(lambda request: None)(make_environ(), start_response)

        assert start_response.status == "204 No Content"
