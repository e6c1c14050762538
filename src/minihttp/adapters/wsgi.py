"""
Expose a minihttp handler as a WSGI application.

This lets the same router and middleware run behind any WSGI server
(gunicorn, waitress, ``wsgiref``) instead of the built-in socket loop:

    from wsgiref.simple_server import make_server

    app = WSGIAdapter(router)
    make_server("127.0.0.1", 8000, app).serve_forever()

The WSGI server owns connection management, so the adapter never emits
``Connection`` or other hop-by-hop headers. Everything else follows the
built-in transport: unknown methods get 405, handler errors 500, and a
None result 204.
"""

from typing import Callable, Iterable
import logging

from ..http.handler import Handler, invoke_handler
from ..http.headers import Headers
from ..http.methods import HTTPMethod
from ..http.request import Request
from ..http.response import method_not_allowed

logger = logging.getLogger(__name__)

# Owned by the WSGI server; PEP 3333 forbids applications from sending them.
HOP_BY_HOP_HEADERS = (
    "Connection",
    "Keep-Alive",
    "Proxy-Authenticate",
    "Proxy-Authorization",
    "TE",
    "Trailers",
    "Transfer-Encoding",
    "Upgrade",
)

StartResponse = Callable[..., Callable[[bytes], object]]


class WSGIAdapter:
    """WSGI callable dispatching every request to ``handler``."""

    def __init__(self, handler: Handler):
        self.handler = handler

    def __call__(self, environ: dict, start_response: StartResponse) -> Iterable[bytes]:
        method = HTTPMethod.from_token(environ.get("REQUEST_METHOD"))
        if method is None:
            logger.debug("Rejecting unknown method %r", environ.get("REQUEST_METHOD"))
            response = method_not_allowed()
        else:
            request = build_request(environ, method)
            response = invoke_handler(self.handler, request)

        headers = response.effective_headers().without(*HOP_BY_HOP_HEADERS)
        start_response(
            f"{response.status} {response.reason}",
            list(headers.items()),
        )
        return [response.body]


def build_request(environ: dict, method: HTTPMethod) -> Request:
    """Translate a WSGI environ into a Request."""
    # PEP 3333 hands PATH_INFO over as latin-1 decoded bytes.
    path = environ.get("PATH_INFO", "") or "/"
    path = path.encode("iso-8859-1").decode("utf-8", errors="replace")
    query = environ.get("QUERY_STRING", "")
    target = f"{path}?{query}" if query else path

    client_address = None
    if environ.get("REMOTE_ADDR"):
        client_address = (environ["REMOTE_ADDR"], int(environ.get("REMOTE_PORT") or 0))

    return Request(
        method=method,
        target=target,
        version=environ.get("SERVER_PROTOCOL", "HTTP/1.1"),
        headers=headers_from_environ(environ),
        body=read_body(environ),
        client_address=client_address,
    )


def headers_from_environ(environ: dict) -> Headers:
    pairs = []
    for key, value in environ.items():
        if key.startswith("HTTP_"):
            name = key[5:]
        elif key in ("CONTENT_TYPE", "CONTENT_LENGTH"):
            if not value:
                continue
            name = key
        else:
            continue
        pairs.append((name.replace("_", "-").title(), value))
    return Headers(pairs)


def read_body(environ: dict) -> bytes:
    stream = environ.get("wsgi.input")
    if stream is None:
        return b""
    try:
        length = int(environ.get("CONTENT_LENGTH") or 0)
    except ValueError:
        length = 0
    if length <= 0:
        return b""
    return stream.read(length)
