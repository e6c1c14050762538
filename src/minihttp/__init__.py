"""
=============================================================================
MINIHTTP - Small HTTP/1.1 Server Toolkit
=============================================================================

A threaded HTTP/1.1 server on raw sockets, a trie router with ``{name}``
path variables, and composable middleware, with immutable Request and
Response values passed between them.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    minihttp/
    ├── __main__.py          # python -m minihttp
    ├── server.py            # HTTPServer: lifecycle, workers, shutdown
    ├── config.py            # ServerConfig dataclass
    ├── core/
    │   ├── socket_server.py # listening socket + accept thread
    │   └── connection.py    # one accepted client socket
    ├── http/
    │   ├── request.py       # Request value + wire parser
    │   ├── response.py      # Response value + serialization
    │   ├── headers.py       # case-insensitive immutable headers
    │   ├── handler.py       # handler contract, 500/204 policy
    │   ├── router.py        # segment trie router
    │   ├── methods.py       # HTTPMethod
    │   └── status_codes.py  # HTTPStatus + reason phrases
    ├── middleware/
    │   ├── base.py          # MiddlewareChain
    │   └── logging.py       # access log
    └── adapters/
        └── wsgi.py          # serve a handler through WSGI

=============================================================================
QUICK START
=============================================================================

    from minihttp import HTTPServer, Response, Router, ServerConfig

    router = Router()

    @router.get("/users/{id}")
    def get_user(request):
        return Response.text(200, f"user {request.path_variable('id')}")

    HTTPServer(ServerConfig(port=8080), handler=router).run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .http import (
    Handler,
    Headers,
    HTTPMethod,
    HTTPParseError,
    HTTPStatus,
    Request,
    Response,
    ResponseBuilder,
    Router,
)
from .middleware import LoggingMiddleware, Middleware, MiddlewareChain
from .server import HTTPServer

__all__ = [
    "__version__",
    "HTTPServer",
    "ServerConfig",
    "Handler",
    "Headers",
    "HTTPMethod",
    "HTTPParseError",
    "HTTPStatus",
    "Request",
    "Response",
    "ResponseBuilder",
    "Router",
    "Middleware",
    "MiddlewareChain",
    "LoggingMiddleware",
]
