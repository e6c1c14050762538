"""
=============================================================================
HTTP SERVER
=============================================================================

Blocking HTTP/1.1 server with one thread per connection and exactly one
request per connection.

=============================================================================
PER-CONNECTION FLOW (worker thread)
=============================================================================

    accept ──► [TLS handshake] ──► parse request line + headers + body
                                          │
                      malformed? ─────────┤──► close, nothing written
                                          ▼
                           middleware chain ──► handler
                                          │
                      raised?  ──► 500 "Internal Server Error"
                      None?    ──► 204, empty body
                                          ▼
                       serialize (Connection: close) ──► sendall ──► close

=============================================================================
USAGE
=============================================================================

    server = HTTPServer(ServerConfig(port=8080))

    @server.get("/hello/{name}")
    def hello(request):
        return Response.text(200, f"Hello, {request.path_variable('name')}")

    server.use(LoggingMiddleware())
    server.run()                    # blocks until Ctrl+C / SIGTERM

Or non-blocking, e.g. in tests:

    with HTTPServer(ServerConfig(host="127.0.0.1", port=0), handler=app) as server:
        port = server.port
        ...

=============================================================================
"""

from concurrent.futures import Executor
from typing import Optional
import itertools
import logging
import signal
import ssl
import threading
import time

from .config import ServerConfig
from .core.connection import Connection, ConnectionState
from .core.socket_server import ServerState, SocketServer
from .http.handler import Handler, invoke_handler
from .http.request import HTTPParseError, RequestParser
from .http.router import Router
from .middleware.base import AnyMiddleware, MiddlewareChain, compose

logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Threaded HTTP/1.1 server.

    Args:
        config: server settings; validated immediately.
        handler: the application. When omitted, the server's own router
            (``server.router`` / ``@server.get`` ...) is used.
        executor: optional ``concurrent.futures.Executor`` to run
            connections on. Without one every connection gets its own
            daemon thread. The server never shuts a caller's executor down.
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        handler: Optional[Handler] = None,
        executor: Optional[Executor] = None,
    ):
        self.config = config or ServerConfig()
        self.config.validate()

        self._handler = handler
        self._router: Optional[Router] = None
        self._middleware: Optional[MiddlewareChain] = None
        self._executor = executor
        self._tls_context: Optional[ssl.SSLContext] = None

        self._parser = RequestParser()
        self._socket_server = SocketServer(self.config, self._on_connection)
        self._app: Optional[Handler] = None

        self._connections: set[Connection] = set()
        self._idle = threading.Condition()
        self._worker_ids = itertools.count(1)
        self._shutdown_requested = threading.Event()

    # =========================================================================
    # CONFIGURATION (only while stopped)
    # =========================================================================

    def _ensure_stopped(self, action: str) -> None:
        if self._socket_server.state is not ServerState.STOPPED:
            raise RuntimeError(f"Cannot {action} while the server is running")

    def set_handler(self, handler: Handler) -> "HTTPServer":
        self._ensure_stopped("change the handler")
        self._handler = handler
        return self

    def use(self, middleware: AnyMiddleware) -> "HTTPServer":
        """
        Append middleware; the first one added sees requests first.

            server.use(LoggingMiddleware()).use(auth)
        """
        self._ensure_stopped("add middleware")
        self._middleware = MiddlewareChain.append(self._middleware, middleware)
        return self

    add_middleware = use

    def enable_tls(self, context: ssl.SSLContext) -> "HTTPServer":
        """Serve HTTPS using a context with its certificate chain loaded."""
        self._ensure_stopped("enable TLS")
        self._tls_context = context
        return self

    @property
    def router(self) -> Router:
        """The built-in router, created on first access."""
        if self._router is None:
            self._router = Router()
        return self._router

    def route(self, path: str, method="GET"):
        return self.router.route(path, method)

    def get(self, path: str):
        return self.router.get(path)

    def post(self, path: str):
        return self.router.post(path)

    def put(self, path: str):
        return self.router.put(path)

    def delete(self, path: str):
        return self.router.delete(path)

    def patch(self, path: str):
        return self.router.patch(path)

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def state(self) -> ServerState:
        return self._socket_server.state

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    @property
    def port(self) -> int:
        """Bound port while running (useful with port 0), else the configured port."""
        return self._socket_server.port

    @property
    def tls_enabled(self) -> bool:
        return self._tls_context is not None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> "HTTPServer":
        """
        Start serving in the background and return immediately.

        Calling start() on a running server does nothing.

        Raises:
            RuntimeError: no handler and no routes.
            OSError: the address could not be bound.
        """
        if self._socket_server.state is not ServerState.STOPPED:
            return self

        handler = self._handler if self._handler is not None else self._router
        if handler is None:
            raise RuntimeError("No request handler configured")

        self._app = compose(self._middleware, handler)
        self._shutdown_requested.clear()
        self._socket_server.start()
        return self

    def stop(self) -> None:
        """
        Stop accepting and wait for in-flight connections.

        Connections still open after ``config.shutdown_timeout`` seconds
        are aborted; their clients may see a truncated response.
        """
        self._socket_server.stop(drain=self._drain)
        self._shutdown_requested.set()

    close = stop

    def __enter__(self) -> "HTTPServer":
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def run(self) -> None:
        """
        Start and block until Ctrl+C, SIGTERM or stop() from another thread.
        """
        self._setup_logging()
        self.start()

        handler = self._handler if self._handler is not None else self._router
        if isinstance(handler, Router):
            handler.print_routes()

        scheme = "https" if self.tls_enabled else "http"
        logger.info("Serving on %s://%s:%s (Ctrl+C to stop)", scheme, self.config.host, self.port)

        previous = self._install_signal_handlers()
        try:
            while not self._shutdown_requested.wait(0.5):
                pass
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._restore_signal_handlers(previous)
            self.stop()

    def _setup_logging(self) -> None:
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("minihttp").setLevel(level)

    def _install_signal_handlers(self) -> dict:
        # signal.signal() only works on the main thread.
        if threading.current_thread() is not threading.main_thread():
            return {}

        def request_shutdown(signum, frame):
            logger.info("Received %s, shutting down", signal.Signals(signum).name)
            self._shutdown_requested.set()

        previous = {}
        for sig in (signal.SIGTERM, signal.SIGINT):
            previous[sig] = signal.signal(sig, request_shutdown)
        return previous

    def _restore_signal_handlers(self, previous: dict) -> None:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _on_connection(self, conn: Connection) -> None:
        """Hand a freshly accepted connection to a worker (accept thread)."""
        with self._idle:
            self._connections.add(conn)

        try:
            if self._executor is not None:
                self._executor.submit(self._serve, conn)
            else:
                worker = threading.Thread(
                    target=self._serve,
                    args=(conn,),
                    name=f"minihttp-worker-{next(self._worker_ids)}",
                    daemon=True,
                )
                worker.start()
        except RuntimeError as e:
            logger.warning("[%s] Could not schedule connection: %s", conn.id, e)
            self._release(conn)

    def _serve(self, conn: Connection) -> None:
        """Serve the single exchange on ``conn`` (worker thread)."""
        try:
            if self._tls_context is not None:
                conn.wrap_tls(self._tls_context)

            try:
                request = self._parser.parse(conn.reader(), conn.address)
            except HTTPParseError as e:
                logger.debug("[%s] Dropping malformed request: %s", conn.id, e)
                return

            conn.state = ConnectionState.PROCESSING
            response = invoke_handler(self._app, request)
            conn.send(response.to_bytes())
            logger.debug("[%s] %s %s -> %s", conn.id, request.method, request.target, response.status)
        except ssl.SSLError as e:
            logger.debug("[%s] TLS handshake failed: %s", conn.id, e)
        except OSError as e:
            logger.debug("[%s] I/O error: %s", conn.id, e)
        except Exception:
            logger.exception("[%s] Unexpected error serving connection", conn.id)
        finally:
            self._release(conn)

    def _release(self, conn: Connection) -> None:
        conn.close()
        with self._idle:
            self._connections.discard(conn)
            self._idle.notify_all()

    def _drain(self) -> None:
        """Wait for open connections, then abort whatever is left."""
        deadline = time.monotonic() + self.config.shutdown_timeout
        with self._idle:
            while self._connections:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self._idle.wait(remaining)
            leftover = list(self._connections)

        if leftover:
            logger.warning(
                "%d connection(s) still open after %.1fs, closing them",
                len(leftover), self.config.shutdown_timeout,
            )
            for conn in leftover:
                conn.abort()
