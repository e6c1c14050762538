"""
=============================================================================
SOCKET SERVER
=============================================================================

Owns the listening socket and the accept thread. Everything above TCP
(parsing, routing, responding) happens in the callback it is given.

    start()
      ├──► socket() + SO_REUSEADDR
      ├──► bind()              OSError goes back to the caller
      ├──► listen()
      └──► thread "minihttp-acceptor"
               └──► while running:
                        accept()              (polls every second)
                        TCP_NODELAY
                        on_connection(Connection)

    stop(drain)
      ├──► running = False, close listener
      ├──► join acceptor
      └──► drain()             caller waits for its in-flight work

=============================================================================
STATES
=============================================================================

    STOPPED ──start()──► STARTING ──bound──► RUNNING
       ▲                    │                   │
       └──── bind failed ───┘                stop()
       │                                        ▼
       └───────────── drained ─────────── STOPPING

=============================================================================
"""

from enum import Enum
from typing import Callable, Optional
import logging
import socket
import threading

from ..config import ServerConfig
from .connection import Connection

logger = logging.getLogger(__name__)

ACCEPT_POLL_INTERVAL = 1.0


class ServerState(Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class SocketServer:
    """
    TCP listener running its accept loop on a background thread.

    Args:
        config: supplies host, port, backlog and the per-connection timeout.
        on_connection: called on the accept thread for every new
            connection. It must hand the connection off quickly.
    """

    def __init__(self, config: ServerConfig, on_connection: Callable[[Connection], None]):
        self.config = config
        self._on_connection = on_connection
        self._socket: Optional[socket.socket] = None
        self._acceptor: Optional[threading.Thread] = None
        self._state = ServerState.STOPPED
        self._lock = threading.RLock()
        self._bound_port: Optional[int] = None

    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is ServerState.RUNNING

    @property
    def port(self) -> int:
        """Port actually bound, or the configured one when not listening."""
        if self._bound_port is not None:
            return self._bound_port
        return self.config.port

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.settimeout(ACCEPT_POLL_INTERVAL)
        return sock

    def start(self) -> bool:
        """
        Bind, listen and start accepting.

        Returns False without doing anything when already started.

        Raises:
            OSError: the address could not be bound.
        """
        with self._lock:
            if self._state is not ServerState.STOPPED:
                return False
            self._state = ServerState.STARTING

            sock = self._create_socket()
            try:
                sock.bind((self.config.host, self.config.port))
                sock.listen(self.config.backlog)
            except OSError as e:
                logger.error("Failed to bind to %s:%s: %s", self.config.host, self.config.port, e)
                sock.close()
                self._state = ServerState.STOPPED
                raise

            self._socket = sock
            self._bound_port = sock.getsockname()[1]
            self._state = ServerState.RUNNING
            self._acceptor = threading.Thread(
                target=self._accept_loop,
                args=(sock,),
                name="minihttp-acceptor",
                daemon=True,
            )
            self._acceptor.start()

        logger.info("Server listening on %s:%s", self.config.host, self._bound_port)
        return True

    def _accept_loop(self, sock: socket.socket) -> None:
        while self._state is ServerState.RUNNING:
            try:
                client, address = sock.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._state is ServerState.RUNNING:
                    logger.error("Accept error: %s", e)
                break

            try:
                client.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
                conn = Connection(socket=client, address=address, timeout=self.config.timeout)
            except OSError as e:
                logger.debug("Dropping connection from %s: %s", address, e)
                client.close()
                continue

            logger.debug("[%s] Accepted connection from %s:%s", conn.id, address[0], address[1])
            try:
                self._on_connection(conn)
            except Exception:
                logger.exception("[%s] Failed to dispatch connection", conn.id)
                conn.close()

        logger.debug("Accept loop exited")

    def stop(self, drain: Optional[Callable[[], None]] = None) -> bool:
        """
        Stop accepting, then run ``drain`` before reporting STOPPED.

        Returns False when the server was not running.
        """
        with self._lock:
            if self._state is not ServerState.RUNNING:
                return False
            self._state = ServerState.STOPPING
            sock, self._socket = self._socket, None
            acceptor, self._acceptor = self._acceptor, None

        logger.info("Shutting down server on port %s", self._bound_port)
        if sock is not None:
            try:
                # Wakes a blocked accept() on platforms that support it.
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            try:
                sock.close()
            except OSError as e:
                logger.warning("Error closing listening socket: %s", e)

        if acceptor is not None and acceptor is not threading.current_thread():
            acceptor.join(ACCEPT_POLL_INTERVAL * 2)

        try:
            if drain is not None:
                drain()
        finally:
            with self._lock:
                self._state = ServerState.STOPPED
                self._bound_port = None
            logger.info("Server stopped")
        return True
