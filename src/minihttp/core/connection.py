"""
A single accepted client connection.

Each connection carries one request and one response, then closes:

    NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSED
     │         │                          │          ▲
     └─────────┴──────── error / EOF ─────┴──────────┘
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Optional
import logging
import socket
import ssl
import time
import uuid

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    CLOSED = "closed"


@dataclass(eq=False)
class Connection:
    """
    Client socket plus the bookkeeping the server needs to serve it.

    Attributes:
        socket: the accepted socket, replaced by an SSLSocket after
            wrap_tls().
        address: client (ip, port).
        id: short identifier used in log messages.
        timeout: socket timeout in seconds, None for blocking reads.
    """

    socket: socket.socket
    address: tuple
    timeout: Optional[float] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.monotonic)
    _reader: Optional[BinaryIO] = field(default=None, repr=False)

    def __post_init__(self):
        # Accepted sockets may inherit the listener's timeout on some platforms.
        self.socket.settimeout(self.timeout)

    @property
    def age(self) -> float:
        return time.monotonic() - self.created_at

    def wrap_tls(self, context: ssl.SSLContext) -> None:
        """
        Run the server side of a TLS handshake.

        Raises:
            ssl.SSLError, OSError: the handshake failed.
        """
        self.socket = context.wrap_socket(self.socket, server_side=True)
        logger.debug("[%s] TLS established (%s)", self.id, self.socket.version())

    def reader(self) -> BinaryIO:
        """Buffered binary stream over the socket, created on first use."""
        if self._reader is None:
            self._reader = self.socket.makefile("rb")
        self.state = ConnectionState.READING
        return self._reader

    def send(self, data: bytes) -> None:
        """Write all of ``data``; OSError propagates."""
        self.state = ConnectionState.WRITING
        self.socket.sendall(data)

    def close(self) -> None:
        """
        Close the connection, ignoring errors.

        Half-closes first so the client sees the end of the response
        before the socket goes away. Safe to call more than once.
        """
        if self.state is ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        if self._reader is not None:
            try:
                self._reader.close()
            except OSError:
                pass

        try:
            self.socket.close()
        except OSError as e:
            logger.debug("[%s] Error closing socket: %s", self.id, e)

        logger.debug("[%s] Connection closed after %.3fs", self.id, self.age)

    def abort(self) -> None:
        """
        Shut the socket down in both directions from another thread.

        A worker blocked in recv() or sendall() on this connection wakes
        up with an error and then runs its own close().
        """
        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        try:
            self.socket.close()
        except OSError:
            pass
