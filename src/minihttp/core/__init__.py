"""Socket-level building blocks of the server."""

from .connection import Connection, ConnectionState
from .socket_server import ServerState, SocketServer

__all__ = ["Connection", "ConnectionState", "ServerState", "SocketServer"]
