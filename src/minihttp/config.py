"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All server settings live in one dataclass. Build it in code, from the
environment, or from both:

    config = ServerConfig(port=0)                 # ephemeral port, for tests
    config = ServerConfig.from_env()              # MINIHTTP_* variables
    config = replace(ServerConfig.from_env(), log_level="DEBUG")

=============================================================================
ENVIRONMENT VARIABLES
=============================================================================

    MINIHTTP_HOST               bind address            (0.0.0.0)
    MINIHTTP_PORT               bind port, 0 = any free (8080)
    MINIHTTP_TIMEOUT            per-connection socket timeout in seconds
                                (unset = wait forever)
    MINIHTTP_SHUTDOWN_TIMEOUT   seconds stop() waits for open connections (5)
    MINIHTTP_LOG_LEVEL          DEBUG, INFO, WARNING, ...      (INFO)
    MINIHTTP_LOG_FORMAT         access log format, text or json (text)
    MINIHTTP_TLS_CERTFILE       PEM certificate chain, enables TLS in the CLI
    MINIHTTP_TLS_KEYFILE        PEM private key

=============================================================================
"""

from dataclasses import dataclass
from typing import Mapping, Optional
import os

ENV_PREFIX = "MINIHTTP_"


@dataclass
class ServerConfig:
    """
    Configuration for HTTPServer.

    There is deliberately no connection limit: every accepted connection
    gets a worker. ``timeout`` is off by default, so a client that never
    finishes its request holds its worker until it disconnects or the
    server stops.
    """

    # Network
    host: str = "0.0.0.0"
    port: int = 8080
    backlog: int = 50
    timeout: Optional[float] = None

    # Lifecycle
    shutdown_timeout: float = 5.0

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"

    # TLS material, only read by the command line entry point
    tls_certfile: Optional[str] = None
    tls_keyfile: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Build a config from ``MINIHTTP_*`` variables.

        Unset variables keep the dataclass defaults. ``environ`` defaults
        to ``os.environ``.
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value if value not in (None, "") else None

        defaults = cls()
        timeout = get("TIMEOUT")
        shutdown_timeout = get("SHUTDOWN_TIMEOUT")
        port = get("PORT")

        return cls(
            host=get("HOST") or defaults.host,
            port=int(port) if port is not None else defaults.port,
            timeout=float(timeout) if timeout is not None else defaults.timeout,
            shutdown_timeout=(
                float(shutdown_timeout) if shutdown_timeout is not None
                else defaults.shutdown_timeout
            ),
            log_level=(get("LOG_LEVEL") or defaults.log_level).upper(),
            log_format=get("LOG_FORMAT") or defaults.log_format,
            tls_certfile=get("TLS_CERTFILE"),
            tls_keyfile=get("TLS_KEYFILE"),
        )

    def validate(self) -> None:
        """
        Check values before the server binds.

        Raises:
            ValueError: naming the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0 or None")

        if self.shutdown_timeout < 0:
            raise ValueError("shutdown_timeout must be >= 0")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")

        if bool(self.tls_certfile) != bool(self.tls_keyfile):
            raise ValueError("tls_certfile and tls_keyfile must be set together")

    @property
    def tls_enabled(self) -> bool:
        return bool(self.tls_certfile and self.tls_keyfile)
