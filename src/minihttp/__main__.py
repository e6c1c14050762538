"""
Command line entry point.

    python -m minihttp                          # 0.0.0.0:8080
    python -m minihttp --port 3000 --log-level DEBUG
    python -m minihttp --certfile cert.pem --keyfile key.pem

Serves a small demo application:

    GET  /               plain-text greeting
    GET  /hello/{name}   greets ``name``; ``?greeting=Hi`` changes the word
    POST /echo           sends the request body back
"""

from dataclasses import replace
from typing import Optional, Sequence
import argparse
import logging
import ssl
import sys

from . import __version__
from .config import ServerConfig
from .http.request import Request
from .http.response import Response
from .http.router import Router
from .middleware.logging import LoggingMiddleware
from .server import HTTPServer

logger = logging.getLogger("minihttp")


def build_demo_router() -> Router:
    router = Router()

    @router.get("/")
    def index(request: Request) -> Response:
        return Response.text(200, "minihttp is running\n")

    @router.get("/hello/{name}")
    def hello(request: Request) -> Response:
        greeting = request.query_param("greeting") or "Hello"
        return Response.text(200, f"{greeting}, {request.path_variable('name')}!\n")

    @router.post("/echo")
    def echo(request: Request) -> Response:
        content_type = request.header("Content-Type") or "application/octet-stream"
        return Response(200, headers={"Content-Type": content_type}, body=request.body)

    return router


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="minihttp",
        description="Minimal threaded HTTP/1.1 server",
        epilog="Unset options fall back to MINIHTTP_* environment variables.",
    )
    parser.add_argument("--host", "-H", help="address to bind (default: 0.0.0.0)")
    parser.add_argument("--port", "-p", type=int, help="port to listen on, 0 for any (default: 8080)")
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="logging level (default: INFO)",
    )
    parser.add_argument(
        "--access-log",
        choices=["text", "json", "off"],
        help="access log format, or off (default: text)",
    )
    parser.add_argument("--certfile", help="PEM certificate chain; enables HTTPS")
    parser.add_argument("--keyfile", help="PEM private key for --certfile")
    parser.add_argument("--version", "-v", action="version", version=f"minihttp {__version__}")
    return parser


def config_from_args(args: argparse.Namespace, base: Optional[ServerConfig] = None) -> ServerConfig:
    """Overlay command line options on ``base`` (environment config by default)."""
    config = base if base is not None else ServerConfig.from_env()
    overrides = {}
    if args.host is not None:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    if args.access_log not in (None, "off"):
        overrides["log_format"] = args.access_log
    if args.certfile is not None:
        overrides["tls_certfile"] = args.certfile
    if args.keyfile is not None:
        overrides["tls_keyfile"] = args.keyfile
    return replace(config, **overrides)


def create_tls_context(certfile: str, keyfile: str) -> ssl.SSLContext:
    context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    context.load_cert_chain(certfile=certfile, keyfile=keyfile)
    return context


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        config.validate()
    except ValueError as e:
        print(f"minihttp: {e}", file=sys.stderr)
        return 2

    server = HTTPServer(config, handler=build_demo_router())
    if args.access_log != "off":
        server.use(LoggingMiddleware(log_format=config.log_format))

    if config.tls_enabled:
        try:
            server.enable_tls(create_tls_context(config.tls_certfile, config.tls_keyfile))
        except (OSError, ssl.SSLError) as e:
            print(f"minihttp: cannot load TLS material: {e}", file=sys.stderr)
            return 1

    try:
        server.run()
    except OSError as e:
        logger.error("Server failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
