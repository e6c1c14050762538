"""Request/response interceptors and the chain that composes them."""

from .base import (
    Middleware,
    MiddlewareChain,
    NextHandler,
    compose,
)
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewareChain",
    "NextHandler",
    "compose",
    "LoggingMiddleware",
    "RequestLog",
]
