"""
=============================================================================
MIDDLEWARE CHAIN
=============================================================================

A middleware sees every request before the handler does and every
response after it:

    def timing(request, next):
        started = time.monotonic()
        response = next(request)          # run the rest of the chain
        elapsed = time.monotonic() - started
        return response.with_header("X-Elapsed", f"{elapsed:.3f}")

Returning without calling ``next`` short-circuits: no later middleware
and no handler run.

=============================================================================
CHAIN STRUCTURE
=============================================================================

A MiddlewareChain is an immutable singly linked list. Appending builds a
new head and leaves the existing chain untouched, so one base chain can
be extended in several directions:

    base    = MiddlewareChain.append(None, auth)       [auth]
    logged  = base.then(access_log)                     [auth, access_log]
    limited = base.then(rate_limit)                     [auth, rate_limit]
    # base is still [auth]

wrap() folds from the last middleware to the first, each step closing
over the handler built so far:

    [A, B, C].wrap(handler)  →  A(B(C(handler)))

    request  ──► A ──► B ──► C ──► handler
    response ◄── A ◄── B ◄── C ◄──

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterator, Optional, Union
import logging

from ..http.handler import Handler
from ..http.request import Request
from ..http.response import Response

logger = logging.getLogger(__name__)

# The rest of the chain, as seen from inside a middleware.
NextHandler = Handler

MiddlewareFunc = Callable[[Request, NextHandler], Optional[Response]]


class Middleware(ABC):
    """
    Base class for class-based middleware.

    Plain functions with the same call signature work just as well; the
    class form adds a ``name`` used in log messages.
    """

    @abstractmethod
    def __call__(self, request: Request, next: NextHandler) -> Optional[Response]:
        """Handle ``request``, calling ``next(request)`` to continue the chain."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


AnyMiddleware = Union[Middleware, MiddlewareFunc]


def middleware_name(middleware: AnyMiddleware) -> str:
    if isinstance(middleware, Middleware):
        return middleware.name
    return getattr(middleware, "__name__", type(middleware).__name__)


class MiddlewareChain:
    """
    Immutable, append-ordered sequence of middleware.

    The empty chain is represented by None; build chains with
    ``MiddlewareChain.append(None, first)``.
    """

    __slots__ = ("_middleware", "_previous", "_length")

    def __init__(self, middleware: AnyMiddleware, previous: Optional["MiddlewareChain"] = None):
        if not callable(middleware):
            raise TypeError(f"Middleware must be callable, got {middleware!r}")
        self._middleware = middleware
        self._previous = previous
        self._length = 1 + (len(previous) if previous is not None else 0)

    @staticmethod
    def append(chain: Optional["MiddlewareChain"], middleware: AnyMiddleware) -> "MiddlewareChain":
        """New chain with ``middleware`` after everything in ``chain``."""
        logger.debug("Appending middleware: %s", middleware_name(middleware))
        return MiddlewareChain(middleware, chain)

    def then(self, middleware: AnyMiddleware) -> "MiddlewareChain":
        return MiddlewareChain.append(self, middleware)

    def __iter__(self) -> Iterator[AnyMiddleware]:
        """Middleware in execution order."""
        return iter(self._in_order())

    def __len__(self) -> int:
        return self._length

    def __repr__(self) -> str:
        names = ", ".join(middleware_name(m) for m in self)
        return f"MiddlewareChain([{names}])"

    def _in_order(self) -> list[AnyMiddleware]:
        items = []
        node: Optional[MiddlewareChain] = self
        while node is not None:
            items.append(node._middleware)
            node = node._previous
        items.reverse()
        return items

    def wrap(self, terminal: Handler) -> Handler:
        """
        Compose the chain around ``terminal`` into a single handler.

        The first appended middleware is the first to see each request.
        """
        current = terminal
        for middleware in reversed(self._in_order()):
            current = _bind(middleware, current)
        return current


def _bind(middleware: AnyMiddleware, next_handler: Handler) -> Handler:
    def wrapped(request: Request) -> Optional[Response]:
        return middleware(request, next_handler)

    wrapped.__name__ = f"{middleware_name(middleware)}_wrapped"
    return wrapped


def compose(chain: Optional[MiddlewareChain], terminal: Handler) -> Handler:
    """
    ``chain.wrap(terminal)`` that also accepts the empty chain.

    With no middleware the terminal handler comes back unchanged.
    """
    if chain is None:
        return terminal
    return chain.wrap(terminal)
