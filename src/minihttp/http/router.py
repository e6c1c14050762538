"""
=============================================================================
URL ROUTER
=============================================================================

Path-segment trie routing with ``{name}`` variables and prefix mounting.

=============================================================================
TRIE LAYOUT
=============================================================================

One trie per HTTP method. Each level of the trie is one path segment:

    GET root
      ├── "users"                       literal child
      │     ├── (handler)               GET /users
      │     └── {userId}                the one variable child
      │           ├── (handler)         GET /users/{userId}
      │           └── "posts"
      │                 └── {postId}
      │                       └── (handler)
      └── "health"
            └── (handler)               GET /health

    Matching one segment:
        1. literal child with that exact text?   → take it
        2. otherwise a variable child?           → take it, capture segment
        3. otherwise                             → not found

A node holds at most one variable child. Registering ``/a/{x}`` and then
``/a/{y}/b`` reuses the same child and renames it to ``y``: the latest
registration wins for every route through that node.

=============================================================================
MOUNTING
=============================================================================

    router = Router()
    api = router.mount("/api/v1")

    @api.get("/users/{id}")         # stored at /api/v1/users/{id}
    def get_user(request): ...

``api`` is a view, not a copy. Views share the tries and the not-found
handler with the router they came from, so routes registered through any
view are visible to every other and dispatching through any of them
matches absolute paths.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional, Union
import logging

from .handler import Handler
from .methods import HTTPMethod
from .request import Request
from .response import Response
from .status_codes import HTTPStatus

logger = logging.getLogger(__name__)


def default_not_found(request: Request) -> Response:
    return Response.text(HTTPStatus.NOT_FOUND, "Not Found")


# =============================================================================
# PATH HELPERS
# =============================================================================

def normalize_path(path: Optional[str]) -> str:
    """
    Canonical path used for matching.

    Empty becomes "/", a leading slash is added when missing and the
    query string is dropped.
    """
    if not path:
        return "/"
    if not path.startswith("/"):
        path = "/" + path
    return path.split("?", 1)[0]


def split_path(path: str) -> list[str]:
    """
    Segments of a normalized path.

    "/" has no segments. Trailing empty segments are dropped, so
    "/users/" and "/users" are the same route; empty segments in the
    middle ("/a//b") are kept as literals.
    """
    if path == "/":
        return []
    segments = path[1:].split("/")
    while segments and segments[-1] == "":
        segments.pop()
    return segments


def variable_name(segment: str) -> Optional[str]:
    """
    Name declared by a ``{name}`` segment, or None for a literal.

    Raises:
        ValueError: the braces hold only whitespace.
    """
    if len(segment) > 2 and segment.startswith("{") and segment.endswith("}"):
        name = segment[1:-1]
        if not name.strip():
            raise ValueError(f"Path variable name must not be blank: {segment!r}")
        return name
    return None


# =============================================================================
# TRIE STORAGE
# =============================================================================

@dataclass
class RouteNode:
    """One level of a method's trie."""

    literals: dict[str, "RouteNode"] = field(default_factory=dict)
    variable_child: Optional["RouteNode"] = None
    variable_name: Optional[str] = None
    handler: Optional[Handler] = None


@dataclass
class RouteTable:
    """State shared by a router and every view mounted from it."""

    roots: dict[HTTPMethod, RouteNode] = field(default_factory=dict)
    not_found: Handler = default_not_found


class Router:
    """
    Method + path router over a segment trie.

    A Router is itself a handler: ``router(request)`` dispatches.

    Example:
        router = Router()

        @router.get("/users/{userId}/posts/{postId}")
        def get_post(request):
            return Response.text(200, request.path_variable("postId"))

        router.add_route("POST", "/users", create_user)
    """

    def __init__(self, table: Optional[RouteTable] = None, prefix: tuple[str, ...] = ()):
        self._table = table if table is not None else RouteTable()
        self._prefix = tuple(prefix)

    @property
    def prefix(self) -> str:
        return "/" + "/".join(self._prefix)

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        method: Union[HTTPMethod, str],
        path: str,
        handler: Handler,
    ) -> "Router":
        """
        Register ``handler`` for ``method`` at this view's prefix + ``path``.

        Registering the same method and path again replaces the handler.

        Raises:
            ValueError: unknown method or a blank ``{}`` variable name.
            TypeError: ``handler`` is not callable.

        Returns:
            This router, for chaining.
        """
        if not callable(handler):
            raise TypeError(f"Route handler must be callable, got {handler!r}")
        method = HTTPMethod.coerce(method)
        segments = split_path(normalize_path(path))
        # Validate before touching the trie so a bad template adds nothing.
        names = [variable_name(segment) for segment in segments]

        node = self._table.roots.setdefault(method, RouteNode())
        for segment in self._prefix:
            node = _literal_child(node, segment)

        for segment, name in zip(segments, names):
            if name is None:
                node = _literal_child(node, segment)
            else:
                if node.variable_child is None:
                    node.variable_child = RouteNode()
                node.variable_name = name
                node = node.variable_child

        node.handler = handler
        logger.debug("Registered %s %s", method, self._join(path))
        return self

    def route(self, path: str, method: Union[HTTPMethod, str] = HTTPMethod.GET) -> Callable[[Handler], Handler]:
        """Decorator form of add_route(); returns the handler unchanged."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(method, path, handler)
            return handler
        return decorator

    def get(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, HTTPMethod.GET)

    def post(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, HTTPMethod.POST)

    def put(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, HTTPMethod.PUT)

    def delete(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, HTTPMethod.DELETE)

    def patch(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, HTTPMethod.PATCH)

    def head(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, HTTPMethod.HEAD)

    def options(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, HTTPMethod.OPTIONS)

    # =========================================================================
    # COMPOSITION
    # =========================================================================

    def mount(self, prefix: str) -> "Router":
        """
        View of this router rooted at ``prefix``.

        A prefix with no segments ("", "/") returns this router itself.
        """
        segments = split_path(normalize_path(prefix))
        if not segments:
            return self
        return Router(self._table, self._prefix + tuple(segments))

    def set_not_found(self, handler: Handler) -> "Router":
        """Replace the not-found handler for this router and all its views."""
        if not callable(handler):
            raise TypeError(f"Not-found handler must be callable, got {handler!r}")
        self._table.not_found = handler
        return self

    @property
    def not_found(self) -> Handler:
        return self._table.not_found

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def handle(self, request: Request) -> Optional[Response]:
        """
        Dispatch ``request`` to the matching handler.

        Never raises for an unmatched route; the not-found handler answers
        instead. Captured variables are attached to the request handed to
        the route handler.
        """
        root = self._table.roots.get(request.method)
        if root is None:
            return self._table.not_found(request)

        node = root
        captured: dict[str, str] = {}
        for segment in split_path(normalize_path(request.target)):
            child = node.literals.get(segment)
            if child is not None:
                node = child
            elif node.variable_child is not None:
                captured[node.variable_name] = segment
                node = node.variable_child
            else:
                return self._table.not_found(request)

        if node.handler is None:
            return self._table.not_found(request)

        return node.handler(request.with_path_variables(captured))

    __call__ = handle

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def routes(self) -> Iterator[tuple[HTTPMethod, str]]:
        """
        Yield (method, template) for every registered handler.

        Templates are absolute and variables show their current name.
        Order is depth-first with literal children before the variable.
        """
        for method, root in self._table.roots.items():
            for template in _walk(root, []):
                yield method, template

    def print_routes(self, level: int = logging.DEBUG) -> None:
        """Log the route table, one line per route."""
        logger.log(level, "Routes:")
        for method, template in self.routes():
            logger.log(level, "  %-7s %s", method, template)

    def _join(self, path: str) -> str:
        segments = list(self._prefix) + split_path(normalize_path(path))
        return "/" + "/".join(segments)


def _literal_child(node: RouteNode, segment: str) -> RouteNode:
    child = node.literals.get(segment)
    if child is None:
        child = node.literals[segment] = RouteNode()
    return child


def _walk(node: RouteNode, segments: list[str]) -> Iterator[str]:
    if node.handler is not None:
        yield "/" + "/".join(segments)
    for segment, child in node.literals.items():
        yield from _walk(child, segments + [segment])
    if node.variable_child is not None:
        yield from _walk(node.variable_child, segments + ["{" + node.variable_name + "}"])
