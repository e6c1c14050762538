"""HTTP request methods understood by the router and the request parser."""

from enum import Enum
from typing import Optional, Union


class HTTPMethod(str, Enum):
    """
    The nine standard request methods.

    Members are also strings, so ``HTTPMethod.GET == "GET"`` holds and
    they can be written straight onto the wire.
    """

    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    CONNECT = "CONNECT"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    PATCH = "PATCH"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_token(cls, token: Optional[str]) -> Optional["HTTPMethod"]:
        """
        Resolve a method token case-insensitively.

        Returns None for None, empty or unrecognised tokens.
        """
        if not token:
            return None
        return _BY_TOKEN.get(token.upper())

    @classmethod
    def coerce(cls, method: Union["HTTPMethod", str]) -> "HTTPMethod":
        """Like from_token() but raises ValueError on unknown methods."""
        if isinstance(method, HTTPMethod):
            return method
        resolved = cls.from_token(method)
        if resolved is None:
            raise ValueError(f"Unknown HTTP method: {method!r}")
        return resolved


_BY_TOKEN = {member.value: member for member in HTTPMethod}
