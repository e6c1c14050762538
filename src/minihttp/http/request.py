"""
=============================================================================
HTTP REQUEST MODEL AND PARSER
=============================================================================

A Request is an immutable value. Everything the caller hands in (header
mapping, body buffer, path variables) is copied at construction, so
nothing a handler or middleware does afterwards can change a request that
another piece of code is holding.

=============================================================================
WIRE FORMAT HANDLED BY RequestParser
=============================================================================

    POST /users?active=1 HTTP/1.1\r\n        ← request line
    Host: localhost\r\n                       ← headers, "Name: Value"
    Content-Length: 10\r\n
    \r\n                                      ← blank line ends headers
    name=webby                                ← exactly Content-Length bytes

    Request line:   split on single spaces, at least three tokens.
                    Unknown method or short line → HTTPParseError.
    Line endings:   a line ends at \\n; a trailing \\r is dropped.
                    Lines are decoded as UTF-8.
    Headers:        the first colon must not be the first character.
                    Other lines are skipped. Repeated names overwrite.
    Body:           Content-Length ASCII digits with an optional "+",
                    0 when absent or invalid. A connection that closes
                    early yields a shorter body instead of an error.

=============================================================================
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, BinaryIO, Mapping, Optional, Union
from urllib.parse import parse_qs
import io

from .headers import Headers
from .methods import HTTPMethod


class HTTPParseError(Exception):
    """Raised when a request cannot be read off the wire."""


_EMPTY_VARIABLES: Mapping[str, str] = MappingProxyType({})


@dataclass(frozen=True)
class Request:
    """
    An immutable HTTP request.

    ``method`` may be given as an HTTPMethod or any-case token; unknown
    tokens raise ValueError. ``body`` accepts bytes-like values or text
    (encoded as UTF-8); None means empty.
    """

    method: HTTPMethod
    target: str
    version: str = "HTTP/1.1"
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    path_variables: Mapping[str, str] = field(default_factory=lambda: _EMPTY_VARIABLES)
    client_address: Optional[tuple] = field(default=None, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "method", HTTPMethod.coerce(self.method))
        object.__setattr__(self, "target", self.target or "")
        object.__setattr__(self, "headers", _copy_headers(self.headers))
        object.__setattr__(self, "body", _copy_body(self.body))
        if self.path_variables:
            variables = MappingProxyType(dict(self.path_variables))
        else:
            variables = _EMPTY_VARIABLES
        object.__setattr__(self, "path_variables", variables)

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup; None when absent."""
        return self.headers.get(name)

    def path_variable(self, name: str) -> Optional[str]:
        """Value captured by the router for ``{name}``; None when absent."""
        return self.path_variables.get(name)

    def with_path_variables(self, variables: Mapping[str, str]) -> "Request":
        """
        Return a request carrying ``variables``.

        An empty mapping returns this same instance.
        """
        if not variables:
            return self
        return Request(
            method=self.method,
            target=self.target,
            version=self.version,
            headers=self.headers,
            body=self.body,
            path_variables=variables,
            client_address=self.client_address,
        )

    @property
    def path(self) -> str:
        """Target without the query string."""
        return self.target.split("?", 1)[0]

    @property
    def query(self) -> str:
        """Raw query string, empty when the target has none."""
        _, _, query = self.target.partition("?")
        return query

    def query_param(self, key: str) -> Optional[str]:
        """First URL-decoded value of ``key`` in the query string."""
        values = parse_qs(self.query, keep_blank_values=True).get(key)
        return values[0] if values else None

    @property
    def text(self) -> str:
        """Body decoded as UTF-8."""
        return self.body.decode("utf-8", errors="replace")

    @property
    def content_length(self) -> int:
        return _parse_content_length(self.headers.get("Content-Length"))


def _copy_headers(headers: Any) -> Headers:
    if isinstance(headers, Headers):
        return headers
    return Headers(headers)


def _copy_body(body: Union[bytes, bytearray, memoryview, str, None]) -> bytes:
    if body is None:
        return b""
    if isinstance(body, str):
        return body.encode("utf-8")
    return bytes(body)


def _parse_content_length(value: Optional[str]) -> int:
    if value is None:
        return 0
    value = value.strip()
    digits = value[1:] if value.startswith("+") else value
    if not (digits.isascii() and digits.isdigit()):
        return 0
    return int(digits)


class RequestParser:
    """
    Reads one request off a binary stream.

    The stream is anything with ``readline()`` and ``read()``: a socket's
    ``makefile("rb")`` in production, ``io.BytesIO`` in tests. A read that
    times out counts as end of stream.
    """

    MAX_LINE_LENGTH = 64 * 1024

    def __init__(self, max_line_length: int = MAX_LINE_LENGTH):
        self.max_line_length = max_line_length

    def parse(
        self,
        stream: BinaryIO,
        client_address: Optional[tuple] = None,
    ) -> Request:
        """
        Parse the request line, headers and body.

        Raises:
            HTTPParseError: empty input, a short request line or an
                unknown method.
        """
        line = self._read_line(stream)
        if not line:
            raise HTTPParseError("Empty request line")

        method, target, version = self._parse_request_line(line)
        headers = self._parse_headers(stream)
        length = _parse_content_length(headers.get("Content-Length"))
        body = self._read_body(stream, length)

        return Request(
            method=method,
            target=target,
            version=version,
            headers=headers,
            body=body,
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[HTTPMethod, str, str]:
        parts = line.split(" ")
        if len(parts) < 3:
            raise HTTPParseError(f"Malformed request line: {line!r}")

        method = HTTPMethod.from_token(parts[0])
        if method is None:
            raise HTTPParseError(f"Unknown method: {parts[0]!r}")

        return method, parts[1], parts[2]

    def _parse_headers(self, stream: BinaryIO) -> Headers:
        pairs = []
        while True:
            line = self._read_line(stream)
            if not line:
                break
            idx = line.find(":")
            if idx > 0:
                pairs.append((line[:idx].strip(), line[idx + 1:].strip()))
        return Headers(pairs)

    def _read_line(self, stream: BinaryIO) -> Optional[str]:
        """One line without its terminator, or None at end of stream."""
        try:
            raw = stream.readline(self.max_line_length + 1)
        except TimeoutError:
            return None
        if not raw:
            return None
        if len(raw) > self.max_line_length and not raw.endswith(b"\n"):
            raise HTTPParseError("Line too long")
        if raw.endswith(b"\n"):
            raw = raw[:-1]
        if raw.endswith(b"\r"):
            raw = raw[:-1]
        return raw.decode("utf-8", errors="replace")

    def _read_body(self, stream: BinaryIO, length: int) -> bytes:
        if length <= 0:
            return b""

        read = getattr(stream, "read1", stream.read)
        chunks = []
        remaining = length
        while remaining > 0:
            try:
                chunk = read(remaining)
            except TimeoutError:
                break
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)


def parse_request(data: bytes, client_address: Optional[tuple] = None) -> Request:
    """
    Parse a complete request held in memory.

    Example:
        >>> request = parse_request(b"GET /hello HTTP/1.1\\r\\n\\r\\n")
        >>> request.path
        '/hello'
    """
    return RequestParser().parse(io.BytesIO(data), client_address)
