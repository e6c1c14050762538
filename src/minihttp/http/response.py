"""
=============================================================================
HTTP RESPONSE MODEL
=============================================================================

A Response is an immutable (status, reason, headers, body) value. Handlers
build one and return it; the transport turns it into bytes.

=============================================================================
SERIALIZATION
=============================================================================

    HTTP/1.1 200 OK\r\n                              ← status line
    X-Custom: yes\r\n                                ← handler's headers, in order
    Content-Length: 5\r\n                            ← added when missing
    Content-Type: text/plain; charset=UTF-8\r\n      ← added when missing
    Connection: close\r\n                            ← always, overrides handler
    \r\n
    Hello

Every connection carries exactly one exchange, so ``Connection: close`` is
not negotiable: whatever a handler put there is replaced.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Union
import json

from .headers import Headers
from .status_codes import HTTPStatus, reason_phrase

DEFAULT_CONTENT_TYPE = "text/plain; charset=UTF-8"

BodyLike = Union[bytes, bytearray, memoryview, str, None]


@dataclass(frozen=True)
class Response:
    """
    An immutable HTTP response.

    ``status`` takes an HTTPStatus or any integer. ``reason`` defaults to
    the registered phrase, or to the phrase of the status class for
    unregistered codes. Missing headers or body become empty values.

        >>> Response(418, headers={"X-Brew": "tea"}).reason
        "I'm a teapot"
        >>> Response(299).reason
        'Success'
    """

    status: int
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    reason: Optional[str] = None

    def __post_init__(self):
        status = int(self.status)
        object.__setattr__(self, "status", status)
        if self.reason is None:
            object.__setattr__(self, "reason", reason_phrase(status))
        if not isinstance(self.headers, Headers):
            object.__setattr__(self, "headers", Headers(self.headers))
        object.__setattr__(self, "body", _to_bytes(self.body))

    @classmethod
    def text(cls, status: Union[int, HTTPStatus], body: Optional[str]) -> "Response":
        """A UTF-8 text response with no headers of its own."""
        return cls(status, body=_to_bytes(body))

    @property
    def status_code(self) -> int:
        return self.status

    @property
    def status_line(self) -> str:
        return f"HTTP/1.1 {self.status} {self.reason}"

    def with_header(self, name: str, value: str) -> "Response":
        """Return a copy with ``name`` set (replacing any value in any casing)."""
        return Response(
            self.status,
            headers=self.headers.with_header(name, value),
            body=self.body,
            reason=self.reason,
        )

    def effective_headers(self) -> Headers:
        """
        Headers as they go on the wire, minus ``Connection``.

        Caller-supplied Content-Length and Content-Type win over the
        defaults.
        """
        return self.headers.with_defaults({
            "Content-Length": str(len(self.body)),
            "Content-Type": DEFAULT_CONTENT_TYPE,
        })

    def to_bytes(self) -> bytes:
        """Serialize for a connection that closes after this response."""
        headers = self.effective_headers().with_header("Connection", "close")

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in headers.items())
        lines.append("")

        head = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return head + self.body


def _to_bytes(body: BodyLike) -> bytes:
    if body is None:
        return b""
    if isinstance(body, str):
        return body.encode("utf-8")
    return bytes(body)


class ResponseBuilder:
    """
    Fluent construction of a Response.

    Example:
        response = (
            ResponseBuilder()
            .status(HTTPStatus.CREATED)
            .header("Location", "/users/7")
            .json({"id": 7})
            .build()
        )
    """

    def __init__(self):
        self._status: int = HTTPStatus.OK
        self._headers: list[tuple[str, str]] = []
        self._body: bytes = b""

    def status(self, status: Union[int, HTTPStatus]) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers.append((name, value))
        return self

    def headers(self, headers: dict[str, str]) -> "ResponseBuilder":
        self._headers.extend(headers.items())
        return self

    def body(self, body: BodyLike) -> "ResponseBuilder":
        self._body = _to_bytes(body)
        return self

    def text(self, text: str, content_type: str = DEFAULT_CONTENT_TYPE) -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        return self.header("Content-Type", content_type)

    def json(self, data: Any) -> "ResponseBuilder":
        """Serialize ``data`` as compact JSON and set the content type."""
        self._body = json.dumps(data, separators=(",", ":")).encode("utf-8")
        return self.header("Content-Type", "application/json")

    def build(self) -> Response:
        return Response(self._status, headers=Headers(self._headers), body=self._body)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok(body: Union[str, bytes, dict, list] = "") -> Response:
    """200 OK; dicts and lists are sent as JSON."""
    builder = ResponseBuilder().status(HTTPStatus.OK)
    if isinstance(body, (dict, list)):
        builder.json(body)
    else:
        builder.body(body)
    return builder.build()


def created(body: Union[str, bytes, dict, list] = "", location: Optional[str] = None) -> Response:
    builder = ResponseBuilder().status(HTTPStatus.CREATED)
    if isinstance(body, (dict, list)):
        builder.json(body)
    else:
        builder.body(body)
    if location:
        builder.header("Location", location)
    return builder.build()


def no_content() -> Response:
    return Response(HTTPStatus.NO_CONTENT)


def not_found(message: str = "Not Found") -> Response:
    return Response.text(HTTPStatus.NOT_FOUND, message)


def method_not_allowed(message: str = "Method Not Allowed") -> Response:
    return Response.text(HTTPStatus.METHOD_NOT_ALLOWED, message)


def internal_error(message: str = "Internal Server Error") -> Response:
    return Response.text(HTTPStatus.INTERNAL_SERVER_ERROR, message)
