"""HTTP protocol pieces: requests, responses, headers, routing."""

from .handler import Handler, invoke_handler
from .headers import Headers
from .methods import HTTPMethod
from .request import HTTPParseError, Request, RequestParser, parse_request
from .response import (
    Response,
    ResponseBuilder,
    created,
    internal_error,
    method_not_allowed,
    no_content,
    not_found,
    ok,
)
from .router import Router, RouteNode, RouteTable
from .status_codes import HTTPStatus, reason_phrase

__all__ = [
    "Handler",
    "invoke_handler",
    "Headers",
    "HTTPMethod",
    "HTTPParseError",
    "Request",
    "RequestParser",
    "parse_request",
    "Response",
    "ResponseBuilder",
    "created",
    "internal_error",
    "method_not_allowed",
    "no_content",
    "not_found",
    "ok",
    "Router",
    "RouteNode",
    "RouteTable",
    "HTTPStatus",
    "reason_phrase",
]
