"""
The handler contract shared by the router, the middleware chain and every
transport.

A handler is any callable taking a Request and returning a Response. It
may also return None, which the transports answer with 204 No Content.
"""

from typing import Callable, Optional
import logging

from .request import Request
from .response import Response
from .status_codes import HTTPStatus

logger = logging.getLogger(__name__)

Handler = Callable[[Request], Optional[Response]]


def invoke_handler(handler: Handler, request: Request) -> Response:
    """
    Call ``handler`` and always come back with a Response.

    An exception becomes a fixed 500 text response; the error itself is
    logged, never sent to the client. A None result becomes an empty 204.
    """
    try:
        response = handler(request)
    except Exception:
        logger.exception("Unhandled error processing %s %s", request.method, request.target)
        return Response.text(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error")

    if response is None:
        return Response.text(HTTPStatus.NO_CONTENT, "")
    return response
