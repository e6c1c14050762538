"""
Access logging middleware.

Writes one line per request to the ``minihttp.access`` logger, so access
logs can be routed or silenced separately from the server's own logs:

    logging.getLogger("minihttp.access").addHandler(file_handler)

Text lines resemble the Apache common log format:

    127.0.0.1 - - [19/Oct/2026:10:02:11 +0000] "GET /hello/ada" 200 9 0.41ms a1b2c3d4
"""

from dataclasses import asdict, dataclass
from typing import Iterable, Optional
import json
import logging
import time
import uuid

from .base import Middleware, NextHandler
from ..http.request import Request
from ..http.response import Response

logger = logging.getLogger("minihttp.access")


@dataclass
class RequestLog:
    """One access-log record."""

    request_id: str
    method: str
    target: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms {self.request_id}'
        )


class LoggingMiddleware(Middleware):
    """
    Time each request and log the outcome.

    Args:
        log_format: "text" or "json".
        include_request_id: add an ``X-Request-ID`` header to the response.
        log_level: level the access lines are logged at.
        skip_paths: paths that are served but never logged, e.g. health checks.

    A handler error is logged with its duration and re-raised unchanged,
    leaving the 500 response to the transport.
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        if log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {log_format!r}")
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or ())

    def __call__(self, request: Request, next: NextHandler) -> Optional[Response]:
        request_id = uuid.uuid4().hex[:8]
        started = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - started) * 1000
            logger.error(
                "Request failed: %s %s - %s: %s (%.2fms) %s",
                request.method, request.target, type(e).__name__, e, duration_ms, request_id,
            )
            raise

        duration_ms = (time.perf_counter() - started) * 1000

        if request.path not in self.skip_paths:
            self._emit(self._record(request, response, request_id, duration_ms))

        if response is not None and self.include_request_id:
            response = response.with_header("X-Request-ID", request_id)
        return response

    def _record(
        self,
        request: Request,
        response: Optional[Response],
        request_id: str,
        duration_ms: float,
    ) -> RequestLog:
        # A None response goes out as 204 with no body.
        status = response.status if response is not None else 204
        length = len(response.body) if response is not None else 0
        client_ip = request.client_address[0] if request.client_address else "-"
        return RequestLog(
            request_id=request_id,
            method=str(request.method),
            target=request.target,
            client_ip=client_ip,
            user_agent=request.header("User-Agent") or "-",
            status_code=status,
            content_length=length,
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

    def _emit(self, entry: RequestLog) -> None:
        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())
