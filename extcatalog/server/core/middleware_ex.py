"""
Request correlation and access logging for the catalog API.

Client supplied request ids are echoed only when they are short, printable
tokens; anything else is replaced so log lines and error envelopes never
carry caller-controlled junk.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Any, Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from extcatalog.logging_config import reset_request_id, set_request_id

_log = logging.getLogger("extcatalog.request")
_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")
# Query parameters worth keeping in access logs.
_LOGGED_PARAMS = ("page", "limit", "q")
DEFAULT_SLOW_MS = 500.0


def accept_request_id(value: str | None) -> str:
    """Return ``value`` when it is a safe token, otherwise a fresh id."""
    if value and _SAFE_REQUEST_ID.match(value):
        return value
    return uuid.uuid4().hex


class RequestIDMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, header_name: str = "X-Request-ID"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = accept_request_id(request.headers.get(self.header_name))
        request.state.request_id = rid
        token = set_request_id(rid)
        try:
            response = await call_next(request)
        finally:
            reset_request_id(token)
        response.headers[self.header_name] = rid
        return response


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class TimingMiddleware(BaseHTTPMiddleware):
    """Stamp ``X-Process-Time`` and write one access log line per request.

    Requests slower than ``slow_ms`` are logged at WARNING.
    """

    def __init__(
        self,
        app: ASGIApp,
        header_name: str = "X-Process-Time",
        slow_ms: float = DEFAULT_SLOW_MS,
    ):
        super().__init__(app)
        self.header_name = header_name
        self.slow_ms = slow_ms

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers[self.header_name] = f"{elapsed_ms / 1000:.6f}s"

        http: Dict[str, Any] = {
            "method": request.method,
            "path": request.url.path,
            "route": _route_template(request),
            "status_code": response.status_code,
            "duration_ms": round(elapsed_ms, 3),
        }
        params = {
            key: request.query_params[key]
            for key in _LOGGED_PARAMS
            if key in request.query_params
        }
        if params:
            http["params"] = params
        level = logging.WARNING if elapsed_ms >= self.slow_ms else logging.INFO
        _log.log(level, "http_request", extra={"http": http})
        return response
