from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from extcatalog.errors import CatalogError, InternalError
from extcatalog.logging_config import reset_request_id, set_request_id

_log = logging.getLogger("extcatalog.errors")
OPAQUE_MESSAGE = "Internal server error"


def _request_id(request: Request) -> Optional[str]:
    state_rid = getattr(request.state, "request_id", None)
    return state_rid or request.headers.get("X-Request-ID") or None


def _error_response(
    request: Request,
    *,
    status: int,
    code: str,
    message: str,
    details: Any = None,
) -> JSONResponse:
    rid = _request_id(request)
    body: dict[str, Any] = {"ok": False, "code": code, "message": message}
    if details is not None:
        body["details"] = details
    if rid:
        body["request_id"] = rid
    response = JSONResponse(body, status_code=status)
    if rid:
        response.headers["X-Request-ID"] = rid
    return response


def _opaque_failure(request: Request, exc: BaseException, summary: str) -> JSONResponse:
    err_id = uuid.uuid4().hex
    _log.error(
        "%s [%s] %s %s",
        summary,
        err_id,
        request.method,
        request.url.path,
        exc_info=(type(exc), exc, exc.__traceback__),
        extra={"error_id": err_id},
    )
    return _error_response(
        request,
        status=500,
        code="internal_error",
        message=OPAQUE_MESSAGE,
        details={"error_id": err_id},
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CatalogError)
    async def _catalog_exc(request: Request, exc: CatalogError):
        token = set_request_id(_request_id(request))
        try:
            if isinstance(exc, InternalError) or exc.status_code >= 500:
                return _opaque_failure(request, exc, f"Catalog failure: {exc.message}")
            return _error_response(
                request,
                status=exc.status_code,
                code=exc.code,
                message=exc.message,
                details=exc.details,
            )
        finally:
            reset_request_id(token)

    @app.exception_handler(StarletteHTTPException)
    async def _http_exc(request: Request, exc: StarletteHTTPException):
        detail = exc.detail
        return _error_response(
            request,
            status=exc.status_code,
            code=f"http_{exc.status_code}",
            message=str(detail) if detail else "Request failed",
            details=detail if isinstance(detail, (dict, list)) else None,
        )

    @app.exception_handler(RequestValidationError)
    async def _val_exc(request: Request, exc: RequestValidationError):
        _log.debug("validation error: %s", exc)
        return _error_response(
            request,
            status=422,
            code="validation_error",
            message="Request validation failed",
            details=jsonable_errors(exc),
        )

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        token = set_request_id(_request_id(request))
        try:
            return _opaque_failure(request, exc, "Unhandled exception")
        finally:
            reset_request_id(token)


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    errors = []
    for error in exc.errors():
        errors.append(
            {
                "loc": [str(part) for part in error.get("loc", ())],
                "msg": str(error.get("msg", "")),
                "type": str(error.get("type", "")),
            }
        )
    return errors
