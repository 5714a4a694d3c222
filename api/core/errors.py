"""
Application error kinds and the HTTP boundary that renders them.

Services raise `AppError` subclasses. The handlers registered here are the
only place an error kind becomes an HTTP status and envelope code.

Envelope:
    {"error": {"code": "...", "message": "...", "request_id": "...", "details": ...}}
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    INTERNAL = "internal"


# kind -> (HTTP status, envelope code)
_HTTP_MAPPING: dict[ErrorKind, tuple[int, str]] = {
    ErrorKind.VALIDATION: (status.HTTP_400_BAD_REQUEST, "invalid_request"),
    ErrorKind.UNAUTHORIZED: (status.HTTP_401_UNAUTHORIZED, "unauthorized"),
    ErrorKind.NOT_FOUND: (status.HTTP_404_NOT_FOUND, "not_found"),
    ErrorKind.CONFLICT: (status.HTTP_409_CONFLICT, "conflict"),
    ErrorKind.INTERNAL: (status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error"),
}

_INTERNAL_MESSAGE = "An internal server error occurred"


class AppError(Exception):
    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationFailure(AppError):
    kind = ErrorKind.VALIDATION


class NotFound(AppError):
    kind = ErrorKind.NOT_FOUND


class Conflict(AppError):
    kind = ErrorKind.CONFLICT


class Unauthorized(AppError):
    kind = ErrorKind.UNAUTHORIZED


class Internal(AppError):
    kind = ErrorKind.INTERNAL


def http_mapping(kind: ErrorKind) -> tuple[int, str]:
    return _HTTP_MAPPING[kind]


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or "unknown"


def build_error_envelope(
    *,
    code: str,
    message: str,
    request_id: str,
    details: Any = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
            "request_id": request_id,
        }
    }
    if details is not None:
        payload["error"]["details"] = details
    return payload


def _log_context(request: Request, status_code: int, code: str) -> dict[str, Any]:
    context: dict[str, Any] = {
        "request_id": _request_id(request),
        "method": request.method,
        "path": request.url.path,
        "status": status_code,
        "error_code": code,
    }
    project_id = getattr(request.state, "project_id", None)
    if project_id is not None:
        context["project_id"] = str(project_id)
    return context


def _safe_validation_details(exc: RequestValidationError) -> list[dict[str, Any]]:
    # Never echo request input back; it may carry credentials.
    return [
        {
            "loc": [str(part) for part in err.get("loc", ())],
            "msg": str(err.get("msg", "")),
            "type": str(err.get("type", "")),
        }
        for err in exc.errors()
    ]


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        status_code, code = http_mapping(exc.kind)
        context = _log_context(request, status_code, code)
        if exc.kind is ErrorKind.INTERNAL:
            # Internal messages may describe storage state; keep them in logs only.
            logger.error("internal_error %s", exc.message, extra={"context": context})
            message, details = _INTERNAL_MESSAGE, None
        else:
            logger.warning("request_error %s", exc.message, extra={"context": context})
            message, details = exc.message, exc.details
        return JSONResponse(
            status_code=status_code,
            content=build_error_envelope(
                code=code,
                message=message,
                request_id=_request_id(request),
                details=details,
            ),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        status_code, code = http_mapping(ErrorKind.VALIDATION)
        logger.warning("request_body_invalid", extra={"context": _log_context(request, status_code, code)})
        return JSONResponse(
            status_code=status_code,
            content=build_error_envelope(
                code=code,
                message="Validation failed",
                request_id=_request_id(request),
                details=_safe_validation_details(exc),
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # Routing-level errors (unknown path, wrong method) raised by the framework.
        code = {404: "not_found", 405: "method_not_allowed"}.get(exc.status_code, "error")
        return JSONResponse(
            status_code=exc.status_code,
            content=build_error_envelope(
                code=code,
                message=str(exc.detail),
                request_id=_request_id(request),
            ),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        status_code, code = http_mapping(ErrorKind.INTERNAL)
        logger.exception(
            "unhandled_exception %s",
            type(exc).__name__,
            extra={"context": _log_context(request, status_code, code)},
        )
        return JSONResponse(
            status_code=status_code,
            content=build_error_envelope(
                code=code,
                message=_INTERNAL_MESSAGE,
                request_id=_request_id(request),
            ),
        )
