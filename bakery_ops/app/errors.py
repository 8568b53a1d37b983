"""Error types and FastAPI exception handlers.

Every failure leaves the API as ``{"error": ..., "details": ...}`` with a
conventional status code.
"""
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..utils.logger import get_logger

logger = get_logger()


class ApiError(Exception):
    """An error that maps directly onto an HTTP response."""

    status_code = 500

    def __init__(self, error: str, details: Optional[Any] = None, status_code: Optional[int] = None):
        super().__init__(error)
        self.error = error
        self.details = details
        if status_code is not None:
            self.status_code = status_code


class ValidationFailed(ApiError):
    status_code = 400


class Unauthorized(ApiError):
    status_code = 401


class Forbidden(ApiError):
    status_code = 403


class NotFoundError(ApiError):
    status_code = 404


class Conflict(ApiError):
    status_code = 409


def error_body(error: str, details: Optional[Any] = None) -> dict:
    body = {"error": error}
    if details is not None:
        body["details"] = details
    return body


_STATUS_MESSAGES = {
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not found",
    405: "Method not allowed",
}


async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.error} ({exc.details})")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.error, exc.details))


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if exc.status_code in _STATUS_MESSAGES and detail in (None, "", "Not Found", "Method Not Allowed"):
        detail = _STATUS_MESSAGES[exc.status_code]
    return JSONResponse(status_code=exc.status_code, content=error_body(str(detail)), headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', []))}: {err.get('msg')}" for err in errors
    )
    in_body = all(err.get("loc", ("body",))[0] == "body" for err in errors)
    return JSONResponse(
        status_code=400,
        content=error_body("Invalid request body" if in_body else "Invalid request parameters", details),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Error handling {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content=error_body("Internal server error", str(exc)))


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
