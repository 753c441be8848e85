"""HTTP error boundary.

Every error leaving a route is rendered as ``{"status": false, "message": ...}``.
This is the only place that maps error kinds to status codes. Anything that is
not a known kind becomes a 500 with a fixed message, and the real exception is
logged instead of being sent to the client.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.errors import (
    AuthenticationError,
    ForbiddenError,
    UpstreamServiceError,
    error_message,
)

logger = structlog.get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "Something went wrong. Please try again later."
CONFLICT_MESSAGE = "The order was modified concurrently. Please retry."


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": False, "message": message})


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    message = error_message(exc)
    logger.info("request_rejected", path=request.url.path, reason=message)
    return error_response(400, message)


async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    message = "; ".join(parts) or "Invalid request"
    logger.info("request_rejected", path=request.url.path, reason=message)
    return error_response(400, message)


async def _not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    logger.info("resource_not_found", path=request.url.path)
    return error_response(404, "Order not found")


async def _conflict(request: Request, exc: ExpectedVersionError) -> JSONResponse:
    logger.warning("version_conflict", path=request.url.path)
    return error_response(409, CONFLICT_MESSAGE)


async def _forbidden(request: Request, exc: ForbiddenError) -> JSONResponse:
    logger.warning("access_denied", path=request.url.path, reason=exc.message)
    return error_response(403, exc.message)


async def _unauthenticated(request: Request, exc: AuthenticationError) -> JSONResponse:
    logger.warning("authentication_failed", path=request.url.path, reason=exc.message)
    return error_response(401, exc.message)


async def _upstream_failure(request: Request, exc: UpstreamServiceError) -> JSONResponse:
    logger.error("upstream_failure", path=request.url.path, reason=exc.message)
    return error_response(502, exc.message)


async def _http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail))


async def _internal_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path, error_type=type(exc).__name__)
    return error_response(500, INTERNAL_ERROR_MESSAGE)


def register_error_handlers(app: FastAPI) -> None:
    """Attach the storefront error mapping to a FastAPI application."""
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
    app.add_exception_handler(ExpectedVersionError, _conflict)
    app.add_exception_handler(ForbiddenError, _forbidden)
    app.add_exception_handler(AuthenticationError, _unauthenticated)
    app.add_exception_handler(UpstreamServiceError, _upstream_failure)
    app.add_exception_handler(StarletteHTTPException, _http_exception)
    app.add_exception_handler(Exception, _internal_error)
