"""FastAPI exception handlers for converting DomainError to HTTP responses.

Domain errors propagate unchanged from the services; this module is the only
place that decides their HTTP status. Every error body is an ErrorResponse.

The exception-class-to-HTTP status mapping:
- 400 Bad Request: ValidationError, SignatureError, malformed request bodies
- 401 Unauthorized: AuthError without a principal
- 403 Forbidden: AuthError for an insufficient role
- 404 Not Found: NotFoundError
- 409 Conflict: ConflictError
- 502 Bad Gateway: GatewayError (outcome may be unknown)
- 500 Internal Server Error: anything else, details never leaked

Usage:
    from bluewater_api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
)

from bluewater.models.errors import (
    AuthError,
    ConflictError,
    DomainError,
    ErrorCode,
    ErrorResponse,
    GatewayError,
    NotFoundError,
    SignatureError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Checked in order; the first matching class wins
ERROR_CLASS_TO_HTTP_STATUS: list[tuple[type[DomainError], int]] = [
    (ValidationError, HTTP_400_BAD_REQUEST),
    (SignatureError, HTTP_400_BAD_REQUEST),
    (NotFoundError, HTTP_404_NOT_FOUND),
    (ConflictError, HTTP_409_CONFLICT),
    (GatewayError, HTTP_502_BAD_GATEWAY),
]


def get_http_status_for_error(exc: DomainError) -> int:
    """Get HTTP status code for a DomainError.

    Args:
        exc: The raised domain error

    Returns:
        HTTP status code, defaults to 400 if not explicitly mapped.
    """
    if isinstance(exc, AuthError):
        return HTTP_403_FORBIDDEN if exc.code == ErrorCode.FORBIDDEN else HTTP_401_UNAUTHORIZED
    for error_class, status_code in ERROR_CLASS_TO_HTTP_STATUS:
        if isinstance(exc, error_class):
            return status_code
    return HTTP_400_BAD_REQUEST


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Handle DomainError exceptions and convert to JSON response.

    Args:
        request: The incoming request (unused but required by FastAPI)
        exc: The DomainError exception

    Returns:
        JSONResponse with error details and appropriate status code.
    """
    status_code = get_http_status_for_error(exc)
    if isinstance(exc, SignatureError):
        logger.warning("Rejected webhook with bad signature from %s", request.client)
    elif status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s on %s %s: %s", exc.code.value, request.method, request.url.path, exc)

    return JSONResponse(
        status_code=status_code,
        content=exc.to_response().model_dump(mode="json"),
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render malformed request bodies and parameters as a 400 ValidationError."""
    errors = [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]
    body = ValidationError(details={"errors": errors}).to_response()
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content=body.model_dump(mode="json"),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions with a generic error response.

    The original exception is logged with its traceback but never returned.

    Args:
        request: The incoming request
        exc: The uncaught exception

    Returns:
        JSONResponse with 500 status and generic error message.
    """
    logger.exception("Unhandled exception on %s %s: %s", request.method, request.url.path, exc)

    error_response = ErrorResponse(
        error_code="ERR_INTERNAL",
        message="An unexpected error occurred",
        recovery="Please try again later or contact support",
    )
    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response.model_dump(mode="json"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(DomainError, domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
